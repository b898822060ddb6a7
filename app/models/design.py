from typing import Optional
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel
from sqlalchemy import CheckConstraint

class DesignStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

class Design(SQLModel, table=True):
    __table_args__ = (CheckConstraint("credit_refunded_in_cents >= 0", name="ck_design_refunded_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    product_type_id: Optional[int] = Field(default=None, foreign_key="producttype.id")

    # Generation input
    prompt: str
    style_preset: Optional[str] = None
    reference_image_url: Optional[str] = None

    # Output
    generated_image_url: Optional[str] = None

    # Print configuration
    size: str
    frame_color: Optional[str] = None
    aspect_ratio: str = Field(default="3:4")
    transform_scale: int = Field(default=100)
    transform_x: int = Field(default=50)
    transform_y: int = Field(default=50)

    status: DesignStatus = Field(default=DesignStatus.PENDING)

    # Credit value already handed back on orders of this design
    credit_refunded_in_cents: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
