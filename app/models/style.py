from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint

class StylePreset(SQLModel, table=True):
    """Prompt prefix offered in the designer. Built-ins have no merchant."""

    __table_args__ = (UniqueConstraint("merchant_id", "key", name="uq_style_merchant_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    merchant_id: Optional[int] = Field(default=None, foreign_key="merchant.id", index=True)

    # Identifier sent by the designer, e.g. "watercolor"
    key: str = Field(index=True, max_length=50)
    name: str
    prompt_prefix: str = Field(default="")
    category: str = Field(default="all")  # all, decor, apparel

    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
