from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from enum import Enum
from pydantic import computed_field

class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

# Allowed forward moves; anything else is rejected
ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    design_id: int = Field(foreign_key="design.id", index=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)

    # Fulfillment
    printify_order_id: Optional[str] = None
    status: OrderStatus = Field(default=OrderStatus.PENDING)

    # Print configuration
    size: str
    frame_color: Optional[str] = None
    quantity: int = Field(default=1, ge=1)

    # Settled pricing
    price_in_cents: int
    shipping_in_cents: int = Field(default=0)
    credit_refund_in_cents: int = Field(default=0)

    shipping_address: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def total_in_cents(self) -> int:
        return self.price_in_cents + self.shipping_in_cents - self.credit_refund_in_cents
