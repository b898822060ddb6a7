from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from sqlalchemy import CheckConstraint, UniqueConstraint

class Coupon(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="ck_coupon_used_count_cap"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    merchant_id: Optional[int] = Field(default=None, foreign_key="merchant.id", index=True)

    # Coupon Details
    code: str = Field(unique=True, index=True, max_length=50)  # e.g., "WELCOME10"
    credit_amount: int

    # Usage Limits
    max_uses: Optional[int] = None  # null = unlimited
    used_count: int = Field(default=0)

    # Validity
    is_active: bool = Field(default=True)
    expires_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)


class CouponRedemption(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("coupon_id", "customer_id", name="uq_redemption_coupon_customer"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    coupon_id: int = Field(foreign_key="coupon.id", index=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
