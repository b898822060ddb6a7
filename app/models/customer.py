from typing import Optional
from datetime import datetime
from enum import Enum
from sqlmodel import Field, SQLModel
from sqlalchemy import CheckConstraint
from app.core.config import settings


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    REDEMPTION = "redemption"
    DEBIT = "debit"
    REFUND = "refund"


class Customer(SQLModel, table=True):
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_customer_credits_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # Subject of the session token (platform user / Shopify customer)
    user_id: str = Field(unique=True, index=True)

    # Wallet. Only LedgerService writes `credits`.
    credits: int = Field(default_factory=lambda: settings.STARTING_CREDITS)
    free_generations_used: int = Field(default=0)
    total_generations: int = Field(default=0)
    total_spent_in_cents: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CreditTransaction(SQLModel, table=True):
    """Append-only ledger row. Never updated or deleted."""

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)

    type: TransactionType
    amount: int  # positive for purchase/redemption/refund, negative for debit

    # Context
    price_in_cents: Optional[int] = None
    order_id: Optional[int] = None
    design_id: Optional[int] = Field(default=None, index=True)  # survives design deletion
    description: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
