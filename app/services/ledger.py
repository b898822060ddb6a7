import logging
from typing import List, Optional
from datetime import datetime
from sqlalchemy import func, update
from sqlmodel import Session, select
from app.core.errors import CustomerNotFound, InsufficientCredits
from app.models.customer import Customer, CreditTransaction, TransactionType

logger = logging.getLogger(__name__)


class LedgerService:
    """Owns every change to a customer's credit balance.

    Each change is one conditional UPDATE on ``customer.credits`` plus one
    ``CreditTransaction`` row, flushed into the caller's transaction. The
    caller commits (see ``run_in_transaction``), so a failed debit leaves
    both the balance and the ledger untouched.
    """

    def __init__(self, session: Session):
        self.session = session

    def apply_delta(
        self,
        customer_id: int,
        amount: int,
        type: TransactionType,
        price_in_cents: Optional[int] = None,
        order_id: Optional[int] = None,
        design_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Apply a signed credit change and return the new balance."""
        if amount == 0:
            raise ValueError("Credit delta must be non-zero")
        if (type == TransactionType.DEBIT) != (amount < 0):
            raise ValueError(f"Amount {amount} does not match transaction type {type.value}")

        statement = (
            update(Customer)
            .where(Customer.id == customer_id)
            .values(credits=Customer.credits + amount, updated_at=datetime.utcnow())
        )
        if amount < 0:
            # The store decides: a concurrent debit cannot push the balance below zero
            statement = statement.where(Customer.credits + amount >= 0)

        result = self.session.exec(statement.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            if self.session.get(Customer, customer_id) is None:
                raise CustomerNotFound()
            raise InsufficientCredits()

        self.session.add(CreditTransaction(
            customer_id=customer_id,
            type=type,
            amount=amount,
            price_in_cents=price_in_cents,
            order_id=order_id,
            design_id=design_id,
            description=description,
        ))
        self.session.flush()

        balance = self.balance(customer_id)
        logger.info("Ledger %s %+d for customer %s -> %s", type.value, amount, customer_id, balance)
        return balance

    def balance(self, customer_id: int) -> int:
        return self.session.exec(select(Customer.credits).where(Customer.id == customer_id)).one()

    def transactions(self, customer_id: int) -> List[CreditTransaction]:
        return self.session.exec(
            select(CreditTransaction)
            .where(CreditTransaction.customer_id == customer_id)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        ).all()

    def credits_spent_on_design(self, customer_id: int, design_id: int) -> int:
        """Net credits charged for a design: debits minus compensating refunds."""
        total = self.session.exec(
            select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                CreditTransaction.customer_id == customer_id,
                CreditTransaction.design_id == design_id,
                CreditTransaction.type.in_([TransactionType.DEBIT, TransactionType.REFUND]),
            )
        ).one()
        return max(0, -total)
