from typing import Tuple
from sqlalchemy import update
from sqlmodel import Session
from fastapi import HTTPException
from app.core.config import settings
from app.db.session import run_in_transaction
from app.models.customer import Customer, TransactionType
from app.services.ledger import LedgerService

class CreditService:
    def __init__(self, session: Session):
        self.session = session
        self.ledger = LedgerService(session)

    def purchase(self, customer_id: int, package_id: str) -> Tuple[int, int]:
        """Buy a credit package. Returns (new_balance, charged_in_cents)."""
        package = settings.CREDIT_PACKAGES.get(package_id)
        if not package:
            raise HTTPException(status_code=400, detail="Invalid credit package")
        credits, price_in_cents = package

        def _purchase():
            self.session.exec(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(total_spent_in_cents=Customer.total_spent_in_cents + price_in_cents)
                .execution_options(synchronize_session=False)
            )
            return self.ledger.apply_delta(
                customer_id,
                credits,
                TransactionType.PURCHASE,
                price_in_cents=price_in_cents,
                description=f"Purchased {credits} credits",
            )

        new_balance = run_in_transaction(self.session, _purchase)
        return new_balance, price_in_cents
