import logging
from typing import Optional
from datetime import datetime
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from app.core.config import settings
from app.models.customer import Customer
from app.models.merchant import Merchant

logger = logging.getLogger(__name__)

class CustomerService:
    def __init__(self, session: Session):
        self.session = session

    def get_by_user_id(self, user_id: str) -> Optional[Customer]:
        return self.session.exec(select(Customer).where(Customer.user_id == user_id)).first()

    def get_or_create(self, user_id: str) -> Customer:
        """Customers are created on their first authenticated request."""
        customer = self.get_by_user_id(user_id)
        if customer:
            return customer

        customer = Customer(user_id=user_id)
        self.session.add(customer)
        try:
            self.session.commit()
        except IntegrityError:
            # A concurrent first request created it
            self.session.rollback()
            return self.get_by_user_id(user_id)
        self.session.refresh(customer)
        logger.info("Created customer %s for user %s", customer.id, user_id)
        return customer


class MerchantService:
    def __init__(self, session: Session):
        self.session = session

    def get_by_user_id(self, user_id: str) -> Optional[Merchant]:
        return self.session.exec(select(Merchant).where(Merchant.user_id == user_id)).first()

    def get_or_create(self, user_id: str) -> Merchant:
        merchant = self.get_by_user_id(user_id)
        if merchant:
            return merchant
        merchant = Merchant(user_id=user_id)
        self.session.add(merchant)
        self.session.commit()
        self.session.refresh(merchant)
        return merchant

    def update(self, merchant: Merchant, store_name: str = None, shop_domain: str = None) -> Merchant:
        if store_name is not None:
            merchant.store_name = store_name
        if shop_domain is not None:
            merchant.shop_domain = shop_domain
        merchant.updated_at = datetime.utcnow()
        self.session.add(merchant)
        self.session.commit()
        self.session.refresh(merchant)
        return merchant
