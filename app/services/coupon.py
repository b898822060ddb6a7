import logging
from typing import List, Optional
from datetime import datetime
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from fastapi import HTTPException
from app.core.errors import (
    CouponAlreadyRedeemed,
    CouponCodeTaken,
    CouponExhausted,
    CouponExpired,
    CouponInactive,
    CouponNotFound,
)
from app.db.session import run_in_transaction
from app.models.coupon import Coupon, CouponRedemption
from app.models.customer import TransactionType
from app.services.ledger import LedgerService

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CouponService:
    def __init__(self, session: Session):
        self.session = session
        self.ledger = LedgerService(session)

    def get_by_code(self, code: str) -> Optional[Coupon]:
        # Exact match: codes are stored uppercase
        return self.session.exec(select(Coupon).where(Coupon.code == code)).first()

    def has_redeemed(self, coupon_id: int, customer_id: int) -> bool:
        return self.session.exec(
            select(CouponRedemption.id).where(
                CouponRedemption.coupon_id == coupon_id,
                CouponRedemption.customer_id == customer_id,
            )
        ).first() is not None

    def redeem(self, code: str, customer_id: int) -> dict:
        """Redeem a coupon once per customer. Returns credits added and the new balance."""

        def _redeem():
            coupon = self.get_by_code(code.strip())
            if not coupon:
                raise CouponNotFound()
            if not coupon.is_active:
                raise CouponInactive()
            if coupon.expires_at and coupon.expires_at < datetime.utcnow():
                raise CouponExpired()
            if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
                raise CouponExhausted()

            if self.has_redeemed(coupon.id, customer_id):
                raise CouponAlreadyRedeemed()

            # Conditional increment: a concurrent redemption may have taken the last use
            claimed = self.session.exec(
                update(Coupon)
                .where(
                    Coupon.id == coupon.id,
                    or_(Coupon.max_uses.is_(None), Coupon.used_count < Coupon.max_uses),
                )
                .values(used_count=Coupon.used_count + 1)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                raise CouponExhausted()

            self.session.add(CouponRedemption(coupon_id=coupon.id, customer_id=customer_id))
            try:
                self.session.flush()
            except IntegrityError as exc:
                # Lost the race against a concurrent redemption by the same customer
                raise CouponAlreadyRedeemed() from exc

            new_balance = self.ledger.apply_delta(
                customer_id,
                coupon.credit_amount,
                TransactionType.REDEMPTION,
                description=f"Redeemed coupon: {coupon.code}",
            )
            return {"creditsAdded": coupon.credit_amount, "newBalance": new_balance}

        result = run_in_transaction(self.session, _redeem)
        logger.info("Customer %s redeemed coupon %s", customer_id, code)
        return result

    # Merchant administration

    def list_for_merchant(self, merchant_id: int) -> List[Coupon]:
        return self.session.exec(
            select(Coupon).where(Coupon.merchant_id == merchant_id).order_by(Coupon.created_at.desc())
        ).all()

    def get_for_merchant(self, coupon_id: int, merchant_id: int) -> Coupon:
        coupon = self.session.get(Coupon, coupon_id)
        if not coupon or coupon.merchant_id != merchant_id:
            raise HTTPException(status_code=404, detail="Coupon not found")
        return coupon

    def create(self, merchant_id: Optional[int], code: str, credit_amount: int,
               max_uses: Optional[int] = None, expires_at: Optional[datetime] = None) -> Coupon:
        code = normalize_code(code)
        if not code:
            raise HTTPException(status_code=400, detail="Coupon code is required")
        if credit_amount <= 0:
            raise HTTPException(status_code=400, detail="Credit amount must be positive")
        if max_uses is not None and max_uses < 1:
            raise HTTPException(status_code=400, detail="Max uses must be at least 1")
        if self.get_by_code(code):
            raise CouponCodeTaken()

        coupon = Coupon(
            merchant_id=merchant_id,
            code=code,
            credit_amount=credit_amount,
            max_uses=max_uses,
            expires_at=expires_at,
        )
        self.session.add(coupon)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise CouponCodeTaken() from exc
        self.session.refresh(coupon)
        return coupon

    def update(self, coupon: Coupon, is_active: Optional[bool] = None,
               max_uses: Optional[int] = None, expires_at: Optional[datetime] = None) -> Coupon:
        if is_active is not None:
            coupon.is_active = is_active
        if max_uses is not None:
            if max_uses < coupon.used_count:
                raise HTTPException(status_code=400, detail=f"Coupon has already been used {coupon.used_count} times")
            coupon.max_uses = max_uses
        if expires_at is not None:
            coupon.expires_at = expires_at
        self.session.add(coupon)
        self.session.commit()
        self.session.refresh(coupon)
        return coupon

    def delete(self, coupon: Coupon):
        for redemption in self.session.exec(
            select(CouponRedemption).where(CouponRedemption.coupon_id == coupon.id)
        ).all():
            self.session.delete(redemption)
        self.session.delete(coupon)
        self.session.commit()
