from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import (
    CouponAlreadyRedeemed,
    CouponCodeTaken,
    CouponExhausted,
    CouponExpired,
    CouponInactive,
    CouponNotFound,
)
from app.models.coupon import Coupon, CouponRedemption
from app.models.customer import TransactionType
from app.services.coupon import CouponService, normalize_code
from app.services.customer import CustomerService
from app.services.ledger import LedgerService


@pytest.fixture
def coupons(session):
    return CouponService(session)


def test_welcome_coupon_redeems_once(session, coupons, customer):
    coupon = coupons.create(None, "WELCOME10", 10, max_uses=100)

    assert coupons.redeem("WELCOME10", customer.id) == {"creditsAdded": 10, "newBalance": 15}

    with pytest.raises(CouponAlreadyRedeemed):
        coupons.redeem("WELCOME10", customer.id)

    ledger = LedgerService(session)
    assert ledger.balance(customer.id) == 15
    [entry] = ledger.transactions(customer.id)
    assert entry.type == TransactionType.REDEMPTION
    assert entry.amount == 10
    session.refresh(coupon)
    assert coupon.used_count == 1


def test_max_uses_caps_redemptions(session, coupons):
    coupon = coupons.create(None, "TWICE", 3, max_uses=2)
    customers = CustomerService(session)
    first, second, third = (customers.get_or_create(f"user-{n}") for n in range(3))

    coupons.redeem("TWICE", first.id)
    coupons.redeem("TWICE", second.id)
    with pytest.raises(CouponExhausted):
        coupons.redeem("TWICE", third.id)

    session.refresh(coupon)
    assert coupon.used_count == 2
    assert LedgerService(session).balance(third.id) == 5


def test_unknown_code(coupons, customer):
    with pytest.raises(CouponNotFound):
        coupons.redeem("NOPE", customer.id)


def test_lookup_is_exact_but_trims_whitespace(coupons, customer):
    coupons.create(None, "SPRING", 2)
    with pytest.raises(CouponNotFound):
        coupons.redeem("spring", customer.id)
    assert coupons.redeem("  SPRING ", customer.id)["creditsAdded"] == 2


def test_inactive_coupon(coupons, customer):
    coupon = coupons.create(None, "OLD", 2)
    coupons.update(coupon, is_active=False)
    with pytest.raises(CouponInactive):
        coupons.redeem("OLD", customer.id)


def test_expired_coupon(session, coupons, customer):
    coupons.create(None, "LATE", 2, expires_at=datetime.utcnow() - timedelta(days=1))
    with pytest.raises(CouponExpired) as exc_info:
        coupons.redeem("LATE", customer.id)
    assert exc_info.value.status_code == 400
    assert LedgerService(session).balance(customer.id) == 5


def test_store_enforces_one_redemption_per_customer(session, coupons, customer):
    coupon = coupons.create(None, "ONCE", 1)
    session.add(CouponRedemption(coupon_id=coupon.id, customer_id=customer.id))
    session.commit()

    session.add(CouponRedemption(coupon_id=coupon.id, customer_id=customer.id))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


def test_create_normalizes_code(coupons):
    assert normalize_code("  summer5 ") == "SUMMER5"
    assert coupons.create(None, "summer5", 5).code == "SUMMER5"
    with pytest.raises(CouponCodeTaken):
        coupons.create(None, "SUMMER5", 1)


def test_create_rejects_bad_amounts(coupons):
    with pytest.raises(HTTPException) as exc_info:
        coupons.create(None, "ZERO", 0)
    assert exc_info.value.status_code == 400


def test_max_uses_cannot_drop_below_used_count(coupons, customer):
    coupon = coupons.create(None, "LIMIT", 1, max_uses=5)
    coupons.redeem("LIMIT", customer.id)
    with pytest.raises(HTTPException) as exc_info:
        coupons.update(coupon, max_uses=0)
    assert exc_info.value.status_code == 400
    assert coupons.update(coupon, max_uses=1).max_uses == 1


def test_delete_removes_redemptions(session, coupons, customer):
    coupon = coupons.create(None, "GONE", 1)
    coupon_id = coupon.id
    coupons.redeem("GONE", customer.id)
    coupons.delete(coupon)
    assert session.get(Coupon, coupon_id) is None
    assert coupons.get_by_code("GONE") is None


def test_last_use_taken_between_check_and_claim(engine, session, coupons, customer, monkeypatch):
    coupon = coupons.create(None, "LASTONE", 4, max_uses=1)
    rival_id = CustomerService(session).get_or_create("rival").id
    check = CouponService.has_redeemed
    interleaved = []

    def check_then_redeem_elsewhere(self, coupon_id, customer_id):
        redeemed = check(self, coupon_id, customer_id)
        if not interleaved:
            interleaved.append(coupon_id)
            with Session(engine) as other:
                CouponService(other).redeem("LASTONE", rival_id)
        return redeemed

    monkeypatch.setattr(CouponService, "has_redeemed", check_then_redeem_elsewhere)
    with pytest.raises(CouponExhausted):
        coupons.redeem("LASTONE", customer.id)

    session.refresh(coupon)
    assert coupon.used_count == 1
    ledger = LedgerService(session)
    assert ledger.balance(customer.id) == 5
    assert ledger.transactions(customer.id) == []
    assert ledger.balance(rival_id) == 9
    redeemers = session.exec(select(CouponRedemption.customer_id).where(CouponRedemption.coupon_id == coupon.id)).all()
    assert redeemers == [rival_id]


def test_same_customer_redeeming_twice_at_once_gets_one_redemption(engine, session, coupons, customer, monkeypatch):
    coupon = coupons.create(None, "TWICE", 6)
    check = CouponService.has_redeemed
    interleaved = []

    def check_then_record_elsewhere(self, coupon_id, customer_id):
        redeemed = check(self, coupon_id, customer_id)
        if not interleaved:
            interleaved.append(coupon_id)
            # The other request's redemption row lands after this one checked
            with Session(engine) as other:
                other.add(CouponRedemption(coupon_id=coupon_id, customer_id=customer_id))
                other.commit()
        return redeemed

    monkeypatch.setattr(CouponService, "has_redeemed", check_then_record_elsewhere)
    with pytest.raises(CouponAlreadyRedeemed):
        coupons.redeem("TWICE", customer.id)

    session.refresh(coupon)
    assert coupon.used_count == 0
    assert LedgerService(session).balance(customer.id) == 5
    assert LedgerService(session).transactions(customer.id) == []
