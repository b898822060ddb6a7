import pytest
from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.errors import CustomerNotFound, InsufficientCredits
from app.db.session import run_in_transaction
from app.models.customer import Customer, TransactionType
from app.services.credits import CreditService
from app.services.customer import CustomerService
from app.services.ledger import LedgerService


def test_new_customer_gets_starting_credits(session):
    customer = CustomerService(session).get_or_create("fresh-user")
    assert customer.credits == settings.STARTING_CREDITS
    assert LedgerService(session).transactions(customer.id) == []


def test_starting_credits_follow_settings(session, monkeypatch):
    monkeypatch.setattr(settings, "STARTING_CREDITS", 7)
    customer = CustomerService(session).get_or_create("generous-shop-user")
    assert customer.credits == 7
    assert Customer(user_id="unsaved").credits == 7


def test_get_or_create_returns_existing_customer(session, customer):
    again = CustomerService(session).get_or_create("customer-1")
    assert again.id == customer.id


def test_debit_writes_balance_and_ledger_together(session, customer):
    ledger = LedgerService(session)
    balance = run_in_transaction(
        session, lambda: ledger.apply_delta(customer.id, -1, TransactionType.DEBIT, design_id=7)
    )
    assert balance == 4
    assert ledger.balance(customer.id) == 4
    [entry] = ledger.transactions(customer.id)
    assert entry.type == TransactionType.DEBIT
    assert entry.amount == -1
    assert entry.design_id == 7


def test_debit_beyond_balance_changes_nothing(session, customer):
    ledger = LedgerService(session)
    with pytest.raises(InsufficientCredits):
        run_in_transaction(session, lambda: ledger.apply_delta(customer.id, -6, TransactionType.DEBIT))
    assert ledger.balance(customer.id) == 5
    assert ledger.transactions(customer.id) == []


def test_debit_to_exactly_zero_is_allowed(session, customer):
    ledger = LedgerService(session)
    assert run_in_transaction(session, lambda: ledger.apply_delta(customer.id, -5, TransactionType.DEBIT)) == 0


def test_amount_sign_must_match_type(session, customer):
    ledger = LedgerService(session)
    with pytest.raises(ValueError):
        ledger.apply_delta(customer.id, 1, TransactionType.DEBIT)
    with pytest.raises(ValueError):
        ledger.apply_delta(customer.id, -1, TransactionType.REFUND)
    with pytest.raises(ValueError):
        ledger.apply_delta(customer.id, 0, TransactionType.PURCHASE)


def test_unknown_customer(session):
    with pytest.raises(CustomerNotFound):
        LedgerService(session).apply_delta(999, 3, TransactionType.PURCHASE)


def test_ledger_sums_to_balance_change(session, customer):
    ledger = LedgerService(session)
    for amount, kind in [(-1, TransactionType.DEBIT), (1, TransactionType.REFUND),
                         (10, TransactionType.REDEMPTION), (-1, TransactionType.DEBIT)]:
        run_in_transaction(session, lambda: ledger.apply_delta(customer.id, amount, kind))

    total = sum(t.amount for t in ledger.transactions(customer.id))
    assert ledger.balance(customer.id) == settings.STARTING_CREDITS + total == 14


def test_store_rejects_negative_balance(session, customer):
    with pytest.raises(IntegrityError):
        session.exec(update(Customer).where(Customer.id == customer.id).values(credits=-1))
        session.commit()
    session.rollback()


def test_credits_spent_on_design_nets_refunds(session, customer):
    ledger = LedgerService(session)
    run_in_transaction(session, lambda: ledger.apply_delta(customer.id, -1, TransactionType.DEBIT, design_id=1))
    run_in_transaction(session, lambda: ledger.apply_delta(customer.id, -1, TransactionType.DEBIT, design_id=2))
    run_in_transaction(session, lambda: ledger.apply_delta(customer.id, 1, TransactionType.REFUND, design_id=2))
    assert ledger.credits_spent_on_design(customer.id, 1) == 1
    assert ledger.credits_spent_on_design(customer.id, 2) == 0


def test_purchase_package(session, customer):
    balance, charged = CreditService(session).purchase(customer.id, "5")
    assert (balance, charged) == (10, 100)

    session.refresh(customer)
    assert customer.total_spent_in_cents == 100
    [entry] = LedgerService(session).transactions(customer.id)
    assert entry.type == TransactionType.PURCHASE
    assert entry.price_in_cents == 100


def test_purchase_unknown_package(session, customer):
    with pytest.raises(HTTPException) as exc_info:
        CreditService(session).purchase(customer.id, "1000")
    assert exc_info.value.status_code == 400
    assert LedgerService(session).balance(customer.id) == 5
