from typing import List
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.customer import Customer, CreditTransaction
from app.routers.auth import get_current_customer
from app.services.credits import CreditService
from app.services.ledger import LedgerService

router = APIRouter()

class CreditPurchase(BaseModel):
    package: str

class CreditPurchaseResponse(BaseModel):
    success: bool = True
    credits: int
    charged: int

@router.get("/customer", response_model=Customer)
def read_customer(current_customer: Customer = Depends(get_current_customer)):
    """
    Get (or create on first access) the current customer's wallet.
    """
    return current_customer

@router.post("/credits/purchase", response_model=CreditPurchaseResponse)
def purchase_credits(
    data: CreditPurchase,
    current_customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session)
):
    new_balance, charged = CreditService(session).purchase(current_customer.id, data.package)
    return CreditPurchaseResponse(credits=new_balance, charged=charged)

@router.get("/credits/transactions", response_model=List[CreditTransaction])
def list_transactions(
    current_customer: Customer = Depends(get_current_customer),
    session: Session = Depends(get_session)
):
    return LedgerService(session).transactions(current_customer.id)
