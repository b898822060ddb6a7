from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel, Field
from app.db.session import get_session
from app.models.customer import Customer
from app.routers.auth import get_current_customer
from app.services.coupon import CouponService

router = APIRouter()

class CouponRedeem(BaseModel):
    code: str = Field(min_length=1, max_length=50)

class CouponRedeemResponse(BaseModel):
    success: bool = True
    creditsAdded: int
    newBalance: int

def get_coupon_service(session: Session = Depends(get_session)) -> CouponService:
    return CouponService(session)

@router.post("/redeem", response_model=CouponRedeemResponse)
def redeem_coupon(
    data: CouponRedeem,
    current_customer: Customer = Depends(get_current_customer),
    service: CouponService = Depends(get_coupon_service)
):
    """Redeem a coupon code for credits, once per customer."""
    return service.redeem(data.code, current_customer.id)
