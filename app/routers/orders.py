from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session
from pydantic import BaseModel, Field
from app.db.session import get_session
from app.models.customer import Customer
from app.models.order import Order
from app.routers.auth import get_current_customer
from app.services.fulfillment import get_fulfillment_client, submit_order_for_fulfillment
from app.services.order import OrderService

router = APIRouter()

class ShippingAddress(BaseModel):
    full_name: str
    email: str
    phone: Optional[str] = None
    address: str
    city: str
    state: Optional[str] = None
    zip: str
    country: str = "US"

class OrderCreate(BaseModel):
    designId: int
    size: Optional[str] = None
    frameColor: Optional[str] = None
    quantity: int = Field(default=1, ge=1, le=100)
    shippingAddress: Optional[ShippingAddress] = None

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

@router.post("", response_model=Order)
def create_order(
    order_in: OrderCreate,
    background_tasks: BackgroundTasks,
    current_customer: Customer = Depends(get_current_customer),
    service: OrderService = Depends(get_order_service),
    fulfillment_client=Depends(get_fulfillment_client)
):
    order = service.place_order(
        customer_id=current_customer.id,
        design_id=order_in.designId,
        size=order_in.size,
        frame_color=order_in.frameColor,
        quantity=order_in.quantity,
        shipping_address=order_in.shippingAddress.model_dump() if order_in.shippingAddress else None,
    )
    # Submission to the print provider happens after the response is sent
    background_tasks.add_task(submit_order_for_fulfillment, order.id, service.session.get_bind(), fulfillment_client)
    return order

@router.get("", response_model=List[Order])
def list_orders(
    current_customer: Customer = Depends(get_current_customer),
    service: OrderService = Depends(get_order_service)
):
    return service.get_customer_orders(current_customer.id)

@router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: int,
    current_customer: Customer = Depends(get_current_customer),
    service: OrderService = Depends(get_order_service)
):
    return service.get_owned(order_id, current_customer.id)
