from typing import List, Literal, Optional
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session
from pydantic import BaseModel, Field
from app.db.session import get_session
from app.models.coupon import Coupon
from app.models.merchant import Merchant
from app.models.order import Order, OrderStatus
from app.models.product import ProductType
from app.models.style import StylePreset
from app.routers.auth import get_current_merchant, get_current_subject
from app.services.catalog import CatalogService
from app.services.coupon import CouponService
from app.services.customer import MerchantService
from app.services.generation import GenerationService
from app.services.order import OrderService

router = APIRouter()

# Pydantic models for requests/responses
class MerchantUpdate(BaseModel):
    storeName: Optional[str] = None
    shopDomain: Optional[str] = None

class CouponCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    creditAmount: int = Field(gt=0)
    maxUses: Optional[int] = Field(default=None, ge=1)
    expiresAt: Optional[datetime] = None

class CouponUpdate(BaseModel):
    isActive: Optional[bool] = None
    maxUses: Optional[int] = Field(default=None, ge=1)
    expiresAt: Optional[datetime] = None

class ProductTypeCreate(BaseModel):
    name: str
    description: Optional[str] = None
    printifyBlueprintId: Optional[int] = None
    printifyProviderId: Optional[int] = None
    options: dict
    sortOrder: int = 0

class ProductTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    printifyBlueprintId: Optional[int] = None
    printifyProviderId: Optional[int] = None
    options: Optional[dict] = None
    isActive: Optional[bool] = None
    sortOrder: Optional[int] = None

class StyleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    key: Optional[str] = Field(default=None, max_length=50)
    promptPrefix: str = ""
    category: Literal["all", "decor", "apparel"] = "all"
    isActive: bool = True
    sortOrder: int = 0

class StyleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    promptPrefix: Optional[str] = None
    category: Optional[Literal["all", "decor", "apparel"]] = None
    isActive: Optional[bool] = None
    sortOrder: Optional[int] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    printifyOrderId: Optional[str] = None

class GenerationStats(BaseModel):
    total: int
    successful: int
    failed: int

def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Stored timestamps are naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Merchant profile

@router.get("/merchant", response_model=Merchant)
def read_merchant(user_id: str = Depends(get_current_subject), session: Session = Depends(get_session)):
    """Get or create the caller's merchant profile."""
    return MerchantService(session).get_or_create(user_id)

@router.put("/merchant", response_model=Merchant)
def update_merchant(
    data: MerchantUpdate,
    user_id: str = Depends(get_current_subject),
    session: Session = Depends(get_session)
):
    service = MerchantService(session)
    merchant = service.get_or_create(user_id)
    return service.update(merchant, store_name=data.storeName, shop_domain=data.shopDomain)


# Stats

@router.get("/admin/stats", response_model=GenerationStats)
def read_stats(merchant: Merchant = Depends(get_current_merchant), session: Session = Depends(get_session)):
    """Generation totals for the last 30 days."""
    return GenerationService(session).stats(days=30)


# Coupons

@router.get("/admin/coupons", response_model=List[Coupon])
def list_coupons(merchant: Merchant = Depends(get_current_merchant), session: Session = Depends(get_session)):
    return CouponService(session).list_for_merchant(merchant.id)

@router.post("/admin/coupons", response_model=Coupon)
def create_coupon(
    data: CouponCreate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    return CouponService(session).create(
        merchant.id,
        data.code,
        data.creditAmount,
        max_uses=data.maxUses,
        expires_at=_naive_utc(data.expiresAt),
    )

@router.patch("/admin/coupons/{coupon_id}", response_model=Coupon)
def update_coupon(
    coupon_id: int,
    data: CouponUpdate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    service = CouponService(session)
    coupon = service.get_for_merchant(coupon_id, merchant.id)
    return service.update(coupon, is_active=data.isActive, max_uses=data.maxUses, expires_at=_naive_utc(data.expiresAt))

@router.delete("/admin/coupons/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_coupon(
    coupon_id: int,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    service = CouponService(session)
    service.delete(service.get_for_merchant(coupon_id, merchant.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Product types

@router.post("/admin/product-types", response_model=ProductType)
def create_product_type(
    data: ProductTypeCreate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    return CatalogService(session).create(
        name=data.name,
        options=data.options,
        merchant_id=merchant.id,
        description=data.description,
        printify_blueprint_id=data.printifyBlueprintId,
        printify_provider_id=data.printifyProviderId,
        sort_order=data.sortOrder,
    )

@router.patch("/admin/product-types/{product_type_id}", response_model=ProductType)
def update_product_type(
    product_type_id: int,
    data: ProductTypeUpdate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    """Options are re-validated against their product family."""
    service = CatalogService(session)
    product_type = service.get_for_merchant(product_type_id, merchant.id)
    return service.update(
        product_type,
        name=data.name,
        options=data.options,
        description=data.description,
        printify_blueprint_id=data.printifyBlueprintId,
        printify_provider_id=data.printifyProviderId,
        is_active=data.isActive,
        sort_order=data.sortOrder,
    )

@router.delete("/admin/product-types/{product_type_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product_type(
    product_type_id: int,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    service = CatalogService(session)
    service.deactivate(service.get_for_merchant(product_type_id, merchant.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Style presets

@router.get("/admin/styles", response_model=List[StylePreset])
def list_styles(merchant: Merchant = Depends(get_current_merchant), session: Session = Depends(get_session)):
    return CatalogService(session).styles_for_merchant(merchant.id)

@router.post("/admin/styles", response_model=StylePreset)
def create_style(
    data: StyleCreate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    return CatalogService(session).create_style(
        merchant.id,
        data.name,
        prompt_prefix=data.promptPrefix,
        category=data.category,
        key=data.key,
        is_active=data.isActive,
        sort_order=data.sortOrder,
    )

@router.post("/admin/styles/seed", response_model=List[StylePreset])
def seed_styles(merchant: Merchant = Depends(get_current_merchant), session: Session = Depends(get_session)):
    """Copy the built-in presets into the merchant's own list, skipping keys it already has."""
    service = CatalogService(session)
    service.seed_styles(merchant.id)
    return service.styles_for_merchant(merchant.id)

@router.patch("/admin/styles/{style_id}", response_model=StylePreset)
def update_style(
    style_id: int,
    data: StyleUpdate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    service = CatalogService(session)
    style = service.get_style_for_merchant(style_id, merchant.id)
    return service.update_style(
        style,
        name=data.name,
        prompt_prefix=data.promptPrefix,
        category=data.category,
        is_active=data.isActive,
        sort_order=data.sortOrder,
    )

@router.delete("/admin/styles/{style_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_style(
    style_id: int,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    service = CatalogService(session)
    service.delete_style(service.get_style_for_merchant(style_id, merchant.id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Orders (fulfillment updates arrive out of band)

@router.get("/admin/orders", response_model=List[Order])
def list_all_orders(merchant: Merchant = Depends(get_current_merchant), session: Session = Depends(get_session)):
    return OrderService(session).get_all_orders()

@router.patch("/admin/orders/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    merchant: Merchant = Depends(get_current_merchant),
    session: Session = Depends(get_session)
):
    return OrderService(session).update_status(order_id, data.status, printify_order_id=data.printifyOrderId)
