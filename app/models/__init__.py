# Import all models to register them with SQLModel
from app.models.customer import Customer, CreditTransaction, TransactionType
from app.models.merchant import Merchant
from app.models.coupon import Coupon, CouponRedemption
from app.models.product import ProductType, ProductConfig, FramedPrintConfig, PillowConfig, ApparelConfig
from app.models.design import Design, DesignStatus
from app.models.order import Order, OrderStatus
from app.models.generation import GenerationLog
from app.models.style import StylePreset

__all__ = [
    "Customer",
    "CreditTransaction",
    "TransactionType",
    "Merchant",
    "Coupon",
    "CouponRedemption",
    "ProductType",
    "ProductConfig",
    "FramedPrintConfig",
    "PillowConfig",
    "ApparelConfig",
    "Design",
    "DesignStatus",
    "Order",
    "OrderStatus",
    "GenerationLog",
    "StylePreset",
]
