import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.core.config import settings
from app.db.session import create_db_and_tables

# Import models to ensure they are registered with SQLModel metadata
from app.models import (
    Customer, CreditTransaction, Merchant, Coupon, CouponRedemption,
    ProductType, Design, Order, GenerationLog, StylePreset,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Credits, coupons, AI artwork generation and print orders for the Shopify print studio"
)

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

from app.routers import auth, customer, coupons, designs, orders, products, admin

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(customer.router, prefix="/api", tags=["customer"])
app.include_router(coupons.router, prefix="/api/coupons", tags=["coupons"])
app.include_router(designs.router, prefix="/api/designs", tags=["designs"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(products.router, prefix="/api", tags=["catalog"])
app.include_router(admin.router, prefix="/api", tags=["admin"])

# Add CORS
from fastapi.middleware.cors import CORSMiddleware
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"https://([a-z0-9-]+\.)?(myshopify\.com|shopify\.com)",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
