from typing import List
from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.core.config import settings
from app.db.session import get_session
from app.models.product import ProductType
from app.services.catalog import CatalogService

router = APIRouter()

def get_catalog_service(session: Session = Depends(get_session)) -> CatalogService:
    return CatalogService(session)

@router.get("/config")
def read_config(service: CatalogService = Depends(get_catalog_service)):
    return {
        "stylePresets": [
            {"id": style.key, "name": style.name, "promptPrefix": style.prompt_prefix, "category": style.category}
            for style in service.list_styles()
        ],
        "creditPackages": [
            {"id": package_id, "credits": credits, "priceInCents": price}
            for package_id, (credits, price) in settings.CREDIT_PACKAGES.items()
        ],
        "centsPerCredit": settings.CENTS_PER_CREDIT,
        "freeGenerationAllowance": settings.FREE_GENERATION_ALLOWANCE,
        "maxDesignsPerCustomer": settings.MAX_DESIGNS_PER_CUSTOMER,
    }

@router.get("/product-types", response_model=List[ProductType])
def read_product_types(service: CatalogService = Depends(get_catalog_service)):
    return service.list_active()

@router.get("/product-types/{product_type_id}", response_model=ProductType)
def read_product_type(product_type_id: int, service: CatalogService = Depends(get_catalog_service)):
    return service.get(product_type_id)
