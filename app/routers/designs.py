import base64
import binascii
import re
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel import Session
from pydantic import BaseModel, Field
from app.core.config import settings
from app.db.session import get_session
from app.models.customer import Customer
from app.models.design import Design
from app.routers.auth import get_current_customer
from app.services.design import DesignService
from app.services.generation import GenerationService
from app.services.image_generator import get_image_generator
from app.services.ledger import LedgerService
from app.services.s3 import get_image_store

router = APIRouter()

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")

class GenerateRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=2000)
    size: str
    productTypeId: int
    frameColor: Optional[str] = None
    stylePreset: Optional[str] = None
    referenceImageBase64: Optional[str] = None

class GenerateResponse(BaseModel):
    generatedImageUrl: str
    design: Design
    creditsRemaining: int

class DesignPage(BaseModel):
    designs: List[Design]
    total: int
    hasMore: bool

class DesignUpdate(BaseModel):
    transformScale: Optional[int] = None
    transformX: Optional[int] = None
    transformY: Optional[int] = None
    size: Optional[str] = None
    frameColor: Optional[str] = None

def get_design_service(session: Session = Depends(get_session)) -> DesignService:
    return DesignService(session)

def get_generation_service(
    session: Session = Depends(get_session),
    generator=Depends(get_image_generator),
    image_store=Depends(get_image_store),
) -> GenerationService:
    return GenerationService(session, generator=generator, image_store=image_store)

def decode_reference_image(data: Optional[str]) -> Optional[bytes]:
    if not data:
        return None
    try:
        return base64.b64decode(DATA_URL_PREFIX.sub("", data), validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Reference image is not valid base64")

@router.post("/generate", response_model=GenerateResponse)
def generate_design(
    data: GenerateRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: GenerationService = Depends(get_generation_service)
):
    design = service.generate(
        customer_id=current_customer.id,
        prompt=data.prompt,
        size=data.size,
        product_type_id=data.productTypeId,
        frame_color=data.frameColor,
        style_preset=data.stylePreset,
        reference_image=decode_reference_image(data.referenceImageBase64),
    )
    return GenerateResponse(
        generatedImageUrl=design.generated_image_url,
        design=design,
        creditsRemaining=LedgerService(service.session).balance(current_customer.id),
    )

@router.get("", response_model=DesignPage)
def list_designs(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    current_customer: Customer = Depends(get_current_customer),
    service: DesignService = Depends(get_design_service)
):
    limit = min(limit or settings.DESIGNS_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    designs, total = service.list_page(current_customer.id, page, limit)
    has_more = (page - 1) * limit + len(designs) < total
    return DesignPage(designs=designs, total=total, hasMore=has_more)

@router.get("/{design_id}", response_model=Design)
def get_design(
    design_id: int,
    current_customer: Customer = Depends(get_current_customer),
    service: DesignService = Depends(get_design_service)
):
    return service.get_owned(design_id, current_customer.id)

@router.patch("/{design_id}", response_model=Design)
def update_design(
    design_id: int,
    data: DesignUpdate,
    current_customer: Customer = Depends(get_current_customer),
    service: DesignService = Depends(get_design_service)
):
    design = service.get_owned(design_id, current_customer.id)
    return service.update(
        design,
        transform_scale=data.transformScale,
        transform_x=data.transformX,
        transform_y=data.transformY,
        size=data.size,
        frame_color=data.frameColor,
    )

@router.delete("/{design_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_design(
    design_id: int,
    current_customer: Customer = Depends(get_current_customer),
    service: DesignService = Depends(get_design_service)
):
    design = service.get_owned(design_id, current_customer.id)
    service.delete(design)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
