import re
from typing import List, Optional
from datetime import datetime
from pydantic import ValidationError
from sqlmodel import Session, select
from fastapi import HTTPException
from app.core.errors import InvalidProductConfig, InvalidProductOption, ProductTypeNotFound
from app.models.product import ProductType, ProductConfig, product_config_adapter
from app.models.style import StylePreset

# Built-in style presets, seeded into the style table. Decor presets fill
# the canvas, apparel presets produce an isolated motif on white.
DEFAULT_STYLE_PRESETS = [
    {"key": "none", "name": "No Style (Custom Prompt)", "prompt_prefix": "", "category": "all"},
    {"key": "royal-pet", "name": "Royal Pet Portrait", "category": "decor",
     "prompt_prefix": "Transform this pet into a regal royal portrait from the 1800s, dressed in elegant period clothing with an ornate aristocratic backdrop filling the entire canvas. Create full-bleed artwork of"},
    {"key": "watercolor", "name": "Watercolor", "category": "decor",
     "prompt_prefix": "A beautiful full-bleed watercolor painting that fills the entire canvas edge-to-edge of"},
    {"key": "oil-painting", "name": "Oil Painting", "category": "decor",
     "prompt_prefix": "A classic full-bleed oil painting in the style of impressionism with rich brushstrokes extending to all edges of"},
    {"key": "pop-art", "name": "Pop Art", "category": "decor",
     "prompt_prefix": "A vibrant full-bleed pop art illustration with bold colors reaching all edges of"},
    {"key": "vintage-poster", "name": "Vintage Poster", "category": "decor",
     "prompt_prefix": "A full-bleed vintage travel poster style illustration that fills the entire canvas of"},
    {"key": "centered-graphic", "name": "Centered Graphic", "category": "apparel",
     "prompt_prefix": "Create an ISOLATED graphic design on a PURE WHITE (#FFFFFF) background, a single centered element with no scenery, suitable for t-shirt printing, of"},
    {"key": "vintage-logo", "name": "Vintage Logo", "category": "apparel",
     "prompt_prefix": "Create an ISOLATED vintage-style logo or emblem on a PURE WHITE (#FFFFFF) background, distressed and retro-looking, suitable for t-shirt printing, of"},
]

FULL_BLEED_REQUIREMENTS = """

MANDATORY IMAGE REQUIREMENTS:
1. FULL-BLEED: the image extends edge-to-edge with no margins, borders or empty space.
2. NO PICTURE FRAMES: no decorative borders, frames, drop shadows or vignettes.
3. COMPOSITION: {composition} composition filling the entire canvas.
4. SAFE ZONE: keep faces, text and key subjects within the central 75% of the image.
"""

DEFAULT_FRAMED_PRINT = {
    "family": "framed-print",
    "shipping_in_cents": 899,  # flat rate USA
    "sizes": [
        {"id": "11x14", "name": '11" x 14"', "width": 11, "height": 14, "price_in_cents": 3999},
        {"id": "12x16", "name": '12" x 16"', "width": 12, "height": 16, "price_in_cents": 4499},
        {"id": "16x20", "name": '16" x 20"', "width": 16, "height": 20, "price_in_cents": 5499},
        {"id": "20x30", "name": '20" x 30"', "width": 20, "height": 30, "price_in_cents": 7999},
        {"id": "16x16", "name": '16" x 16"', "width": 16, "height": 16, "price_in_cents": 4999},
    ],
    "frame_colors": [
        {"id": "black", "name": "Black", "hex": "#1a1a1a"},
        {"id": "white", "name": "White", "hex": "#f5f5f5"},
    ],
}


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def parse_config(raw: dict) -> ProductConfig:
    try:
        return product_config_adapter.validate_python(raw or {})
    except ValidationError as exc:
        raise InvalidProductConfig(f"Invalid product configuration: {exc.errors()[0]['msg']}") from exc


def build_prompt(prompt: str, style: Optional[StylePreset], config: ProductConfig, size_id: str) -> str:
    full_prompt = prompt
    if style and style.prompt_prefix:
        full_prompt = f"{style.prompt_prefix} {prompt}"

    if config.full_bleed:
        ratio = config.aspect_ratio_for(size_id)
        composition = "Square 1:1" if ratio == "1:1" else f"Vertical portrait {ratio}"
        full_prompt += FULL_BLEED_REQUIREMENTS.format(composition=composition)
    return full_prompt


class CatalogService:
    def __init__(self, session: Session):
        self.session = session

    # Product types

    def list_active(self) -> List[ProductType]:
        return self.session.exec(
            select(ProductType).where(ProductType.is_active == True).order_by(ProductType.sort_order, ProductType.id)
        ).all()

    def get(self, product_type_id: int) -> ProductType:
        product_type = self.session.get(ProductType, product_type_id)
        if not product_type:
            raise ProductTypeNotFound()
        return product_type

    def get_for_merchant(self, product_type_id: int, merchant_id: int) -> ProductType:
        """Shared product types (no merchant) are managed by every merchant."""
        product_type = self.get(product_type_id)
        if product_type.merchant_id not in (None, merchant_id):
            raise ProductTypeNotFound()
        return product_type

    def load(self, product_type_id: int) -> tuple[ProductType, ProductConfig]:
        """Fetch a product type together with its validated family configuration."""
        product_type = self.get(product_type_id)
        return product_type, parse_config(product_type.options)

    def resolve_options(self, config: ProductConfig, size: str, color: Optional[str]) -> Optional[str]:
        """Validate a size/colour choice and return the colour to use."""
        if not config.find_size(size):
            raise InvalidProductOption("Invalid size")
        if color is None:
            color = config.default_color()
        if not config.accepts_color(color):
            raise InvalidProductOption("Invalid color for this product")
        return color

    def create(self, name: str, options: dict, merchant_id: Optional[int] = None,
               description: Optional[str] = None, printify_blueprint_id: Optional[int] = None,
               printify_provider_id: Optional[int] = None, sort_order: int = 0) -> ProductType:
        config = parse_config(options)
        product_type = ProductType(
            merchant_id=merchant_id,
            name=name,
            description=description,
            printify_blueprint_id=printify_blueprint_id,
            printify_provider_id=printify_provider_id,
            options=config.model_dump(),
            sort_order=sort_order,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.session.add(product_type)
        self.session.commit()
        self.session.refresh(product_type)
        return product_type

    def update(self, product_type: ProductType, name: Optional[str] = None, options: Optional[dict] = None,
               description: Optional[str] = None, printify_blueprint_id: Optional[int] = None,
               printify_provider_id: Optional[int] = None, is_active: Optional[bool] = None,
               sort_order: Optional[int] = None) -> ProductType:
        if options is not None:
            product_type.options = parse_config(options).model_dump()
        if name is not None:
            product_type.name = name
        if description is not None:
            product_type.description = description
        if printify_blueprint_id is not None:
            product_type.printify_blueprint_id = printify_blueprint_id
        if printify_provider_id is not None:
            product_type.printify_provider_id = printify_provider_id
        if is_active is not None:
            product_type.is_active = is_active
        if sort_order is not None:
            product_type.sort_order = sort_order
        product_type.updated_at = datetime.utcnow()
        self.session.add(product_type)
        self.session.commit()
        self.session.refresh(product_type)
        return product_type

    def deactivate(self, product_type: ProductType) -> ProductType:
        # Soft delete: existing designs and orders keep their product type
        return self.update(product_type, is_active=False)

    # Style presets

    def list_styles(self) -> List[StylePreset]:
        return self.session.exec(
            select(StylePreset).where(StylePreset.is_active == True).order_by(StylePreset.sort_order, StylePreset.id)
        ).all()

    def find_style(self, key: Optional[str]) -> Optional[StylePreset]:
        """Active preset for ``key``; a merchant's own preset wins over a built-in one."""
        if not key:
            return None
        return self.session.exec(
            select(StylePreset)
            .where(StylePreset.key == key, StylePreset.is_active == True)
            .order_by(StylePreset.merchant_id.is_(None), StylePreset.id)
        ).first()

    def styles_for_merchant(self, merchant_id: int) -> List[StylePreset]:
        return self.session.exec(
            select(StylePreset).where(StylePreset.merchant_id == merchant_id).order_by(StylePreset.sort_order, StylePreset.id)
        ).all()

    def get_style_for_merchant(self, style_id: int, merchant_id: int) -> StylePreset:
        style = self.session.get(StylePreset, style_id)
        if not style or style.merchant_id != merchant_id:
            raise HTTPException(status_code=404, detail="Style preset not found")
        return style

    def create_style(self, merchant_id: Optional[int], name: str, prompt_prefix: str = "", category: str = "all",
                     key: Optional[str] = None, is_active: bool = True, sort_order: int = 0) -> StylePreset:
        name = (name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Style name is required")
        key = slugify(key or name)
        if not key:
            raise HTTPException(status_code=400, detail="Style key is required")
        taken = self.session.exec(
            select(StylePreset).where(StylePreset.merchant_id == merchant_id, StylePreset.key == key)
        ).first()
        if taken:
            raise HTTPException(status_code=400, detail=f"A style with key '{key}' already exists")

        style = StylePreset(
            merchant_id=merchant_id,
            key=key,
            name=name,
            prompt_prefix=prompt_prefix,
            category=category,
            is_active=is_active,
            sort_order=sort_order,
        )
        self.session.add(style)
        self.session.commit()
        self.session.refresh(style)
        return style

    def update_style(self, style: StylePreset, name: Optional[str] = None, prompt_prefix: Optional[str] = None,
                     category: Optional[str] = None, is_active: Optional[bool] = None,
                     sort_order: Optional[int] = None) -> StylePreset:
        if name is not None:
            if not name.strip():
                raise HTTPException(status_code=400, detail="Style name is required")
            style.name = name.strip()
        if prompt_prefix is not None:
            style.prompt_prefix = prompt_prefix
        if category is not None:
            style.category = category
        if is_active is not None:
            style.is_active = is_active
        if sort_order is not None:
            style.sort_order = sort_order
        style.updated_at = datetime.utcnow()
        self.session.add(style)
        self.session.commit()
        self.session.refresh(style)
        return style

    def delete_style(self, style: StylePreset):
        self.session.delete(style)
        self.session.commit()

    def seed_styles(self, merchant_id: Optional[int] = None) -> List[StylePreset]:
        """Add the built-in presets that are missing for ``merchant_id`` (None = shared)."""
        existing = set(self.session.exec(
            select(StylePreset.key).where(StylePreset.merchant_id == merchant_id)
        ).all())
        created = []
        for position, preset in enumerate(DEFAULT_STYLE_PRESETS):
            if preset["key"] in existing:
                continue
            style = StylePreset(merchant_id=merchant_id, sort_order=position, **preset)
            self.session.add(style)
            created.append(style)
        self.session.commit()
        for style in created:
            self.session.refresh(style)
        return created
