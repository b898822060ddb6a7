from typing import Annotated, Dict, List, Literal, Optional, Union
from sqlmodel import Field, SQLModel, Column
from pydantic import BaseModel, TypeAdapter, computed_field, model_validator
from pydantic import Field as PydanticField
from sqlalchemy import JSON
from datetime import datetime
from math import gcd


class ColorOption(BaseModel):
    id: str
    name: str
    hex: str


class DimensionalSize(BaseModel):
    """A physical print size in inches, e.g. 16" x 20"."""

    id: str
    name: str
    width: int = PydanticField(gt=0)
    height: int = PydanticField(gt=0)
    price_in_cents: int = PydanticField(gt=0)

    @property
    def aspect_ratio(self) -> str:
        divisor = gcd(self.width, self.height)
        return f"{self.width // divisor}:{self.height // divisor}"


class LabeledSize(BaseModel):
    """A garment size label such as S, M, L."""

    id: str
    name: str
    price_in_cents: int = PydanticField(gt=0)


class _ProductConfigBase(BaseModel):
    shipping_in_cents: int = PydanticField(default=0, ge=0)
    # "size:color" (or "size") -> Printify variant id
    variant_map: Dict[str, int] = {}
    # Decor families print edge to edge; apparel prints an isolated motif
    full_bleed: bool = True

    @model_validator(mode="after")
    def _check_options(self):
        size_ids = [s.id for s in self.sizes]
        if not size_ids:
            raise ValueError("at least one size is required")
        if len(set(size_ids)) != len(size_ids):
            raise ValueError("size ids must be unique")
        color_ids = [c.id for c in self.colors()]
        if len(set(color_ids)) != len(color_ids):
            raise ValueError("color ids must be unique")
        return self

    def colors(self) -> List[ColorOption]:
        return []

    def find_size(self, size_id: str):
        return next((s for s in self.sizes if s.id == size_id), None)

    def accepts_color(self, color_id: Optional[str]) -> bool:
        colors = self.colors()
        if not colors:
            return color_id is None
        return any(c.id == color_id for c in colors)

    def default_color(self) -> Optional[str]:
        colors = self.colors()
        return colors[0].id if colors else None

    def aspect_ratio_for(self, size_id: str) -> str:
        return "1:1"

    def variant_id_for(self, size_id: str, color_id: Optional[str]) -> Optional[int]:
        if color_id and f"{size_id}:{color_id}" in self.variant_map:
            return self.variant_map[f"{size_id}:{color_id}"]
        return self.variant_map.get(size_id)


class FramedPrintConfig(_ProductConfigBase):
    family: Literal["framed-print"] = "framed-print"
    sizes: List[DimensionalSize]
    frame_colors: List[ColorOption]

    @model_validator(mode="after")
    def _require_frames(self):
        if not self.frame_colors:
            raise ValueError("framed prints need at least one frame color")
        return self

    def colors(self) -> List[ColorOption]:
        return self.frame_colors

    def aspect_ratio_for(self, size_id: str) -> str:
        size = self.find_size(size_id)
        return size.aspect_ratio if size else "3:4"


class PillowConfig(_ProductConfigBase):
    family: Literal["pillow"] = "pillow"
    sizes: List[DimensionalSize]

    def aspect_ratio_for(self, size_id: str) -> str:
        size = self.find_size(size_id)
        return size.aspect_ratio if size else "1:1"


class ApparelConfig(_ProductConfigBase):
    family: Literal["apparel"] = "apparel"
    sizes: List[LabeledSize]
    garment_colors: List[ColorOption] = []
    full_bleed: bool = False

    def colors(self) -> List[ColorOption]:
        return self.garment_colors


ProductConfig = Annotated[
    Union[FramedPrintConfig, PillowConfig, ApparelConfig],
    PydanticField(discriminator="family"),
]

product_config_adapter = TypeAdapter(ProductConfig)


class ProductType(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    merchant_id: Optional[int] = Field(default=None, foreign_key="merchant.id")

    # Basic Info
    name: str = Field(index=True)
    description: Optional[str] = None

    # Printify catalogue references
    printify_blueprint_id: Optional[int] = None
    printify_provider_id: Optional[int] = None

    # Tagged product-family configuration, see ProductConfig
    options: dict = Field(default={}, sa_column=Column(JSON))

    # Metadata
    is_active: bool = Field(default=True)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field
    @property
    def family(self) -> Optional[str]:
        return (self.options or {}).get("family")
