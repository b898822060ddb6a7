from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func
from sqlmodel import Session, select
from app.core.errors import DesignHasOrders, DesignNotFound
from app.models.design import Design, DesignStatus
from app.models.order import Order
from app.services.catalog import CatalogService


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class DesignService:
    def __init__(self, session: Session):
        self.session = session

    def get_owned(self, design_id: int, customer_id: int) -> Design:
        """Designs of other customers look exactly like missing ones."""
        design = self.session.get(Design, design_id)
        if not design or design.customer_id != customer_id:
            raise DesignNotFound()
        return design

    def list_page(self, customer_id: int, page: int, limit: int) -> Tuple[List[Design], int]:
        conditions = (Design.customer_id == customer_id, Design.status == DesignStatus.COMPLETED)
        total = self.session.exec(select(func.count(Design.id)).where(*conditions)).one()
        designs = self.session.exec(
            select(Design)
            .where(*conditions)
            .order_by(Design.created_at.desc(), Design.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return designs, total

    def update(self, design: Design, transform_scale: Optional[int] = None, transform_x: Optional[int] = None,
               transform_y: Optional[int] = None, size: Optional[str] = None,
               frame_color: Optional[str] = None) -> Design:
        if transform_scale is not None:
            design.transform_scale = clamp(transform_scale, 50, 200)
        if transform_x is not None:
            design.transform_x = clamp(transform_x, 0, 100)
        if transform_y is not None:
            design.transform_y = clamp(transform_y, 0, 100)

        if (size is not None or frame_color is not None) and design.product_type_id:
            catalog = CatalogService(self.session)
            _, config = catalog.load(design.product_type_id)
            new_size = size or design.size
            design.frame_color = catalog.resolve_options(config, new_size, frame_color or design.frame_color)
            design.size = new_size
            design.aspect_ratio = config.aspect_ratio_for(new_size)

        design.updated_at = datetime.utcnow()
        self.session.add(design)
        self.session.commit()
        self.session.refresh(design)
        return design

    def delete(self, design: Design):
        has_orders = self.session.exec(select(Order.id).where(Order.design_id == design.id)).first()
        if has_orders is not None:
            raise DesignHasOrders()
        self.session.delete(design)
        self.session.commit()
