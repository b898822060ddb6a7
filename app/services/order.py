import logging
from typing import List, Optional
from datetime import datetime
from sqlalchemy import update
from sqlmodel import Session, select
from fastapi import HTTPException
from app.core.config import settings
from app.core.errors import DesignNotReady, InvalidStatusTransition, OrderNotFound
from app.db.session import run_in_transaction
from app.models.design import Design, DesignStatus
from app.models.order import Order, OrderStatus, ORDER_TRANSITIONS
from app.services.catalog import CatalogService
from app.services.design import DesignService
from app.services.ledger import LedgerService

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, session: Session):
        self.session = session
        self.ledger = LedgerService(session)
        self.catalog = CatalogService(session)

    def refunded_so_far(self, design_id: int) -> int:
        return self.session.exec(select(Design.credit_refunded_in_cents).where(Design.id == design_id)).one()

    def credit_refund_for(self, design: Design, order_total: int) -> int:
        """Claim the credit refund for a new order of ``design`` and return it in cents.

        Credits spent generating the design are worth CENTS_PER_CREDIT each.
        The claim is a compare-and-set on ``design.credit_refunded_in_cents``,
        so concurrent orders of one design never refund more than that value
        in total. The result never exceeds the order total.
        """
        credit_value = self.ledger.credits_spent_on_design(design.customer_id, design.id) * settings.CENTS_PER_CREDIT
        while True:
            refunded = self.refunded_so_far(design.id)
            refund = min(order_total, max(0, credit_value - refunded))
            if refund == 0:
                return 0
            claimed = self.session.exec(
                update(Design)
                .where(Design.id == design.id, Design.credit_refunded_in_cents == refunded)
                .values(credit_refunded_in_cents=Design.credit_refunded_in_cents + refund)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 1:
                return refund
            logger.info("Refund for design %s claimed concurrently, recomputing", design.id)

    def place_order(self, customer_id: int, design_id: int, size: Optional[str] = None,
                    frame_color: Optional[str] = None, quantity: int = 1,
                    shipping_address: Optional[dict] = None) -> Order:
        if quantity < 1:
            raise HTTPException(status_code=400, detail="Quantity must be at least 1")

        def _place():
            design = DesignService(self.session).get_owned(design_id, customer_id)
            if design.status != DesignStatus.COMPLETED or not design.product_type_id:
                raise DesignNotReady()

            _, config = self.catalog.load(design.product_type_id)
            order_size = size or design.size
            color = self.catalog.resolve_options(config, order_size, frame_color or design.frame_color)

            price_in_cents = config.find_size(order_size).price_in_cents * quantity
            shipping_in_cents = config.shipping_in_cents
            refund = self.credit_refund_for(design, price_in_cents + shipping_in_cents)

            order = Order(
                design_id=design.id,
                customer_id=customer_id,
                status=OrderStatus.PENDING,
                size=order_size,
                frame_color=color,
                quantity=quantity,
                price_in_cents=price_in_cents,
                shipping_in_cents=shipping_in_cents,
                credit_refund_in_cents=refund,
                shipping_address=shipping_address,
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow(),
            )
            self.session.add(order)
            self.session.flush()
            return order

        order = run_in_transaction(self.session, _place)
        self.session.refresh(order)
        logger.info("Placed order %s for design %s (total %s cents)", order.id, design_id, order.total_in_cents)
        return order

    def get_customer_orders(self, customer_id: int) -> List[Order]:
        return self.session.exec(
            select(Order).where(Order.customer_id == customer_id).order_by(Order.created_at.desc(), Order.id.desc())
        ).all()

    def get_all_orders(self) -> List[Order]:
        return self.session.exec(select(Order).order_by(Order.created_at.desc(), Order.id.desc())).all()

    def get_owned(self, order_id: int, customer_id: int) -> Order:
        order = self.session.get(Order, order_id)
        if not order or order.customer_id != customer_id:
            raise OrderNotFound()
        return order

    def update_status(self, order_id: int, new_status: OrderStatus, printify_order_id: str = None) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise OrderNotFound()
        current = order.status

        # pending -> processing -> shipped -> delivered, cancel before shipping
        if new_status != current and new_status not in ORDER_TRANSITIONS[current]:
            raise InvalidStatusTransition(
                f"Cannot move order from {current.value} to {new_status.value}"
            )

        values = {"status": new_status, "updated_at": datetime.utcnow()}
        if printify_order_id:
            values["printify_order_id"] = printify_order_id

        def _apply():
            # Conditional on the status we validated against
            changed = self.session.exec(
                update(Order)
                .where(Order.id == order_id, Order.status == current)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if changed.rowcount == 0:
                raise InvalidStatusTransition(f"Order {order_id} changed status, please retry")
            if new_status == OrderStatus.CANCELLED and current != OrderStatus.CANCELLED and order.credit_refund_in_cents:
                # Give the refund back to the design for a later order
                self.session.exec(
                    update(Design)
                    .where(Design.id == order.design_id)
                    .values(credit_refunded_in_cents=Design.credit_refunded_in_cents - order.credit_refund_in_cents)
                    .execution_options(synchronize_session=False)
                )

        run_in_transaction(self.session, _apply)
        self.session.refresh(order)
        return order
