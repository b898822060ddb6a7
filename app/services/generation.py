import logging
from typing import Optional
from datetime import datetime, timedelta
from sqlalchemy import func, update
from sqlmodel import Session, select
from app.core.config import settings
from app.core.errors import GalleryFull, GenerationFailed
from app.db.session import run_in_transaction
from app.models.customer import Customer, TransactionType
from app.models.design import Design, DesignStatus
from app.models.generation import GenerationLog
from app.services.catalog import CatalogService, build_prompt
from app.services.ledger import LedgerService

logger = logging.getLogger(__name__)


class GenerationService:
    """Charges for, runs and audits AI artwork generations.

    A generation reserves one credit (or one free generation) before the
    external call and always gives it back when the call does not produce a
    stored image, including when the request is aborted mid-flight.
    """

    def __init__(self, session: Session, generator=None, image_store=None):
        self.session = session
        self.generator = generator
        self.image_store = image_store
        self.ledger = LedgerService(session)
        self.catalog = CatalogService(session)

    def record_attempt(self, customer_id: Optional[int], design_id: Optional[int] = None, success: bool = True,
                       error_message: Optional[str] = None, prompt_length: Optional[int] = None,
                       had_reference_image: bool = False, style_preset: Optional[str] = None,
                       size: Optional[str] = None) -> Optional[GenerationLog]:
        """Append an audit row. Never raises: a logging failure must not hide the result."""
        try:
            entry = GenerationLog(
                customer_id=customer_id,
                design_id=design_id,
                success=success,
                error_message=error_message,
                prompt_length=prompt_length,
                had_reference_image=had_reference_image,
                style_preset=style_preset,
                size=size,
            )
            self.session.add(entry)
            self.session.commit()
            return entry
        except Exception:
            self.session.rollback()
            logger.exception("Failed to record generation attempt for customer %s", customer_id)
            return None

    def generate(self, customer_id: int, prompt: str, size: str, product_type_id: int,
                 frame_color: Optional[str] = None, style_preset: Optional[str] = None,
                 reference_image: Optional[bytes] = None) -> Design:
        product_type, config = self.catalog.load(product_type_id)
        frame_color = self.catalog.resolve_options(config, size, frame_color)
        style = self.catalog.find_style(style_preset)

        aspect_ratio = config.aspect_ratio_for(size)
        full_prompt = build_prompt(prompt, style, config, size)

        def _reserve():
            self._check_gallery(customer_id)
            design = Design(
                customer_id=customer_id,
                product_type_id=product_type.id,
                prompt=prompt,
                style_preset=style_preset,
                size=size,
                frame_color=frame_color,
                aspect_ratio=aspect_ratio,
                status=DesignStatus.PENDING,
            )
            self.session.add(design)
            self.session.flush()
            used_free = self._reserve_credit(customer_id, design.id, prompt)
            return design.id, used_free

        design_id, used_free = run_in_transaction(self.session, _reserve)

        design = None
        error_message = None
        try:
            design = self._produce(customer_id, design_id, full_prompt, aspect_ratio, reference_image)
        except Exception as exc:
            logger.error("Generation failed for design %s: %s", design_id, exc)
            error_message = str(exc) or type(exc).__name__
        finally:
            if design is None:
                # Mandatory cleanup, also when the request is being torn down
                self._release_reservation(customer_id, design_id, used_free)

        self.record_attempt(
            customer_id,
            design_id=design_id,
            success=design is not None,
            error_message=error_message,
            prompt_length=len(prompt),
            had_reference_image=reference_image is not None,
            style_preset=style_preset,
            size=size,
        )
        if design is None:
            raise GenerationFailed()
        self.session.refresh(design)
        return design

    def _check_gallery(self, customer_id: int):
        # Touch the customer row first so concurrent reservations for one
        # customer serialize on its row lock before counting
        self.session.exec(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        stored = self.session.exec(
            select(func.count(Design.id)).where(
                Design.customer_id == customer_id,
                Design.status != DesignStatus.FAILED,
            )
        ).one()
        if stored >= settings.MAX_DESIGNS_PER_CUSTOMER:
            raise GalleryFull(
                f"Your design gallery is full ({settings.MAX_DESIGNS_PER_CUSTOMER} designs max). "
                "Please delete some designs to save new ones."
            )

    def _reserve_credit(self, customer_id: int, design_id: int, prompt: str) -> bool:
        """Take a free generation if any are left, otherwise debit one credit."""
        if settings.FREE_GENERATION_ALLOWANCE > 0:
            claimed = self.session.exec(
                update(Customer)
                .where(
                    Customer.id == customer_id,
                    Customer.free_generations_used < settings.FREE_GENERATION_ALLOWANCE,
                )
                .values(free_generations_used=Customer.free_generations_used + 1)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 1:
                return True

        self.ledger.apply_delta(
            customer_id,
            -1,
            TransactionType.DEBIT,
            design_id=design_id,
            description=f"Generated artwork: {prompt[:50]}",
        )
        return False

    def _produce(self, customer_id: int, design_id: int, full_prompt: str, aspect_ratio: str,
                 reference_image: Optional[bytes]) -> Design:
        image_bytes = self.generator.generate(full_prompt, aspect_ratio, reference_image)
        image_url = self.image_store.save_image(image_bytes)
        reference_url = self.image_store.save_image(reference_image, folder="references") if reference_image else None

        def _complete():
            design = self.session.get(Design, design_id)
            design.generated_image_url = image_url
            design.reference_image_url = reference_url
            design.status = DesignStatus.COMPLETED
            design.updated_at = datetime.utcnow()
            self.session.add(design)
            self.session.exec(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(total_generations=Customer.total_generations + 1)
                .execution_options(synchronize_session=False)
            )
            return design

        return run_in_transaction(self.session, _complete)

    def _release_reservation(self, customer_id: int, design_id: int, used_free: bool):
        def _release():
            if used_free:
                self.session.exec(
                    update(Customer)
                    .where(Customer.id == customer_id, Customer.free_generations_used > 0)
                    .values(free_generations_used=Customer.free_generations_used - 1)
                    .execution_options(synchronize_session=False)
                )
            else:
                self.ledger.apply_delta(
                    customer_id,
                    1,
                    TransactionType.REFUND,
                    design_id=design_id,
                    description="Refund for failed generation",
                )
            design = self.session.get(Design, design_id)
            design.status = DesignStatus.FAILED
            design.updated_at = datetime.utcnow()
            self.session.add(design)

        run_in_transaction(self.session, _release)
        logger.info("Released generation reservation for design %s", design_id)

    def stats(self, days: int = 30) -> dict:
        since = datetime.utcnow() - timedelta(days=days)
        rows = self.session.exec(
            select(GenerationLog.success, func.count(GenerationLog.id))
            .where(GenerationLog.created_at >= since)
            .group_by(GenerationLog.success)
        ).all()
        counts = {bool(success): count for success, count in rows}
        successful = counts.get(True, 0)
        failed = counts.get(False, 0)
        return {"total": successful + failed, "successful": successful, "failed": failed}
