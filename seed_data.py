import logging
from sqlmodel import Session, select
from app.db.session import engine, create_db_and_tables
from app.models.coupon import Coupon
from app.models.product import ProductType
from app.services.catalog import CatalogService, DEFAULT_FRAMED_PRINT
from app.services.coupon import CouponService

logger = logging.getLogger("seed_data")

def seed(session: Session):
    catalog = CatalogService(session)
    if not session.exec(select(ProductType)).first():
        logger.info("Seeding default framed print product type...")
        catalog.create(
            name="Framed Print",
            description="Museum-quality framed poster",
            options=DEFAULT_FRAMED_PRINT,
            printify_blueprint_id=540,
        )
    else:
        logger.info("Product types already present. Skipping.")

    created = catalog.seed_styles()
    logger.info("Seeded %s built-in style presets", len(created))

    if not session.exec(select(Coupon).where(Coupon.code == "WELCOME10")).first():
        logger.info("Seeding WELCOME10 coupon...")
        CouponService(session).create(None, "WELCOME10", 10, max_uses=100)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    create_db_and_tables()
    with Session(engine) as session:
        seed(session)
    logger.info("Seed complete")
