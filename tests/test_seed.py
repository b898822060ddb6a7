from sqlmodel import select

from app.models.coupon import Coupon
from app.models.product import ProductType
from app.models.style import StylePreset
from app.services.catalog import DEFAULT_STYLE_PRESETS
from seed_data import seed


def test_seed_is_idempotent(session):
    seed(session)
    seed(session)

    [product_type] = session.exec(select(ProductType)).all()
    assert product_type.family == "framed-print"
    assert product_type.printify_blueprint_id == 540

    [coupon] = session.exec(select(Coupon)).all()
    assert (coupon.code, coupon.credit_amount, coupon.max_uses) == ("WELCOME10", 10, 100)

    styles = session.exec(select(StylePreset)).all()
    assert sorted(s.key for s in styles) == sorted(p["key"] for p in DEFAULT_STYLE_PRESETS)
    assert all(s.merchant_id is None for s in styles)
