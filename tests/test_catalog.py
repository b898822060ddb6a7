import copy

import pytest
from fastapi import HTTPException

from app.core.errors import InvalidProductConfig, InvalidProductOption, ProductTypeNotFound
from app.models.product import ApparelConfig, FramedPrintConfig, PillowConfig
from app.models.style import StylePreset
from app.services.catalog import (
    DEFAULT_FRAMED_PRINT,
    DEFAULT_STYLE_PRESETS,
    CatalogService,
    build_prompt,
    parse_config,
)
from app.services.customer import MerchantService

APPAREL = {
    "family": "apparel",
    "shipping_in_cents": 499,
    "sizes": [
        {"id": "M", "name": "Medium", "price_in_cents": 2499},
        {"id": "L", "name": "Large", "price_in_cents": 2499},
    ],
    "garment_colors": [{"id": "navy", "name": "Navy", "hex": "#1f2a44"}],
    "variant_map": {"M:navy": 101, "L": 102},
}

PILLOW = {
    "family": "pillow",
    "sizes": [{"id": "18x18", "name": '18" x 18"', "width": 18, "height": 18, "price_in_cents": 2999}],
}


def test_framed_print_defaults():
    config = parse_config(DEFAULT_FRAMED_PRINT)
    assert isinstance(config, FramedPrintConfig)
    assert config.aspect_ratio_for("16x20") == "4:5"
    assert config.aspect_ratio_for("20x30") == "2:3"
    assert config.default_color() == "black"
    assert config.accepts_color("white")
    assert not config.accepts_color(None)


def test_family_selects_the_config_type():
    assert isinstance(parse_config(APPAREL), ApparelConfig)
    assert isinstance(parse_config(PILLOW), PillowConfig)
    assert parse_config(PILLOW).accepts_color(None)


def test_apparel_is_not_full_bleed_and_maps_variants():
    config = parse_config(APPAREL)
    assert config.full_bleed is False
    assert config.aspect_ratio_for("M") == "1:1"
    assert config.variant_id_for("M", "navy") == 101
    assert config.variant_id_for("L", "navy") == 102
    assert config.variant_id_for("M", None) is None


@pytest.mark.parametrize("mutate", [
    lambda c: c.pop("frame_colors"),
    lambda c: c.update(frame_colors=[]),
    lambda c: c.update(sizes=[]),
    lambda c: c.update(sizes=c["sizes"] + c["sizes"][:1]),
    lambda c: c.update(family="mug"),
    lambda c: c["sizes"][0].update(price_in_cents=0),
])
def test_invalid_configs_are_rejected(mutate):
    raw = copy.deepcopy(DEFAULT_FRAMED_PRINT)
    mutate(raw)
    with pytest.raises(InvalidProductConfig) as exc_info:
        parse_config(raw)
    assert exc_info.value.status_code == 422


def test_build_prompt_for_decor_and_apparel():
    framed = parse_config(DEFAULT_FRAMED_PRINT)
    pop_art = StylePreset(key="pop-art", name="Pop Art", prompt_prefix="A vibrant pop art illustration of")
    prompt = build_prompt("a fox", pop_art, framed, "11x14")
    assert prompt.startswith("A vibrant pop art illustration of a fox")
    assert "FULL-BLEED" in prompt
    assert "Vertical portrait 11:14" in prompt

    assert build_prompt("a fox", None, parse_config(APPAREL), "M") == "a fox"
    assert build_prompt("a fox", StylePreset(key="none", name="No Style"), framed, "16x16").startswith("a fox\n")


def test_catalog_service(session):
    catalog = CatalogService(session)
    hidden = catalog.create("Hidden Tee", APPAREL, sort_order=5)
    hidden.is_active = False
    session.add(hidden)
    session.commit()
    pillow = catalog.create("Pillow", PILLOW, sort_order=2)
    framed = catalog.create("Framed Print", DEFAULT_FRAMED_PRINT, sort_order=1)

    assert [p.name for p in catalog.list_active()] == ["Framed Print", "Pillow"]
    assert framed.family == "framed-print"

    _, config = catalog.load(pillow.id)
    assert catalog.resolve_options(config, "18x18", None) is None
    with pytest.raises(InvalidProductOption):
        catalog.resolve_options(config, "18x18", "red")
    with pytest.raises(ProductTypeNotFound):
        catalog.get(404)


def test_create_rejects_invalid_config(session):
    with pytest.raises(InvalidProductConfig):
        CatalogService(session).create("Broken", {"family": "framed-print", "sizes": []})


def test_update_revalidates_options_and_delete_is_soft(session):
    catalog = CatalogService(session)
    framed = catalog.create("Framed Print", DEFAULT_FRAMED_PRINT)

    with pytest.raises(InvalidProductConfig):
        catalog.update(framed, options={"family": "framed-print", "sizes": []})
    session.refresh(framed)
    assert len(framed.options["sizes"]) == 5

    catalog.update(framed, name="Gallery Print", options=PILLOW)
    assert (framed.name, framed.family) == ("Gallery Print", "pillow")

    catalog.deactivate(framed)
    assert catalog.list_active() == []
    assert catalog.get(framed.id).is_active is False


def test_merchant_product_types_are_scoped(session):
    catalog = CatalogService(session)
    owner = MerchantService(session).get_or_create("owner-shop")
    other = MerchantService(session).get_or_create("other-shop")
    own = catalog.create("Own Pillow", PILLOW, merchant_id=owner.id)
    shared = catalog.create("Framed Print", DEFAULT_FRAMED_PRINT)

    assert catalog.get_for_merchant(own.id, owner.id).id == own.id
    assert catalog.get_for_merchant(shared.id, other.id).id == shared.id
    with pytest.raises(ProductTypeNotFound):
        catalog.get_for_merchant(own.id, other.id)


def test_seeding_styles_is_idempotent(session):
    catalog = CatalogService(session)
    assert len(catalog.seed_styles()) == len(DEFAULT_STYLE_PRESETS)
    assert catalog.seed_styles() == []
    assert [s.key for s in catalog.list_styles()] == [p["key"] for p in DEFAULT_STYLE_PRESETS]
    assert catalog.find_style("watercolor").prompt_prefix.startswith("A beautiful full-bleed watercolor")
    assert catalog.find_style("cubism") is None
    assert catalog.find_style(None) is None


def test_merchant_style_overrides_builtin(session):
    catalog = CatalogService(session)
    catalog.seed_styles()
    merchant = MerchantService(session).get_or_create("owner-shop")

    custom = catalog.create_style(merchant.id, "Watercolor", prompt_prefix="A soft pastel watercolor of")
    assert custom.key == "watercolor"
    assert catalog.find_style("watercolor").id == custom.id

    catalog.update_style(custom, is_active=False)
    assert catalog.find_style("watercolor").merchant_id is None

    with pytest.raises(HTTPException) as exc_info:
        catalog.create_style(merchant.id, "watercolor!")
    assert exc_info.value.status_code == 400

    neon = catalog.create_style(merchant.id, "Neon Noir", prompt_prefix="A neon noir scene of", category="decor")
    assert neon.key == "neon-noir"
    assert [s.key for s in catalog.styles_for_merchant(merchant.id)] == ["watercolor", "neon-noir"]

    other = MerchantService(session).get_or_create("other-shop")
    with pytest.raises(HTTPException) as exc_info:
        catalog.get_style_for_merchant(neon.id, other.id)
    assert exc_info.value.status_code == 404

    catalog.delete_style(neon)
    assert catalog.find_style("neon-noir") is None


def test_style_name_is_required(session):
    with pytest.raises(HTTPException) as exc_info:
        CatalogService(session).create_style(None, "   ")
    assert exc_info.value.status_code == 400
