import itertools
from decimal import Decimal

import pytest
from catalog.pricing import (
    AttributePricing,
    OptionPricing,
    PriceRange,
    VariantSelectionError,
    compute_price_range,
    resolve_unit_price,
)

D = Decimal


def _attribute(attribute_id, modifiers, *, required=False, available=None, name=None):
    options = tuple(
        OptionPricing(
            option_id=attribute_id * 100 + index,
            label=f"opt-{index}",
            price_modifier=D(str(modifier)),
            is_available=True if available is None else available[index],
        )
        for index, modifier in enumerate(modifiers)
    )
    return AttributePricing(
        attribute_id=attribute_id,
        name=name or f"attr-{attribute_id}",
        attribute_type="select",
        is_required=required,
        options=options,
    )


def test_enabled_attribute_adds_its_modifier():
    ram = _attribute(1, ["0", "200", "400"], name="RAM")
    price = resolve_unit_price(base_price=D("1000.00"), attributes=[ram], selections={1: 101})
    assert price == D("1200.00")


def test_no_selections_yields_base_or_discount_price():
    ram = _attribute(1, ["150", "300"])
    assert resolve_unit_price(base_price=D("1000"), attributes=[ram]) == D("1000.00")
    assert resolve_unit_price(base_price=D("1000"), discount_price=D("900"), attributes=[ram]) == D("900.00")


def test_disabled_attribute_never_applies_default_option():
    # No zero option here: the cheapest option is +150 but declining costs nothing.
    storage = _attribute(2, ["150", "300"])
    assert resolve_unit_price(base_price=D("500"), attributes=[storage], selections={}) == D("500.00")


def test_string_keys_from_json_are_accepted():
    ram = _attribute(1, ["0", "200"])
    assert resolve_unit_price(base_price=D("1000"), attributes=[ram], selections={"1": "101"}) == D("1200.00")


def test_unknown_attribute_or_unavailable_option_is_rejected():
    ram = _attribute(1, ["0", "200"], available=[True, False])
    with pytest.raises(VariantSelectionError):
        resolve_unit_price(base_price=D("1000"), attributes=[ram], selections={9: 900})
    with pytest.raises(VariantSelectionError):
        resolve_unit_price(base_price=D("1000"), attributes=[ram], selections={1: 101})


def test_range_for_optional_upcharges_starts_at_base():
    ram = _attribute(1, ["0", "200", "400"])
    color = _attribute(2, ["50"])
    price_range = compute_price_range(base_price=D("1000"), attributes=[ram, color])
    assert price_range == PriceRange(minimum=D("1000.00"), maximum=D("1450.00"))
    assert price_range.has_range is True


def test_range_includes_required_negative_modifier():
    trade_in = _attribute(1, ["-100", "0", "50"], required=True)
    price_range = compute_price_range(base_price=D("1000"), attributes=[trade_in])
    assert price_range.minimum == D("900.00")
    assert price_range.maximum == D("1050.00")


def test_optional_negative_modifier_lowers_minimum_like_required():
    optional = compute_price_range(base_price=D("1000"), attributes=[_attribute(1, ["-100", "50"], required=False)])
    required = compute_price_range(base_price=D("1000"), attributes=[_attribute(1, ["-100", "50"], required=True)])
    assert optional == required == PriceRange(minimum=D("900.00"), maximum=D("1050.00"))


def test_range_skips_attributes_without_available_options():
    sold_out = _attribute(1, ["300", "500"], available=[False, False])
    price_range = compute_price_range(base_price=D("1000"), attributes=[sold_out])
    assert price_range == PriceRange.point(D("1000"))
    assert price_range.has_range is False


def test_range_collapses_to_point_without_attributes():
    price_range = compute_price_range(base_price=D("1000"), discount_price=D("800"), attributes=[])
    assert price_range.minimum == price_range.maximum == D("800.00")
    assert not price_range.has_range


def test_all_negative_modifiers_keep_zero_as_maximum():
    refurb = _attribute(1, ["-200", "-50"], required=True)
    price_range = compute_price_range(base_price=D("1000"), attributes=[refurb])
    assert price_range.minimum == D("800.00")
    assert price_range.maximum == D("1000.00")


@pytest.mark.parametrize("required", [True, False])
def test_every_selection_combination_falls_inside_range(required):
    attributes = [
        _attribute(1, ["0", "200", "400"], required=required),
        _attribute(2, ["-75", "25"], required=required),
        _attribute(3, ["-20", "-10"], required=not required),
        _attribute(4, ["999"], available=[False]),
    ]
    base = D("1000")
    price_range = compute_price_range(base_price=base, attributes=attributes)
    largest_discount = sum(
        (min(min(o.price_modifier for o in a.available_options), D("0")) for a in attributes if a.available_options),
        D("0"),
    )

    # Each selectable attribute is either left disabled (None) or set to one available option.
    choices = [[None] + [o.option_id for o in a.available_options] for a in attributes if a.available_options]
    ids = [a.attribute_id for a in attributes if a.available_options]
    for combo in itertools.product(*choices):
        selections = {aid: oid for aid, oid in zip(ids, combo) if oid is not None}
        price = resolve_unit_price(base_price=base, attributes=attributes, selections=selections)
        assert price_range.minimum <= price <= price_range.maximum
        assert price >= base + largest_discount
