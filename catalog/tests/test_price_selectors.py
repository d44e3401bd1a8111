from decimal import Decimal
from unittest.mock import patch

import pytest
from catalog.pricing import VariantSelectionError
from catalog.selectors import get_attribute_pricing, get_price_range_for_product, resolve_product_price
from catalog.tests.factories import AttributeOptionFactory, ProductFactory, configure_attribute
from django.db import DatabaseError

pytestmark = pytest.mark.django_db


def test_only_product_scoped_options_are_priced():
    product = ProductFactory(base_price=Decimal("1000.00"))
    attribute, options = configure_attribute(product, name="RAM", modifiers=["0", "200"])
    # Exists globally on the attribute but not selectable for this product.
    AttributeOptionFactory(attribute=attribute, label="64GB", price_modifier=Decimal("900.00"))

    attributes = get_attribute_pricing(product=product)
    assert len(attributes) == 1
    assert [o.option_id for o in attributes[0].options] == [o.id for o in options]

    price_range = get_price_range_for_product(product=product)
    assert price_range.maximum == Decimal("1200.00")


def test_mapping_overrides_attribute_required_flag():
    product = ProductFactory()
    attribute, _ = configure_attribute(product, name="Warranty", modifiers=["0", "50"], is_required=True)
    attribute.is_required = False
    attribute.save()
    assert get_attribute_pricing(product=product)[0].is_required is True


def test_resolve_product_price_returns_unit_price_range_and_variants():
    product = ProductFactory(base_price=Decimal("1000.00"))
    ram, ram_options = configure_attribute(product, name="RAM", modifiers=["0", "200", "400"])

    resolved = resolve_product_price(product=product, selections={str(ram.id): ram_options[1].id})

    assert resolved.unit_price == Decimal("1200.00")
    assert resolved.price_range.minimum == Decimal("1000.00")
    assert resolved.price_range.maximum == Decimal("1400.00")
    assert [v.option_label for v in resolved.variants] == ["RAM-1"]


def test_price_range_fails_soft_to_base_price():
    product = ProductFactory(base_price=Decimal("1000.00"), discount_price=Decimal("950.00"))
    configure_attribute(product, modifiers=["0", "300"])

    with patch("catalog.selectors.get_attribute_pricing", side_effect=DatabaseError("boom")):
        price_range = get_price_range_for_product(product=product)
        resolved = resolve_product_price(product=product)

    assert price_range.minimum == price_range.maximum == Decimal("950.00")
    assert resolved.unit_price == Decimal("950.00")


def test_selection_with_failed_lookup_is_a_selection_error():
    product = ProductFactory()
    attribute, options = configure_attribute(product, modifiers=["0", "300"])

    with patch("catalog.selectors.get_attribute_pricing", side_effect=DatabaseError("boom")):
        with pytest.raises(VariantSelectionError):
            resolve_product_price(product=product, selections={attribute.id: options[1].id})
