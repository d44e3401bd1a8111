from decimal import Decimal

import pytest
from catalog.services import StockError, decrement_stock, restore_stock
from catalog.tests.factories import ProductFactory
from django.db import IntegrityError, transaction


@pytest.mark.django_db
def test_discount_price_cannot_exceed_base_price():
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            ProductFactory(base_price=Decimal("100.00"), discount_price=Decimal("120.00"))

    ok = ProductFactory(base_price=Decimal("100.00"), discount_price=Decimal("80.00"))
    assert ok.effective_price == Decimal("80.00")


@pytest.mark.django_db
def test_stock_decrement_is_conditional():
    product = ProductFactory(stock_quantity=2)

    decrement_stock(product_id=product.id, quantity=2)
    product.refresh_from_db()
    assert product.stock_quantity == 0

    with pytest.raises(StockError):
        decrement_stock(product_id=product.id, quantity=1)
    product.refresh_from_db()
    assert product.stock_quantity == 0

    restore_stock(product_id=product.id, quantity=3)
    product.refresh_from_db()
    assert product.stock_quantity == 3


@pytest.mark.django_db
def test_low_stock_is_logged(caplog):
    product = ProductFactory(stock_quantity=11)
    with caplog.at_level("WARNING", logger="ventech.catalog"):
        decrement_stock(product_id=product.id, quantity=2)
    assert any(r.getMessage() == "inventory.low_stock" for r in caplog.records)
