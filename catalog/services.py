"""Catalog services: transactional stock adjustments on products."""

import logging

from django.conf import settings
from django.db.models import F

from .models import Product

logger = logging.getLogger("ventech.catalog")


class StockError(Exception):
    """Raised when a stock adjustment cannot be applied."""


def decrement_stock(*, product_id: int, quantity: int) -> None:
    """Atomically take `quantity` units from a product's stock.

    The update only matches while enough stock remains, so concurrent
    checkouts for the last unit cannot both succeed.
    """
    if quantity <= 0:
        raise StockError("Quantity must be positive")
    updated = Product.objects.filter(id=product_id, stock_quantity__gte=quantity).update(
        stock_quantity=F("stock_quantity") - quantity
    )
    if updated == 0:
        raise StockError(f"Insufficient stock for product {product_id}")

    remaining = Product.objects.filter(id=product_id).values_list("stock_quantity", flat=True).first()
    threshold = int(getattr(settings, "LOW_STOCK_THRESHOLD", 10))
    if remaining is not None and remaining < threshold:
        logger.warning(
            "inventory.low_stock",
            extra={
                "event": "inventory.low_stock",
                "product_id": product_id,
                "stock_quantity": int(remaining),
                "threshold": threshold,
            },
        )


def restore_stock(*, product_id: int, quantity: int) -> None:
    """Return units to stock, e.g. when an order is cancelled."""
    if quantity <= 0:
        return
    Product.objects.filter(id=product_id).update(stock_quantity=F("stock_quantity") + quantity)
