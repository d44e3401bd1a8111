"""Cart services: line mutations with server-side variant pricing and stock clamping."""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from catalog.models import Product
from catalog.pricing import VariantSelectionError
from catalog.selectors import resolve_product_price
from django.db import transaction
from django.shortcuts import get_object_or_404

from .aggregation import StockWarning, clamp_quantity, variant_key
from .models import Cart, CartItem


class CartError(Exception):
    """Raised for cart mutation failures."""


@dataclass
class CartMutation:
    item: CartItem
    requested_quantity: int
    warning: Optional[StockWarning] = None

    @property
    def quantity(self) -> int:
        return int(self.item.quantity)


logger = logging.getLogger("ventech.cart")


def _log_clamp(cart: Cart, warning: Optional[StockWarning]) -> None:
    if warning is None:
        return
    logger.info(
        "cart.quantity_clamped",
        extra={
            "event": "cart.quantity_clamped",
            "cart_id": cart.id,
            "product_id": warning.product_id,
            "requested": warning.requested,
            "applied": warning.applied,
        },
    )


@transaction.atomic
def add_item(*, cart: Cart, product_id: int, quantity: int, selections: Optional[Mapping] = None) -> CartMutation:
    """Add a configured product to the cart, merging identical configurations.

    The unit price is resolved from the catalog; client-side prices are never
    accepted.
    """

    product = get_object_or_404(Product, id=product_id, status=Product.STATUS_PUBLISHED)
    if not product.is_pre_order and product.stock_quantity <= 0:
        raise CartError("Product is out of stock")
    try:
        resolved = resolve_product_price(product=product, selections=selections)
    except VariantSelectionError as exc:
        raise CartError(str(exc))

    selected = {str(v.attribute_id): v.option_id for v in resolved.variants}
    key = variant_key(selected)
    try:
        item = CartItem.objects.select_for_update().get(cart=cart, product=product, variant_key=key)
        requested = int(item.quantity) + int(quantity)
        applied, warning = clamp_quantity(
            product_id=product.id, requested=requested, stock=product.stock_quantity, is_pre_order=product.is_pre_order
        )
        item.quantity = applied
        item.unit_price = resolved.unit_price
        item.save(update_fields=["quantity", "unit_price", "updated_at"])
        event = "cart.item_updated"
    except CartItem.DoesNotExist:
        requested = int(quantity)
        applied, warning = clamp_quantity(
            product_id=product.id, requested=requested, stock=product.stock_quantity, is_pre_order=product.is_pre_order
        )
        item = CartItem.objects.create(
            cart=cart,
            product=product,
            quantity=applied,
            unit_price=resolved.unit_price,
            is_pre_order=product.is_pre_order,
            variant_key=key,
            selected_variants=selected,
            variant_labels=[v.as_dict() for v in resolved.variants],
        )
        event = "cart.item_added"

    logger.info(
        event,
        extra={
            "event": event,
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "product_id": product.id,
            "quantity": item.quantity,
            "guest": cart.user_id is None,
        },
    )
    _log_clamp(cart, warning)
    return CartMutation(item=item, requested_quantity=requested, warning=warning)


@transaction.atomic
def update_item_quantity(*, cart: Cart, item_id: int, quantity: int) -> CartMutation:
    """Set a line's quantity, clamped to `[1, stock]` with a warning when adjusted."""

    item = get_object_or_404(CartItem.objects.select_for_update().select_related("product"), id=item_id, cart=cart)
    product = item.product
    if not item.is_pre_order and product.stock_quantity <= 0:
        raise CartError("Product is out of stock")
    applied, warning = clamp_quantity(
        product_id=product.id, requested=int(quantity), stock=product.stock_quantity, is_pre_order=item.is_pre_order
    )
    item.quantity = applied
    item.save(update_fields=["quantity", "updated_at"])
    logger.info(
        "cart.item_updated",
        extra={
            "event": "cart.item_updated",
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "item_id": item.id,
            "quantity": applied,
            "guest": cart.user_id is None,
        },
    )
    _log_clamp(cart, warning)
    return CartMutation(item=item, requested_quantity=int(quantity), warning=warning)


@transaction.atomic
def remove_item(*, cart: Cart, item_id: int) -> None:
    """Remove an item from the cart; missing items are ignored."""

    deleted, _ = CartItem.objects.filter(id=item_id, cart=cart).delete()
    if not deleted:
        return
    logger.info(
        "cart.item_removed",
        extra={
            "event": "cart.item_removed",
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "item_id": item_id,
            "guest": cart.user_id is None,
        },
    )


@transaction.atomic
def clear_cart(*, cart: Cart) -> None:
    """Delete every line in the cart."""

    CartItem.objects.filter(cart=cart).delete()
    cart.save(update_fields=["updated_at"])
    logger.info(
        "cart.cleared",
        extra={"event": "cart.cleared", "cart_id": cart.id, "user_id": cart.user_id, "guest": cart.user_id is None},
    )


@transaction.atomic
def abandon_cart(*, cart: Cart) -> None:
    """Empty the cart and mark it abandoned."""

    CartItem.objects.filter(cart=cart).delete()
    cart.status = Cart.STATUS_ABANDONED
    cart.save(update_fields=["status", "updated_at"])
    logger.info(
        "cart.abandoned",
        extra={"event": "cart.abandoned", "cart_id": cart.id, "user_id": cart.user_id, "guest": cart.user_id is None},
    )
