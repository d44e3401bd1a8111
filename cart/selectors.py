"""Selectors for read-only cart queries."""

from typing import Optional

from .aggregation import CartLine, CartSnapshot
from .models import Cart


def get_active_cart(*, user=None, session_id: Optional[str] = None) -> Cart:
    """Return the active cart for an authenticated user or guest session, creating it if missing."""

    if user is not None and getattr(user, "is_authenticated", False):
        cart, _ = Cart.objects.get_or_create(user=user, session_id=None, status=Cart.STATUS_ACTIVE)
        return cart
    if not session_id:
        raise ValueError("A user or a session id is required")
    cart, _ = Cart.objects.get_or_create(user=None, session_id=session_id, status=Cart.STATUS_ACTIVE)
    return cart


def build_cart_snapshot(*, cart: Cart) -> CartSnapshot:
    """Freeze the cart's lines into an immutable snapshot for checkout."""

    lines = []
    for item in cart.items.select_related("product").order_by("id"):
        lines.append(
            CartLine(
                product_id=item.product_id,
                name=item.product.title,
                thumbnail=item.product.thumbnail,
                quantity=int(item.quantity),
                unit_price=item.unit_price,
                is_pre_order=item.is_pre_order,
                selections=dict(item.selected_variants or {}),
                variant_labels=tuple(item.variant_labels or ()),
                item_id=item.id,
            )
        )
    return CartSnapshot(lines=tuple(lines))


def cart_totals(*, cart: Cart) -> dict:
    """Compute cart subtotals per fulfilment subset."""

    snapshot = build_cart_snapshot(cart=cart)
    return {
        "regular_subtotal": snapshot.regular_subtotal,
        "pre_order_subtotal": snapshot.pre_order_subtotal,
        "subtotal": snapshot.grand_subtotal,
        "has_mixed_cart": snapshot.has_mixed_cart,
    }
