"""Cart aggregation: partition lines into regular/pre-order and total them.

`CartSnapshot` is the immutable view of a cart handed to checkout, so the
orchestrator works on explicit input instead of reading the cart tables.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Tuple

ZERO = Decimal("0.00")


def variant_key(selections: Optional[Mapping]) -> str:
    """Canonical key for a selection set; equal selections give equal keys."""
    if not selections:
        return ""
    pairs = sorted((int(a), int(o)) for a, o in selections.items())
    return "|".join(f"{a}:{o}" for a, o in pairs)


@dataclass(frozen=True)
class StockWarning:
    """Requested quantity was adjusted to what can actually be sold."""

    product_id: int
    requested: int
    applied: int
    available: int

    @property
    def message(self) -> str:
        if self.applied > self.requested:
            return "Quantity must be at least 1."
        return f"Only {self.available} in stock; quantity set to {self.applied}."


def clamp_quantity(*, product_id: int, requested: int, stock: int, is_pre_order: bool):
    """Clamp a requested quantity into `[1, stock]`.

    Pre-order lines are not bounded by local stock. Returns the applied
    quantity and a `StockWarning` when it differs from the request.
    """
    applied = max(1, int(requested))
    if not is_pre_order:
        applied = min(applied, int(stock))
    if applied != requested:
        return applied, StockWarning(
            product_id=product_id,
            requested=int(requested),
            applied=applied,
            available=int(stock),
        )
    return applied, None


@dataclass(frozen=True)
class CartLine:
    product_id: int
    name: str
    quantity: int
    unit_price: Decimal
    is_pre_order: bool = False
    thumbnail: str = ""
    selections: Mapping = field(default_factory=dict)
    variant_labels: Tuple = ()
    item_id: Optional[int] = None

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    lines: Tuple[CartLine, ...] = ()

    @property
    def regular_lines(self) -> Tuple[CartLine, ...]:
        return tuple(line for line in self.lines if not line.is_pre_order)

    @property
    def pre_order_lines(self) -> Tuple[CartLine, ...]:
        return tuple(line for line in self.lines if line.is_pre_order)

    @property
    def regular_subtotal(self) -> Decimal:
        return sum((line.subtotal for line in self.regular_lines), ZERO)

    @property
    def pre_order_subtotal(self) -> Decimal:
        return sum((line.subtotal for line in self.pre_order_lines), ZERO)

    @property
    def grand_subtotal(self) -> Decimal:
        return self.regular_subtotal + self.pre_order_subtotal

    @property
    def has_mixed_cart(self) -> bool:
        return bool(self.regular_lines) and bool(self.pre_order_lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def discountable_subtotal(self) -> Decimal:
        """Subtotal of the subset that carries the coupon: regular items first."""
        if self.regular_lines:
            return self.regular_subtotal
        return self.pre_order_subtotal
