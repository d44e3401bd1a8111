"""Variant pricing: effective unit price and display price range.

Pure functions over plain dataclasses so pricing can be exercised without a
database. `catalog.selectors` builds these structures from the ORM and adds
the fail-soft behaviour around lookups.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Sequence, Tuple

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def quantize_money(value) -> Decimal:
    """Round a major-unit amount to 2 places, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class VariantSelectionError(ValueError):
    """Raised when a selection does not match the product's selectable options."""


@dataclass(frozen=True)
class OptionPricing:
    option_id: int
    label: str
    price_modifier: Decimal
    is_available: bool = True


@dataclass(frozen=True)
class AttributePricing:
    """An attribute mapped to a product with its product-scoped options."""

    attribute_id: int
    name: str
    attribute_type: str
    is_required: bool
    options: Tuple[OptionPricing, ...] = ()

    @property
    def available_options(self) -> Tuple[OptionPricing, ...]:
        return tuple(o for o in self.options if o.is_available)

    def get_available_option(self, option_id: int) -> Optional[OptionPricing]:
        for option in self.available_options:
            if option.option_id == option_id:
                return option
        return None


@dataclass(frozen=True)
class SelectedVariant:
    """A customer's chosen option for one enabled attribute."""

    attribute_id: int
    attribute_name: str
    attribute_type: str
    option_id: int
    option_label: str
    price_modifier: Decimal

    def as_dict(self) -> dict:
        return {
            "attribute_id": self.attribute_id,
            "attribute": self.attribute_name,
            "type": self.attribute_type,
            "option_id": self.option_id,
            "option": self.option_label,
            "price_modifier": str(self.price_modifier),
        }


@dataclass(frozen=True)
class PriceRange:
    minimum: Decimal
    maximum: Decimal

    @property
    def has_range(self) -> bool:
        return self.minimum != self.maximum

    @classmethod
    def point(cls, price: Decimal) -> "PriceRange":
        price = quantize_money(price)
        return cls(minimum=price, maximum=price)


def effective_base_price(base_price, discount_price=None) -> Decimal:
    if discount_price is not None:
        return quantize_money(discount_price)
    return quantize_money(base_price)


def normalize_selections(selections: Optional[Mapping]) -> dict:
    """Coerce `{attribute_id: option_id}` keys and values to ints.

    JSON payloads and session storage deliver the keys as strings.
    """
    normalized = {}
    for attribute_id, option_id in (selections or {}).items():
        try:
            normalized[int(attribute_id)] = int(option_id)
        except (TypeError, ValueError):
            raise VariantSelectionError(f"Invalid selection {attribute_id!r}={option_id!r}")
    return normalized


def select_variants(
    attributes: Sequence[AttributePricing], selections: Optional[Mapping]
) -> Tuple[SelectedVariant, ...]:
    """Validate selections against the product's attributes.

    Only attributes present in `selections` are enabled. Each must be mapped to
    the product and point at one of its available selectable options.
    """
    chosen = normalize_selections(selections)
    by_id = {a.attribute_id: a for a in attributes}
    selected = []
    for attribute_id, option_id in sorted(chosen.items()):
        attribute = by_id.get(attribute_id)
        if attribute is None:
            raise VariantSelectionError(f"Attribute {attribute_id} is not configurable for this product")
        option = attribute.get_available_option(option_id)
        if option is None:
            raise VariantSelectionError(f"Option {option_id} is not available for {attribute.name}")
        selected.append(
            SelectedVariant(
                attribute_id=attribute.attribute_id,
                attribute_name=attribute.name,
                attribute_type=attribute.attribute_type,
                option_id=option.option_id,
                option_label=option.label,
                price_modifier=option.price_modifier,
            )
        )
    return tuple(selected)


def resolve_unit_price(
    *,
    base_price,
    discount_price=None,
    attributes: Sequence[AttributePricing] = (),
    selections: Optional[Mapping] = None,
) -> Decimal:
    """Return base (or discount) price plus the modifiers of enabled attributes.

    Attributes the customer did not enable contribute nothing.
    """
    base = effective_base_price(base_price, discount_price)
    variants = select_variants(attributes, selections)
    return quantize_money(base + sum((v.price_modifier for v in variants), ZERO))


def _range_contribution(attribute: AttributePricing) -> Optional[Tuple[Decimal, Decimal]]:
    modifiers = [o.price_modifier for o in attribute.available_options]
    if not modifiers:
        return None
    # Declining customization is always free, so 0 is reachable on both ends.
    low = min(modifiers)
    high = max(modifiers)
    return min(low, ZERO), max(high, ZERO)


def compute_price_range(
    *, base_price, discount_price=None, attributes: Iterable[AttributePricing] = ()
) -> PriceRange:
    """Return the min/max unit price over every possible selection.

    Attributes without an available option are skipped as if unmapped. A
    negative modifier lowers the minimum whether or not the attribute is
    required, since a customer can always enable it.
    """
    base = effective_base_price(base_price, discount_price)
    low_total = ZERO
    high_total = ZERO
    for attribute in attributes:
        contribution = _range_contribution(attribute)
        if contribution is None:
            continue
        low_total += contribution[0]
        high_total += contribution[1]
    return PriceRange(minimum=quantize_money(base + low_total), maximum=quantize_money(base + high_total))
