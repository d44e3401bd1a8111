"""Selectors for the catalog domain.

Expose read-only query helpers to keep views thin and allow reuse across
APIs and services. Selectors should return querysets or lightweight data
structures and avoid side effects.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Tuple

from django.db import DatabaseError
from django.db.models import Q, QuerySet

from .models import Product, ProductAttributeMapping, ProductSelectedOption
from .pricing import (
    ZERO,
    AttributePricing,
    OptionPricing,
    PriceRange,
    SelectedVariant,
    VariantSelectionError,
    compute_price_range,
    effective_base_price,
    quantize_money,
    select_variants,
)

logger = logging.getLogger("ventech.catalog")


@dataclass(frozen=True)
class ProductPrice:
    unit_price: Decimal
    price_range: PriceRange
    variants: Tuple[SelectedVariant, ...] = ()


def list_products(
    *,
    search: Optional[str] = None,
    is_pre_order: Optional[bool] = None,
    ordering: Optional[Iterable[str]] = None,
) -> QuerySet[Product]:
    """Return published products with optional text search and pre-order filter."""

    qs = Product.objects.filter(status=Product.STATUS_PUBLISHED)
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))
    if is_pre_order is not None:
        qs = qs.filter(is_pre_order=is_pre_order)
    ordering = list(ordering or ("title",))
    return qs.order_by(*ordering)


def get_product_by_slug(slug: str) -> Optional[Product]:
    """Return a single published product by slug, or None if not found."""

    try:
        return Product.objects.get(slug=slug, status=Product.STATUS_PUBLISHED)
    except Product.DoesNotExist:
        return None


def get_attribute_pricing(*, product: Product) -> List[AttributePricing]:
    """Load the attributes mapped to a product with their product-scoped options.

    Attributes with no selectable options for this product are omitted.
    """

    mappings = (
        ProductAttributeMapping.objects.filter(product=product)
        .select_related("attribute")
        .order_by("sort_order", "id")
    )
    selected = (
        ProductSelectedOption.objects.filter(product=product)
        .select_related("option")
        .order_by("option__sort_order", "option__id")
    )
    options_by_attribute = defaultdict(list)
    for row in selected:
        option = row.option
        options_by_attribute[option.attribute_id].append(
            OptionPricing(
                option_id=option.id,
                label=option.label,
                price_modifier=option.price_modifier,
                is_available=option.is_available,
            )
        )

    attributes = []
    for mapping in mappings:
        options = options_by_attribute.get(mapping.attribute_id)
        if not options:
            continue
        attributes.append(
            AttributePricing(
                attribute_id=mapping.attribute_id,
                name=mapping.attribute.name,
                attribute_type=mapping.attribute.attribute_type,
                is_required=mapping.effective_is_required,
                options=tuple(options),
            )
        )
    return attributes


def get_price_range_for_product(*, product: Product) -> PriceRange:
    """Return the display price range, falling back to the base price on lookup failure."""

    try:
        attributes = get_attribute_pricing(product=product)
    except DatabaseError:
        logger.exception(
            "catalog.price_lookup_failed",
            extra={"event": "catalog.price_lookup_failed", "product_id": product.id},
        )
        return PriceRange.point(product.effective_price)
    return compute_price_range(
        base_price=product.base_price,
        discount_price=product.discount_price,
        attributes=attributes,
    )


def resolve_product_price(*, product: Product, selections: Optional[Mapping] = None) -> ProductPrice:
    """Resolve the unit price for a selection plus the product's price range.

    Without selections a lookup failure degrades to the base price. With
    selections the modifiers cannot be priced, so the failure is reported as a
    selection error instead of silently undercharging.
    """

    base = effective_base_price(product.base_price, product.discount_price)
    try:
        attributes = get_attribute_pricing(product=product)
    except DatabaseError:
        logger.exception(
            "catalog.price_lookup_failed",
            extra={"event": "catalog.price_lookup_failed", "product_id": product.id},
        )
        if selections:
            raise VariantSelectionError("Variant pricing is temporarily unavailable")
        return ProductPrice(unit_price=base, price_range=PriceRange.point(base))

    variants = select_variants(attributes, selections)
    unit_price = quantize_money(base + sum((v.price_modifier for v in variants), ZERO))
    price_range = compute_price_range(
        base_price=product.base_price,
        discount_price=product.discount_price,
        attributes=attributes,
    )
    return ProductPrice(unit_price=unit_price, price_range=price_range, variants=variants)
