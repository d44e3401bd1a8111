"""Catalog app models.

Defines the entities the checkout pipeline prices against: products,
configurable attributes, their options, and which options each product
exposes to customers.
"""

from decimal import Decimal

from common.choices import AttributeType, DraftPublished
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Sellable product with a base price and an optional discounted price.

    Pre-order products are fulfilled by freight after purchase and are not
    capped by local stock.
    """

    STATUS_DRAFT = DraftPublished.DRAFT
    STATUS_PUBLISHED = DraftPublished.PUBLISHED
    STATUS_CHOICES = DraftPublished.choices

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    thumbnail = models.URLField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT, db_index=True)
    base_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    stock_quantity = models.IntegerField(default=0)
    is_pre_order = models.BooleanField(default=False, db_index=True)

    class Meta:
        ordering = ["title"]
        constraints = [
            models.CheckConstraint(name="product_base_price_non_negative", condition=models.Q(base_price__gte=0)),
            models.CheckConstraint(
                name="product_discount_lte_base",
                condition=models.Q(discount_price__isnull=True)
                | models.Q(discount_price__gte=0, discount_price__lte=models.F("base_price")),
            ),
            models.CheckConstraint(name="product_stock_non_negative", condition=models.Q(stock_quantity__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.title

    @property
    def effective_price(self) -> Decimal:
        """Price before variant modifiers: the discounted price when present."""
        if self.discount_price is not None:
            return self.discount_price
        return self.base_price


class Attribute(TimeStampedModel):
    """A named axis of customization (e.g. RAM, storage, colour)."""

    TYPE_CHOICES = AttributeType.choices

    name = models.CharField(max_length=120)
    code = models.CharField(max_length=64, unique=True)
    attribute_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=AttributeType.SELECT)
    is_required = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "name"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class AttributeOption(TimeStampedModel):
    """One value of an attribute carrying a signed price delta."""

    attribute = models.ForeignKey(Attribute, related_name="options", on_delete=models.CASCADE)
    label = models.CharField(max_length=120)
    value = models.CharField(max_length=120, blank=True)
    price_modifier = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    stock_quantity = models.IntegerField(default=0)
    is_available = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        indexes = [
            models.Index(fields=["attribute", "is_available"], name="option_attr_available_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.attribute.code}={self.label} ({self.price_modifier:+})"


class ProductAttributeMapping(TimeStampedModel):
    """Attaches an attribute to a product, optionally overriding `is_required`."""

    product = models.ForeignKey(Product, related_name="attribute_mappings", on_delete=models.CASCADE)
    attribute = models.ForeignKey(Attribute, related_name="product_mappings", on_delete=models.CASCADE)
    is_required = models.BooleanField(null=True, blank=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(fields=["product", "attribute"], name="unique_attribute_per_product"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.slug}:{self.attribute.code}"

    @property
    def effective_is_required(self) -> bool:
        if self.is_required is None:
            return bool(self.attribute.is_required)
        return bool(self.is_required)


class ProductSelectedOption(TimeStampedModel):
    """An attribute option the admin has made selectable for a product."""

    product = models.ForeignKey(Product, related_name="selected_options", on_delete=models.CASCADE)
    option = models.ForeignKey(AttributeOption, related_name="product_selections", on_delete=models.CASCADE)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["product", "option"], name="unique_selected_option_per_product"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.slug}:{self.option_id}"
