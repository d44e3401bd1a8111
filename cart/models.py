"""Cart app models.

Shopping carts owned either by an authenticated user or by a guest session id.
Each line records the variant selections it was priced with so identical
configurations merge and different ones stay separate.
"""

from decimal import Decimal

from common.choices import CartStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to a user or a guest session."""

    STATUS_ACTIVE = CartStatus.ACTIVE
    STATUS_ORDERED = CartStatus.ORDERED
    STATUS_ABANDONED = CartStatus.ABANDONED
    STATUS_CHOICES = CartStatus.choices

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="carts", null=True, blank=True, on_delete=models.CASCADE
    )
    session_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)

    class Meta:
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="cart_user_status_idx"),
            models.Index(fields=["session_id", "status"], name="cart_session_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        owner = self.user_id or self.session_id
        return f"Cart#{self.id} ({owner})"


class CartItem(TimeStampedModel):
    """Line item for a product with a specific variant configuration."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="cart_items", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    is_pre_order = models.BooleanField(default=False)
    variant_key = models.CharField(max_length=255, blank=True, default="")
    selected_variants = models.JSONField(default=dict, blank=True)
    variant_labels = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product", "variant_key"], name="unique_configuration_per_cart"),
            models.CheckConstraint(
                name="quantity_positive",
                condition=models.Q(quantity__gte=1),
            ),
        ]
        indexes = [
            models.Index(fields=["cart", "product"], name="cartitem_cart_product_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} product={self.product_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))
