"""Checkout models: delivery options and the payment transaction audit trail."""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from common.choices import DeliveryKind, TransactionStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class DeliveryOption(TimeStampedModel):
    """A selectable delivery method for regular items or shipping method for pre-orders."""

    KIND_STANDARD = DeliveryKind.STANDARD
    KIND_PRE_ORDER = DeliveryKind.PRE_ORDER

    code = models.SlugField(max_length=40, unique=True)
    name = models.CharField(max_length=120)
    description = models.CharField(max_length=255, blank=True)
    kind = models.CharField(max_length=16, choices=DeliveryKind.choices, default=DeliveryKind.STANDARD, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    estimated_days_min = models.PositiveIntegerField(default=1)
    estimated_days_max = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["kind", "sort_order", "id"]
        constraints = [
            models.CheckConstraint(name="delivery_price_non_negative", condition=models.Q(price__gte=0)),
            models.CheckConstraint(
                name="delivery_days_ordered",
                condition=models.Q(estimated_days_max__gte=models.F("estimated_days_min")),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.kind})"

    def estimated_arrival(self, today: Optional[date] = None) -> date:
        return (today or date.today()) + timedelta(days=int(self.estimated_days_max))


class PaymentTransaction(TimeStampedModel):
    """A gateway payment session and its verification outcome."""

    STATUS_INITIALIZED = TransactionStatus.INITIALIZED
    STATUS_SUCCESS = TransactionStatus.SUCCESS
    STATUS_FAILED = TransactionStatus.FAILED

    reference = models.CharField(max_length=64, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, related_name="payment_transactions", null=True, blank=True, on_delete=models.SET_NULL
    )
    email = models.EmailField(blank=True)
    amount_minor_units = models.BigIntegerField(default=0)
    currency = models.CharField(max_length=3, default="GHS")
    status = models.CharField(
        max_length=16, choices=TransactionStatus.choices, default=TransactionStatus.INITIALIZED, db_index=True
    )
    order = models.ForeignKey(
        "orders.Order", related_name="payment_transactions", null=True, blank=True, on_delete=models.SET_NULL
    )
    # The cart that was paid for; the gateway redirect carries no session header
    cart = models.ForeignKey(
        "cart.Cart", related_name="payment_transactions", null=True, blank=True, on_delete=models.SET_NULL
    )
    gateway_response = models.JSONField(default=dict, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.reference} ({self.status})"
