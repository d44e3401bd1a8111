"""Read-only order queries."""

from typing import Optional

from django.db.models import QuerySet

from .models import Order


def orders_for_user(*, user) -> QuerySet[Order]:
    return Order.objects.filter(user_id=user.id).prefetch_related("items").order_by("-id")


def get_order_for_user(*, user, order_id: int) -> Optional[Order]:
    return orders_for_user(user=user).filter(id=order_id).first()


def orders_for_reference(reference: str) -> QuerySet[Order]:
    """Orders settled from one payment reference, regular order first."""

    return Order.objects.filter(payment_reference=reference).prefetch_related("items").order_by("is_pre_order", "id")


def track_order(*, number: str, email: str) -> Optional[Order]:
    """Guest lookup: the order number must match the contact email."""

    number = (number or "").strip().upper()
    email = (email or "").strip()
    if not number or not email:
        return None
    return (
        Order.objects.filter(number=number, contact_email__iexact=email)
        .prefetch_related("items")
        .first()
    )
