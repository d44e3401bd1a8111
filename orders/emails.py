"""Email utilities for the orders app.

Uses Django's email backend, with links composed from FRONTEND_URL.
"""

from django.conf import settings
from django.core.mail import send_mail

from .models import Order


def send_order_confirmation_email(order_id: int) -> None:
    """Send an order confirmation to the order's contact email.

    Includes a tracking link on the frontend using `FRONTEND_URL`.
    Silently no-ops if the order or an email address is missing.
    """
    order = Order.objects.filter(id=order_id).select_related("user").first()
    if order is None:
        return
    to_email = order.contact_email or getattr(order.user, "email", None)
    if not to_email:
        return

    subject = f"Your order {order.number or order.id} has been received"
    frontend = getattr(settings, "FRONTEND_URL", "")
    track_url = f"{frontend.rstrip('/')}/track-order?number={order.number}" if frontend else ""
    currency = getattr(settings, "CURRENCY", "GHS")

    lines = [
        f"Hi {order.customer_name or 'there'},",
        "",
        "Thank you for shopping with Ventech!",
        "",
        f"Order: {order.number or order.id}",
        f"Total: {currency} {order.total}",
        f"Payment: {order.get_payment_method_display()} ({order.get_payment_status_display()})",
    ]
    if order.is_pre_order and order.estimated_arrival_date:
        lines.append(f"Estimated arrival: {order.estimated_arrival_date:%d %B %Y}")
    if track_url:
        lines += ["", f"Track your order here: {track_url}"]

    send_mail(
        subject,
        "\n".join(lines) + "\n",
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [to_email],
        fail_silently=True,
    )
