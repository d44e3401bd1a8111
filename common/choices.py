"""Shared enumerations and choices used across apps."""

from django.db import models


class DraftPublished(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class AttributeType(models.TextChoices):
    """How a configurable attribute is presented to the customer."""

    SELECT = "select", "Select"
    RADIO = "radio", "Radio"
    COLOR = "color", "Color"
    SIZE = "size", "Size"


class CartStatus(models.TextChoices):
    """Statuses for shopping carts."""

    ACTIVE = "active", "Active"
    ORDERED = "ordered", "Ordered"
    ABANDONED = "abandoned", "Abandoned"


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED_AMOUNT = "fixed_amount", "Fixed amount"
    FREE_SHIPPING = "free_shipping", "Free shipping"


class DeliveryKind(models.TextChoices):
    """Families of delivery options: local delivery vs. pre-order freight."""

    STANDARD = "standard", "Standard delivery"
    PRE_ORDER = "pre_order", "Pre-order shipping"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    MOBILE_MONEY = "mobile_money", "Mobile money"
    CARD = "card", "Card"
    CASH_ON_DELIVERY = "cash_on_delivery", "Cash on delivery"
    PAYSTACK = "paystack", "Paystack"


class TransactionStatus(models.TextChoices):
    """Gateway transaction states as recorded locally."""

    INITIALIZED = "initialized", "Initialized"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
