"""DRF serializers for Orders.

Orders expose their stored snapshot: totals are read from the order exactly
as they were computed at checkout.
"""

from rest_framework import serializers

from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "product_image",
            "quantity",
            "unit_price",
            "subtotal",
            "selected_variants",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """API representation for an order and its line items."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "payment_status",
            "payment_method",
            "payment_reference",
            "customer_name",
            "contact_email",
            "contact_phone",
            "shipping_address",
            "delivery_option_code",
            "delivery_option_name",
            "is_pre_order",
            "estimated_arrival_date",
            "notes",
            "coupon_code",
            "items",
            "subtotal",
            "delivery_fee",
            "tax",
            "discount",
            "total",
            "created_at",
        ]
        read_only_fields = fields


class OrderTrackSerializer(serializers.ModelSerializer):
    """Public tracking view: status and arrival without contact details."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "number",
            "status",
            "payment_status",
            "is_pre_order",
            "estimated_arrival_date",
            "delivery_option_name",
            "items",
            "total",
            "created_at",
        ]
        read_only_fields = fields


class OrderReceiptSerializer(serializers.ModelSerializer):
    """Order number and status only, for callers that do not own the order."""

    class Meta:
        model = Order
        fields = ["number", "status", "payment_status", "is_pre_order"]
        read_only_fields = fields
