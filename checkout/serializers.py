"""Checkout request and response serializers."""

from common.choices import PaymentMethod
from orders.serializers import OrderReceiptSerializer, OrderSerializer
from rest_framework import serializers

from .drafts import CustomerIdentity, DeliveryAddress
from .models import DeliveryOption


class DeliveryOptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeliveryOption
        fields = ["id", "code", "name", "description", "kind", "price", "estimated_days_min", "estimated_days_max"]
        read_only_fields = fields


class CustomerSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32)


class AddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=120)
    region = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    country = serializers.CharField(max_length=80, required=False, default="Ghana")
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class CheckoutRequestSerializer(serializers.Serializer):
    """Contact, address and delivery choices for a checkout submission."""

    customer = CustomerSerializer()
    address = AddressSerializer()
    delivery_option_id = serializers.IntegerField(required=False, allow_null=True)
    pre_order_shipping_option_id = serializers.IntegerField(required=False, allow_null=True)
    coupon_code = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def to_checkout_kwargs(self) -> dict:
        data = self.validated_data
        return {
            "customer": CustomerIdentity(**data["customer"]),
            "address": DeliveryAddress(**data["address"]),
            "delivery_option_id": data.get("delivery_option_id"),
            "pre_order_shipping_option_id": data.get("pre_order_shipping_option_id"),
            "coupon_code": (data.get("coupon_code") or "").strip(),
            "notes": data.get("notes") or "",
        }


class PreviewRequestSerializer(CheckoutRequestSerializer):
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH_ON_DELIVERY)


class CardCheckoutRequestSerializer(CheckoutRequestSerializer):
    payment_method = serializers.ChoiceField(
        choices=[PaymentMethod.PAYSTACK, PaymentMethod.CARD, PaymentMethod.MOBILE_MONEY],
        default=PaymentMethod.PAYSTACK,
    )


class DraftSerializer(serializers.Serializer):
    """Serialized `CheckoutDraft.to_dict()` payload."""

    kind = serializers.CharField()
    items = serializers.ListField(child=serializers.DictField())
    delivery = serializers.DictField()
    notes = serializers.CharField()
    coupon_code = serializers.CharField()
    subtotal = serializers.CharField()
    delivery_fee = serializers.CharField()
    tax = serializers.CharField()
    discount = serializers.CharField()
    total = serializers.CharField()
    estimated_arrival_date = serializers.CharField(allow_null=True)


class PreviewResponseSerializer(serializers.Serializer):
    drafts = DraftSerializer(many=True)
    has_mixed_cart = serializers.BooleanField()
    discount = serializers.CharField()
    total = serializers.CharField()

    @classmethod
    def from_draft_set(cls, draft_set):
        return cls(
            {
                "drafts": [d.to_dict() for d in draft_set.drafts],
                "has_mixed_cart": draft_set.has_mixed_cart,
                "discount": str(draft_set.discount),
                "total": str(draft_set.total),
            }
        )


class CheckoutResultSerializer(serializers.Serializer):
    orders = OrderSerializer(many=True)
    reference = serializers.CharField(allow_blank=True)
    replayed = serializers.BooleanField()
    redacted = serializers.BooleanField()
    warning = serializers.DictField(allow_null=True)

    @classmethod
    def from_result(cls, result):
        warning = result.warning
        serializer_class = CheckoutReceiptSerializer if result.redacted else cls
        return serializer_class(
            {
                "orders": list(result.orders),
                "reference": result.reference,
                "replayed": result.replayed,
                "redacted": result.redacted,
                "warning": warning.as_dict() if warning else None,
            }
        )


class CheckoutReceiptSerializer(CheckoutResultSerializer):
    orders = OrderReceiptSerializer(many=True)


class PaymentRedirectSerializer(serializers.Serializer):
    reference = serializers.CharField()
    authorization_url = serializers.URLField()
    access_code = serializers.CharField(allow_blank=True)
    amount_minor_units = serializers.IntegerField()
