from rest_framework import serializers


class ValidateCouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=40)
    delivery_option_id = serializers.IntegerField(required=False, allow_null=True)
    pre_order_shipping_option_id = serializers.IntegerField(required=False, allow_null=True)

    def validate_code(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Coupon code is required")
        return value


class CouponResultSerializer(serializers.Serializer):
    code = serializers.CharField()
    name = serializers.CharField()
    discount_type = serializers.CharField()
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
