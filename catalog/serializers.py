"""Serializers for the catalog app."""

from rest_framework import serializers

from .models import Product
from .selectors import get_attribute_pricing, get_price_range_for_product


class PriceRangeSerializer(serializers.Serializer):
    minimum = serializers.DecimalField(max_digits=12, decimal_places=2)
    maximum = serializers.DecimalField(max_digits=12, decimal_places=2)
    has_range = serializers.BooleanField()


class ProductListSerializer(serializers.ModelSerializer):
    price_range = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "title",
            "slug",
            "thumbnail",
            "base_price",
            "discount_price",
            "is_pre_order",
            "stock_quantity",
            "price_range",
        ]

    def get_price_range(self, obj):
        return PriceRangeSerializer(get_price_range_for_product(product=obj)).data


class ProductDetailSerializer(ProductListSerializer):
    attributes = serializers.SerializerMethodField()

    class Meta(ProductListSerializer.Meta):
        fields = ProductListSerializer.Meta.fields + ["description", "attributes"]

    def get_attributes(self, obj):
        return [
            {
                "id": attribute.attribute_id,
                "name": attribute.name,
                "type": attribute.attribute_type,
                "is_required": attribute.is_required,
                "options": [
                    {
                        "id": option.option_id,
                        "label": option.label,
                        "price_modifier": str(option.price_modifier),
                    }
                    for option in attribute.available_options
                ],
            }
            for attribute in get_attribute_pricing(product=obj)
            if attribute.available_options
        ]


class ResolvePriceSerializer(serializers.Serializer):
    """Input for price resolution: `{attribute_id: option_id}` for enabled attributes."""

    selections = serializers.DictField(child=serializers.IntegerField(min_value=1), required=False, default=dict)


class ResolvedPriceSerializer(serializers.Serializer):
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    price_range = PriceRangeSerializer()
    variants = serializers.ListField(child=serializers.DictField())
