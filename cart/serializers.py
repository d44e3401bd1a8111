"""Cart serializers for read and write operations."""

from rest_framework import serializers

from .models import CartItem
from .selectors import cart_totals


class CartItemReadSerializer(serializers.ModelSerializer):
    """Read serializer for a cart item."""

    product_id = serializers.IntegerField(source="product.id")
    name = serializers.CharField(source="product.title")
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "name",
            "quantity",
            "unit_price",
            "line_total",
            "is_pre_order",
            "selected_variants",
            "variant_labels",
        ]


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary, split by fulfilment subset."""

    id = serializers.IntegerField()
    items = CartItemReadSerializer(many=True)
    regular_subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    pre_order_subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    has_mixed_cart = serializers.BooleanField()

    @classmethod
    def from_cart(cls, *, cart):
        totals = cart_totals(cart=cart)
        return cls(
            {
                "id": cart.id,
                "items": list(cart.items.select_related("product").all()),
                **totals,
            }
        )


class AddItemSerializer(serializers.Serializer):
    """Write serializer for adding an item to the cart."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    selections = serializers.DictField(child=serializers.IntegerField(min_value=1), required=False, default=dict)


class UpdateItemQuantitySerializer(serializers.Serializer):
    """Write serializer for updating a cart item quantity."""

    quantity = serializers.IntegerField(min_value=1)


class CartMutationSerializer(serializers.Serializer):
    """Response for add/update: the line plus any stock warning."""

    id = serializers.IntegerField(source="item.id")
    quantity = serializers.IntegerField(source="item.quantity")
    requested_quantity = serializers.IntegerField()
    warning = serializers.SerializerMethodField()

    def get_warning(self, obj):
        return obj.warning.message if obj.warning else None
