"""DRF views for cart operations.

Authenticated users get their own cart; guests identify their cart with the
`X-Session-Id` header.
"""

from checkout.staging import CheckoutStaging
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import CartItem
from .selectors import get_active_cart
from .serializers import AddItemSerializer, CartMutationSerializer, CartReadSerializer, UpdateItemQuantitySerializer
from .services import CartError, add_item, clear_cart, remove_item, update_item_quantity

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier (required when not authenticated)",
    type=str,
)

MUTATION_ERROR = inline_serializer(name="CartMutationError", fields={"detail": rf_serializers.CharField()})


def resolve_cart(request):
    """Return the caller's active cart, or None for a guest without a session id."""

    session_id = request.headers.get("X-Session-Id")
    if not request.user.is_authenticated and not session_id:
        return None
    return get_active_cart(user=request.user, session_id=session_id)


def _missing_session():
    return Response({"detail": "Missing X-Session-Id."}, status=status.HTTP_400_BAD_REQUEST)


class CartDetailView(APIView):
    """Return the caller's active cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get active cart",
        description="Returns the active cart with items and subtotals split into regular and pre-order subsets.",
        parameters=[SESSION_HEADER],
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "id": 1,
                    "items": [
                        {
                            "id": 10,
                            "product_id": 100,
                            "name": "Laptop Pro 14",
                            "quantity": 1,
                            "unit_price": "1200.00",
                            "line_total": "1200.00",
                            "is_pre_order": False,
                            "selected_variants": {"3": 12},
                            "variant_labels": [{"attribute": "RAM", "option": "16GB", "price_modifier": "200.00"}],
                        }
                    ],
                    "regular_subtotal": "1200.00",
                    "pre_order_subtotal": "0.00",
                    "subtotal": "1200.00",
                    "has_mixed_cart": False,
                },
            )
        ],
    )
    def get(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        data = CartReadSerializer.from_cart(cart=cart).data
        return Response(data, status=status.HTTP_200_OK)


class CartAddItemView(APIView):
    """Add a configured product to the cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description=(
            "Adds a product with its variant selections. Identical configurations merge; "
            "quantities beyond stock are clamped and reported in `warning`."
        ),
        request=AddItemSerializer,
        parameters=[SESSION_HEADER],
        responses={201: CartMutationSerializer, 400: MUTATION_ERROR},
        examples=[
            OpenApiExample("Add", value={"product_id": 100, "quantity": 2, "selections": {"3": 12}}, request_only=True),
            OpenApiExample(
                "Clamped",
                value={"id": 10, "quantity": 3, "requested_quantity": 5, "warning": "Only 3 in stock; quantity set to 3."},
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            mutation = add_item(cart=cart, **serializer.validated_data)
        except CartError as exc:
            return Response({"detail": str(exc) or "Unable to update cart."}, status=status.HTTP_400_BAD_REQUEST)
        return Response(CartMutationSerializer(mutation).data, status=status.HTTP_201_CREATED)


class CartItemUpdateView(APIView):
    """Update a cart item's quantity."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description="Sets the quantity, clamped to available stock with a warning when adjusted.",
        request=UpdateItemQuantitySerializer,
        parameters=[SESSION_HEADER],
        responses={
            200: CartMutationSerializer,
            400: MUTATION_ERROR,
            404: inline_serializer(name="NotFoundError", fields={"detail": rf_serializers.CharField()}),
        },
    )
    def patch(self, request, item_id: int):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        if not CartItem.objects.filter(id=item_id, cart=cart).exists():
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            mutation = update_item_quantity(cart=cart, item_id=item_id, quantity=serializer.validated_data["quantity"])
        except CartError as exc:
            return Response({"detail": str(exc) or "Unable to update cart."}, status=status.HTTP_400_BAD_REQUEST)
        return Response(CartMutationSerializer(mutation).data, status=status.HTTP_200_OK)


class CartItemDeleteView(APIView):
    """Remove an item from the cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Delete cart item",
        parameters=[SESSION_HEADER],
        responses={
            204: None,
            404: inline_serializer(name="NotFoundError", fields={"detail": rf_serializers.CharField()}),
        },
    )
    def delete(self, request, item_id: int):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        if not CartItem.objects.filter(id=item_id, cart=cart).exists():
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        remove_item(cart=cart, item_id=item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartClearView(APIView):
    """Clear the active cart and any staged checkout."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        description="Deletes all items and discards any checkout staged for card payment.",
        parameters=[SESSION_HEADER],
        responses={200: inline_serializer(name="CartStatusCleared", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Cleared", value={"status": "cleared"})],
    )
    def post(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        clear_cart(cart=cart)
        CheckoutStaging(request.session).clear()
        return Response({"status": "cleared"}, status=status.HTTP_200_OK)
