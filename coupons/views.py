"""Coupon endpoint: check a code against the caller's current cart."""

from cart.selectors import build_cart_snapshot
from cart.views import resolve_cart
from checkout.errors import CheckoutError
from checkout.services import owner_delivery_fee, resolve_delivery_choice
from common.choices import DeliveryKind
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import CouponResultSerializer, ValidateCouponSerializer
from .services import CouponError, validate_coupon


class ValidateCouponView(APIView):
    """Validate a coupon code for the caller's cart without redeeming it."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Validate coupon",
        description=(
            "Checks the code against the subtotal it would apply to (regular items when present, otherwise "
            "pre-order items) and returns the discount. No usage is consumed."
        ),
        request=ValidateCouponSerializer,
        parameters=[
            OpenApiParameter(
                name="X-Session-Id",
                location=OpenApiParameter.HEADER,
                required=False,
                description="Guest session identifier (required when not authenticated)",
                type=str,
            )
        ],
        responses={
            200: CouponResultSerializer,
            400: inline_serializer(
                name="CouponError",
                fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
            ),
        },
        examples=[
            OpenApiExample("Request", value={"code": "WELCOME10", "delivery_option_id": 2}, request_only=True),
            OpenApiExample(
                "Valid",
                value={
                    "code": "WELCOME10",
                    "name": "Welcome 10%",
                    "discount_type": "percentage",
                    "discount_amount": "120.00",
                    "subtotal": "1200.00",
                },
                response_only=True,
            ),
            OpenApiExample(
                "Below minimum",
                value={"detail": "Minimum order amount of GHS 500.00 required", "code": "below_minimum"},
                response_only=True,
                status_codes=["400"],
            ),
        ],
    )
    def post(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return Response({"detail": "Missing X-Session-Id."}, status=status.HTTP_400_BAD_REQUEST)
        serializer = ValidateCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        snapshot = build_cart_snapshot(cart=cart)
        if snapshot.is_empty:
            return Response({"detail": "Your cart is empty.", "code": "empty_cart"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            delivery_choice = None
            pre_order_choice = None
            if snapshot.regular_lines:
                delivery_choice = resolve_delivery_choice(
                    kind=DeliveryKind.STANDARD, option_id=data.get("delivery_option_id")
                )
            if snapshot.pre_order_lines:
                pre_order_choice = resolve_delivery_choice(
                    kind=DeliveryKind.PRE_ORDER, option_id=data.get("pre_order_shipping_option_id")
                )
            result = validate_coupon(
                code=data["code"],
                cart_subtotal=snapshot.discountable_subtotal,
                user=request.user,
                delivery_fee=owner_delivery_fee(
                    snapshot, delivery_choice=delivery_choice, pre_order_choice=pre_order_choice
                ),
            )
        except CouponError as exc:
            return Response({"detail": exc.message, "code": exc.kind}, status=status.HTTP_400_BAD_REQUEST)
        except CheckoutError as exc:
            return Response(exc.as_response(), status=exc.status_code)

        return Response(
            CouponResultSerializer(
                {
                    "code": result.code,
                    "name": result.name,
                    "discount_type": result.discount_type,
                    "discount_amount": result.discount_amount,
                    "subtotal": snapshot.discountable_subtotal,
                }
            ).data
        )
