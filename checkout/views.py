"""Checkout endpoints: delivery options, preview, cash and card submission, payment callback."""

from cart.selectors import build_cart_snapshot
from cart.views import resolve_cart
from common.choices import PaymentMethod
from coupons.services import CouponError
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.services import compute_request_hash, with_idempotency
from rest_framework import generics, status
from rest_framework import serializers as rf_serializers
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .errors import CheckoutError
from .serializers import (
    CardCheckoutRequestSerializer,
    CheckoutRequestSerializer,
    CheckoutResultSerializer,
    DeliveryOptionSerializer,
    PaymentRedirectSerializer,
    PreviewRequestSerializer,
    PreviewResponseSerializer,
)
from .services import active_delivery_options, prepare_checkout, submit_card_payment, submit_cash_order
from .settlement import settle_payment
from .staging import CheckoutStaging

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier (required when not authenticated)",
    type=str,
)
IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)
ERROR_RESPONSE = inline_serializer(
    name="CheckoutErrorResponse",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)
CHECKOUT_REQUEST_EXAMPLE = OpenApiExample(
    "Checkout",
    value={
        "customer": {"name": "Ama Mensah", "email": "ama@example.com", "phone": "+233201234567"},
        "address": {"street": "12 Oxford St", "city": "Accra", "region": "Greater Accra", "country": "Ghana"},
        "delivery_option_id": 2,
        "pre_order_shipping_option_id": 4,
        "coupon_code": "WELCOME10",
        "notes": "Call on arrival",
    },
    request_only=True,
)


def _missing_session():
    return Response({"detail": "Missing X-Session-Id."}, status=status.HTTP_400_BAD_REQUEST)


def _error(exc):
    if isinstance(exc, CouponError):
        return {"detail": exc.message, "code": exc.kind}, status.HTTP_400_BAD_REQUEST
    return exc.as_response(), exc.status_code


def _prepare(request, serializer, *, payment_method, cart):
    return prepare_checkout(
        snapshot=build_cart_snapshot(cart=cart),
        user=request.user,
        payment_method=payment_method,
        **serializer.to_checkout_kwargs(),
    )


class DeliveryOptionListView(generics.ListAPIView):
    """Active delivery options for regular items and shipping methods for pre-orders."""

    permission_classes = [AllowAny]
    serializer_class = DeliveryOptionSerializer
    pagination_class = None
    throttle_scope = "checkout"

    def get_queryset(self):
        return active_delivery_options(self.request.query_params.get("kind") or None)

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="List delivery options",
        parameters=[
            OpenApiParameter(name="kind", description="`standard` or `pre_order`", required=False, type=str),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class CheckoutPreviewView(APIView):
    """Price the current cart without creating anything."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Preview checkout",
        description=(
            "Splits the cart into a regular draft and a pre-order draft and prices each: subtotal, "
            "delivery fee (free at or above the threshold for regular items), tax, coupon discount and total."
        ),
        request=PreviewRequestSerializer,
        parameters=[SESSION_HEADER],
        responses={200: PreviewResponseSerializer, 400: ERROR_RESPONSE},
        examples=[CHECKOUT_REQUEST_EXAMPLE],
    )
    def post(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        serializer = PreviewRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            draft_set = _prepare(
                request, serializer, payment_method=serializer.validated_data["payment_method"], cart=cart
            )
        except (CheckoutError, CouponError) as exc:
            body, code = _error(exc)
            return Response(body, status=code)
        return Response(PreviewResponseSerializer.from_draft_set(draft_set).data, status=status.HTTP_200_OK)


class CashCheckoutView(APIView):
    """Place cash-on-delivery orders for the current cart."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout_write"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Checkout with cash on delivery",
        description=(
            "Creates one order per draft immediately. A mixed cart yields two orders; if one fails the other "
            "is kept and the failure is reported in `warning`. Idempotent when Idempotency-Key header is set."
        ),
        request=CheckoutRequestSerializer,
        parameters=[SESSION_HEADER, IDEMPOTENCY_HEADER],
        responses={201: CheckoutResultSerializer, 400: ERROR_RESPONSE},
        examples=[CHECKOUT_REQUEST_EXAMPLE],
    )
    def post(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _handler():
            try:
                draft_set = _prepare(request, serializer, payment_method=PaymentMethod.CASH_ON_DELIVERY, cart=cart)
                result = submit_cash_order(drafts=draft_set, user=request.user, cart=cart)
            except (CheckoutError, CouponError) as exc:
                return _error(exc)
            return CheckoutResultSerializer.from_result(result).data, status.HTTP_201_CREATED

        idem_key = request.headers.get("Idempotency-Key")
        if idem_key:
            body, code = with_idempotency(
                key=idem_key,
                user=request.user,
                path=str(request.path),
                method=str(request.method),
                request_hash=compute_request_hash(getattr(request, "data", None)),
                handler=_handler,
            )
            return Response(body, status=code)

        body, code = _handler()
        return Response(body, status=code)


class CardCheckoutView(APIView):
    """Start a gateway payment for the current cart."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout_write"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Checkout with card or mobile money",
        description=(
            "Stages the priced drafts in the session and initializes a Paystack payment for their combined "
            "total. No order is created until the payment callback verifies the payment."
        ),
        request=CardCheckoutRequestSerializer,
        parameters=[SESSION_HEADER],
        responses={201: PaymentRedirectSerializer, 400: ERROR_RESPONSE, 502: ERROR_RESPONSE},
        examples=[
            CHECKOUT_REQUEST_EXAMPLE,
            OpenApiExample(
                "Redirect",
                value={
                    "reference": "VENTECH_1735732800000_k3j9x2abc",
                    "authorization_url": "https://checkout.paystack.com/0peioxfhpn",
                    "access_code": "0peioxfhpn",
                    "amount_minor_units": 287000,
                },
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        cart = resolve_cart(request)
        if cart is None:
            return _missing_session()
        serializer = CardCheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            draft_set = _prepare(
                request, serializer, payment_method=serializer.validated_data["payment_method"], cart=cart
            )
            redirect = submit_card_payment(
                drafts=draft_set,
                staging=CheckoutStaging(request.session),
                email=serializer.validated_data["customer"]["email"],
                user=request.user,
                cart=cart,
            )
        except (CheckoutError, CouponError) as exc:
            body, code = _error(exc)
            return Response(body, status=code)
        return Response(PaymentRedirectSerializer(redirect).data, status=status.HTTP_201_CREATED)


class PaymentCallbackView(APIView):
    """Settle a gateway payment after the customer returns from the gateway."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout_write"

    @extend_schema(
        tags=["Checkout Endpoints"],
        summary="Payment callback",
        description=(
            "Verifies the payment with the gateway and creates the order(s) staged for it. Safe to call more "
            "than once: later calls return the orders already created (`replayed=true`). Callers that did not "
            "start or settle the payment in this session, and are not the signed-in owner, get only order "
            "numbers and statuses (`redacted=true`)."
        ),
        parameters=[
            OpenApiParameter(name="reference", description="Payment reference", required=False, type=str),
            OpenApiParameter(name="trxref", description="Gateway alias of `reference`", required=False, type=str),
            SESSION_HEADER,
        ],
        responses={200: CheckoutResultSerializer, 402: ERROR_RESPONSE, 500: ERROR_RESPONSE},
    )
    def get(self, request):
        reference = request.query_params.get("reference") or request.query_params.get("trxref")
        if not reference:
            return Response({"detail": "Missing payment reference.", "code": "missing_reference"}, status=400)
        cart = resolve_cart(request)
        try:
            result = settle_payment(
                reference=reference,
                staging=CheckoutStaging(request.session),
                user=request.user,
                cart=cart,
            )
        except CheckoutError as exc:
            return Response(exc.as_response(), status=exc.status_code)
        return Response(CheckoutResultSerializer.from_result(result).data, status=status.HTTP_200_OK)
