"""Orders API endpoints: history, detail, cancellation and guest tracking."""

from django.http import Http404
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import generics
from rest_framework import serializers as rf_serializers
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Order
from .selectors import get_order_for_user, orders_for_user, track_order
from .serializers import OrderSerializer, OrderTrackSerializer
from .services import OrderStateError, cancel_order, compute_request_hash, with_idempotency

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)

ORDER_EXAMPLE = {
    "id": 123,
    "number": "ORD-000123",
    "status": "pending",
    "payment_status": "paid",
    "payment_method": "paystack",
    "payment_reference": "VENTECH_1735732800000_k3j9x2",
    "customer_name": "Ama Mensah",
    "contact_email": "ama@example.com",
    "contact_phone": "+233201234567",
    "shipping_address": {"street": "12 Oxford St", "city": "Accra", "region": "Greater Accra", "country": "Ghana"},
    "delivery_option_code": "standard",
    "delivery_option_name": "Standard Delivery",
    "is_pre_order": False,
    "estimated_arrival_date": None,
    "notes": "",
    "coupon_code": "WELCOME10",
    "items": [
        {
            "id": 10,
            "product": 100,
            "product_name": "Laptop Pro 14",
            "product_image": "https://cdn.example.com/laptop.jpg",
            "quantity": 1,
            "unit_price": "1200.00",
            "subtotal": "1200.00",
            "selected_variants": [{"attribute": "RAM", "option": "16GB", "price_modifier": "200.00"}],
        }
    ],
    "subtotal": "1200.00",
    "delivery_fee": "15.00",
    "tax": "0.00",
    "discount": "120.00",
    "total": "1095.00",
    "created_at": "2025-01-01T12:00:00Z",
}


class OrderFilterSet(filters.FilterSet):
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "number", "is_pre_order", "payment_status"]


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderListView(generics.ListAPIView):
    """List the authenticated user's orders.

    Filters:
    - `status`, `payment_status`: exact match
    - `number`: exact match of order number
    - `is_pre_order`: pre-order orders only
    - `start` / `end`: ISO date-time bounds on `created_at`
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    filterset_class = OrderFilterSet
    throttle_scope = "orders"

    def get_queryset(self):
        return orders_for_user(user=self.request.user)

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="is_pre_order", description="Pre-order orders only", required=False, type=bool),
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(generics.RetrieveAPIView):
    """Retrieve a single order for the authenticated user."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"
    serializer_class = OrderSerializer

    def get_object(self):
        order = get_order_for_user(user=self.request.user, order_id=int(self.kwargs["order_id"]))
        if order is None:
            raise Http404("Not found.")
        return order

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        description="Retrieve a single order with its item snapshots and the totals charged at checkout.",
        examples=[OpenApiExample("Order", value=ORDER_EXAMPLE, response_only=True)],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderCancelView(APIView):
    """Cancel an order for the authenticated owner.

    Idempotent when `Idempotency-Key` is provided. Returns 409 on key reuse with different payload.
    """

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description=(
            "Cancels a pending or processing order and returns regular items to stock. "
            "Idempotent when Idempotency-Key header is set."
        ),
        parameters=[IDEMPOTENCY_HEADER],
        request=None,
        responses={
            200: OrderSerializer,
            400: inline_serializer(name="OrderMutationError", fields={"detail": rf_serializers.CharField()}),
        },
        examples=[
            OpenApiExample("Cancelled", value={"id": 1, "status": "cancelled"}, response_only=True),
            OpenApiExample(
                "Mutation Error",
                value={"detail": "Only pending or processing orders can be cancelled."},
                response_only=True,
            ),
        ],
    )
    def post(self, request, order_id: int):
        order = get_order_for_user(user=request.user, order_id=order_id)
        if order is None:
            raise Http404

        def _handler():
            try:
                updated = cancel_order(order)
            except OrderStateError as exc:
                return {"detail": exc.message}, 400
            return OrderSerializer(updated, context={"request": request}).data, 200

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


class OrderTrackView(APIView):
    """Look up an order by number and contact email; works for guests."""

    permission_classes = [AllowAny]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Track order",
        description="Returns the order's status when `number` and `email` match the order's contact details.",
        parameters=[
            OpenApiParameter(name="number", description="Order number, e.g. ORD-000123", required=True, type=str),
            OpenApiParameter(name="email", description="Contact email used at checkout", required=True, type=str),
        ],
        responses={200: OrderTrackSerializer},
    )
    def get(self, request):
        order = track_order(number=request.query_params.get("number"), email=request.query_params.get("email"))
        if order is None:
            return Response({"detail": "No order matches that number and email."}, status=404)
        return Response(OrderTrackSerializer(order).data)
