"""Read-only catalog endpoints plus variant price resolution."""

from common.throttling import SettingsScopedRateThrottle
from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters as drf_filters
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle

from . import selectors
from .models import Product
from .pricing import VariantSelectionError
from .serializers import (
    ProductDetailSerializer,
    ProductListSerializer,
    ResolvedPriceSerializer,
    ResolvePriceSerializer,
)


class ProductFilterSet(filters.FilterSet):
    is_pre_order = filters.BooleanFilter(field_name="is_pre_order")

    class Meta:
        model = Product
        fields = ["is_pre_order"]


@extend_schema_view(
    list=extend_schema(
        summary="List products",
        description=(
            "Returns published products with their display price range. Supports filtering by `is_pre_order`, "
            "ordering by `title`, `base_price` or `created_at`, and search via `search`."
        ),
        tags=["Catalog Endpoints"],
        parameters=[
            OpenApiParameter(
                "is_pre_order", OpenApiTypes.BOOL, location="query", description="Only pre-order products"
            ),
            OpenApiParameter(
                "ordering", OpenApiTypes.STR, location="query", description="Order by `title` or `base_price`"
            ),
            OpenApiParameter("search", OpenApiTypes.STR, location="query", description="Search products by text"),
        ],
    ),
    retrieve=extend_schema(
        summary="Get product by slug",
        description="Returns a published product with its configurable attributes and selectable options",
        tags=["Catalog Endpoints"],
    ),
)
class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    lookup_field = "slug"
    lookup_value_regex = "[^/]+"
    filterset_class = ProductFilterSet
    throttle_scope = "catalog"
    throttle_classes = [SettingsScopedRateThrottle, UserRateThrottle, AnonRateThrottle]
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter, drf_filters.SearchFilter]
    ordering_fields = ["title", "base_price", "created_at"]
    search_fields = ["title", "description"]

    def get_queryset(self):
        return selectors.list_products()

    def get_serializer_class(self):
        return ProductDetailSerializer if self.action == "retrieve" else ProductListSerializer

    @extend_schema(
        tags=["Catalog Endpoints"],
        summary="Resolve variant price",
        description=(
            "Resolves the unit price for the enabled attributes in `selections` "
            "(`{attribute_id: option_id}`) and returns the product's price range. "
            "Attributes left out of `selections` contribute nothing."
        ),
        request=ResolvePriceSerializer,
        responses={200: ResolvedPriceSerializer},
        examples=[
            OpenApiExample("Selections", value={"selections": {"3": 12}}, request_only=True),
            OpenApiExample(
                "Resolved",
                value={
                    "unit_price": "1200.00",
                    "price_range": {"minimum": "1000.00", "maximum": "1400.00", "has_range": True},
                    "variants": [{"attribute_id": 3, "attribute": "RAM", "option_id": 12, "option": "16GB"}],
                },
                response_only=True,
            ),
        ],
    )
    @action(detail=True, methods=["post"], url_path="price")
    def price(self, request, slug=None):
        product = selectors.get_product_by_slug(slug)
        if not product:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        serializer = ResolvePriceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            resolved = selectors.resolve_product_price(
                product=product, selections=serializer.validated_data["selections"]
            )
        except VariantSelectionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        data = ResolvedPriceSerializer(
            {
                "unit_price": resolved.unit_price,
                "price_range": resolved.price_range,
                "variants": [v.as_dict() for v in resolved.variants],
            }
        ).data
        return Response(data, status=status.HTTP_200_OK)
