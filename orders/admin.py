from django.contrib import admin, messages

from .models import IdempotencyKey, Order, OrderItem
from .services import OrderStateError, cancel_order


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "product_name", "quantity", "unit_price", "subtotal", "selected_variants")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "number",
        "status",
        "payment_status",
        "payment_method",
        "is_pre_order",
        "total",
        "contact_email",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_method", "is_pre_order", "created_at")
    search_fields = ("number", "contact_email", "contact_phone", "customer_name", "payment_reference")
    date_hierarchy = "created_at"
    readonly_fields = ("settlement_key", "payment_reference", "created_at", "updated_at")
    raw_id_fields = ("user", "coupon")
    inlines = [OrderItemInline]
    actions = ["action_cancel"]

    @admin.action(description="Cancel selected orders (restock regular items)")
    def action_cancel(self, request, queryset):
        cancelled = 0
        for order in queryset:
            try:
                cancel_order(order)
                cancelled += 1
            except OrderStateError as exc:
                messages.warning(request, f"{order.number}: {exc.message}")
        if cancelled:
            messages.success(request, f"Cancelled {cancelled} order(s).")


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "product", "quantity", "unit_price", "subtotal")
    search_fields = ("product_name", "order__number")
    raw_id_fields = ("order", "product")


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
