from django.contrib import admin

from .models import Coupon, CouponUsage


class CouponUsageInline(admin.TabularInline):
    model = CouponUsage
    extra = 0
    fields = ("order", "user", "discount_amount", "order_total", "created_at")
    readonly_fields = fields
    can_delete = False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "discount_type",
        "discount_value",
        "minimum_amount",
        "used_count",
        "usage_limit",
        "is_active",
        "valid_until",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "name")
    readonly_fields = ("used_count", "created_at", "updated_at")
    inlines = [CouponUsageInline]
    actions = ["deactivate"]

    @admin.action(description="Deactivate selected coupons")
    def deactivate(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"Deactivated {updated} coupon(s).")


@admin.register(CouponUsage)
class CouponUsageAdmin(admin.ModelAdmin):
    list_display = ("id", "coupon", "order", "user", "discount_amount", "order_total", "created_at")
    search_fields = ("coupon__code", "order__number", "user__email")
    raw_id_fields = ("coupon", "order", "user")
    date_hierarchy = "created_at"
