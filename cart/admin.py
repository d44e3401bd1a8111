"""Admin registration for cart models.

Carts show their lines inline; support can clear or abandon carts from the
changelist.
"""

from django.contrib import admin, messages

from .models import Cart, CartItem
from .services import abandon_cart, clear_cart


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ("product", "quantity", "unit_price", "is_pre_order", "variant_labels", "created_at", "updated_at")
    readonly_fields = ("variant_labels", "created_at", "updated_at")
    raw_id_fields = ("product",)


class OwnerTypeFilter(admin.SimpleListFilter):
    title = "owner type"
    parameter_name = "owner_type"

    def lookups(self, request, model_admin):
        return (
            ("user", "User carts"),
            ("guest", "Guest carts"),
        )

    def queryset(self, request, queryset):
        value = self.value()
        if value == "user":
            return queryset.filter(user__isnull=False)
        if value == "guest":
            return queryset.filter(user__isnull=True)
        return queryset


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "session_id", "status", "updated_at", "created_at")
    list_filter = ("status", OwnerTypeFilter)
    search_fields = ("session_id", "user__username", "user__email")
    ordering = ("-updated_at",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [CartItemInline]
    list_select_related = ("user",)
    actions = ["action_clear_cart", "action_abandon_cart"]

    @admin.action(description="Clear cart (keep status active)")
    def action_clear_cart(self, request, queryset):
        count = 0
        for cart in queryset:
            clear_cart(cart=cart)
            count += 1
        messages.success(request, f"Cleared {count} cart(s).")

    @admin.action(description="Abandon cart")
    def action_abandon_cart(self, request, queryset):
        count = 0
        for cart in queryset.filter(status=Cart.STATUS_ACTIVE):
            abandon_cart(cart=cart)
            count += 1
        messages.success(request, f"Abandoned {count} cart(s).")


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product", "quantity", "unit_price", "is_pre_order", "updated_at")
    list_filter = ("is_pre_order",)
    search_fields = ("product__title", "cart__user__email", "cart__session_id")
    ordering = ("id",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("cart", "product")
