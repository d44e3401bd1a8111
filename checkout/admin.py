from django.contrib import admin

from .models import DeliveryOption, PaymentTransaction


@admin.register(DeliveryOption)
class DeliveryOptionAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "code", "kind", "price", "estimated_days_min", "estimated_days_max", "is_active")
    list_filter = ("kind", "is_active")
    list_editable = ("price", "is_active")
    search_fields = ("name", "code")
    ordering = ("kind", "sort_order", "id")


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "reference", "status", "amount_minor_units", "currency", "email", "order", "created_at")
    list_filter = ("status", "currency", "created_at")
    search_fields = ("reference", "email", "order__number")
    date_hierarchy = "created_at"
    raw_id_fields = ("user", "order", "cart")
    readonly_fields = ("reference", "amount_minor_units", "gateway_response", "verified_at", "created_at", "updated_at")
