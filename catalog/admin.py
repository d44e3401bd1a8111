"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Attribute, AttributeOption, Product, ProductAttributeMapping, ProductSelectedOption


class ProductAttributeMappingInline(admin.TabularInline):
    model = ProductAttributeMapping
    extra = 0
    fields = ("attribute", "is_required", "sort_order")


class ProductSelectedOptionInline(admin.TabularInline):
    model = ProductSelectedOption
    extra = 0
    autocomplete_fields = ("option",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "status", "base_price", "discount_price", "stock_quantity", "is_pre_order")
    search_fields = ("title", "slug")
    list_filter = ("status", "is_pre_order")
    prepopulated_fields = {"slug": ("title",)}
    inlines = [ProductAttributeMappingInline, ProductSelectedOptionInline]


class AttributeOptionInline(admin.TabularInline):
    model = AttributeOption
    extra = 0
    fields = ("label", "value", "price_modifier", "stock_quantity", "is_available", "sort_order")


@admin.register(Attribute)
class AttributeAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "attribute_type", "is_required", "sort_order")
    search_fields = ("name", "code")
    list_filter = ("attribute_type", "is_required")
    inlines = [AttributeOptionInline]


@admin.register(AttributeOption)
class AttributeOptionAdmin(admin.ModelAdmin):
    list_display = ("attribute", "label", "price_modifier", "stock_quantity", "is_available")
    search_fields = ("label", "attribute__name")
    list_filter = ("is_available", "attribute")
