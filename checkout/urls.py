"""Checkout URL routes (v1)."""

from django.urls import path

from .views import CardCheckoutView, CashCheckoutView, CheckoutPreviewView, DeliveryOptionListView, PaymentCallbackView

app_name = "checkout"

urlpatterns = [
    path("delivery-options/", DeliveryOptionListView.as_view(), name="delivery-options"),
    path("preview/", CheckoutPreviewView.as_view(), name="preview"),
    path("cash/", CashCheckoutView.as_view(), name="cash"),
    path("card/", CardCheckoutView.as_view(), name="card"),
    path("callback/", PaymentCallbackView.as_view(), name="callback"),
]
