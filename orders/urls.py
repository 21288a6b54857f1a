# apps/orders/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    CheckoutCaptureView,
    CheckoutInvalidateView,
    CheckoutView,
    GratuitySplitView,
    QuoteView,
    ScheduledOrderViewSet,
)

app_name = 'orders'

router = DefaultRouter()
router.register(r'scheduled', ScheduledOrderViewSet, basename='scheduled-order')

urlpatterns = [
    path('quote/', QuoteView.as_view(), name='quote'),
    path('checkout/', CheckoutView.as_view(), name='checkout'),
    path('checkout/capture/', CheckoutCaptureView.as_view(), name='checkout-capture'),
    path('checkout/invalidate/', CheckoutInvalidateView.as_view(), name='checkout-invalidate'),
    path('gratuity-split/', GratuitySplitView.as_view(), name='gratuity-split'),
    path('', include(router.urls)),
]
