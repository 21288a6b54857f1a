# apps/security/urls.py
from django.urls import path

from .views import PinVerifyView

app_name = 'security'

urlpatterns = [
    path('pin/verify/', PinVerifyView.as_view(), name='pin-verify'),
]
