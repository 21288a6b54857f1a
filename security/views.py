# apps/security/views.py
"""
API модуля security.

API ENDPOINTS:
- POST /api/security/pin/verify/ - проверка PIN (AuthRateThrottle)
"""

from rest_framework import generics, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .exceptions import PinRejected
from .serializers import PinVerifySerializer
from .services import PinVerificationService
from .throttles import AuthRateThrottle


class PinVerifyView(generics.GenericAPIView):
    """
    Проверка PIN доступа.

    POST /api/security/pin/verify/

    Body:
    {
        "identity": "courier@example.com",
        "pin": "1234"
    }

    RATE LIMITING: 5 попыток за 15 минут на identity, затем блок на 30 минут.
    Успешная проверка сбрасывает счётчик.
    """

    serializer_class = PinVerifySerializer
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AuthRateThrottle]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            access_pin = PinVerificationService().verify(
                serializer.validated_data['identity'],
                serializer.validated_data['pin'],
            )
        except PinRejected:
            return Response(
                {'detail': 'Invalid identity or PIN'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        return Response({'identity': access_pin.identity, 'verified': True})
