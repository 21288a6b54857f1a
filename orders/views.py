# apps/orders/views.py
"""
API для расчёта цены, checkout и сверки заказов.

API ENDPOINTS:
- POST /api/orders/quote/ - расчёт цены корзины (ошибки в errors)
- POST /api/orders/checkout/ - выдача checkout-токена
- POST /api/orders/checkout/capture/ - погашение токена и сохранение заказа (staff)
- POST /api/orders/checkout/invalidate/ - отзыв токена (staff)
- GET /api/orders/scheduled/ - сохранённые заказы (staff)
- GET /api/orders/scheduled/{id}/reconcile/ - сверка заказа (staff)
- GET /api/orders/scheduled/{id}/gratuity-split/ - чаевые заказа курьеру/платформе (staff)
- POST /api/orders/gratuity-split/ - разделение суммы чаевых (staff)
"""

from django.db.models import QuerySet
from drf_spectacular.utils import extend_schema
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from .checkout import get_checkout_issuer
from .exceptions import CredentialExpired, CredentialUnknown, InputError, OrderNotFound, ValidationFailed
from .filters import ScheduledOrderFilter
from .gratuity import split_gratuity, split_order_gratuity
from .models import ScheduledOrder
from .permissions import IsStaff
from .reconciliation import ReconciliationChecker
from .serializers import (
    CheckoutCredentialSerializer,
    CheckoutRequestSerializer,
    CheckoutTokenSerializer,
    GratuitySplitRequestSerializer,
    GratuitySplitSerializer,
    OrderPricingSerializer,
    QuoteRequestSerializer,
    ReconciliationResultSerializer,
    ScheduledOrderSerializer,
)
from .services import OrderPlacementService


# =============================================================================
# РАСЧЁТ ЦЕНЫ И CHECKOUT
# =============================================================================

class QuoteView(generics.GenericAPIView):
    """
    Расчёт цены без выдачи токена.

    POST /api/orders/quote/

    Body:
    {
        "vendor_id": "0b6f...",
        "items": [{"menu_item_id": "...", "name": "Burrito", "quantity": 2}],
        "gratuity_percent": "15",
        "delivery_distance_miles": "3"
    }

    Ответ всегда 200: проблемы корзины в errors, is_valid=false.
    """

    serializer_class = QuoteRequestSerializer
    permission_classes = [AllowAny]

    @extend_schema(responses=OrderPricingSerializer)
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        pricing = get_checkout_issuer().engine.validate_and_price(
            data['vendor_id'],
            serializer.get_item_requests(),
            delivery_distance_miles=data.get('delivery_distance_miles'),
            gratuity_percent=data['gratuity_percent'],
        )
        return Response(OrderPricingSerializer(pricing).data)


class CheckoutView(generics.GenericAPIView):
    """
    Выдача checkout-токена.

    POST /api/orders/checkout/

    201 - токен на 30 минут, привязанный к итоговой сумме.
    422 - в расчёте есть ошибки, токен не выдан:
    {"detail": "Order validation failed", "errors": [...]}
    """

    serializer_class = CheckoutRequestSerializer
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={201: CheckoutCredentialSerializer})
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            credential = get_checkout_issuer().create_checkout(
                data['vendor_id'],
                serializer.get_item_requests(),
                gratuity_percent=data['gratuity_percent'],
                delivery_distance_miles=data.get('delivery_distance_miles'),
            )
        except ValidationFailed as e:
            return Response(
                {'detail': 'Order validation failed', 'errors': list(e.errors)},
                status=status.HTTP_422_UNPROCESSABLE_ENTITY
            )

        return Response(
            CheckoutCredentialSerializer(credential).data,
            status=status.HTTP_201_CREATED
        )


class CheckoutCaptureView(generics.GenericAPIView):
    """
    Погашение токена платёжным модулем.

    POST /api/orders/checkout/capture/

    Токен погашается ровно один раз, заказ сохраняется с суммами
    из расчёта, привязанного к токену.
    404 - токен неизвестен или уже использован, 410 - срок истёк.
    Если заказ не сохранился, токен остаётся действующим.
    """

    serializer_class = CheckoutTokenSerializer
    permission_classes = [IsStaff]

    @extend_schema(responses={201: ScheduledOrderSerializer})
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = get_checkout_issuer().redeem(
                serializer.validated_data['token'],
                lambda credential: OrderPlacementService.place_order(
                    credential=credential,
                    created_by=request.user,
                ),
            )
        except CredentialUnknown as e:
            return Response({'detail': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except CredentialExpired as e:
            return Response({'detail': str(e)}, status=status.HTTP_410_GONE)

        return Response(
            ScheduledOrderSerializer(order).data,
            status=status.HTTP_201_CREATED
        )


class CheckoutInvalidateView(generics.GenericAPIView):
    """
    Отзыв токена (отмена оплаты).

    POST /api/orders/checkout/invalidate/
    """

    serializer_class = CheckoutTokenSerializer
    permission_classes = [IsStaff]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invalidated = get_checkout_issuer().invalidate(serializer.validated_data['token'])
        return Response({'invalidated': invalidated})


# =============================================================================
# СОХРАНЁННЫЕ ЗАКАЗЫ
# =============================================================================

class ScheduledOrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Сохранённые заказы.

    GET /api/orders/scheduled/ - список (фильтры: vendor, status, created_from, created_to)
    GET /api/orders/scheduled/{id}/ - детали
    GET /api/orders/scheduled/{id}/reconcile/ - пересчёт и сравнение итога
    GET /api/orders/scheduled/{id}/gratuity-split/ - доля курьера
    """

    serializer_class = ScheduledOrderSerializer
    permission_classes = [IsStaff]
    filterset_class = ScheduledOrderFilter
    ordering_fields = ['created_at', 'total']
    ordering = ['-created_at']

    def get_queryset(self) -> QuerySet:
        return ScheduledOrder.objects.select_related('vendor', 'created_by')

    @extend_schema(responses=ReconciliationResultSerializer)
    @action(detail=True, methods=['get'])
    def reconcile(self, request, pk=None):
        """Сверка заказа с текущим каталогом."""
        checker = ReconciliationChecker(engine=get_checkout_issuer().engine)
        try:
            result = checker.reconcile(pk)
        except OrderNotFound as e:
            raise NotFound(str(e))
        return Response(ReconciliationResultSerializer(result).data)

    @extend_schema(responses=GratuitySplitSerializer)
    @action(detail=True, methods=['get'], url_path='gratuity-split')
    def gratuity_split(self, request, pk=None):
        """Разделение чаевых заказа."""
        order = self.get_object()
        return Response(GratuitySplitSerializer(split_order_gratuity(order)).data)


class GratuitySplitView(generics.GenericAPIView):
    """
    Разделение суммы чаевых (центы).

    POST /api/orders/gratuity-split/

    Body: {"amount_cents": 2000}
    Ответ: {"driver_tip": 500, "internal_tip": 1500}
    """

    serializer_class = GratuitySplitRequestSerializer
    permission_classes = [IsStaff]

    @extend_schema(responses=GratuitySplitSerializer)
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            split = split_gratuity(serializer.validated_data['amount_cents'])
        except InputError as e:
            raise ValidationError({'amount_cents': [str(e)]})
        return Response(GratuitySplitSerializer(split).data)
