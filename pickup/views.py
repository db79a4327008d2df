import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from users.permissions import IsOrderOwnerOrStaff, IsStoreStaffOrAdmin
from . import ledger
from .exceptions import (
    CapacityExceeded,
    InvalidPickupCode,
    InvalidTransition,
    OrderExpired,
    OrderNotFound,
    SlotUnavailable,
    StoreNotFound,
    StoreUnavailable,
)
from .filters import PickupOrderFilter
from .models import PickupOrder
from .serializers import PickupCodeSerializer, PickupOrderCreateSerializer, PickupOrderSerializer

logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (StoreNotFound, status.HTTP_404_NOT_FOUND),
    (OrderNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidPickupCode, status.HTTP_404_NOT_FOUND),
    (StoreUnavailable, status.HTTP_400_BAD_REQUEST),
    (CapacityExceeded, status.HTTP_409_CONFLICT),
    (SlotUnavailable, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (OrderExpired, status.HTTP_410_GONE),
]


def pickup_error_response(exc):
    for error_class, http_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            return Response({'error': exc.message}, status=http_status)
    raise exc


class PickupOrderPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class PickupOrderListCreateView(generics.ListCreateAPIView):
    """
    List pickup orders or create a new one.

    Customers see their own orders. Store staff see the orders of their
    assigned store, admins see every order. Filter with ``?store=`` and
    ``?status=`` (expired orders are reported as expired).
    """
    permission_classes = [IsAuthenticated]
    pagination_class = PickupOrderPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = PickupOrderFilter

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return PickupOrderCreateSerializer
        return PickupOrderSerializer

    def get_queryset(self):
        user = self.request.user
        if user.is_admin:
            queryset = PickupOrder.objects.select_related('store')
        elif user.is_store_staff and user.assigned_store_id:
            queryset = ledger.orders_for_store(user.assigned_store)
        else:
            queryset = ledger.orders_for_user(user)
        return queryset.prefetch_related('items')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            order = ledger.create_order(
                store_id=data['store'],
                user=request.user,
                items=data['items'],
                customer_info=data['customer_info'],
                total=data['total'],
                scheduled_time=data.get('scheduled_time'),
                notes=data.get('notes'),
            )
        except (StoreNotFound, StoreUnavailable, SlotUnavailable) as e:
            return pickup_error_response(e)

        return Response(
            PickupOrderSerializer(order, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class PickupOrderDetailView(generics.RetrieveAPIView):
    """Retrieve a pickup order"""
    queryset = PickupOrder.objects.select_related('store').prefetch_related('items')
    serializer_class = PickupOrderSerializer
    permission_classes = [IsAuthenticated, IsOrderOwnerOrStaff]


def _transition_response(request, pk, operation, staff_only=True):
    """
    Run a ledger transition for ``pk`` on behalf of the requesting user.

    Illegal transitions are explained to staff; customers only learn that
    the order can no longer be changed.
    """
    try:
        order = ledger.get_order(pk)
    except OrderNotFound as e:
        return pickup_error_response(e)

    is_staff = request.user.can_handle_store(order.store)
    if not is_staff and (staff_only or order.user_id != request.user.pk):
        raise PermissionDenied('You do not have permission to manage this pickup order.')

    try:
        order = operation(pk)
    except (OrderNotFound, OrderExpired) as e:
        return pickup_error_response(e)
    except InvalidTransition as e:
        if is_staff:
            return pickup_error_response(e)
        return Response(
            {'error': 'This pickup order can no longer be changed'},
            status=status.HTTP_409_CONFLICT
        )
    return Response(PickupOrderSerializer(order, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_pickup_order(request, pk):
    """Cancel a pickup order (customer or store staff)"""
    return _transition_response(request, pk, ledger.cancel_order, staff_only=False)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreStaffOrAdmin])
def start_preparing_pickup_order(request, pk):
    """Store staff started preparing the order"""
    return _transition_response(request, pk, ledger.start_preparing)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreStaffOrAdmin])
def mark_pickup_order_ready(request, pk):
    """Order is ready at the counter"""
    return _transition_response(request, pk, ledger.mark_ready)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreStaffOrAdmin])
def mark_pickup_order_picked_up(request, pk):
    """Customer collected the order"""
    return _transition_response(request, pk, ledger.mark_picked_up)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreStaffOrAdmin])
def verify_pickup_code(request):
    """
    Check a pickup code at the counter.
    Only ready orders verify; expired orders are reported as such to staff.
    """
    serializer = PickupCodeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        order = ledger.verify_code(serializer.validated_data['code'], report_expired=True)
    except (InvalidPickupCode, OrderExpired) as e:
        return pickup_error_response(e)

    if not request.user.can_handle_store(order.store):
        logger.warning(
            "User %s verified code for order %s of another store", request.user.pk, order.pk
        )
        return pickup_error_response(InvalidPickupCode())

    return Response(PickupOrderSerializer(order, context={'request': request}).data)
