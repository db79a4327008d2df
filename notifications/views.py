from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.pagination import PageNumberPagination
from django.shortcuts import get_object_or_404

from pickup import ledger
from pickup.exceptions import OrderNotFound
from users.permissions import IsOrderOwnerOrStaff
from .filters import NotificationFilter
from .models import Notification
from .serializers import NotificationSerializer


class NotificationPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class NotificationListView(generics.ListAPIView):
    """
    List pickup notifications for the current user.
    Filter with ``?type=``, ``?is_read=``, ``?order=`` and ``?store=``.
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = NotificationPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = NotificationFilter

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).select_related('order__store')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_notifications(request, order_id):
    """
    Lifecycle notifications of one pickup order, oldest first.
    Visible to the order's customer and to staff of its store.
    """
    try:
        order = ledger.get_order(order_id)
    except OrderNotFound as e:
        return Response({'error': e.message}, status=status.HTTP_404_NOT_FOUND)

    if not IsOrderOwnerOrStaff().has_object_permission(request, None, order):
        raise PermissionDenied('You do not have permission to view this pickup order.')

    notifications = (
        order.notifications
        .filter(user=order.user)
        .select_related('order__store')
        .order_by('created_at', 'id')
    )
    return Response({
        'order_id': order.pk,
        'status': order.effective_status(),
        'notifications': NotificationSerializer(notifications, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    """Get count of unread notifications."""
    count = Notification.objects.filter(
        user=request.user,
        is_read=False
    ).count()
    return Response({'unread_count': count})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def mark_notification_read(request, pk):
    """Mark a notification as read."""
    notification = get_object_or_404(
        Notification,
        pk=pk,
        user=request.user
    )
    notification.mark_as_read()
    return Response(NotificationSerializer(notification).data)
