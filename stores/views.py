from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.shortcuts import get_object_or_404
from rest_framework import viewsets, filters, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from pickup.ledger import estimate_time
from pickup.slots import available_slots
from .geo import Point, distance_km, nearby_stores, store_location
from .hours import is_open
from .models import Store
from .serializers import StoreSerializer, PickupTimeSlotSerializer
from .utils import list_available_stores


def _float_param(params, name, default=None):
    value = params.get(name)
    if value in (None, ''):
        return default
    return float(value)


class StoreViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Pickup stores.

    Listing returns stores that accept pickup orders. When ``lat``/``lng``
    or ``radius`` are given the list is restricted to that radius and
    sorted nearest first.
    """
    queryset = Store.objects.all()
    serializer_class = StoreSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = 'code'
    filter_backends = [filters.SearchFilter]
    search_fields = ['name', 'code', 'address', 'city', 'zip_code']

    def get_queryset(self):
        if self.action == 'list':
            return list_available_stores()
        return super().get_queryset()

    def list(self, request, *args, **kwargs):
        params = request.query_params
        if not any(name in params for name in ('lat', 'lng', 'radius')):
            return super().list(request, *args, **kwargs)

        fallback_lat, fallback_lng = settings.PICKUP_FALLBACK_LOCATION
        try:
            point = Point(
                _float_param(params, 'lat', fallback_lat),
                _float_param(params, 'lng', fallback_lng),
            )
            radius = _float_param(params, 'radius', settings.PICKUP_DEFAULT_SEARCH_RADIUS_KM)
        except ValueError:
            return Response(
                {'error': 'lat, lng and radius must be numbers'},
                status=status.HTTP_400_BAD_REQUEST
            )

        matches = nearby_stores(point, radius)
        serializer = self.get_serializer(
            [store for store, _ in matches],
            many=True,
            context={**self.get_serializer_context(), 'distances': {s.pk: km for s, km in matches}},
        )
        return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def store_open_status(request, code):
    """Whether the store is open now, or at ``?at=<ISO datetime>``."""
    store = get_object_or_404(Store, code=code)
    at = request.query_params.get('at')
    if at:
        instant = parse_datetime(at)
        if instant is None:
            return Response(
                {'error': 'at must be an ISO 8601 datetime'},
                status=status.HTTP_400_BAD_REQUEST
            )
        if timezone.is_aware(instant):
            instant = timezone.localtime(instant)
    else:
        instant = timezone.localtime()

    return Response({
        'store': store.code,
        'at': instant.isoformat(),
        'is_open': is_open(store, instant),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def store_pickup_slots(request, code):
    """Hourly pickup slots for ``?date=YYYY-MM-DD`` (default today)."""
    store = get_object_or_404(Store, code=code)
    date_param = request.query_params.get('date')
    if date_param:
        day = parse_date(date_param)
        if day is None:
            return Response(
                {'error': 'date must be formatted YYYY-MM-DD'},
                status=status.HTTP_400_BAD_REQUEST
            )
    else:
        day = timezone.localdate()

    slots = available_slots(store, day)
    return Response({
        'store': store.code,
        'date': day.isoformat(),
        'slots': PickupTimeSlotSerializer(slots, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def store_distance(request, code):
    """Distance in kilometers from ``?lat=&lng=`` to the store."""
    store = get_object_or_404(Store, code=code)
    try:
        point = Point(float(request.query_params['lat']), float(request.query_params['lng']))
    except (KeyError, ValueError):
        return Response(
            {'error': 'lat and lng are required numbers'},
            status=status.HTTP_400_BAD_REQUEST
        )
    return Response({
        'store': store.code,
        'distance_km': round(distance_km(point, store_location(store)), 3),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def store_pickup_estimate(request, code):
    """Estimated preparation minutes for ``?items=<count>``."""
    store = get_object_or_404(Store, code=code)
    try:
        item_count = int(request.query_params.get('items', 0))
    except ValueError:
        return Response(
            {'error': 'items must be an integer'},
            status=status.HTTP_400_BAD_REQUEST
        )
    return Response({
        'store': store.code,
        'items': item_count,
        'preparation_time_minutes': estimate_time(store, item_count),
    })
