from django.utils import timezone
from rest_framework import serializers
from .hours import is_open
from .models import Store


class StoreSerializer(serializers.ModelSerializer):
    is_open = serializers.SerializerMethodField()
    distance_km = serializers.SerializerMethodField()

    class Meta:
        model = Store
        fields = [
            'code', 'name', 'address', 'city', 'state', 'zip_code',
            'phone', 'email', 'latitude', 'longitude', 'opening_hours',
            'features', 'pickup_available', 'estimated_pickup_minutes',
            'max_pickup_hours', 'slot_capacity', 'is_active', 'is_open',
            'distance_km'
        ]
        read_only_fields = fields

    def get_is_open(self, obj):
        return is_open(obj, timezone.localtime())

    def get_distance_km(self, obj):
        distances = self.context.get('distances') or {}
        distance = distances.get(obj.pk)
        return round(distance, 2) if distance is not None else None


class PickupTimeSlotSerializer(serializers.Serializer):
    time = serializers.CharField()
    start = serializers.DateTimeField()
    available = serializers.BooleanField()
    capacity = serializers.IntegerField()
    booked = serializers.IntegerField()
