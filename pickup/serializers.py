from decimal import Decimal
from rest_framework import serializers
from .models import PickupOrder, PickupOrderItem


class PickupOrderItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = PickupOrderItem
        fields = ['product_id', 'quantity', 'price', 'notes']


class CustomerInfoSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=30)
    email = serializers.EmailField()
    id_document = serializers.CharField(max_length=64, required=False, allow_blank=True, allow_null=True)


class PickupOrderSerializer(serializers.ModelSerializer):
    store = serializers.CharField(source='store.code', read_only=True)
    store_name = serializers.CharField(source='store.name', read_only=True)
    items = PickupOrderItemSerializer(many=True, read_only=True)
    customer_info = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    pickup_code = serializers.SerializerMethodField()
    notifications_sent = serializers.DictField(child=serializers.BooleanField(), read_only=True)

    class Meta:
        model = PickupOrder
        fields = [
            'id', 'store', 'store_name', 'user', 'items', 'customer_info',
            'scheduled_time', 'status', 'preparation_time_minutes',
            'actual_ready_time', 'picked_up_at', 'cancelled_at',
            'pickup_code', 'notes', 'total', 'notifications_sent',
            'created_at', 'updated_at', 'expires_at'
        ]
        read_only_fields = fields

    def get_status(self, obj):
        return obj.effective_status()

    def get_customer_info(self, obj):
        return {
            'name': obj.customer_name,
            'phone': obj.customer_phone,
            'email': obj.customer_email,
            'id_document': obj.customer_id_document,
        }

    def get_pickup_code(self, obj):
        """Customers see the code once the order is ready; staff always do."""
        request = self.context.get('request')
        viewer = getattr(request, 'user', None)
        if viewer is not None and viewer.is_authenticated and viewer.can_handle_store(obj.store):
            return obj.pickup_code
        if obj.status == PickupOrder.Status.READY:
            return obj.pickup_code
        return None


class PickupOrderCreateSerializer(serializers.Serializer):
    store = serializers.CharField(max_length=50)
    items = PickupOrderItemSerializer(many=True)
    customer_info = CustomerInfoSerializer()
    total = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    scheduled_time = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class PickupCodeSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=16)
