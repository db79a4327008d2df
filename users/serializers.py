from rest_framework import serializers
from .models import User


class StoreMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for Store (used in nested representations)"""

    class Meta:
        from stores.models import Store
        model = Store
        fields = ['id', 'code', 'name']


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model"""
    assigned_store = StoreMinimalSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name',
            'role', 'phone', 'is_active', 'assigned_store',
            'date_joined', 'last_login'
        ]
        read_only_fields = ['id', 'date_joined', 'last_login']
