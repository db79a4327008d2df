from django.contrib import admin
from .models import Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'city', 'pickup_available', 'slot_capacity', 'is_active', 'created_at']
    list_filter = ['is_active', 'pickup_available', 'city']
    search_fields = ['name', 'code', 'address', 'email', 'phone']
    readonly_fields = ['created_at', 'updated_at']
