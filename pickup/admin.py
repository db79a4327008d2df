from django.contrib import admin
from .models import PickupOrder, PickupOrderItem


class PickupOrderItemInline(admin.TabularInline):
    model = PickupOrderItem
    extra = 0
    readonly_fields = ['position', 'product_id', 'quantity', 'price', 'notes']
    can_delete = False


@admin.register(PickupOrder)
class PickupOrderAdmin(admin.ModelAdmin):
    """Orders are read-only here; status changes go through the ledger."""
    list_display = ['id', 'pickup_code', 'store', 'customer_name', 'status', 'scheduled_time', 'expires_at']
    list_filter = ['status', 'store', 'created_at']
    search_fields = ['id', 'pickup_code', 'customer_name', 'customer_email', 'customer_phone']
    inlines = [PickupOrderItemInline]
    ordering = ['-created_at']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False
