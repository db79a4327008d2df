from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'order', 'title', 'is_read', 'created_at']
    list_filter = ['type', 'is_read', 'order__store', 'created_at']
    list_select_related = ['user', 'order']
    search_fields = ['user__username', 'order__id', 'order__pickup_code', 'title']
    raw_id_fields = ['user', 'order']
    readonly_fields = ['created_at', 'read_at']
    ordering = ['-created_at']
