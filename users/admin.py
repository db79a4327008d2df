from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'assigned_store', 'is_active', 'is_staff']
    list_filter = ['role', 'assigned_store', 'is_active', 'is_staff', 'is_superuser']
    search_fields = ['username', 'email', 'first_name', 'last_name', 'phone']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Pickup', {
            'fields': ('role', 'phone', 'assigned_store')
        }),
    )

    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Pickup', {
            'fields': ('role', 'phone', 'assigned_store')
        }),
    )
