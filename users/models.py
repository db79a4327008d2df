from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Custom User model extending AbstractUser with role-based access control.
    Roles: ADMIN, STORE_STAFF, CUSTOMER

    Store staff are normally tied to one store through ``assigned_store`` and
    only see and handle that store's pickup orders. Admins see every store.
    """

    class Role(models.TextChoices):
        ADMIN = 'ADMIN', 'Admin'
        STORE_STAFF = 'STORE_STAFF', 'Store Staff'
        CUSTOMER = 'CUSTOMER', 'Customer'

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER,
        help_text='User role for permission management'
    )
    phone = models.CharField(max_length=20, blank=True, null=True)
    assigned_store = models.ForeignKey(
        'stores.Store',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='staff',
        help_text='Store this staff member works at. Empty for customers and admins.'
    )

    class Meta:
        db_table = 'users'
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_store_staff(self):
        return self.role == self.Role.STORE_STAFF

    @property
    def is_customer(self):
        return self.role == self.Role.CUSTOMER

    def can_handle_store(self, store):
        """Whether this user may run counter operations for ``store``."""
        if self.is_admin:
            return True
        if not self.is_store_staff:
            return False
        return self.assigned_store_id is None or self.assigned_store_id == store.pk
