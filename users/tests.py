"""
Unit tests for users app: roles, store assignment, permissions and auth endpoints.
"""
import pytest
from rest_framework import status
from oauth2_provider.models import AccessToken, RefreshToken

from users.models import User
from users.permissions import (
    IsAdmin,
    IsStoreStaffOrAdmin,
    CanHandleStoreOrders,
    IsOrderOwnerOrStaff,
)
from users.serializers import UserSerializer


class MockRequest:
    def __init__(self, user):
        self.user = user


# ============== Model Tests ==============

@pytest.mark.django_db
class TestUserModel:
    """Test cases for User model"""

    def test_default_role_is_customer(self):
        """Test users sign up as customers"""
        user = User.objects.create_user(username='newbie', password='testpass123')

        assert user.role == User.Role.CUSTOMER
        assert user.is_customer
        assert not user.is_store_staff
        assert not user.is_admin
        assert user.assigned_store is None

    def test_role_properties_admin(self, admin_user):
        assert admin_user.is_admin
        assert not admin_user.is_store_staff
        assert not admin_user.is_customer

    def test_role_properties_staff(self, staff_user, store):
        assert staff_user.is_store_staff
        assert staff_user.assigned_store == store
        assert list(store.staff.all()) == [staff_user]

    def test_user_str_representation(self, staff_user):
        assert 'staff' in str(staff_user)

    def test_admin_handles_every_store(self, admin_user, store, store2):
        assert admin_user.can_handle_store(store)
        assert admin_user.can_handle_store(store2)

    def test_staff_handles_only_assigned_store(self, staff_user, store, store2):
        assert staff_user.can_handle_store(store)
        assert not staff_user.can_handle_store(store2)

    def test_unassigned_staff_handles_every_store(self, store, store2):
        roaming = User.objects.create_user(
            username='roaming',
            password='testpass123',
            role=User.Role.STORE_STAFF
        )
        assert roaming.can_handle_store(store)
        assert roaming.can_handle_store(store2)

    def test_customer_handles_no_store(self, customer_user, store):
        assert not customer_user.can_handle_store(store)


# ============== Serializer Tests ==============

@pytest.mark.django_db
class TestUserSerializer:
    """Test cases for UserSerializer"""

    def test_user_serializer_fields(self, staff_user):
        data = UserSerializer(staff_user).data

        assert data['username'] == 'staff'
        assert data['role'] == User.Role.STORE_STAFF
        assert data['assigned_store']['code'] == 'store_001'
        assert 'password' not in data

    def test_customer_without_store(self, customer_user):
        data = UserSerializer(customer_user).data
        assert data['assigned_store'] is None
        assert data['phone'] == '5512345678'


# ============== Permission Tests ==============

@pytest.mark.django_db
class TestPermissions:
    """Test cases for custom permissions"""

    def test_is_admin_permission(self, admin_user, staff_user, customer_user):
        permission = IsAdmin()

        assert permission.has_permission(MockRequest(admin_user), None)
        assert not permission.has_permission(MockRequest(staff_user), None)
        assert not permission.has_permission(MockRequest(customer_user), None)

    def test_is_store_staff_or_admin_permission(self, admin_user, staff_user, customer_user):
        permission = IsStoreStaffOrAdmin()

        assert permission.has_permission(MockRequest(admin_user), None)
        assert permission.has_permission(MockRequest(staff_user), None)
        assert not permission.has_permission(MockRequest(customer_user), None)

    def test_can_handle_store_orders(self, staff_user, staff2_user, pickup_order):
        permission = CanHandleStoreOrders()

        assert permission.has_object_permission(MockRequest(staff_user), None, pickup_order)
        assert not permission.has_object_permission(MockRequest(staff2_user), None, pickup_order)

    def test_order_owner_or_staff(self, customer_user, customer2_user, staff_user, pickup_order):
        permission = IsOrderOwnerOrStaff()

        assert permission.has_object_permission(MockRequest(customer_user), None, pickup_order)
        assert permission.has_object_permission(MockRequest(staff_user), None, pickup_order)
        assert not permission.has_object_permission(MockRequest(customer2_user), None, pickup_order)


# ============== Authentication API Tests ==============

@pytest.mark.django_db
class TestAuthenticationAPI:
    """Test authentication endpoints"""

    def test_login_success(self, api_client, customer_user):
        """Test successful login returns tokens"""
        response = api_client.post('/api/auth/login/', {
            'username': 'customer',
            'password': 'testpass123'
        })

        assert response.status_code == status.HTTP_200_OK
        assert 'access_token' in response.data
        assert 'refresh_token' in response.data
        assert response.data['token_type'] == 'Bearer'
        assert response.data['user']['role'] == User.Role.CUSTOMER

    def test_login_creates_frontend_application(self, api_client, customer_user):
        """Test login works before any OAuth application exists"""
        response = api_client.post('/api/auth/login/', {
            'username': 'customer',
            'password': 'testpass123'
        })

        token = AccessToken.objects.get(token=response.data['access_token'])
        assert token.application.name == 'pickup-frontend'
        assert token.user == customer_user

    def test_login_invalid_credentials(self, api_client, customer_user):
        response = api_client.post('/api/auth/login/', {
            'username': 'customer',
            'password': 'wrongpassword'
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_missing_credentials(self, api_client):
        response = api_client.post('/api/auth/login/', {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_logout_revokes_token(self, customer_client, customer_token):
        response = customer_client.post('/api/auth/logout/')

        assert response.status_code == status.HTTP_200_OK
        assert not AccessToken.objects.filter(pk=customer_token.pk).exists()
        assert not RefreshToken.objects.filter(access_token_id=customer_token.pk).exists()

    def test_current_user(self, staff_client):
        response = staff_client.get('/api/auth/me/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['username'] == 'staff'
        assert response.data['assigned_store']['code'] == 'store_001'

    def test_current_user_unauthenticated(self, api_client):
        response = api_client.get('/api/auth/me/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
