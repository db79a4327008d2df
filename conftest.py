"""
Pytest fixtures for the pickup API tests.
Provides common test data and utilities for all test modules.
"""
import pytest
from decimal import Decimal
from datetime import datetime, time, timedelta
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from oauth2_provider.models import Application, AccessToken
from oauthlib.common import generate_token
from django.utils import timezone

User = get_user_model()

EVERY_DAY_8_TO_22 = {
    day: {'open': '08:00', 'close': '22:00', 'closed': False}
    for day in ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']
}


# ============== Time Helpers ==============

def local_datetime(day, hour, minute=0):
    """Aware datetime in the project time zone"""
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


@pytest.fixture
def future_day():
    """A day far enough ahead that none of its slots has started"""
    return timezone.localdate() + timedelta(days=3)


# ============== OAuth2 Application Fixture ==============

@pytest.fixture
def oauth_application(db):
    """Create OAuth2 application for testing - must match the name used in login_view"""
    return Application.objects.create(
        name='pickup-frontend',
        client_type=Application.CLIENT_PUBLIC,
        authorization_grant_type=Application.GRANT_PASSWORD,
    )


# ============== Store Fixtures ==============

@pytest.fixture
def store(db):
    """Downtown store open 08:00-22:00 every day"""
    from stores.models import Store
    return Store.objects.create(
        code='store_001',
        name='Tienda Centro',
        address='Av. Juárez 123',
        city='Ciudad de México',
        state='CDMX',
        zip_code='06000',
        latitude=19.4326,
        longitude=-99.1332,
        opening_hours=dict(EVERY_DAY_8_TO_22),
        estimated_pickup_minutes=30,
        max_pickup_hours=24,
        slot_capacity=10,
    )


@pytest.fixture
def store2(db):
    """Second store a few kilometers north"""
    from stores.models import Store
    return Store.objects.create(
        code='store_002',
        name='Tienda Norte',
        address='Av. Insurgentes Norte 456',
        city='Ciudad de México',
        state='CDMX',
        zip_code='07000',
        latitude=19.4569,
        longitude=-99.1276,
        opening_hours=dict(EVERY_DAY_8_TO_22),
        estimated_pickup_minutes=25,
        max_pickup_hours=24,
    )


@pytest.fixture
def closed_store(db):
    """Store that does not accept pickup orders"""
    from stores.models import Store
    return Store.objects.create(
        code='store_999',
        name='Tienda Cerrada',
        latitude=19.4300,
        longitude=-99.1300,
        opening_hours=dict(EVERY_DAY_8_TO_22),
        pickup_available=False,
    )


# ============== User Fixtures ==============

@pytest.fixture
def admin_user(db):
    """Create an admin user"""
    return User.objects.create_user(
        username='admin',
        email='admin@test.com',
        password='testpass123',
        role=User.Role.ADMIN,
        first_name='Admin',
        last_name='User'
    )


@pytest.fixture
def staff_user(db, store):
    """Create a store staff user assigned to store_001"""
    return User.objects.create_user(
        username='staff',
        email='staff@test.com',
        password='testpass123',
        role=User.Role.STORE_STAFF,
        assigned_store=store,
        first_name='Store',
        last_name='Staff'
    )


@pytest.fixture
def staff2_user(db, store2):
    """Create a store staff user assigned to store_002"""
    return User.objects.create_user(
        username='staff2',
        email='staff2@test.com',
        password='testpass123',
        role=User.Role.STORE_STAFF,
        assigned_store=store2,
    )


@pytest.fixture
def customer_user(db):
    """Create a customer"""
    return User.objects.create_user(
        username='customer',
        email='customer@test.com',
        password='testpass123',
        phone='5512345678',
        first_name='Ana',
        last_name='García'
    )


@pytest.fixture
def customer2_user(db):
    """Create another customer for isolation tests"""
    return User.objects.create_user(
        username='customer2',
        email='customer2@test.com',
        password='testpass123',
    )


# ============== Token Fixtures ==============

def create_access_token(user, application, scope='read write'):
    """Helper to create OAuth2 access token"""
    return AccessToken.objects.create(
        user=user,
        application=application,
        token=generate_token(),
        expires=timezone.now() + timedelta(hours=1),
        scope=scope
    )


@pytest.fixture
def admin_token(admin_user, oauth_application):
    return create_access_token(admin_user, oauth_application)


@pytest.fixture
def staff_token(staff_user, oauth_application):
    return create_access_token(staff_user, oauth_application)


@pytest.fixture
def staff2_token(staff2_user, oauth_application):
    return create_access_token(staff2_user, oauth_application)


@pytest.fixture
def customer_token(customer_user, oauth_application):
    return create_access_token(customer_user, oauth_application)


@pytest.fixture
def customer2_token(customer2_user, oauth_application):
    return create_access_token(customer2_user, oauth_application)


# ============== API Client Fixtures ==============

@pytest.fixture
def api_client():
    """Create API test client"""
    return APIClient()


def _client_for(token):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.token}')
    return client


@pytest.fixture
def admin_client(admin_token):
    """API client authenticated as admin"""
    return _client_for(admin_token)


@pytest.fixture
def staff_client(staff_token):
    """API client authenticated as staff of store_001"""
    return _client_for(staff_token)


@pytest.fixture
def staff2_client(staff2_token):
    """API client authenticated as staff of store_002"""
    return _client_for(staff2_token)


@pytest.fixture
def customer_client(customer_token):
    """API client authenticated as customer"""
    return _client_for(customer_token)


@pytest.fixture
def customer2_client(customer2_token):
    """API client authenticated as the second customer"""
    return _client_for(customer2_token)


# ============== Pickup Order Fixtures ==============

@pytest.fixture
def customer_info():
    return {
        'name': 'Ana García',
        'phone': '5512345678',
        'email': 'ana@example.com',
    }


@pytest.fixture
def order_items():
    return [
        {'product_id': 'prod_1', 'quantity': 2, 'price': Decimal('45.50')},
        {'product_id': 'prod_2', 'quantity': 1, 'price': Decimal('120.00'), 'notes': 'sin cebolla'},
    ]


@pytest.fixture
def create_pickup_order(store, customer_user, customer_info, order_items):
    """Factory creating pickup orders through the ledger"""
    from pickup import ledger

    def _create(**overrides):
        kwargs = {
            'store_id': store.code,
            'user': customer_user,
            'items': order_items,
            'customer_info': customer_info,
            'total': Decimal('211.00'),
        }
        kwargs.update(overrides)
        return ledger.create_order(**kwargs)

    return _create


@pytest.fixture
def pickup_order(create_pickup_order):
    """A pending pickup order at store_001"""
    return create_pickup_order()


@pytest.fixture
def ready_order(pickup_order):
    """A pickup order waiting at the counter"""
    from pickup import ledger
    return ledger.mark_ready(pickup_order.pk)
