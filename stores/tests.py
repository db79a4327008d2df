"""
Tests for stores: distances, nearby search, opening hours and the store API.
"""
import math
from datetime import date, datetime, timedelta

import pytest
from django.core.exceptions import ValidationError
from django.core.management import call_command
from rest_framework import status

from pickup.exceptions import StoreNotFound
from stores.geo import Point, distance_km, nearby_stores, store_distance_km
from stores.hours import day_hours, is_open, is_store_open, parse_hhmm, weekday_name
from stores.models import Store
from stores.utils import get_store, list_available_stores

CENTRO = Point(19.4326, -99.1332)
NORTE = Point(19.4569, -99.1276)

# 2026-10-19 is a Monday
MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)


def at(day, hour, minute=0):
    return datetime(day.year, day.month, day.day, hour, minute)


# ============== Distance Tests ==============

class TestDistance:
    """Great-circle distance"""

    def test_zero_distance(self):
        assert distance_km(CENTRO, CENTRO) == 0

    def test_symmetric(self):
        assert math.isclose(distance_km(CENTRO, NORTE), distance_km(NORTE, CENTRO))

    def test_known_distance(self):
        """Centro and Norte are a bit under 3 km apart"""
        assert 2.7 < distance_km(CENTRO, NORTE) < 2.85

    def test_one_degree_of_latitude(self):
        assert math.isclose(distance_km(Point(0, 0), Point(1, 0)), 111.19, rel_tol=1e-3)


@pytest.mark.django_db
class TestNearbyStores:
    """Nearest-store search"""

    def test_sorted_nearest_first(self, store, store2):
        results = nearby_stores(NORTE, 10)

        assert [s.code for s, _ in results] == ['store_002', 'store_001']
        assert results[0][1] < results[1][1]

    def test_radius_limits_results(self, store, store2):
        results = nearby_stores(CENTRO, 1)

        assert [s.code for s, _ in results] == ['store_001']
        assert results[0][1] == 0

    def test_non_positive_radius_returns_nothing(self, store, store2):
        assert nearby_stores(CENTRO, 0) == []
        assert nearby_stores(CENTRO, -5) == []

    def test_unavailable_stores_excluded(self, store, closed_store):
        codes = [s.code for s, _ in nearby_stores(CENTRO, 10)]

        assert 'store_999' not in codes
        assert 'store_001' in codes

    def test_inactive_stores_excluded(self, store):
        store.is_active = False
        store.save()

        assert nearby_stores(CENTRO, 10) == []

    def test_store_distance(self, store):
        assert store_distance_km('store_001', CENTRO) == 0

    def test_unknown_store_is_infinitely_far(self, db):
        assert store_distance_km('store_404', CENTRO) == math.inf


# ============== Lookup Tests ==============

@pytest.mark.django_db
class TestStoreLookup:

    def test_get_store_by_code(self, store):
        assert get_store('store_001') == store

    def test_get_store_passes_instances_through(self, store):
        assert get_store(store) is store

    def test_get_unknown_store(self):
        with pytest.raises(StoreNotFound):
            get_store('store_404')

    def test_list_available_stores(self, store, store2, closed_store):
        codes = set(list_available_stores().values_list('code', flat=True))
        assert codes == {'store_001', 'store_002'}


# ============== Opening Hours Tests ==============

class TestParseHHMM:

    @pytest.mark.parametrize('value,minutes', [
        ('00:00', 0),
        ('08:00', 480),
        ('22:30', 1350),
        ('24:00', 1440),
    ])
    def test_valid(self, value, minutes):
        assert parse_hhmm(value) == minutes

    @pytest.mark.parametrize('value', ['8', '8:0', '25:00', '24:30', '12:60', 'ab:cd', '', None])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)


@pytest.mark.django_db
class TestOpeningHours:
    """Opening hours evaluation"""

    def test_weekday_name(self):
        assert weekday_name(MONDAY) == 'monday'
        assert weekday_name(SUNDAY) == 'sunday'

    def test_boundaries_are_inclusive(self, store):
        assert is_open(store, at(MONDAY, 8, 0))
        assert is_open(store, at(MONDAY, 22, 0))

    def test_outside_hours(self, store):
        assert not is_open(store, at(MONDAY, 7, 59))
        assert not is_open(store, at(MONDAY, 22, 1))

    def test_closed_day(self, store):
        store.opening_hours['sunday'] = {'open': '08:00', 'close': '22:00', 'closed': True}
        store.save()

        assert day_hours(store, SUNDAY).closed
        assert not is_open(store, at(SUNDAY, 12))
        assert is_open(store, at(MONDAY, 12))

    def test_missing_day_is_closed(self, store):
        del store.opening_hours['monday']

        assert day_hours(store, MONDAY).closed
        assert not is_open(store, at(MONDAY, 12))

    def test_overnight_window(self, store):
        overnight = {'open': '22:00', 'close': '02:00', 'closed': False}
        store.opening_hours['monday'] = overnight
        store.opening_hours['tuesday'] = overnight

        assert is_open(store, at(MONDAY, 23, 0))
        assert not is_open(store, at(MONDAY, 21, 59))
        # only the instant's own weekday is consulted
        assert not is_open(store, at(MONDAY + timedelta(days=1), 1, 0))

    def test_is_store_open_by_code(self, store):
        assert is_store_open('store_001', at(MONDAY, 12))
        assert not is_store_open('store_001', at(MONDAY, 23))

    def test_unknown_store_is_closed(self):
        assert not is_store_open('store_404', at(MONDAY, 12))

    def test_invalid_hours_rejected(self, store):
        store.opening_hours['monday'] = {'open': '8am', 'close': '22:00'}

        with pytest.raises(ValidationError):
            store.full_clean()

    def test_unknown_weekday_rejected(self, store):
        store.opening_hours['funday'] = {'open': '08:00', 'close': '22:00'}

        with pytest.raises(ValidationError):
            store.full_clean()


# ============== Management Command Tests ==============

@pytest.mark.django_db
class TestLoadPickupStores:

    def test_loads_reference_stores(self):
        call_command('load_pickup_stores')

        assert Store.objects.count() == 3
        centro = Store.objects.get(code='store_001')
        assert centro.latitude == 19.4326
        assert centro.opening_hours['monday'] == {'open': '08:00', 'close': '22:00', 'closed': False}
        assert centro.opening_hours['sunday']['open'] == '09:00'

    def test_is_idempotent(self):
        call_command('load_pickup_stores')
        Store.objects.filter(code='store_003').update(name='Renamed')
        call_command('load_pickup_stores')

        assert Store.objects.count() == 3
        assert Store.objects.get(code='store_003').name == 'La Económica Sur'


# ============== Store API Tests ==============

@pytest.mark.django_db
class TestStoreAPI:
    """Store endpoints"""

    def test_list_requires_authentication(self, api_client, store):
        response = api_client.get('/api/stores/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_available_stores(self, customer_client, store, store2, closed_store):
        response = customer_client.get('/api/stores/')

        assert response.status_code == status.HTTP_200_OK
        assert {s['code'] for s in response.data} == {'store_001', 'store_002'}
        assert all(s['distance_km'] is None for s in response.data)

    def test_list_nearby(self, customer_client, store, store2):
        response = customer_client.get('/api/stores/', {'lat': 19.4569, 'lng': -99.1276, 'radius': 5})

        assert response.status_code == status.HTTP_200_OK
        assert [s['code'] for s in response.data] == ['store_002', 'store_001']
        assert response.data[0]['distance_km'] == 0
        assert 2.7 < response.data[1]['distance_km'] < 2.85

    def test_list_nearby_zero_radius(self, customer_client, store):
        response = customer_client.get('/api/stores/', {'lat': 19.4326, 'lng': -99.1332, 'radius': 0})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []

    def test_list_nearby_invalid_coordinates(self, customer_client, store):
        response = customer_client.get('/api/stores/', {'lat': 'north', 'lng': -99.1})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_retrieve_by_code(self, customer_client, store):
        response = customer_client.get('/api/stores/store_001/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['name'] == 'Tienda Centro'
        assert 'is_open' in response.data

    def test_retrieve_unknown_store(self, customer_client, store):
        response = customer_client.get('/api/stores/store_404/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_open_status(self, customer_client, store):
        response = customer_client.get(
            '/api/stores/store_001/status/', {'at': '2026-10-19T09:30:00'}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_open'] is True

    def test_closed_status(self, customer_client, store):
        response = customer_client.get(
            '/api/stores/store_001/status/', {'at': '2026-10-19T23:30:00'}
        )

        assert response.data['is_open'] is False

    def test_status_invalid_datetime(self, customer_client, store):
        response = customer_client.get('/api/stores/store_001/status/', {'at': 'tomorrow'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_slots(self, customer_client, store, future_day):
        response = customer_client.get('/api/stores/store_001/slots/', {'date': future_day.isoformat()})

        assert response.status_code == status.HTTP_200_OK
        slots = response.data['slots']
        assert len(slots) == 14
        assert slots[0]['time'] == '08:00'
        assert slots[-1]['time'] == '21:00'
        assert all(slot['available'] and slot['booked'] == 0 for slot in slots)

    def test_slots_invalid_date(self, customer_client, store):
        response = customer_client.get('/api/stores/store_001/slots/', {'date': '19/10/2026'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_distance(self, customer_client, store):
        response = customer_client.get(
            '/api/stores/store_001/distance/', {'lat': 19.4569, 'lng': -99.1276}
        )

        assert response.status_code == status.HTTP_200_OK
        assert 2.7 < response.data['distance_km'] < 2.85

    def test_distance_requires_coordinates(self, customer_client, store):
        response = customer_client.get('/api/stores/store_001/distance/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_estimate(self, customer_client, store):
        response = customer_client.get('/api/stores/store_001/estimate/', {'items': 6})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['preparation_time_minutes'] == 32
