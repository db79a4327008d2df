from pickup.exceptions import StoreNotFound
from .models import Store


def get_store(store_id) -> Store:
    """Look a store up by its public code."""
    if isinstance(store_id, Store):
        return store_id
    try:
        return Store.objects.get(code=store_id)
    except Store.DoesNotExist:
        raise StoreNotFound(store_id)


def list_available_stores():
    """Active stores that accept pickup orders."""
    return Store.objects.available()
