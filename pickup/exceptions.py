"""
Errors raised by the pickup engine.

Views translate these into HTTP responses; database errors are not wrapped
and reach the caller unchanged.
"""


class PickupError(Exception):
    default_message = 'Pickup request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class StoreNotFound(PickupError):

    def __init__(self, store_id):
        super().__init__(f'Store {store_id} not found')
        self.store_id = store_id


class OrderNotFound(PickupError):

    def __init__(self, order_id):
        super().__init__(f'Pickup order {order_id} not found')
        self.order_id = order_id


class StoreUnavailable(PickupError):
    default_message = 'Store does not accept pickup orders'


class SlotUnavailable(PickupError):
    default_message = 'The selected pickup time is not available. Please choose another slot.'


class CapacityExceeded(SlotUnavailable):
    default_message = 'The selected pickup slot is fully booked. Please choose another slot.'


class InvalidTransition(PickupError):

    def __init__(self, order, target):
        super().__init__(f'Cannot move pickup order {order.pk} from {order.status} to {target}')
        self.current = order.status
        self.target = target


class InvalidPickupCode(PickupError):
    default_message = 'Invalid pickup code'


class OrderExpired(PickupError):

    def __init__(self, order):
        super().__init__(f'Pickup order {order.pk} expired at {order.expires_at.isoformat()}')
        self.order = order
