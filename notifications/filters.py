import django_filters
from .models import Notification


class NotificationFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=Notification.Type.choices)
    is_read = django_filters.BooleanFilter()
    order = django_filters.CharFilter(field_name='order__id')
    store = django_filters.CharFilter(field_name='order__store__code')

    class Meta:
        model = Notification
        fields = ['type', 'is_read', 'order', 'store']
