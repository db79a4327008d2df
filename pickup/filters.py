import django_filters
from .models import PickupOrder


class PickupOrderFilter(django_filters.FilterSet):
    store = django_filters.CharFilter(field_name='store__code')
    status = django_filters.ChoiceFilter(choices=PickupOrder.Status.choices, method='filter_status')
    created_after = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = PickupOrder
        fields = ['store', 'status']

    def filter_status(self, queryset, name, value):
        return queryset.with_effective_status(value)
