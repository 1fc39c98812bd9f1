import django_filters

from .models import DraftProduct


class DraftProductFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=DraftProduct.STATUS_CHOICES)
    provider = django_filters.NumberFilter(field_name='provider_id')
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')

    class Meta:
        model = DraftProduct
        fields = ['status', 'provider', 'search']
