import django_filters
from django.db.models import Q

from .models import Product
from .tree import descendant_ids

SORT_ORDERINGS = {
    'newest': ['-created_at'],
    'oldest': ['created_at'],
    'price_asc': ['price_pair', '-created_at'],
    'price_desc': ['-price_pair', '-created_at'],
    'name_asc': ['name'],
    'name_desc': ['-name'],
    'updated': ['-active_updated_at'],
}


class CatalogProductFilter(django_filters.FilterSet):
    """Public catalog filters"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    categoryId = django_filters.NumberFilter(method='filter_category', label='Category (with descendants)')
    minPrice = django_filters.NumberFilter(field_name='price_pair', lookup_expr='gte')
    maxPrice = django_filters.NumberFilter(field_name='price_pair', lookup_expr='lte')
    colors = django_filters.CharFilter(method='filter_colors', label='Comma-separated image colors')
    sortBy = django_filters.CharFilter(method='filter_sort', label='Sort order')

    class Meta:
        model = Product
        fields = ['search', 'categoryId', 'minPrice', 'maxPrice', 'colors', 'sortBy']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(article__icontains=value) |
            Q(slug__icontains=value) |
            Q(description__icontains=value)
        )

    def filter_category(self, queryset, name, value):
        if value is None:
            return queryset
        category_id = int(value)
        return queryset.filter(category_id__in=[category_id] + descendant_ids(category_id))

    def filter_colors(self, queryset, name, value):
        colors = [c.strip() for c in (value or '').split(',') if c.strip()]
        if not colors:
            return queryset
        color_q = Q()
        for color in colors:
            color_q |= Q(images__color__iexact=color)
        return queryset.filter(color_q).distinct()

    def filter_sort(self, queryset, name, value):
        return queryset.order_by(*SORT_ORDERINGS.get(value, SORT_ORDERINGS['newest']))
