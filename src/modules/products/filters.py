import django_filters
from django.db.models import F

from modules.products.models import Product


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    sku = django_filters.CharFilter(field_name="sku", lookup_expr="iexact")
    min_price = django_filters.NumberFilter(field_name="sale_price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="sale_price", lookup_expr="lte")
    active = django_filters.BooleanFilter(field_name="is_active")
    bundle = django_filters.BooleanFilter(field_name="is_bundle")
    low_stock = django_filters.BooleanFilter(method="filter_low_stock")

    class Meta:
        model = Product
        fields = ["name", "sku", "min_price", "max_price", "active", "bundle", "low_stock"]

    def filter_low_stock(self, queryset, name, value):
        low = queryset.filter(is_bundle=False, current_stock__lte=F("min_stock"))
        return low if value else queryset.exclude(pk__in=low.values("pk"))
