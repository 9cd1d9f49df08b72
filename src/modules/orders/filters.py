import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    source = django_filters.CharFilter(field_name="source", lookup_expr="iexact")
    store = django_filters.CharFilter(field_name="store_reference")
    courier = django_filters.CharFilter(field_name="courier__code")
    phone = django_filters.CharFilter(field_name="phone", lookup_expr="icontains")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(field_name="total_price", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total_price", lookup_expr="lte")
    stock_applied = django_filters.BooleanFilter(
        field_name="stock_applied_at", lookup_expr="isnull", exclude=True
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "source",
            "store",
            "courier",
            "phone",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
            "stock_applied",
        ]
