import django_filters
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """
    Filters for the order listing.

    ``branch`` is an alias of ``branch_id``; ``table`` filters by the live
    table link, ``table_number`` also finds orders whose link was removed
    when the table was released.
    """

    branch = django_filters.UUIDFilter(field_name="branch_id")
    table = django_filters.UUIDFilter(field_name="table_id")
    business_date = django_filters.DateFilter(field_name="business_date")
    include_split_parents = django_filters.BooleanFilter(method="filter_split_parents")

    created_at__gte = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_at__lte = django_filters.DateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "branch_id",
            "status",
            "order_type",
            "payment_status",
            "table_number",
            "is_split",
        ]

    def filter_split_parents(self, queryset, name, value):
        if value is False:
            return queryset.exclude_split_parents()
        return queryset
