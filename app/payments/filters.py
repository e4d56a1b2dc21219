import django_filters as filters
from django.db.models import Q

from payments.models import Order


class CharInFilter(filters.BaseInFilter, filters.CharFilter):
    pass


class TransactionFilter(filters.FilterSet):
    """
    Filters for the transaction listings.

    Expects a queryset annotated by StatusLedger.annotate_latest(), so that
    ``status`` matches the latest ledger status rather than the cache.
    """

    status = CharInFilter(field_name="latest_status")
    school_id = CharInFilter(field_name="school_id")
    date_from = filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    q = filters.CharFilter(method="filter_search")

    class Meta:
        model = Order
        fields = ["status", "school_id", "date_from", "date_to", "q"]

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(custom_order_id__icontains=value)
            | Q(collect_request_id__icontains=value)
            | Q(school_id__icontains=value)
            | Q(student_info__name__icontains=value)
            | Q(student_info__email__icontains=value)
            | Q(latest_status__icontains=value)
        )
