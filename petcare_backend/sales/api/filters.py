# sales/api/filters.py

import django_filters
from django.db.models import Q

from sales.models import Sale


class SaleFilter(django_filters.FilterSet):
    """
    Sales history filters:
        ?status=Efectiva&sale_type=Venta&payment_method=qr&customer=12
        ?date_from=2024-05-01&date_to=2024-05-31&q=VEN2024
    """

    status = django_filters.ChoiceFilter(choices=Sale.Status.choices)
    sale_type = django_filters.ChoiceFilter(choices=Sale.SaleType.choices)
    payment_method = django_filters.ChoiceFilter(choices=Sale.PaymentMethod.choices)
    customer = django_filters.NumberFilter(field_name="customer_id")
    origin_sale = django_filters.UUIDFilter(field_name="origin_sale_id")
    date_from = django_filters.DateFilter(field_name="sale_date", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="sale_date", lookup_expr="date__lte")
    q = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = Sale
        fields = ["status", "sale_type", "payment_method", "customer", "origin_sale"]

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_no__icontains=value)
            | Q(customer__document_number__icontains=value)
            | Q(customer__first_name__icontains=value)
            | Q(customer__last_name__icontains=value)
        )
