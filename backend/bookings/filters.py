import django_filters as filters

from .models import Booking


class BookingFilter(filters.FilterSet):
    status = filters.MultipleChoiceFilter(choices=Booking.Status.choices)
    specialization = filters.ChoiceFilter(choices=Booking.Specialization.choices)
    min_payment = filters.NumberFilter(field_name="payment_amount", lookup_expr="gte")
    max_payment = filters.NumberFilter(field_name="payment_amount", lookup_expr="lte")
    scheduled_after = filters.IsoDateTimeFilter(field_name="scheduled_date", lookup_expr="gte")
    scheduled_before = filters.IsoDateTimeFilter(field_name="scheduled_date", lookup_expr="lte")
    unsettled = filters.BooleanFilter(method="filter_unsettled")

    class Meta:
        model = Booking
        fields = ["status", "specialization", "required_minimum_rank"]

    def filter_unsettled(self, queryset, name, value):
        if value is None:
            return queryset
        unsettled_q = {"status": Booking.Status.COMPLETED, "settled": False}
        if value:
            return queryset.filter(**unsettled_q)
        return queryset.exclude(**unsettled_q)
