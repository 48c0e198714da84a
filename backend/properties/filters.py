import django_filters

from .models import Property


class PropertyFilterSet(django_filters.FilterSet):
    region = django_filters.CharFilter(field_name="region", lookup_expr="iexact")
    location = django_filters.CharFilter(field_name="location", lookup_expr="icontains")
    guests = django_filters.NumberFilter(field_name="sleeps_max", lookup_expr="gte")
    bedrooms_min = django_filters.NumberFilter(field_name="bedrooms", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price_midweek", lookup_expr="lte")
    featured = django_filters.BooleanFilter(field_name="featured")

    class Meta:
        model = Property
        fields = ["region", "location", "guests", "bedrooms_min", "max_price", "featured", "status"]
