# services/training-center-service/src/apps/api/views/filters.py
"""
API Filters

Django Filter classes for the training center API.
"""

import django_filters
from django.utils import timezone

from apps.core.models import TrainingSession


class TrainingSessionFilter(django_filters.FilterSet):
    """Filter for session queries."""

    status = django_filters.ChoiceFilter(
        choices=TrainingSession.Status.choices
    )
    program_code = django_filters.CharFilter()
    trainer_id = django_filters.UUIDFilter()

    # Time range
    start_after = django_filters.DateTimeFilter(
        field_name='scheduled_start',
        lookup_expr='gte'
    )
    start_before = django_filters.DateTimeFilter(
        field_name='scheduled_start',
        lookup_expr='lte'
    )
    upcoming = django_filters.BooleanFilter(
        method='filter_upcoming'
    )

    class Meta:
        model = TrainingSession
        fields = ['status', 'program_code', 'trainer_id']

    def filter_upcoming(self, queryset, name, value):
        """Sessions that have not started yet (``upcoming=false`` gives the rest)."""
        now = timezone.now()
        if value:
            return queryset.filter(scheduled_start__gt=now)
        return queryset.filter(scheduled_start__lte=now)
