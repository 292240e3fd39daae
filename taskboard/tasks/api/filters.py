import django_filters
from django.db.models import Q

from taskboard.tasks.models import Task

JSON_LIST_SYNTAX = str.maketrans("", "", "[]\",")


class TaskFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Task.Status.choices)
    priority = django_filters.ChoiceFilter(choices=Task.Priority.choices)
    category = django_filters.ChoiceFilter(choices=Task.Category.choices)
    assigned_to = django_filters.NumberFilter(field_name="assigned_to_id")
    assignedTo = django_filters.NumberFilter(field_name="assigned_to_id")  # noqa: N815
    due_date = django_filters.IsoDateTimeFilter(field_name="due_date", lookup_expr="lte")
    search = django_filters.CharFilter(method="filter_search", max_length=100)

    class Meta:
        model = Task
        fields = ["status", "priority", "category", "assigned_to", "due_date", "search"]

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        query = Q(title__icontains=value) | Q(description__icontains=value)
        # Tags are matched against their JSON text; drop the list syntax first.
        tag_term = value.lower().translate(JSON_LIST_SYNTAX).strip()
        if tag_term:
            query |= Q(tags__icontains=tag_term)
        return queryset.filter(query)
