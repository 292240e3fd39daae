from __future__ import annotations

import math

from rest_framework.pagination import PageNumberPagination

from .envelope import envelope


class EnvelopePagination(PageNumberPagination):
    """Page/limit pagination rendered inside the response envelope.

    Views name the collection through ``pagination_results_key`` (``tasks``,
    ``users``); the metadata block then reads
    ``{current, total, count, total_<key>}``. A page past the end yields an
    empty list rather than a 404.
    """

    page_size = 10
    page_size_query_param = "limit"
    max_page_size = 100
    results_key = "results"

    def paginate_queryset(self, queryset, request, view=None):
        self.request = request
        self.results_key = getattr(view, "pagination_results_key", self.results_key)
        self.limit = self.get_page_size(request)
        self.current = self.get_page_number(request)
        self.total_count = queryset.count()
        offset = (self.current - 1) * self.limit
        self.items = list(queryset[offset : offset + self.limit])
        return self.items

    def get_page_number(self, request, paginator=None) -> int:
        try:
            page = int(request.query_params.get(self.page_query_param, 1))
        except (TypeError, ValueError):
            return 1
        return max(page, 1)

    def get_paginated_response(self, data):
        return envelope(self.get_paginated_data(data))

    def get_paginated_data(self, data) -> dict:
        return {
            self.results_key: data,
            "pagination": {
                "current": self.current,
                "total": math.ceil(self.total_count / self.limit),
                "count": len(self.items),
                f"total_{self.results_key}": self.total_count,
            },
        }

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "data": {
                    "type": "object",
                    "properties": {
                        self.results_key: schema,
                        "pagination": {
                            "type": "object",
                            "properties": {
                                "current": {"type": "integer"},
                                "total": {"type": "integer"},
                                "count": {"type": "integer"},
                            },
                        },
                    },
                },
            },
        }
