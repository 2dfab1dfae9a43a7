import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class AttendancePagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = 'limit'
    max_page_size = 500

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response(
            {
                'records': data,
                'pagination': {
                    'page': self.page.number,
                    'limit': limit,
                    'total': total,
                    'totalPages': math.ceil(total / limit) if limit else 0,
                },
            }
        )
