from django.utils.dateparse import parse_date
from rest_framework import viewsets
from rest_framework.exceptions import ValidationError

from tenants.scoping import TenantScopedMixin

from .models import AttendanceRecord
from .pagination import AttendancePagination
from .serializers import AttendanceRecordSerializer


def _date_param(request, name):
    raw = (request.query_params.get(name) or '').strip()
    if not raw:
        return None
    value = parse_date(raw)
    if value is None:
        raise ValidationError({name: 'Expected a YYYY-MM-DD date.'})
    return value


class AttendanceRecordViewSet(TenantScopedMixin, viewsets.ReadOnlyModelViewSet):
    queryset = AttendanceRecord.objects.select_related('member').order_by('-date', 'member_id')
    serializer_class = AttendanceRecordSerializer
    pagination_class = AttendancePagination

    def get_queryset(self):
        queryset = super().get_queryset()
        member_id = self.request.query_params.get('member')
        if member_id:
            queryset = queryset.filter(member_id=member_id)

        start = _date_param(self.request, 'startDate')
        end = _date_param(self.request, 'endDate')
        if start:
            queryset = queryset.filter(date__gte=start)
        if end:
            queryset = queryset.filter(date__lte=end)

        if (self.request.query_params.get('open') or '').lower() in {'1', 'true', 'yes'}:
            queryset = queryset.filter(check_in_time__isnull=False, check_out_time__isnull=True)
        return queryset
