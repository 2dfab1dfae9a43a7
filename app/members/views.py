from rest_framework import viewsets

from tenants.scoping import TenantScopedMixin

from .models import Member
from .serializers import MemberSerializer


class MemberViewSet(TenantScopedMixin, viewsets.ModelViewSet):
    queryset = Member.objects.all().order_by('name', 'id')
    serializer_class = MemberSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        search = (self.request.query_params.get('search') or '').strip()
        if search:
            queryset = queryset.filter(name__icontains=search)
        return queryset
