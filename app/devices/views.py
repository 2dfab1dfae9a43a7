from rest_framework import viewsets

from tenants.scoping import TenantScopedMixin

from .models import Device, DeviceUserMapping
from .serializers import DeviceSerializer, DeviceUserMappingSerializer


class DeviceViewSet(TenantScopedMixin, viewsets.ModelViewSet):
    queryset = Device.objects.all().order_by('-created_at', '-id')
    serializer_class = DeviceSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['tenant'] = self.get_tenant()
        return context


class DeviceUserMappingViewSet(TenantScopedMixin, viewsets.ModelViewSet):
    queryset = DeviceUserMapping.objects.select_related('member', 'device').order_by('-created_at', '-id')
    serializer_class = DeviceUserMappingSerializer
    tenant_field = 'device__tenant'

    def get_queryset(self):
        queryset = super().get_queryset()
        device_id = self.request.query_params.get('device')
        if device_id:
            queryset = queryset.filter(device_id=device_id)
        member_id = self.request.query_params.get('member')
        if member_id:
            queryset = queryset.filter(member_id=member_id)
        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in {'1', 'true', 'yes'})
        return queryset

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['tenant'] = self.get_tenant()
        return context

    def perform_create(self, serializer):
        serializer.save()
