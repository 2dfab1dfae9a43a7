from rest_framework import serializers

from .models import Tenant


class TenantSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tenant
        fields = ['id', 'name', 'code', 'created_at']
        read_only_fields = ['created_at']

    def validate_code(self, value):
        return value.strip().lower()
