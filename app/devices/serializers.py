from rest_framework import serializers

from members.models import Member

from .models import Device, DeviceUserMapping, default_device_port


class DeviceSerializer(serializers.ModelSerializer):
    mapping_count = serializers.IntegerField(source='user_mappings.count', read_only=True)

    class Meta:
        model = Device
        fields = [
            'id',
            'tenant',
            'name',
            'ip_address',
            'port',
            'serial_number',
            'password',
            'sync_interval',
            'last_sync_at',
            'mapping_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['tenant', 'last_sync_at', 'created_at', 'updated_at']
        extra_kwargs = {'password': {'write_only': True}}

    def validate_port(self, value):
        if not 1 <= value <= 65535:
            raise serializers.ValidationError('Port must be between 1 and 65535.')
        return value

    def validate(self, attrs):
        tenant = self.context['tenant']
        ip_address = attrs.get('ip_address', getattr(self.instance, 'ip_address', None))
        port = attrs.get('port', getattr(self.instance, 'port', None)) or default_device_port()
        duplicates = Device.objects.filter(tenant=tenant, ip_address=ip_address, port=port)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError('Device with this IP and port already exists.')
        return attrs


class MemberSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Member
        fields = ['id', 'name', 'email', 'phone']


class DeviceUserMappingSerializer(serializers.ModelSerializer):
    member_detail = MemberSummarySerializer(source='member', read_only=True)

    class Meta:
        model = DeviceUserMapping
        fields = [
            'id',
            'device',
            'member',
            'member_detail',
            'device_user_id',
            'device_user_name',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_device(self, value):
        if value.tenant_id != self.context['tenant'].id:
            raise serializers.ValidationError('Device configuration not found.')
        return value

    def validate_member(self, value):
        if value.tenant_id != self.context['tenant'].id:
            raise serializers.ValidationError('Member not found.')
        return value

    def validate_device_user_id(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Device user id is required.')
        return value

    def validate(self, attrs):
        device = attrs.get('device', getattr(self.instance, 'device', None))
        device_user_id = attrs.get('device_user_id', getattr(self.instance, 'device_user_id', None))
        existing = DeviceUserMapping.objects.filter(device=device, device_user_id=device_user_id)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError('Mapping for this device user already exists.')
        return attrs
