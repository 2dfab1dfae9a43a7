from rest_framework import serializers

from .models import AttendanceRecord


class AttendanceRecordSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source='member.name', read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = [
            'id',
            'member',
            'member_name',
            'date',
            'status',
            'check_in_time',
            'check_out_time',
            'device_user_id',
            'device_serial_number',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
