from rest_framework import serializers


class SyncAttendanceQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField(required=False, allow_null=True)
    endDate = serializers.DateField(required=False, allow_null=True)
    fullSync = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        start = attrs.get("startDate")
        end = attrs.get("endDate")
        if start and end and start > end:
            raise serializers.ValidationError({"endDate": "endDate must not be before startDate."})
        return attrs


class DeviceTimeSerializer(serializers.Serializer):
    time = serializers.DateTimeField(required=False)
