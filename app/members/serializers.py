from rest_framework import serializers

from .models import Member


class MemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = Member
        fields = ['id', 'tenant', 'name', 'email', 'phone', 'created_at']
        read_only_fields = ['tenant', 'created_at']
