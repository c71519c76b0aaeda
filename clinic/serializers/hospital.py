from rest_framework import serializers

from clinic.models import ROSTER_ROLES
from clinic.serializers.fields import CleanCharField


class HospitalSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    address = CleanCharField(required=False, allow_blank=True, max_length=255)
    city = CleanCharField(required=False, allow_blank=True, max_length=128)
    description = CleanCharField(required=False, allow_blank=True)


class HospitalCreateSerializer(HospitalSerializer):
    """Hospital fields plus an optional request to set up its administrator."""
    admin_email = serializers.EmailField(required=False, allow_blank=True)
    admin_password = serializers.CharField(required=False, allow_blank=True, write_only=True)
    admin_name = CleanCharField(required=False, allow_blank=True, max_length=255)
    admin_phone = serializers.CharField(required=False, allow_blank=True, max_length=32)


class StaffAssignSerializer(serializers.Serializer):
    full_name = CleanCharField(required=False, allow_blank=True, max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    username = serializers.CharField(required=False, allow_blank=True, max_length=150)
    password = serializers.CharField(required=False, allow_blank=True, write_only=True)
    role = serializers.CharField(required=False, allow_blank=True)
    department = CleanCharField(required=False, allow_blank=True, max_length=128)

    def validate_role(self, v):
        if v not in ROSTER_ROLES:
            raise serializers.ValidationError('Invalid role')
        return v

    def validate(self, attrs):
        if 'role' not in attrs:
            raise serializers.ValidationError({'role': 'Invalid role'})
        if not attrs.get('full_name') or not attrs.get('password') or not (attrs.get('email') or attrs.get('username')):
            raise serializers.ValidationError('full_name, password and one of email/username are required')
        return attrs


class HospitalAdminCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    full_name = CleanCharField(required=False, allow_blank=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)


class HospitalAdminAssignSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(required=False, min_value=1)
    email = serializers.EmailField(required=False)

    def validate(self, attrs):
        if not attrs.get('user_id') and not attrs.get('email'):
            raise serializers.ValidationError('One of user_id/email is required')
        return attrs
