from rest_framework import serializers

from clinic.serializers.fields import CleanCharField


class PatientSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    dob = serializers.DateField(required=False, allow_null=True)
    gender = serializers.CharField(required=False, allow_blank=True, max_length=16)
    address = CleanCharField(required=False, allow_blank=True, max_length=255)
    medical_history = CleanCharField(required=False, allow_blank=True)
    metadata = serializers.DictField(required=False)
    hospital_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    user_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class PatientListQuerySerializer(serializers.Serializer):
    hospital_id = serializers.IntegerField(required=False, min_value=1)
    q = serializers.CharField(required=False, max_length=64)


class GuardianAssignSerializer(serializers.Serializer):
    guardian_id = serializers.IntegerField(min_value=1)


class PatientSyncQuerySerializer(serializers.Serializer):
    hospital_id = serializers.IntegerField(required=False, min_value=1)
