from rest_framework import serializers

from clinic.serializers.fields import CleanCharField


class PrescriptionCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    patient_name = CleanCharField(required=False, allow_blank=True, max_length=255)
    date = serializers.DateTimeField(required=False, allow_null=True)
    complaints = CleanCharField(required=False, allow_blank=True)
    advice = CleanCharField(required=False, allow_blank=True)
    meds = serializers.ListField(child=serializers.JSONField(), required=False)
    therapies = serializers.ListField(child=serializers.JSONField(), required=False)


class PrescriptionListQuerySerializer(serializers.Serializer):
    patient_id = serializers.IntegerField(required=False, min_value=1)
