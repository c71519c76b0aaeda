from rest_framework import serializers

from clinic.models import Appointment
from clinic.serializers.fields import CleanCharField


def _check_window(attrs):
    if attrs['end_time'] <= attrs['start_time']:
        raise serializers.ValidationError({'end_time': 'end_time must be after start_time'})
    return attrs


class AppointmentCreateSerializer(serializers.Serializer):
    hospital_id = serializers.IntegerField(min_value=1)
    staff_id = serializers.IntegerField(min_value=1)
    type = serializers.ChoiceField(choices=[c[0] for c in Appointment.TYPE_CHOICES])
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000)
    patient_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def validate(self, attrs):
        return _check_window(attrs)


class RescheduleSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()

    def validate(self, attrs):
        return _check_window(attrs)


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Appointment.STATUS_CHOICES], required=False)
    hospital_id = serializers.IntegerField(required=False, min_value=1)
