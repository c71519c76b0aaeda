from rest_framework import serializers

from clinic.serializers.fields import CleanCharField


class NotificationCreateSerializer(serializers.Serializer):
    recipient_id = serializers.IntegerField(min_value=1)
    title = CleanCharField(max_length=255)
    message = CleanCharField(required=False, allow_blank=True, max_length=4000)


class NotificationListQuerySerializer(serializers.Serializer):
    unread = serializers.BooleanField(required=False)
