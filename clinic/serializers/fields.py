import bleach
from rest_framework import serializers


class CleanCharField(serializers.CharField):
    """CharField that strips any HTML markup from the submitted text."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        return bleach.clean(value, tags=set(), strip=True).strip()
