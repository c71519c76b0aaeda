from rest_framework import serializers

from clinic.serializers.fields import CleanCharField


class LoginSerializer(serializers.Serializer):
    """Accepts ``identifier`` or any one of email/username/phone."""
    identifier = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)
    username = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField()

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v

    def validate(self, attrs):
        ident = next((attrs.get(k) for k in ('identifier', 'email', 'username', 'phone') if attrs.get(k)), '')
        ident = ident.strip()
        if not ident:
            raise serializers.ValidationError({'identifier': 'Email, username or phone is required'})
        attrs['identifier'] = ident
        return attrs


class RegisterSerializer(serializers.Serializer):
    full_name = CleanCharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    username = serializers.CharField(required=False, allow_blank=True, max_length=150)
    password = serializers.CharField(write_only=True)
    role = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not (attrs.get('email') or attrs.get('username')):
            raise serializers.ValidationError('One of email/username is required')
        return attrs


class ProfileUpdateSerializer(serializers.Serializer):
    full_name = CleanCharField(required=False, max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    department = CleanCharField(required=False, allow_blank=True, max_length=128)


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
