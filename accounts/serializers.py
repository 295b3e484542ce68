"""Serializers for the accounts app.

Includes:
- Workshop registration with password validation
- Profile (business name and notification preferences)
- Clients, with phone numbers normalised to E.164
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from .models import Client
from .phones import normalize_phone


User = get_user_model()


def _validated_phone(value, required=False):
    if not value:
        if required:
            raise serializers.ValidationError('Phone number is required.')
        return ''
    try:
        return normalize_phone(value)
    except ValueError as exc:
        raise serializers.ValidationError(
            f'{exc} Include the country code (e.g. +233) or use a local number.'
        ) from exc


class RegisterSerializer(serializers.ModelSerializer):
    """Create a new workshop account."""

    password = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ('username', 'password', 'email', 'business_name', 'phone_number')

    def validate_phone_number(self, value):
        return _validated_phone(value) or None

    def validate_email(self, value):
        return value.lower().strip()

    def validate(self, attrs):
        validate_password(attrs['password'], user=User(username=attrs.get('username'), email=attrs.get('email', '')))
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(**validated_data)
        user.set_password(password)
        user.save()
        return user


class UserProfileSerializer(serializers.ModelSerializer):
    """The authenticated workshop's own profile."""

    class Meta:
        model = User
        fields = ('id', 'username', 'email', 'business_name', 'phone_number', 'notify_sms', 'notify_email')
        read_only_fields = ('id', 'username')

    def validate_phone_number(self, value):
        return _validated_phone(value) or None


class ClientSerializer(serializers.ModelSerializer):
    """Client payload used for list/create/update."""

    class Meta:
        model = Client
        fields = ['id', 'name', 'phone', 'email', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {'phone': {'required': True, 'allow_blank': False}}

    def validate_phone(self, value):
        return _validated_phone(value, required=True)
