from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from core.models import User


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField()

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True)

    def validate_email(self, v):
        v = v.strip().lower()
        if User.objects.filter(email__iexact=v).exists() or User.objects.filter(username__iexact=v).exists():
            raise serializers.ValidationError('An account with this email already exists')
        return v

    def validate(self, attrs):
        candidate = User(username=attrs['email'], email=attrs['email'], first_name=attrs['firstName'])
        validate_password(attrs['password'], user=candidate)
        return attrs
