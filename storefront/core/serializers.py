from rest_framework import serializers

from .models import User, AuditLog
from .utils import normalize_phone_to_e164


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'phone', 'name', 'email', 'role', 'label', 'provider', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_phone(self, value):
        if not value:
            return value
        phone = normalize_phone_to_e164(value)
        existing = User.objects.filter(phone=phone)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError('Пользователь с таким телефоном уже существует')
        return phone


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6)

    class Meta:
        model = User
        fields = ['phone', 'password', 'name', 'email', 'role', 'label', 'provider']

    def validate_phone(self, value):
        phone = normalize_phone_to_e164(value)
        if not phone:
            raise serializers.ValidationError('Телефон обязателен')
        if User.objects.filter(phone=phone).exists():
            raise serializers.ValidationError('Пользователь с таким телефоном уже существует')
        return phone

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(username=validated_data['phone'], is_active=True, **validated_data)
        user.set_password(password)
        user.save()
        return user


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']
