from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, AuditLog


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'full_name', 'role', 'phone', 'is_active', 'is_online', 'created_at', 'updated_at']
        read_only_fields = ['is_online', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'full_name', 'role', 'phone']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class FullNameSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=200)


class AuditLogSerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()
    project_name = serializers.CharField(source='project.name', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'full_name', 'project', 'project_name', 'action', 'entity_type',
                  'object_id', 'object_name', 'changes', 'ip_address', 'created_at']

    def get_full_name(self, obj):
        if not obj.user:
            return None
        return obj.user.full_name or obj.user.username
