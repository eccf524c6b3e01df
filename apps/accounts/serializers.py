from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.accounts.models import PRODUCTION_ROLES, Department, UserRole
from apps.common.permissions import navigation_for, permissions_for


class UserSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="display_name", read_only=True)
    created_at = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = get_user_model()
        fields = ["id", "username", "name", "email", "phone", "department", "role", "is_active", "created_at", "updated_at"]
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class IdentitySerializer(serializers.Serializer):
    def to_representation(self, instance):
        return {
            "user": UserSerializer(instance).data,
            "permissions": sorted(permissions_for(instance)),
            "navigation": navigation_for(instance),
        }


class UserWriteSerializer(serializers.ModelSerializer):
    """Department Management: create and edit console identities."""

    name = serializers.CharField(source="display_name", read_only=True)
    username = serializers.CharField(required=False, max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, required=False, trim_whitespace=False, min_length=6)
    created_at = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = get_user_model()
        fields = [
            "id",
            "username",
            "name",
            "first_name",
            "last_name",
            "email",
            "phone",
            "department",
            "role",
            "is_active",
            "password",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def _others(self):
        queryset = get_user_model().objects.all()
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        return queryset

    def validate_email(self, value):
        value = value.strip().lower()
        if self._others().filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email is already used by another user.")
        return value

    def validate_username(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Username cannot be empty.")
        if self._others().filter(username__iexact=value).exists():
            raise serializers.ValidationError("Username is already taken.")
        return value

    def validate(self, attrs):
        department = attrs.get("department", getattr(self.instance, "department", Department.PRODUCTION_STAFF))
        role = attrs.get("role", getattr(self.instance, "role", UserRole.PRINT))
        if department == Department.PRODUCTION_STAFF:
            if role not in PRODUCTION_ROLES:
                raise serializers.ValidationError({"role": "Production staff need a production role."})
        elif role != department:
            raise serializers.ValidationError({"role": f"Role must match the {department} department."})

        if self.instance is None and not attrs.get("username"):
            username = attrs["email"].split("@", 1)[0]
            if get_user_model().objects.filter(username__iexact=username).exists():
                raise serializers.ValidationError({"username": "Username derived from email is taken."})
            attrs["username"] = username
        return attrs

    def create(self, validated_data):
        password = validated_data.pop("password", None)
        user = get_user_model()(**validated_data)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save()
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop("password", None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance
