import re

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed

from taskboard.users.models import Team
from taskboard.users.models import User
from taskboard.utils.exceptions import Conflict

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PASSWORD_RULE_MESSAGE = (
    "Password must contain at least one uppercase letter, "
    "one lowercase letter, and one number"
)


def validate_password_strength(value: str) -> str:
    if len(value) < 6:
        msg = "Password must be at least 6 characters long"
        raise serializers.ValidationError(msg)
    if not PASSWORD_PATTERN.match(value):
        raise serializers.ValidationError(PASSWORD_RULE_MESSAGE)
    return value


def ensure_email_available(email: str, *, exclude_pk=None) -> str:
    email = email.strip().lower()
    qs = User.objects.filter(email__iexact=email)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    if qs.exists():
        raise Conflict("Email is already in use")
    return email


class TeamSerializer(serializers.ModelSerializer[Team]):
    class Meta:
        model = Team
        fields = ["id", "name"]


class UserSummarySerializer(serializers.ModelSerializer[User]):
    """Compact user reference embedded in tasks and comments."""

    class Meta:
        model = User
        fields = ["id", "name", "email", "avatar"]


class UserSerializer(serializers.ModelSerializer[User]):
    """Public profile; never exposes the password hash."""

    display_name = serializers.CharField(read_only=True)
    teams = TeamSerializer(many=True, read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "email",
            "role",
            "avatar",
            "department",
            "phone",
            "is_active",
            "last_login",
            "preferences",
            "teams",
            "display_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=50, trim_whitespace=True)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    department = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default=""
    )
    phone = serializers.CharField(
        max_length=50, required=False, allow_blank=True, default=""
    )

    def validate_password(self, value):
        return validate_password_strength(value)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value.strip()).exists():
            raise Conflict("User already exists with this email")
        return value.strip().lower()

    def create(self, validated_data):
        # Self-registration never grants an elevated role.
        return User.objects.create_user(role=User.Role.USER, **validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        email = attrs["email"].strip().lower()
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            msg = "Invalid credentials"
            raise AuthenticationFailed(msg)
        if not user.is_active:
            msg = "Account is deactivated. Please contact administrator."
            raise AuthenticationFailed(msg)
        authenticated = authenticate(
            request=self.context.get("request"),
            email=email,
            password=attrs["password"],
        )
        if authenticated is None:
            msg = "Invalid credentials"
            raise AuthenticationFailed(msg)
        attrs["user"] = authenticated
        return attrs


class ProfileUpdateSerializer(serializers.ModelSerializer[User]):
    name = serializers.CharField(min_length=2, max_length=50, required=False)
    email = serializers.EmailField(required=False)

    class Meta:
        model = User
        fields = ["name", "email", "department", "phone", "avatar"]

    def validate_email(self, value):
        exclude_pk = self.instance.pk if self.instance is not None else None
        return ensure_email_available(value, exclude_pk=exclude_pk)


class AdminUserUpdateSerializer(ProfileUpdateSerializer):
    """Profile fields plus the admin-only ``role`` and ``is_active``."""

    class Meta(ProfileUpdateSerializer.Meta):
        fields = [*ProfileUpdateSerializer.Meta.fields, "role", "is_active"]


class NotificationPreferencesSerializer(serializers.Serializer):
    email = serializers.BooleanField(required=False)
    push = serializers.BooleanField(required=False)
    task_updates = serializers.BooleanField(required=False)
    task_assignments = serializers.BooleanField(required=False)


class PreferencesSerializer(serializers.Serializer):
    notifications = NotificationPreferencesSerializer(required=False)
    theme = serializers.ChoiceField(
        choices=["light", "dark", "auto"], required=False
    )

    def update(self, instance, validated_data):
        preferences = dict(instance.preferences or {})
        notifications = validated_data.get("notifications")
        if notifications:
            merged = dict(preferences.get("notifications") or {})
            merged.update(notifications)
            preferences["notifications"] = merged
        if "theme" in validated_data:
            preferences["theme"] = validated_data["theme"]
        instance.preferences = preferences
        instance.save(update_fields=["preferences", "updated_at"])
        return instance


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True, trim_whitespace=False)
    new_password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_current_password(self, value):
        user = self.context["request"].user
        if not user.check_password(value):
            msg = "Current password is incorrect"
            raise serializers.ValidationError(msg)
        return value

    def validate_new_password(self, value):
        return validate_password_strength(value)

    def save(self, **kwargs):
        user = self.context["request"].user
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password", "updated_at"])
        return user
