from __future__ import annotations

from django.contrib.auth.models import update_last_login
from django.db.models import Q
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import GenericViewSet

from taskboard.tasks.services import assignee_stats
from taskboard.tasks.services import release_open_assignments
from taskboard.tasks.services import user_task_stats
from taskboard.users.models import User
from taskboard.users.tokens import issue_token
from taskboard.utils.envelope import envelope
from taskboard.utils.pagination import EnvelopePagination
from taskboard.utils.payloads import normalize_payload

from .permissions import IsAdminRole
from .permissions import can_mutate_user
from .permissions import is_admin
from .permissions import is_elevated
from .serializers import AdminUserUpdateSerializer
from .serializers import ChangePasswordSerializer
from .serializers import LoginSerializer
from .serializers import PreferencesSerializer
from .serializers import ProfileUpdateSerializer
from .serializers import RegisterSerializer
from .serializers import UserSerializer

USER_ALIASES = {"isActive": "is_active"}
PASSWORD_ALIASES = {"currentPassword": "current_password", "newPassword": "new_password"}
USER_SORT_FIELDS = {"name", "email", "created_at"}
PUBLIC_ACTIONS = ("register", "login")


def _session_payload(user, request) -> dict:
    return {
        "user": UserSerializer(user, context={"request": request}).data,
        "token": issue_token(user),
    }


@extend_schema_view(
    register=extend_schema(tags=["Authentication"], request=RegisterSerializer),
    login=extend_schema(tags=["Authentication"], request=LoginSerializer),
    logout=extend_schema(tags=["Authentication"], request=None),
    me=extend_schema(tags=["Authentication"], request=ProfileUpdateSerializer),
    preferences=extend_schema(tags=["Authentication"], request=PreferencesSerializer),
    change_password=extend_schema(
        tags=["Authentication"], request=ChangePasswordSerializer
    ),
    stats=extend_schema(tags=["Authentication"]),
)
class AuthViewSet(GenericViewSet):
    """Registration, login and the caller's own account."""

    permission_classes = [IsAuthenticated]
    serializer_class = UserSerializer
    queryset = User.objects.none()

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            return [AllowAny()]
        return super().get_permissions()

    def get_authenticators(self):
        # A stale token on the login form must not block logging in again.
        name = getattr(self, "action", None)
        request = getattr(self, "request", None)
        if name is None and request is not None:
            name = (getattr(self, "action_map", None) or {}).get(request.method.lower())
        if name in PUBLIC_ACTIONS:
            return []
        return super().get_authenticators()

    def get_authenticate_header(self, request):
        # Keeps rejected logins at 401; DRF downgrades to 403 without a header.
        return 'Bearer realm="api"'

    @action(detail=False, methods=["post"])
    def register(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        update_last_login(None, user)
        return envelope(
            _session_payload(user, request),
            message="User registered successfully",
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"])
    def login(self, request):
        serializer = LoginSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        update_last_login(None, user)
        return envelope(_session_payload(user, request), message="Login successful")

    @action(detail=False, methods=["post"])
    def logout(self, request):
        # Tokens are stateless; the client discards its copy.
        return envelope(message="Logged out successfully")

    @action(detail=False, methods=["get", "put"])
    def me(self, request):
        if request.method == "GET":
            return envelope({"user": UserSerializer(request.user).data})
        serializer = ProfileUpdateSerializer(
            request.user, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return envelope(
            {"user": UserSerializer(user).data},
            message="Profile updated successfully",
        )

    @action(detail=False, methods=["put"])
    def preferences(self, request):
        data = request.data.get("preferences", request.data)
        serializer = PreferencesSerializer(request.user, data=data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return envelope(
            {"preferences": user.preferences},
            message="Preferences updated successfully",
        )

    @action(detail=False, methods=["put"], url_path="change-password")
    def change_password(self, request):
        serializer = ChangePasswordSerializer(
            data=normalize_payload(request.data, PASSWORD_ALIASES),
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return envelope(message="Password changed successfully")

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return envelope({"stats": user_task_stats(request.user)})


@extend_schema_view(
    list=extend_schema(tags=["Users"]),
    retrieve=extend_schema(tags=["Users"]),
    update=extend_schema(tags=["Users"], request=AdminUserUpdateSerializer),
    destroy=extend_schema(tags=["Users"]),
    active=extend_schema(tags=["Users"]),
    search=extend_schema(tags=["Users"]),
    stats=extend_schema(tags=["Users"]),
)
class UserViewSet(GenericViewSet):
    serializer_class = UserSerializer
    queryset = User.objects.prefetch_related("teams")
    permission_classes = [IsAuthenticated]
    pagination_class = EnvelopePagination
    pagination_results_key = "users"
    lookup_value_regex = r"\d+"

    def get_permissions(self):
        if self.action == "destroy":
            return [IsAuthenticated(), IsAdminRole()]
        return super().get_permissions()

    def get_object(self):
        try:
            return self.get_queryset().get(pk=self.kwargs["pk"])
        except User.DoesNotExist as exc:
            msg = "User not found"
            raise NotFound(msg) from exc

    def list(self, request):
        params = request.query_params
        qs = self.get_queryset()
        search = params.get("search")
        if search:
            qs = qs.filter(
                Q(name__icontains=search)
                | Q(email__icontains=search)
                | Q(department__icontains=search)
            )
        if params.get("role"):
            qs = qs.filter(role=params["role"])
        is_active = params.get("is_active", params.get("isActive"))
        if is_active is not None:
            qs = qs.filter(is_active=is_active.lower() == "true")
        sort = params.get("sort", "name")
        if sort.lstrip("-") not in USER_SORT_FIELDS:
            raise ValidationError({"sort": ["Invalid sort parameter"]})
        qs = qs.order_by(sort, "id")

        page = self.paginate_queryset(qs)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=["get"])
    def active(self, request):
        users = User.objects.active().order_by("name")
        return envelope({"users": UserSerializer(users, many=True).data})

    @action(detail=False, methods=["get"])
    def search(self, request):
        query = request.query_params.get("q")
        if not query:
            return envelope(
                success=False,
                message="Search query is required",
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            limit = max(1, min(int(request.query_params.get("limit", 10)), 100))
        except ValueError:
            limit = 10
        users = (
            User.objects.active()
            .filter(
                Q(name__icontains=query)
                | Q(email__icontains=query)
                | Q(department__icontains=query)
            )
            .order_by("name")[:limit]
        )
        return envelope({"users": UserSerializer(users, many=True).data})

    def retrieve(self, request, pk=None):
        return envelope({"user": self.get_serializer(self.get_object()).data})

    def update(self, request, pk=None):
        target = self.get_object()
        actor = request.user
        if not can_mutate_user(actor, target.pk, "name"):
            msg = "Access denied"
            raise PermissionDenied(msg)
        serializer_class = (
            AdminUserUpdateSerializer if is_admin(actor) else ProfileUpdateSerializer
        )
        serializer = serializer_class(
            target, data=normalize_payload(request.data, USER_ALIASES), partial=True
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return envelope(
            {"user": UserSerializer(user).data},
            message="User updated successfully",
        )

    def destroy(self, request, pk=None):
        target = self.get_object()
        if not can_mutate_user(request.user, target.pk, "delete"):
            return envelope(
                success=False,
                message="Cannot delete your own account",
                status=status.HTTP_400_BAD_REQUEST,
            )
        target.is_active = False
        target.save(update_fields=["is_active", "updated_at"])
        release_open_assignments(target)
        return envelope(message="User deactivated successfully")

    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        target = self.get_object()
        if target.pk != request.user.pk and not is_elevated(request.user):
            msg = "Access denied"
            raise PermissionDenied(msg)
        return envelope(
            {
                "user": UserSerializer(target).data,
                "stats": assignee_stats(target),
            }
        )
