from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _

from .managers import UserManager


def default_preferences() -> dict:
    return {
        "notifications": {
            "email": True,
            "push": True,
            "task_updates": True,
            "task_assignments": True,
        },
        "theme": "light",
    }


class Team(models.Model):
    """A group of users sharing a realtime broadcast room."""

    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name


class User(AbstractUser):
    """
    Default custom user model for taskboard.
    Users log in with their email address; there is no username.
    """

    class Role(models.TextChoices):
        USER = "user", _("User")
        MANAGER = "manager", _("Manager")
        ADMIN = "admin", _("Admin")

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Name of User"), max_length=50)
    email = EmailField(_("email address"), unique=True)
    username = None  # type: ignore[assignment]
    first_name = None  # type: ignore[assignment]
    last_name = None  # type: ignore[assignment]

    role = CharField(max_length=20, choices=Role.choices, default=Role.USER)
    avatar = CharField(max_length=500, blank=True, default="")
    department = CharField(max_length=100, blank=True, default="")
    phone = CharField(max_length=50, blank=True, default="")
    teams = models.ManyToManyField(Team, related_name="members", blank=True)
    preferences = models.JSONField(default=default_preferences)

    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.email

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.role})"

    @property
    def is_elevated(self) -> bool:
        """Admins and managers see and edit every task."""
        return self.role in (self.Role.ADMIN, self.Role.MANAGER)
