import math

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Task(models.Model):
    class Status(models.TextChoices):
        TODO = "todo", _("To do")
        IN_PROGRESS = "in-progress", _("In progress")
        REVIEW = "review", _("Review")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    class Priority(models.TextChoices):
        LOW = "low", _("Low")
        MEDIUM = "medium", _("Medium")
        HIGH = "high", _("High")
        URGENT = "urgent", _("Urgent")

    class Category(models.TextChoices):
        BUG = "bug", _("Bug")
        FEATURE = "feature", _("Feature")
        IMPROVEMENT = "improvement", _("Improvement")
        TASK = "task", _("Task")
        RESEARCH = "research", _("Research")

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=1000)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.TODO
    )
    priority = models.CharField(
        max_length=20, choices=Priority.choices, default=Priority.MEDIUM
    )
    category = models.CharField(
        max_length=20, choices=Category.choices, default=Category.TASK
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tasks",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="created_tasks",
    )
    due_date = models.DateTimeField(null=True, blank=True)
    estimated_hours = models.FloatField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(1000)],
    )
    actual_hours = models.FloatField(default=0, validators=[MinValueValidator(0)])
    tags = models.JSONField(default=list, blank=True)
    progress = models.PositiveSmallIntegerField(
        default=0, validators=[MaxValueValidator(100)]
    )
    is_archived = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_activity = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "is_archived"], name="tasks_task_status_1a2b3c_idx"),
            models.Index(fields=["assigned_to", "status"], name="tasks_task_assigne_4d5e6f_idx"),
            models.Index(fields=["due_date", "status"], name="tasks_task_due_dat_7a8b9c_idx"),
            models.Index(fields=["priority", "status"], name="tasks_task_priorit_0d1e2f_idx"),
            models.Index(fields=["-last_activity"], name="tasks_task_last_ac_3a4b5c_idx"),
        ]

    def __str__(self):
        return self.title

    def save(self, *args, **kwargs):
        if self.status == self.Status.COMPLETED:
            if self.completed_at is None:
                self.completed_at = timezone.now()
                self.progress = 100
        elif self.completed_at is not None:
            self.completed_at = None
        self.last_activity = timezone.now()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = {
                *update_fields,
                "completed_at",
                "progress",
                "last_activity",
                "updated_at",
            }
        super().save(*args, **kwargs)

    @property
    def is_overdue(self) -> bool:
        if not self.due_date or self.status == self.Status.COMPLETED:
            return False
        return timezone.now() > self.due_date

    @property
    def days_until_due(self) -> int | None:
        if not self.due_date:
            return None
        seconds = (self.due_date - timezone.now()).total_seconds()
        return math.ceil(seconds / 86400)

    @property
    def completion_percentage(self) -> int:
        subtasks = list(self.subtasks.all()) if self.pk else []
        if not subtasks:
            return self.progress
        done = sum(1 for subtask in subtasks if subtask.completed)
        return math.floor(done * 100 / len(subtasks) + 0.5)

    def touch(self) -> None:
        """Bump ``last_activity`` after a child row changed."""
        self.save(update_fields=["last_activity"])


class Comment(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="comments")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="comments"
    )
    text = models.TextField(max_length=500)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):  # pragma: no cover - trivial
        return f"Comment({self.user_id} on {self.task_id})"


class Subtask(models.Model):
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="subtasks")
    title = models.CharField(max_length=100)
    completed = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):  # pragma: no cover - trivial
        return self.title
