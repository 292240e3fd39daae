from django.utils import timezone
from rest_framework import serializers

from taskboard.tasks.models import Comment
from taskboard.tasks.models import Subtask
from taskboard.tasks.models import Task
from taskboard.users.api.serializers import UserSummarySerializer
from taskboard.users.models import User

TASK_ALIASES = {
    "assignedTo": "assigned_to",
    "dueDate": "due_date",
    "estimatedHours": "estimated_hours",
    "actualHours": "actual_hours",
    "isArchived": "is_archived",
}

SORT_FIELDS = ("created_at", "due_date", "priority", "title")
SORT_ALIASES = {"createdAt": "created_at", "dueDate": "due_date"}
MAX_TIMEFRAME_DAYS = 3650


def _between(label: str, low: int, high: int) -> dict[str, str]:
    message = f"{label} must be between {low} and {high} characters"
    return {"min_length": message, "max_length": message, "blank": message}


class CommentSerializer(serializers.ModelSerializer[Comment]):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Comment
        fields = ["id", "user", "text", "created_at"]
        read_only_fields = ["id", "user", "created_at"]


class CommentCreateSerializer(serializers.Serializer):
    text = serializers.CharField(
        min_length=1,
        max_length=500,
        error_messages={
            "required": "Comment text is required",
            **_between("Comment", 1, 500),
        },
    )


class SubtaskSerializer(serializers.ModelSerializer[Subtask]):
    title = serializers.CharField(
        min_length=3,
        max_length=100,
        error_messages={
            "required": "Subtask title is required",
            **_between("Subtask title", 3, 100),
        },
    )

    class Meta:
        model = Subtask
        fields = ["id", "title", "completed", "created_at"]
        read_only_fields = ["id", "created_at"]


class TaskSerializer(serializers.ModelSerializer[Task]):
    """Full task representation used in responses and realtime payloads."""

    assigned_to = UserSummarySerializer(read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    comments = CommentSerializer(many=True, read_only=True)
    subtasks = SubtaskSerializer(many=True, read_only=True)
    days_until_due = serializers.IntegerField(read_only=True, allow_null=True)
    is_overdue = serializers.BooleanField(read_only=True)
    completion_percentage = serializers.IntegerField(read_only=True)

    class Meta:
        model = Task
        fields = [
            "id",
            "title",
            "description",
            "status",
            "priority",
            "category",
            "assigned_to",
            "created_by",
            "due_date",
            "estimated_hours",
            "actual_hours",
            "tags",
            "progress",
            "is_archived",
            "completed_at",
            "last_activity",
            "comments",
            "subtasks",
            "days_until_due",
            "is_overdue",
            "completion_percentage",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TaskWriteSerializer(serializers.ModelSerializer[Task]):
    title = serializers.CharField(
        min_length=3,
        max_length=100,
        error_messages={
            "required": "Task title is required",
            **_between("Title", 3, 100),
        },
    )
    description = serializers.CharField(
        min_length=10,
        max_length=1000,
        error_messages={
            "required": "Task description is required",
            **_between("Description", 10, 1000),
        },
    )
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(),
        allow_null=True,
        required=False,
        error_messages={
            "does_not_exist": "Assigned user not found",
            "incorrect_type": "Invalid user ID for assignment",
        },
    )
    estimated_hours = serializers.FloatField(
        min_value=0,
        max_value=1000,
        allow_null=True,
        required=False,
        error_messages={
            "invalid": "Estimated hours must be a number",
            "min_value": "Estimated hours must be between 0 and 1000",
            "max_value": "Estimated hours must be between 0 and 1000",
        },
    )
    actual_hours = serializers.FloatField(
        min_value=0,
        required=False,
        error_messages={
            "invalid": "Actual hours must be a number",
            "min_value": "Actual hours cannot be negative",
        },
    )
    progress = serializers.IntegerField(
        min_value=0,
        max_value=100,
        required=False,
        error_messages={
            "invalid": "Progress must be a number",
            "min_value": "Progress must be between 0 and 100",
            "max_value": "Progress must be between 0 and 100",
        },
    )
    tags = serializers.ListField(
        child=serializers.CharField(
            min_length=1,
            max_length=20,
            error_messages=_between("Each tag", 1, 20),
        ),
        required=False,
        error_messages={"not_a_list": "Tags must be an array"},
    )

    class Meta:
        model = Task
        fields = [
            "title",
            "description",
            "status",
            "priority",
            "category",
            "assigned_to",
            "due_date",
            "estimated_hours",
            "actual_hours",
            "tags",
            "progress",
            "is_archived",
        ]

    def validate_due_date(self, value):
        # Existing tasks may keep or move to a past due date.
        if value is not None and self.instance is None and value <= timezone.now():
            msg = "Due date must be in the future"
            raise serializers.ValidationError(msg)
        return value

    def validate_tags(self, value):
        return [tag.strip().lower() for tag in value]


class TaskListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(
        min_value=1,
        required=False,
        default=1,
        error_messages={"min_value": "Page must be a positive integer"},
    )
    limit = serializers.IntegerField(
        min_value=1,
        max_value=100,
        required=False,
        default=10,
        error_messages={
            "min_value": "Limit must be between 1 and 100",
            "max_value": "Limit must be between 1 and 100",
        },
    )
    sort = serializers.CharField(required=False, default="-created_at")

    def validate_sort(self, value):
        descending = value.startswith("-")
        name = value.lstrip("-")
        name = SORT_ALIASES.get(name, name)
        if name not in SORT_FIELDS:
            msg = "Invalid sort parameter"
            raise serializers.ValidationError(msg)
        return f"-{name}" if descending else name


class TaskStatsQuerySerializer(serializers.Serializer):
    timeframe = serializers.IntegerField(
        min_value=1,
        max_value=MAX_TIMEFRAME_DAYS,
        required=False,
        default=30,
        error_messages={
            "max_value": f"Timeframe must be at most {MAX_TIMEFRAME_DAYS} days",
        },
    )
