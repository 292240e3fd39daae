from __future__ import annotations

from django.db import transaction
from django.db.models import Case
from django.db.models import IntegerField
from django.db.models import Value
from django.db.models import When
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import GenericViewSet

from taskboard.realtime.events.tasks import publish_comment_added
from taskboard.realtime.events.tasks import publish_task_assigned
from taskboard.realtime.events.tasks import publish_task_created
from taskboard.realtime.events.tasks import publish_task_deleted
from taskboard.realtime.events.tasks import publish_task_updated
from taskboard.tasks.models import Comment
from taskboard.tasks.models import Subtask
from taskboard.tasks.models import Task
from taskboard.tasks.services import task_stats
from taskboard.tasks.services import visible_tasks
from taskboard.utils.envelope import envelope
from taskboard.utils.pagination import EnvelopePagination
from taskboard.utils.payloads import normalize_payload

from .filters import TaskFilter
from .permissions import TaskAccessPermission
from .serializers import TASK_ALIASES
from .serializers import CommentCreateSerializer
from .serializers import CommentSerializer
from .serializers import SubtaskSerializer
from .serializers import TaskListQuerySerializer
from .serializers import TaskSerializer
from .serializers import TaskStatsQuerySerializer
from .serializers import TaskWriteSerializer

PRIORITY_RANK = Case(
    When(priority=Task.Priority.LOW, then=Value(0)),
    When(priority=Task.Priority.MEDIUM, then=Value(1)),
    When(priority=Task.Priority.HIGH, then=Value(2)),
    When(priority=Task.Priority.URGENT, then=Value(3)),
    output_field=IntegerField(),
)


@extend_schema_view(
    list=extend_schema(
        tags=["Tasks"],
        parameters=[
            OpenApiParameter("page", int),
            OpenApiParameter("limit", int),
            OpenApiParameter("sort", str),
        ],
    ),
    create=extend_schema(tags=["Tasks"], request=TaskWriteSerializer),
    retrieve=extend_schema(tags=["Tasks"]),
    update=extend_schema(tags=["Tasks"], request=TaskWriteSerializer),
    destroy=extend_schema(tags=["Tasks"]),
    comments=extend_schema(tags=["Tasks"], request=CommentCreateSerializer),
    subtasks=extend_schema(tags=["Tasks"], request=SubtaskSerializer),
    update_subtask=extend_schema(tags=["Tasks"], request=SubtaskSerializer),
    stats=extend_schema(
        tags=["Tasks"], parameters=[OpenApiParameter("timeframe", int)]
    ),
)
class TaskViewSet(GenericViewSet):
    """Tasks visible to the caller, with comments, subtasks and statistics.

    Every mutation publishes its realtime event once the transaction commits.
    """

    serializer_class = TaskSerializer
    permission_classes = [IsAuthenticated, TaskAccessPermission]
    pagination_class = EnvelopePagination
    pagination_results_key = "tasks"
    filterset_class = TaskFilter
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return Task.objects.select_related("assigned_to", "created_by").prefetch_related(
            "subtasks", "comments__user"
        )

    def get_object(self):
        try:
            task = self.get_queryset().get(pk=self.kwargs["pk"])
        except Task.DoesNotExist as exc:
            msg = "Task not found"
            raise NotFound(msg) from exc
        self.check_object_permissions(self.request, task)
        return task

    def _reload(self, task: Task) -> Task:
        return self.get_queryset().get(pk=task.pk)

    def list(self, request):
        query = TaskListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        sort = query.validated_data["sort"]

        qs = self.filter_queryset(
            visible_tasks(request.user)
            .select_related("assigned_to", "created_by")
            .prefetch_related("subtasks", "comments__user")
        )
        if sort.lstrip("-") == "priority":
            qs = qs.annotate(priority_rank=PRIORITY_RANK)
            sort = sort.replace("priority", "priority_rank")
        qs = qs.order_by(sort, "-id")

        page = self.paginate_queryset(qs)
        return self.get_paginated_response(self.get_serializer(page, many=True).data)

    def create(self, request):
        serializer = TaskWriteSerializer(
            data=normalize_payload(request.data, TASK_ALIASES)
        )
        serializer.is_valid(raise_exception=True)
        task = serializer.save(created_by=request.user)
        task = self._reload(task)

        transaction.on_commit(lambda: publish_task_created(task))
        if task.assigned_to_id is not None:
            assignee_id = task.assigned_to_id
            transaction.on_commit(lambda: publish_task_assigned(task, assignee_id))

        return envelope(
            {"task": TaskSerializer(task).data},
            message="Task created successfully",
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, pk=None):
        return envelope({"task": self.get_serializer(self.get_object()).data})

    def update(self, request, pk=None):
        task = self.get_object()
        previous_assignee = task.assigned_to_id
        serializer = TaskWriteSerializer(
            task, data=normalize_payload(request.data, TASK_ALIASES), partial=True
        )
        serializer.is_valid(raise_exception=True)
        task = self._reload(serializer.save())

        transaction.on_commit(lambda: publish_task_updated(task))
        new_assignee = task.assigned_to_id
        if new_assignee is not None and new_assignee != previous_assignee:
            transaction.on_commit(lambda: publish_task_assigned(task, new_assignee))

        return envelope(
            {"task": TaskSerializer(task).data},
            message="Task updated successfully",
        )

    def destroy(self, request, pk=None):
        task = self.get_object()
        task_id = task.pk
        task.delete()
        transaction.on_commit(lambda: publish_task_deleted(task_id))
        return envelope(message="Task deleted successfully")

    @action(detail=True, methods=["post"])
    def comments(self, request, pk=None):
        task = self.get_object()
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = Comment.objects.create(
            task=task, user=request.user, text=serializer.validated_data["text"]
        )
        task.touch()
        transaction.on_commit(lambda: publish_comment_added(comment))
        return envelope(
            {"comment": CommentSerializer(comment).data},
            message="Comment added successfully",
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def subtasks(self, request, pk=None):
        task = self.get_object()
        serializer = SubtaskSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        subtask = serializer.save(task=task)
        task.touch()
        task = self._reload(task)
        transaction.on_commit(lambda: publish_task_updated(task))
        return envelope(
            {"subtask": SubtaskSerializer(subtask).data},
            message="Subtask added successfully",
            status=status.HTTP_201_CREATED,
        )

    @action(
        detail=True,
        methods=["put"],
        url_path=r"subtasks/(?P<subtask_id>\d+)",
    )
    def update_subtask(self, request, pk=None, subtask_id=None):
        task = self.get_object()
        try:
            subtask = task.subtasks.get(pk=subtask_id)
        except Subtask.DoesNotExist as exc:
            msg = "Subtask not found"
            raise NotFound(msg) from exc
        serializer = SubtaskSerializer(subtask, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        subtask = serializer.save()
        task.touch()
        task = self._reload(task)
        transaction.on_commit(lambda: publish_task_updated(task))
        return envelope(
            {"subtask": SubtaskSerializer(subtask).data},
            message="Subtask updated successfully",
        )

    @action(detail=False, methods=["get"])
    def stats(self, request):
        query = TaskStatsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return envelope(
            {
                "stats": task_stats(
                    request.user, timeframe_days=query.validated_data["timeframe"]
                )
            }
        )
