from django.contrib import admin

from taskboard.tasks import models


class CommentInline(admin.TabularInline):
    model = models.Comment
    extra = 0


class SubtaskInline(admin.TabularInline):
    model = models.Subtask
    extra = 0


@admin.register(models.Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "title",
        "status",
        "priority",
        "category",
        "assigned_to",
        "created_by",
        "due_date",
        "is_archived",
    ]
    list_filter = ["status", "priority", "category", "is_archived"]
    search_fields = ["title", "description"]
    raw_id_fields = ["assigned_to", "created_by"]
    inlines = [SubtaskInline, CommentInline]
