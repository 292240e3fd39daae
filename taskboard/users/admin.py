from django.contrib import admin

from taskboard.users import models


@admin.register(models.User)
class UserAdmin(admin.ModelAdmin):
    list_display = ["id", "email", "name", "role", "department", "is_active"]
    search_fields = ["email", "name", "department"]
    list_filter = ["role", "is_active", "teams"]
    filter_horizontal = ["teams"]
    exclude = ["password", "groups", "user_permissions"]


@admin.register(models.Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "created_at"]
    search_fields = ["name"]
