from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from taskboard.tasks.api.views import TaskViewSet
from taskboard.users.api.views import AuthViewSet
from taskboard.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()
# The constructor only takes a flag; clients call both `/api/tasks` and `/api/tasks/`.
router.trailing_slash = "/?"

router.register("auth", AuthViewSet, basename="auth")
router.register("tasks", TaskViewSet, basename="task")
router.register("users", UserViewSet, basename="user")


app_name = "api"
urlpatterns = router.urls
