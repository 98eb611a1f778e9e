from django.conf import settings
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from hr_connect.chat.api.views import ChatGroupViewSet
from hr_connect.chat.api.views import MessageViewSet
from hr_connect.notifications.api.views import NotificationViewSet
from hr_connect.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("users", UserViewSet)
router.register("messages", MessageViewSet, basename="messages")
router.register("chat-groups", ChatGroupViewSet, basename="chat-groups")
router.register("notifications", NotificationViewSet, basename="notifications")


app_name = "api"
urlpatterns = router.urls
