from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import ListModelMixin
from rest_framework.mixins import RetrieveModelMixin
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from hr_connect.users.models import User

from .permissions import ROLE_ADMIN
from .permissions import ROLE_MANAGER
from .permissions import is_staff_or_role
from .serializers import PushTokenSerializer
from .serializers import UserSerializer


@extend_schema_view(
    list=extend_schema(tags=["Users"]),
    retrieve=extend_schema(tags=["Users"]),
)
class UserViewSet(RetrieveModelMixin, ListModelMixin, GenericViewSet):
    serializer_class = UserSerializer
    queryset = User.objects.all()
    # Chat pickers need the full directory as a plain list.
    pagination_class = None

    def get_queryset(self, *args, **kwargs):  # type: ignore[override]
        user = self.request.user
        if not getattr(user, "is_authenticated", False):  # pragma: no cover - safety
            return User.objects.none()
        qs = User.objects.filter(is_active=True).order_by("first_name", "last_name")
        if is_staff_or_role(user, [ROLE_ADMIN, ROLE_MANAGER]):
            return User.objects.all().order_by("first_name", "last_name")
        return qs

    @action(detail=False)
    def me(self, request):
        serializer = UserSerializer(request.user, context={"request": request})
        return Response(status=status.HTTP_200_OK, data=serializer.data)

    @extend_schema(request=PushTokenSerializer, responses={204: None}, tags=["Users"])
    @action(detail=False, methods=["post"], url_path="push-token")
    def push_token(self, request):
        serializer = PushTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        request.user.push_token = serializer.validated_data["push_token"]
        request.user.save(update_fields=["push_token", "updated_at"])
        return Response(status=status.HTTP_204_NO_CONTENT)
