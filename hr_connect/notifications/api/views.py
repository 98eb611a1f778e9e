from __future__ import annotations

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count
from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from hr_connect.notifications.models import Notification
from hr_connect.notifications.services import resolve_recipients
from hr_connect.notifications.services import send_notification
from hr_connect.users.api.permissions import IsAdmin
from hr_connect.users.api.permissions import IsManagerOrAdmin

from .filters import NotificationFilter
from .serializers import AdminNotificationListSerializer
from .serializers import NotificationCreateSerializer
from .serializers import NotificationSerializer
from .serializers import UnreadCountSerializer

ADMIN_INBOX_LIMIT = 100


@extend_schema_view(
    list=extend_schema(tags=["Notifications"]),
    retrieve=extend_schema(tags=["Notifications"]),
)
class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    GenericViewSet,
):
    """Notifications the user received or sent.

    - list / retrieve
    - send: create and deliver a notification (managers and admins)
    - read / mark-all-read / unread-count
    - admin: the admin inbox with unread counts per type

    Lists accept `?type=` and `?unread_only=true`.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = NotificationSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = NotificationFilter

    def get_queryset(self):
        user = self.request.user
        return (
            Notification.objects.filter(Q(target_users=user) | Q(sender=user))
            .distinct()
            .select_related("sender")
            .prefetch_related("read_by", "target_users")
            .order_by("-timestamp")
        )

    def get_permissions(self):
        if self.action == "send":
            return [IsAuthenticated(), IsManagerOrAdmin()]
        if self.action == "admin":
            return [IsAuthenticated(), IsAdmin()]
        return [p() for p in self.permission_classes]

    @extend_schema(
        request=NotificationCreateSerializer,
        responses={201: NotificationSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["post"])
    def send(self, request):
        serializer = NotificationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        recipient_ids = resolve_recipients(
            request.user,
            target_users=data.get("target_users"),
            target_department=data.get("target_department"),
            send_to_all=data["send_to_all"],
        )
        try:
            notification = send_notification(
                sender=request.user,
                title=data["title"],
                message=data["message"],
                recipient_ids=recipient_ids,
                notification_type=data["notification_type"],
                metadata=data["metadata"],
            )
        except DjangoValidationError as exc:
            raise ValidationError({"detail": exc.messages}) from exc

        out = NotificationSerializer(notification, context={"request": request}).data
        return Response(out, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={204: None}, tags=["Notifications"])
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        notification = self.get_object()
        try:
            notification.mark_read_by(request.user)
        except DjangoPermissionDenied as exc:
            raise PermissionDenied(str(exc)) from exc
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses={204: None}, tags=["Notifications"])
    @action(detail=False, methods=["post"], url_path="mark-all-read")
    def mark_all_read(self, request):
        unread = Notification.objects.filter(target_users=request.user).exclude(
            read_by=request.user
        )
        request.user.read_notifications.add(*unread)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={200: UnreadCountSerializer}, tags=["Notifications"])
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        count = (
            Notification.objects.filter(target_users=request.user)
            .exclude(read_by=request.user)
            .count()
        )
        return Response({"count": count})

    @extend_schema(
        responses={200: AdminNotificationListSerializer}, tags=["Notifications"]
    )
    @action(detail=False, methods=["get"])
    def admin(self, request):
        received = Notification.objects.filter(target_users=request.user)
        notifications = (
            self.filter_queryset(received)
            .select_related("sender")
            .prefetch_related("read_by", "target_users")
            .order_by("-timestamp")[:ADMIN_INBOX_LIMIT]
        )
        counts = (
            received.exclude(read_by=request.user)
            .values("notification_type")
            .annotate(count=Count("id"))
            .order_by()
        )
        results = NotificationSerializer(
            notifications, many=True, context={"request": request}
        ).data
        return Response(
            {
                "count": len(results),
                "results": results,
                "unread_counts_by_type": {
                    row["notification_type"]: row["count"] for row in counts
                },
            }
        )
