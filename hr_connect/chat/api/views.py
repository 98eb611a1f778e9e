"""REST side of chat: history, conversations, sending and group management.

Sends and read receipts go through the same delivery pipeline as the socket
events, so REST clients trigger the same broadcasts and pushes.
"""

from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import exceptions
from rest_framework import mixins
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet
from rest_framework.viewsets import ViewSet

from hr_connect.chat import services
from hr_connect.chat.models import ChatGroup
from hr_connect.chat.store import MessageStore
from hr_connect.realtime import errors
from hr_connect.realtime.events import protocol
from hr_connect.realtime.events.chat import build_message_payload
from hr_connect.users.api.permissions import is_admin
from hr_connect.users.models import User

from .serializers import AddMembersSerializer
from .serializers import ChatGroupSerializer
from .serializers import ConversationSerializer
from .serializers import DepartmentGroupCreateSerializer
from .serializers import HistoryQuerySerializer
from .serializers import MarkReadSerializer

logger = logging.getLogger(__name__)


class ServiceUnavailable(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Failed to send message"
    default_code = "persistence_error"


_API_ERRORS = {
    errors.ValidationError: exceptions.ValidationError,
    errors.NotFoundError: exceptions.NotFound,
    errors.AuthorizationError: exceptions.PermissionDenied,
    errors.PersistenceError: ServiceUnavailable,
}


def _as_api_error(exc: errors.RealtimeError) -> exceptions.APIException:
    for error_type, api_error in _API_ERRORS.items():
        if isinstance(exc, error_type):
            return api_error(exc.message)
    return exceptions.APIException(exc.message)


def _pipeline():
    from hr_connect.realtime.socketio import pipeline  # noqa: PLC0415

    return pipeline


@extend_schema(tags=["Chat"])
class MessageViewSet(ViewSet):
    permission_classes = [IsAuthenticated]
    store = MessageStore()

    @extend_schema(parameters=[HistoryQuerySerializer])
    @action(detail=False, methods=["get"])
    def history(self, request):
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        group_id = params.get("group_id")
        if group_id is not None:
            group = get_object_or_404(ChatGroup, pk=group_id, is_active=True)
            if not group.is_member(request.user):
                msg = "You are not a member of this group."
                raise exceptions.PermissionDenied(msg)

        messages = self.store.history(
            request.user.id,
            recipient_id=params.get("recipient_id"),
            group_id=group_id,
            limit=params["limit"],
            skip=params["skip"],
        )
        return Response(
            [build_message_payload(m, m.sender.display_name) for m in messages]
        )

    @extend_schema(responses={200: ConversationSerializer(many=True)})
    @action(detail=False, methods=["get"])
    def conversations(self, request):
        summaries = self.store.conversations(request.user.id)
        names = {
            u.id: u.display_name
            for u in User.objects.filter(pk__in=[s.counterpart_id for s in summaries])
        }
        rows = [
            {
                "counterpart_id": s.counterpart_id,
                "user_name": names.get(s.counterpart_id, ""),
                "last_message": s.last_message,
                "last_message_time": s.last_message_time,
                "unread_count": s.unread_count,
            }
            for s in summaries
            if s.counterpart_id in names
        ]
        return Response(ConversationSerializer(rows, many=True).data)

    @extend_schema(request=protocol.SendMessageSerializer)
    def create(self, request):
        serializer = protocol.SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        claimed = data.pop("sender_id", None)
        if claimed is not None and claimed != request.user.id:
            msg = "senderId does not match the authenticated user."
            raise exceptions.ValidationError(msg)

        command = protocol.SendMessage(sender_id=request.user.id, **data)
        try:
            delivery = async_to_sync(_pipeline().send_message)(command)
        except errors.RealtimeError as exc:
            raise _as_api_error(exc) from exc
        return Response(delivery.payload, status=status.HTTP_201_CREATED)

    @extend_schema(request=MarkReadSerializer)
    @action(detail=False, methods=["post"], url_path="mark-read")
    def mark_read(self, request):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chat_id = serializer.validated_data["chat_id"]
        is_group = serializer.validated_data["is_group"]
        try:
            changes = async_to_sync(_pipeline().mark_conversation_read)(
                request.user.id,
                counterpart_id=None if is_group else chat_id,
                group_id=chat_id if is_group else None,
            )
        except errors.RealtimeError as exc:
            raise _as_api_error(exc) from exc
        return Response({"updated": len(changes)})


@extend_schema_view(
    list=extend_schema(tags=["Chat Groups"]),
    retrieve=extend_schema(tags=["Chat Groups"]),
    create=extend_schema(tags=["Chat Groups"]),
    destroy=extend_schema(tags=["Chat Groups"]),
)
class ChatGroupViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    GenericViewSet,
):
    """Chat groups the user belongs to.

    Creators and group admins manage a group; site admins may delete any.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ChatGroupSerializer
    pagination_class = None

    def get_queryset(self):
        qs = ChatGroup.objects.filter(is_active=True).prefetch_related(
            "members", "admins"
        )
        if self.action == "list":
            return qs.filter(members=self.request.user).order_by("name")
        return qs

    def get_object(self):
        group = super().get_object()
        if self.action == "retrieve" and not group.is_member(self.request.user):
            msg = "You are not a member of this group."
            raise exceptions.PermissionDenied(msg)
        return group

    def _require_manager(self, group: ChatGroup) -> None:
        user = self.request.user
        if group.created_by_id == user.id or group.is_admin(user) or is_admin(user):
            return
        msg = "Only the group creator or an admin can do this."
        raise exceptions.PermissionDenied(msg)

    def perform_create(self, serializer):
        user = self.request.user
        members = {u.pk for u in serializer.validated_data.pop("members", [])}
        with transaction.atomic():
            group = serializer.save(created_by=user, type=ChatGroup.Type.CUSTOM)
            group.admins.add(user)
            services.add_members(group, members | {user.pk})
        logger.info("User %s created chat group %s", user.id, group.id)

    def perform_destroy(self, instance):
        self._require_manager(instance)
        logger.info("User %s deleted chat group %s", self.request.user.id, instance.id)
        instance.delete()

    @extend_schema(
        request=AddMembersSerializer,
        responses={200: ChatGroupSerializer},
        tags=["Chat Groups"],
    )
    @action(detail=True, methods=["post"], url_path="add-members")
    def add_members(self, request, pk=None):
        group = self.get_object()
        if group.created_by_id != request.user.id and not group.is_admin(request.user):
            msg = "Only group admins can add members."
            raise exceptions.PermissionDenied(msg)
        serializer = AddMembersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user_ids = [u.pk for u in serializer.validated_data["user_ids"]]
        services.add_members(group, user_ids)
        group.refresh_from_db()
        return Response(ChatGroupSerializer(group).data)

    @extend_schema(request=None, responses={204: None}, tags=["Chat Groups"])
    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<user_id>\d+)",
    )
    def remove_member(self, request, pk=None, user_id=None):
        group = self.get_object()
        if group.created_by_id != request.user.id:
            msg = "Only the group creator can remove members."
            raise exceptions.PermissionDenied(msg)
        if int(user_id) == group.created_by_id:
            msg = "The creator cannot be removed from the group."
            raise exceptions.ValidationError(msg)
        if not services.remove_member(group, int(user_id)):
            msg = "User is not a member of this group."
            raise exceptions.NotFound(msg)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses={204: None}, tags=["Chat Groups"])
    @action(detail=True, methods=["delete"], url_path="messages")
    def purge_messages(self, request, pk=None):
        group = self.get_object()
        self._require_manager(group)
        MessageStore().purge_group(group.id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={200: ChatGroupSerializer}, tags=["Chat Groups"])
    @action(detail=False, methods=["get"])
    def department(self, request):
        department = request.user.department
        if department is None:
            msg = "You are not assigned to a department."
            raise exceptions.NotFound(msg)
        group = services.ensure_department_group(department)
        return Response(ChatGroupSerializer(group).data)

    @extend_schema(responses={200: ChatGroupSerializer(many=True)}, tags=["Chat Groups"])
    @action(detail=False, methods=["get"])
    def departments(self, request):
        """Every department group for admins; the caller's own otherwise."""

        qs = ChatGroup.objects.filter(type=ChatGroup.Type.DEPARTMENT).prefetch_related(
            "members", "admins"
        )
        if not is_admin(request.user):
            if request.user.department_id is None:
                msg = "You are not assigned to a department."
                raise exceptions.ValidationError(msg)
            qs = qs.filter(department_id=request.user.department_id)
        groups = qs.order_by("department__name", "-created_at")
        return Response(ChatGroupSerializer(groups, many=True).data)

    @extend_schema(
        request=DepartmentGroupCreateSerializer,
        responses={201: ChatGroupSerializer},
        tags=["Chat Groups"],
    )
    @departments.mapping.post
    def create_department_group(self, request):
        if not is_admin(request.user):
            msg = "Only administrators can create department groups."
            raise exceptions.PermissionDenied(msg)
        serializer = DepartmentGroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            group = services.create_department_group(
                data["department"],
                request.user,
                name=data.get("name", ""),
                description=data.get("description", ""),
            )
        except DjangoValidationError as exc:
            raise exceptions.ValidationError({"detail": exc.messages}) from exc
        return Response(ChatGroupSerializer(group).data, status=status.HTTP_201_CREATED)
