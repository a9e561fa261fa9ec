"""
Admin inbox: messages, conversations and the list of admins to write to.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.models import Message, User
from core.pagination import page_meta, page_params, paginate
from core.permissions import IsAdminRole
from core.serializers.messaging import MessageFlagsSerializer, MessageSerializer
from core.services import conversations
from core.services import messaging as svc


def _person(u: User) -> dict:
    return {'id': u.id, 'firstName': u.first_name, 'lastName': u.last_name, 'email': u.email}


def serialize_message(m: Message) -> dict:
    return {
        'id': m.id,
        'subject': m.subject,
        'content': m.content,
        'preview': m.preview,
        'messageType': m.message_type,
        'sender': _person(m.sender),
        'recipients': [_person(u) for u in m.recipients.all()],
        'ccRecipients': [_person(u) for u in m.cc_recipients.all()],
        'isRead': m.is_read,
        'isArchived': m.is_archived,
        'isPinned': m.is_pinned,
        'priority': m.priority,
        'category': m.category,
        'tags': m.tags,
        'attachments': m.attachments,
        'parentMessageId': m.parent_message_id,
        'threadId': m.thread_id,
        'readAt': m.read_at.isoformat() if m.read_at else None,
        'archivedAt': m.archived_at.isoformat() if m.archived_at else None,
        'createdAt': m.created_at.isoformat(),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def messages_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params)
        items, total = paginate(svc.filter_messages(request.user, request.query_params), page, limit)
        return Response({'messages': [serialize_message(m) for m in items], 'pagination': page_meta(page, limit, total)})
    s = MessageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    message = svc.send_message(request.user, s.validated_data)
    return Response({'message': serialize_message(message)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def message_detail(request, pk: int):
    message = svc.get_message(request.user, pk)
    if request.method == 'GET':
        if svc.is_recipient(message, request.user):
            svc.mark_read(message)
        return Response({'message': serialize_message(message)})
    if request.method == 'PATCH':
        s = MessageFlagsSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        return Response({'message': serialize_message(svc.update_flags(message, s.validated_data))})
    svc.delete_message(message, request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def conversations_list(request):
    items = conversations.list_conversations(request.user, request.query_params.get('search'))
    return Response({'conversations': items})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def conversation_detail(request, key: str):
    messages = conversations.conversation_messages(request.user, key)
    return Response({'conversationId': key, 'messages': [serialize_message(m) for m in messages]})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_users(request):
    users = svc.messageable_admins(request.user)
    return Response({'users': [dict(_person(u), role=u.role) for u in users]})
