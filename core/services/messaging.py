"""
Admin-to-admin messaging.

Every message has one sender and one or more recipients (plus optional cc).
A reply joins the thread of the message it answers; root messages start a
thread keyed by their own id. New messages are pushed to each recipient's
``messages.{userId}`` Channels group.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import bleach
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import Forbidden, InvalidInput, NotFound
from core.models import Message, User
from core.pagination import truthy
from core.permissions import ADMIN_ROLES
from core.services.audit import log_action

logger = logging.getLogger(__name__)


def inbox_group(user_id: int) -> str:
    return f"messages.{user_id}"


def visible_to(user: User):
    return (
        Message.objects.filter(Q(sender=user) | Q(recipients=user) | Q(cc_recipients=user))
        .distinct()
        .select_related('sender')
        .prefetch_related('recipients', 'cc_recipients')
    )


def filter_messages(user: User, params):
    qs = visible_to(user)
    if params.get('type') and params['type'] != 'all':
        qs = qs.filter(message_type=params['type'])
    if params.get('priority') and params['priority'] != 'all':
        qs = qs.filter(priority=params['priority'])
    if params.get('category'):
        qs = qs.filter(category=params['category'])
    if params.get('isRead') not in (None, ''):
        qs = qs.filter(is_read=truthy(params['isRead']))
    qs = qs.filter(is_archived=truthy(params.get('isArchived', 'false')))
    return qs.order_by('-is_pinned', '-created_at')


def _users(ids: Iterable[int], label: str) -> List[User]:
    ids = list(dict.fromkeys(ids))
    users = list(User.objects.filter(pk__in=ids))
    if len(users) != len(ids):
        missing = sorted(set(ids) - {u.id for u in users})
        raise InvalidInput(f'Some {label} not found', missing=missing)
    return users


def _notify(message: Message, user_ids: Iterable[int]) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    payload = {
        "type": "inbox.message",
        "messageId": message.id,
        "threadId": message.thread_id,
        "subject": message.subject,
        "preview": message.preview,
        "senderId": message.sender_id,
        "priority": message.priority,
        "createdAt": message.created_at.isoformat(),
    }
    for uid in user_ids:
        async_to_sync(channel_layer.group_send)(inbox_group(uid), payload)


def send_message(sender: User, data: Dict[str, Any]) -> Message:
    recipients = _users(data['recipients'], 'recipients')
    cc = _users(data.get('ccRecipients', []), 'cc recipients')
    parent: Optional[Message] = None
    if data.get('parentMessageId'):
        parent = visible_to(sender).filter(pk=data['parentMessageId']).first()
        if not parent:
            raise NotFound('Parent message not found')

    with transaction.atomic():
        message = Message.objects.create(
            subject=data['subject'].strip(),
            content=bleach.clean(data['content'].strip(), strip=True),
            message_type=data.get('messageType', 'general'),
            sender=sender,
            priority=data.get('priority', 'medium'),
            category=data.get('category', ''),
            tags=data.get('tags', []),
            attachments=data.get('attachments', []),
            parent_message=parent,
            thread_id=(parent.thread_id or str(parent.id)) if parent else '',
        )
        if not message.thread_id:
            message.thread_id = str(message.id)
            message.save(update_fields=['thread_id'])
        message.recipients.set(recipients)
        message.cc_recipients.set(cc)
        log_action(user=sender, action='message_send', object_type='message', object_id=message.id,
                   detail={'recipients': [u.id for u in recipients]})

    _notify(message, {u.id for u in recipients + cc} - {sender.id})
    logger.info("message %s sent by %s to %d recipients", message.id, sender.id, len(recipients))
    return message


def get_message(user: User, pk: int) -> Message:
    message = Message.objects.select_related('sender').prefetch_related('recipients', 'cc_recipients').filter(pk=pk).first()
    if not message:
        raise NotFound('Message not found')
    if not is_participant(message, user):
        raise Forbidden('Access denied')
    return message


def is_participant(message: Message, user: User) -> bool:
    if message.sender_id == user.id:
        return True
    return any(u.id == user.id for u in message.recipients.all()) or any(
        u.id == user.id for u in message.cc_recipients.all()
    )


def is_recipient(message: Message, user: User) -> bool:
    return any(u.id == user.id for u in message.recipients.all())


def mark_read(message: Message) -> Message:
    if not message.is_read:
        message.is_read = True
        message.read_at = timezone.now()
        message.save(update_fields=['is_read', 'read_at', 'updated_at'])
    return message


def update_flags(message: Message, data: Dict[str, Any]) -> Message:
    now = timezone.now()
    if 'isRead' in data:
        message.is_read = data['isRead']
        message.read_at = now if data['isRead'] else None
    if 'isArchived' in data:
        message.is_archived = data['isArchived']
        message.archived_at = now if data['isArchived'] else None
    if 'isPinned' in data:
        message.is_pinned = data['isPinned']
    message.save()
    return message


def delete_message(message: Message, user: User) -> None:
    if message.sender_id != user.id:
        raise Forbidden('Only the sender can delete a message')
    log_action(user=user, action='message_delete', object_type='message', object_id=message.id)
    message.delete()


def messageable_admins(user: User):
    return User.objects.filter(role__in=ADMIN_ROLES, is_active=True).exclude(pk=user.pk).order_by('first_name', 'last_name')
