"""
In-app notifications for students: letters received, application decisions
and squad activity. Expired notifications are hidden from every listing.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db.models import Q
from django.utils import timezone

from core.exceptions import NotFound
from core.models import Notification, User

logger = logging.getLogger(__name__)


def notify(user: User, type: str, title: str, message: str, *, priority: str = 'medium',
           content: Optional[Dict[str, Any]] = None, expires_at=None) -> Notification:
    item = Notification.objects.create(
        user=user, type=type, title=title[:200], message=message[:1000], priority=priority,
        content=content or {}, expires_at=expires_at,
    )
    logger.debug("notification %s (%s) for user %s", item.id, type, user.id)
    return item


def visible(user: User):
    now = timezone.now()
    return Notification.objects.filter(user=user).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


def filter_notifications(user: User, params):
    qs = visible(user)
    if params.get('unread') in ('true', '1'):
        qs = qs.filter(is_read=False)
    if params.get('type') and params['type'] != 'all':
        qs = qs.filter(type=params['type'])
    return qs.order_by('-created_at', '-id')


def unread_count(user: User) -> int:
    return visible(user).filter(is_read=False).count()


def get_notification(user: User, pk: int) -> Notification:
    item = visible(user).filter(pk=pk).first()
    if not item:
        raise NotFound('Notification not found')
    return item


def mark_read(item: Notification) -> Notification:
    if not item.is_read:
        item.is_read = True
        item.read_at = timezone.now()
        item.save(update_fields=['is_read', 'read_at', 'updated_at'])
    return item


def mark_all_read(user: User) -> int:
    now = timezone.now()
    return visible(user).filter(is_read=False).update(is_read=True, read_at=now, updated_at=now)
