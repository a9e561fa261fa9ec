"""
Deadline reminders for open recommendation requests.

``process_reminders`` is run periodically (``POST /api/cron/reminders`` or
the ``send_recommendation_reminders`` management command). A request is due
when it is pending or sent, its deadline is still ahead, and its
``next_reminder_date`` has passed. Requests without a schedule get a single
reminder; once every interval is used up no further reminders go out.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from django.db.models import Q
from django.utils import timezone

from core.models import RecommendationRequest
from core.services import email

logger = logging.getLogger(__name__)

URGENCY_MESSAGES = {
    'critical': "URGENT: This recommendation is due TOMORROW! Please submit as soon as possible.",
    'high': "IMPORTANT: This recommendation is due in {days} days. Please prioritize this request.",
    'medium': "REMINDER: This recommendation is due in {days} days. Please plan to submit soon.",
    'low': "Friendly reminder: This recommendation is due in {days} days.",
}


def days_until(deadline: datetime, now: Optional[datetime] = None) -> int:
    now = now or timezone.now()
    return math.ceil((deadline - now).total_seconds() / 86400)


def urgency_for(days: int) -> str:
    if days <= 1:
        return 'critical'
    if days <= 3:
        return 'high'
    if days <= 7:
        return 'medium'
    return 'low'


def reminder_message(days: int) -> str:
    return URGENCY_MESSAGES[urgency_for(days)].format(days=days)


def next_reminder_date(deadline: datetime, days: int, intervals: Iterable[int]) -> Optional[datetime]:
    """First interval still ahead of us, in the order the student listed them."""
    for interval in intervals or []:
        if days > interval:
            return deadline - timedelta(days=interval)
    return None


def due_requests(now: datetime):
    return (RecommendationRequest.objects
            .select_related('recipient', 'student')
            .filter(status__in=RecommendationRequest.OPEN_STATUSES, deadline__gt=now)
            .filter(Q(next_reminder_date__lte=now)
                    | Q(next_reminder_date__isnull=True, last_reminder_sent__isnull=True))
            .order_by('deadline'))


def mark_overdue(now: datetime) -> int:
    return (RecommendationRequest.objects
            .filter(status__in=RecommendationRequest.OPEN_STATUSES, deadline__lte=now)
            .update(status=RecommendationRequest.STATUS_OVERDUE, updated_at=now))


def process_reminders(now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    summary: Dict[str, Any] = {'processed': 0, 'sent': 0, 'errors': 0, 'overdue': 0, 'details': []}

    for req in due_requests(now):
        summary['processed'] += 1
        days = days_until(req.deadline, now)
        urgency = urgency_for(days)
        detail = {
            'requestId': req.id,
            'recipientEmail': req.recipient.primary_email,
            'daysUntilDeadline': days,
            'urgency': urgency,
        }
        if email.send_reminder(req, days, urgency, reminder_message(days)):
            req.last_reminder_sent = now
            req.next_reminder_date = next_reminder_date(req.deadline, days, req.reminder_intervals)
            req.save(update_fields=['last_reminder_sent', 'next_reminder_date', 'updated_at'])
            summary['sent'] += 1
            detail['status'] = 'sent'
        else:
            summary['errors'] += 1
            detail['status'] = 'error'
        summary['details'].append(detail)

    summary['overdue'] = mark_overdue(now)
    logger.info("Reminder run: processed=%s sent=%s errors=%s overdue=%s",
                summary['processed'], summary['sent'], summary['errors'], summary['overdue'])
    return summary
