"""
Recommendation requests, recipients and the token-based recipient portal.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from core.exceptions import Conflict, InvalidInput, NotFound
from core.models import (
    Recipient,
    RecommendationLetter,
    RecommendationRequest,
    Scholarship,
    User,
)
from core.services import email, notifications
from core.services.audit import log_action

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------
def _shared_email_recipient(user: User, emails: list, exclude_id: Optional[int] = None) -> Optional[Recipient]:
    qs = Recipient.objects.filter(created_by=user)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    wanted = set(emails)
    for r in qs:
        if wanted.intersection(r.emails):
            return r
    return None


def create_recipient(user: User, data: Dict[str, Any]) -> Recipient:
    existing = _shared_email_recipient(user, data['emails'])
    if existing:
        raise Conflict('A recipient with one of these emails already exists', recipientId=existing.id)
    return Recipient.objects.create(
        created_by=user,
        emails=data['emails'],
        name=data['name'].strip(),
        title=data['title'].strip(),
        institution=data['institution'].strip(),
        department=data.get('department', ''),
        phone_number=data.get('phoneNumber', ''),
        office_address=data.get('officeAddress', ''),
        prefers_drafts=data.get('prefersDrafts', False),
        preferred_communication_method=data.get('preferredCommunicationMethod', 'email'),
    )


def update_recipient(recipient: Recipient, data: Dict[str, Any]) -> Recipient:
    if 'emails' in data:
        if _shared_email_recipient(recipient.created_by, data['emails'], exclude_id=recipient.id):
            raise Conflict('A recipient with one of these emails already exists')
        recipient.emails = data['emails']
    mapping = {
        'name': 'name', 'title': 'title', 'institution': 'institution', 'department': 'department',
        'phoneNumber': 'phone_number', 'officeAddress': 'office_address', 'prefersDrafts': 'prefers_drafts',
        'preferredCommunicationMethod': 'preferred_communication_method',
    }
    for key, attr in mapping.items():
        if key in data:
            setattr(recipient, attr, data[key])
    recipient.save()
    return recipient


def delete_recipient(recipient: Recipient) -> None:
    if recipient.requests.filter(status__in=RecommendationRequest.OPEN_STATUSES).exists():
        raise InvalidInput('Recipient has open recommendation requests')
    recipient.delete()


# ---------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------
def create_request(student: User, data: Dict[str, Any]) -> Tuple[RecommendationRequest, bool]:
    """Create a request and email the recipient.

    Returns ``(request, email_sent)``. A failed email leaves the request
    ``pending`` so the reminder job can pick it up later.
    """
    recipient = Recipient.objects.filter(pk=data['recipientId'], created_by=student).first()
    if not recipient:
        raise NotFound('Recipient not found')
    scholarship = None
    if data.get('scholarshipId'):
        scholarship = Scholarship.objects.filter(pk=data['scholarshipId']).first()
        if not scholarship:
            raise NotFound('Scholarship not found')

    with transaction.atomic():
        req = RecommendationRequest(
            student=student,
            recipient=recipient,
            scholarship=scholarship,
            application_ref=data.get('applicationId') or '',
            title=data['title'].strip(),
            description=data['description'].strip(),
            deadline=data['deadline'],
            priority=data.get('priority', 'medium'),
            include_draft=data.get('includeDraft', False),
            draft_content=data.get('draftContent', ''),
            reminder_frequency=data.get('reminderFrequency', 'custom'),
            request_type=data.get('requestType', 'standard'),
            submission_method=data.get('submissionMethod', 'platform_only'),
            communication_style=data.get('communicationStyle', 'polite'),
            relationship_context=data['relationshipContext'].strip(),
            additional_context=data.get('additionalContext', ''),
            institution_name=data.get('institutionName', ''),
            school_email=data.get('schoolEmail', ''),
            school_instructions=data.get('schoolInstructions', ''),
        )
        if 'reminderIntervals' in data:
            req.reminder_intervals = data['reminderIntervals']
        req.save()
        log_action(user=student, action='recommendation_create', object_type='recommendation_request',
                   object_id=req.id, detail={'recipientId': recipient.id})

    sent = email.send_recommendation_request(req)
    if sent:
        req.status = RecommendationRequest.STATUS_SENT
        req.sent_at = timezone.now()
        req.save(update_fields=['status', 'sent_at', 'updated_at'])
    else:
        logger.warning("Recommendation request %s created but email to %s failed", req.id, recipient.primary_email)
    return req, sent


def update_request(req: RecommendationRequest, data: Dict[str, Any]) -> RecommendationRequest:
    if req.status != RecommendationRequest.STATUS_PENDING:
        raise InvalidInput('Only pending requests can be edited')
    mapping = {
        'title': 'title', 'description': 'description', 'deadline': 'deadline', 'priority': 'priority',
        'reminderIntervals': 'reminder_intervals', 'includeDraft': 'include_draft',
        'draftContent': 'draft_content', 'relationshipContext': 'relationship_context',
        'additionalContext': 'additional_context',
    }
    for key, attr in mapping.items():
        if key in data:
            setattr(req, attr, data[key])
    if 'reminderIntervals' in data or 'deadline' in data:
        req.next_reminder_date = req.first_reminder_date()
    req.save()
    return req


def cancel_request(req: RecommendationRequest, user: User) -> RecommendationRequest:
    if req.status == RecommendationRequest.STATUS_RECEIVED:
        raise InvalidInput('Cannot cancel a request whose letter was already received')
    req.status = RecommendationRequest.STATUS_CANCELLED
    req.save()
    log_action(user=user, action='recommendation_cancel', object_type='recommendation_request', object_id=req.id)
    return req


def latest_letter(req: RecommendationRequest) -> Optional[RecommendationLetter]:
    return req.letters.order_by('-version').first()


# ---------------------------------------------------------------------
# Recipient portal
# ---------------------------------------------------------------------
def get_request_by_token(token: str) -> RecommendationRequest:
    req = (RecommendationRequest.objects
           .select_related('student', 'recipient')
           .filter(secure_token=token, token_expires_at__gt=timezone.now())
           .first())
    if not req:
        raise NotFound('Invalid or expired token')
    if req.status == RecommendationRequest.STATUS_CANCELLED:
        raise InvalidInput('This recommendation request has been cancelled')
    return req


def submit_letter(token: str, data: Dict[str, Any]) -> RecommendationLetter:
    req = get_request_by_token(token)
    now = timezone.now()
    with transaction.atomic():
        letter = RecommendationLetter.objects.create(
            request=req,
            recipient=req.recipient,
            content=(data.get('content') or '').strip(),
            file_url=data.get('fileUrl', ''),
            file_name=data.get('fileName', ''),
            file_type=data.get('fileType', ''),
            file_size=data.get('fileSize'),
            submitted_at=now,
            submitted_by=req.recipient.primary_email,
            is_verified=True,
            verified_at=now,
            verification_method='email',
        )
        req.status = RecommendationRequest.STATUS_RECEIVED
        req.received_at = now
        req.save(update_fields=['status', 'received_at', 'updated_at'])
        log_action(user=None, action='recommendation_letter_submit', object_type='recommendation_request',
                   object_id=req.id, detail={'letterId': letter.id, 'version': letter.version})
        notifications.notify(
            req.student, 'letter_received', 'Recommendation letter received',
            f'{req.recipient.name} submitted their letter for "{req.title}".',
            priority='high', content={'requestId': req.id, 'actionUrl': f'/recommendations/{req.id}'},
        )
    email.send_letter_received(letter)
    return letter
