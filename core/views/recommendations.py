"""
Recommendation letter endpoints.

Students manage their recipients and requests; recipients reach the
login-free portal through the secure token emailed to them. Objects owned
by another student are reported as 404 so their ids stay hidden.
"""
from __future__ import annotations

from typing import Optional

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.models import Recipient, RecommendationLetter, RecommendationRequest
from core.serializers.recommendations import (
    LetterSubmitSerializer,
    RecipientSerializer,
    RequestCreateSerializer,
    RequestUpdateSerializer,
)
from core.services import recommendations as svc


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def serialize_recipient(r: Recipient) -> dict:
    return {
        'id': r.id,
        'emails': r.emails,
        'primaryEmail': r.primary_email,
        'name': r.name,
        'title': r.title,
        'institution': r.institution,
        'department': r.department,
        'phoneNumber': r.phone_number,
        'officeAddress': r.office_address,
        'prefersDrafts': r.prefers_drafts,
        'preferredCommunicationMethod': r.preferred_communication_method,
        'createdAt': _iso(r.created_at),
    }


def serialize_letter(letter: RecommendationLetter) -> dict:
    return {
        'id': letter.id,
        'content': letter.content,
        'fileName': letter.file_name,
        'fileUrl': letter.file_url,
        'fileType': letter.file_type,
        'fileSize': letter.file_size,
        'submittedAt': _iso(letter.submitted_at),
        'submittedBy': letter.submitted_by,
        'isVerified': letter.is_verified,
        'version': letter.version,
        'previousVersionId': letter.previous_version_id,
    }


def serialize_request(req: RecommendationRequest) -> dict:
    return {
        'id': req.id,
        'title': req.title,
        'description': req.description,
        'deadline': _iso(req.deadline),
        'daysUntilDeadline': req.days_until_deadline,
        'priority': req.priority,
        'status': req.status,
        'requestType': req.request_type,
        'submissionMethod': req.submission_method,
        'communicationStyle': req.communication_style,
        'relationshipContext': req.relationship_context,
        'additionalContext': req.additional_context,
        'institutionName': req.institution_name,
        'schoolEmail': req.school_email,
        'schoolInstructions': req.school_instructions,
        'includeDraft': req.include_draft,
        'draftContent': req.draft_content,
        'applicationId': req.application_ref or None,
        'scholarshipId': req.scholarship_id,
        'reminderIntervals': req.reminder_intervals,
        'reminderFrequency': req.reminder_frequency,
        'nextReminderDate': _iso(req.next_reminder_date),
        'lastReminderSent': _iso(req.last_reminder_sent),
        'sentAt': _iso(req.sent_at),
        'receivedAt': _iso(req.received_at),
        'createdAt': _iso(req.created_at),
        'updatedAt': _iso(req.updated_at),
        'recipient': serialize_recipient(req.recipient),
    }


# ---------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def recipients_list(request):
    if request.method == 'GET':
        qs = Recipient.objects.filter(created_by=request.user).order_by('name')
        return Response({'recipients': [serialize_recipient(r) for r in qs]})
    s = RecipientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    recipient = svc.create_recipient(request.user, s.validated_data)
    return Response({'recipient': serialize_recipient(recipient)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def recipient_detail(request, pk: int):
    recipient = get_object_or_404(Recipient, pk=pk, created_by=request.user)
    if request.method == 'GET':
        return Response({'recipient': serialize_recipient(recipient)})
    if request.method == 'PUT':
        s = RecipientSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        recipient = svc.update_recipient(recipient, s.validated_data)
        return Response({'recipient': serialize_recipient(recipient)})
    svc.delete_recipient(recipient)
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def requests_list(request):
    if request.method == 'GET':
        qs = RecommendationRequest.objects.filter(student=request.user).select_related('recipient')
        status_filter = request.query_params.get('status')
        if status_filter and status_filter != 'all':
            qs = qs.filter(status=status_filter)
        return Response({'requests': [serialize_request(r) for r in qs.order_by('-created_at')]})
    s = RequestCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req, sent = svc.create_request(request.user, s.validated_data)
    return Response(
        {'request': serialize_request(req), 'emailSent': sent},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def request_detail(request, pk: int):
    req = get_object_or_404(
        RecommendationRequest.objects.select_related('recipient'), pk=pk, student=request.user
    )
    if request.method == 'GET':
        payload = {'request': serialize_request(req)}
        if req.status == RecommendationRequest.STATUS_RECEIVED:
            letter = svc.latest_letter(req)
            payload['letter'] = serialize_letter(letter) if letter else None
        return Response(payload)
    if request.method == 'PUT':
        s = RequestUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        req = svc.update_request(req, s.validated_data)
        return Response({'request': serialize_request(req)})
    req = svc.cancel_request(req, request.user)
    return Response({'request': serialize_request(req)})


# ---------------------------------------------------------------------
# Recipient portal (token based, no login)
# ---------------------------------------------------------------------
def _portal_payload(req: RecommendationRequest) -> dict:
    letter = svc.latest_letter(req)
    return {
        'request': {
            'id': req.id,
            'title': req.title,
            'description': req.description,
            'deadline': _iso(req.deadline),
            'daysUntilDeadline': req.days_until_deadline,
            'status': req.status,
            'priority': req.priority,
            'relationshipContext': req.relationship_context,
            'additionalContext': req.additional_context,
            'communicationStyle': req.communication_style,
            'requestType': req.request_type,
            'submissionMethod': req.submission_method,
            'institutionName': req.institution_name,
            'schoolEmail': req.school_email,
            'schoolInstructions': req.school_instructions,
            'draftContent': req.draft_content if req.include_draft else None,
            'student': {
                'name': req.student.display_name(),
                'email': req.student.email,
            },
            'recipient': {
                'name': req.recipient.name,
                'title': req.recipient.title,
                'institution': req.recipient.institution,
            },
        },
        'letter': serialize_letter(letter) if letter else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def recipient_portal(request, token: str):
    if request.method == 'GET':
        req = svc.get_request_by_token(token)
        return Response(_portal_payload(req))
    s = LetterSubmitSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    letter = svc.submit_letter(token, s.validated_data)
    return Response(
        {'ok': True, 'message': 'Recommendation letter submitted successfully', 'letter': serialize_letter(letter)},
        status=status.HTTP_201_CREATED,
    )

# ScopedRateThrottle reads the scope from the view class
recipient_portal.cls.throttle_scope = 'recipient_portal'
