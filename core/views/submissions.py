"""
Application submissions. Students fill in and submit published templates;
admins review them.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.models import ApplicationSubmission
from core.pagination import page_meta, page_params, paginate
from core.permissions import IsAdminRole
from core.serializers.applications import (
    SubmissionReviewSerializer, SubmissionSerializer, SubmissionUpdateSerializer,
)
from core.services import submissions as svc


def _iso(dt):
    return dt.isoformat() if dt else None


def serialize_submission(sub: ApplicationSubmission, include_answers: bool = True) -> dict:
    data = {
        'id': sub.id,
        'userId': sub.user_id,
        'template': {
            'id': sub.template.id,
            'title': sub.template.title,
            'version': sub.template.version,
            'estimatedTime': sub.template.estimated_time,
            'submissionDeadline': _iso(sub.template.submission_deadline),
        },
        'scholarship': {
            'id': sub.scholarship.id,
            'title': sub.scholarship.title,
            'value': float(sub.scholarship.value),
            'currency': sub.scholarship.currency,
            'deadline': sub.scholarship.deadline,
        },
        'status': sub.status,
        'progress': sub.progress,
        'requirementsProgress': svc.requirements_progress(sub.template, sub.answers or {}),
        'currentSectionId': sub.current_section_id or None,
        'notes': sub.notes,
        'templateVersion': sub.template_version,
        'startedAt': _iso(sub.started_at),
        'lastActivityAt': _iso(sub.last_activity_at),
        'submittedAt': _iso(sub.submitted_at),
        'decidedAt': _iso(sub.decided_at),
        'createdAt': _iso(sub.created_at),
        'updatedAt': _iso(sub.updated_at),
    }
    if include_answers:
        data['answers'] = sub.answers
    return data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def applications_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=20)
        items, total = paginate(svc.filter_submissions(request.query_params, user=request.user), page, limit)
        return Response({
            'applications': [serialize_submission(s, include_answers=False) for s in items],
            'pagination': page_meta(page, limit, total),
        })
    s = SubmissionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    sub = svc.start_submission(request.user, s.validated_data)
    return Response({'application': serialize_submission(sub)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def application_detail(request, pk: int):
    sub = svc.get_submission(request.user, pk)
    if request.method == 'GET':
        return Response({'application': serialize_submission(sub)})
    if request.method == 'PATCH':
        s = SubmissionUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        sub = svc.save_answers(sub, request.user, s.validated_data)
        return Response({'application': serialize_submission(sub)})
    sub = svc.withdraw(sub, request.user)
    return Response({'message': 'Application withdrawn', 'application': serialize_submission(sub)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def application_submit(request, pk: int):
    sub = svc.submit(svc.get_submission(request.user, pk), request.user)
    return Response({'message': 'Application submitted', 'application': serialize_submission(sub)})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def application_status(request, pk: int):
    sub = svc.get_submission(request.user, pk)
    if request.method == 'PATCH':
        s = SubmissionReviewSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        sub = svc.review(sub, request.user, s.validated_data['status'], s.validated_data.get('note', ''))
    return Response({'success': True, 'submissionStatus': svc.submission_status(sub)})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_applications(request):
    page, limit = page_params(request.query_params, default_limit=20)
    items, total = paginate(svc.filter_submissions(request.query_params), page, limit)
    return Response({
        'applications': [serialize_submission(s, include_answers=False) for s in items],
        'pagination': page_meta(page, limit, total),
    })
