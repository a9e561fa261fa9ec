"""
Application templates and the form builder endpoints.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import Forbidden
from core.models import ApplicationTemplate
from core.pagination import page_meta, page_params, paginate
from core.permissions import IsAdminRole, is_admin
from core.serializers.templates import AutosaveSerializer, BuilderOperationSerializer, TemplateSerializer
from core.services import form_builder
from core.services import templates as svc


def _require_admin(user) -> None:
    if not is_admin(user):
        raise Forbidden('Admin access required')


def serialize_template(t: ApplicationTemplate, include_sections: bool = True) -> dict:
    data = {
        'id': t.id,
        'scholarshipId': t.scholarship_id,
        'scholarship': {'id': t.scholarship.id, 'title': t.scholarship.title, 'provider': t.scholarship.provider},
        'title': t.title,
        'description': t.description,
        'version': t.version,
        'isActive': t.is_active,
        'estimatedTime': t.estimated_time,
        'instructions': t.instructions,
        'submissionDeadline': t.submission_deadline.isoformat() if t.submission_deadline else None,
        'allowDraftSaving': t.allow_draft_saving,
        'requireEmailVerification': t.require_email_verification,
        'requirePhoneVerification': t.require_phone_verification,
        'maxFileSize': t.max_file_size,
        'allowedFileTypes': t.allowed_file_types,
        'hasDraft': t.draft_sections is not None,
        'draftSavedAt': t.draft_saved_at.isoformat() if t.draft_saved_at else None,
        'createdBy': t.created_by_id,
        'lastModifiedBy': t.last_modified_by_id,
        'createdAt': t.created_at.isoformat() if t.created_at else None,
        'updatedAt': t.updated_at.isoformat() if t.updated_at else None,
    }
    if include_sections:
        data['sections'] = t.sections
        data['draftSections'] = t.draft_sections
    else:
        data['sectionCount'] = len(t.sections or [])
    return data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def templates_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=10)
        items, total = paginate(svc.filter_templates(request.query_params), page, limit)
        return Response({
            'templates': [serialize_template(t, include_sections=False) for t in items],
            'pagination': page_meta(page, limit, total),
        })
    _require_admin(request.user)
    s = TemplateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    template = svc.create_template(request.user, s.validated_data)
    return Response({'template': serialize_template(template)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def template_detail(request, pk: int):
    template = get_object_or_404(ApplicationTemplate.objects.select_related('scholarship'), pk=pk)
    if request.method == 'GET':
        return Response({'template': serialize_template(template)})
    _require_admin(request.user)
    if request.method == 'PUT':
        s = TemplateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        template = svc.update_template(template, request.user, s.validated_data)
        return Response({'template': serialize_template(template)})
    svc.delete_template(template, request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def template_autosave(request, pk: int):
    template = get_object_or_404(ApplicationTemplate, pk=pk)
    s = AutosaveSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    template = svc.autosave(template, request.user, s.validated_data['sections'])
    return Response({'ok': True, 'draftSavedAt': template.draft_saved_at.isoformat()})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def template_builder(request, pk: int):
    template = get_object_or_404(ApplicationTemplate, pk=pk)
    s = BuilderOperationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    args = dict(s.validated_data)
    op = args.pop('op')
    template = svc.apply_builder_operation(template, request.user, op, args)
    return Response({'sections': template.draft_sections, 'draftSavedAt': template.draft_saved_at.isoformat()})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def template_publish(request, pk: int):
    template = get_object_or_404(ApplicationTemplate.objects.select_related('scholarship'), pk=pk)
    template = svc.publish(template, request.user)
    return Response({'template': serialize_template(template)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def question_types(request):
    return Response({
        'questionTypes': [
            {'value': value, 'label': label, 'hasOptions': value in form_builder.OPTION_TYPES}
            for value, label in form_builder.QUESTION_TYPE_LABELS.items()
        ]
    })
