"""
Application template lifecycle: create, edit, autosave, builder edits and publish.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from django.db.models import Q
from django.utils import timezone

from core.exceptions import InvalidInput, NotFound
from core.models import ApplicationTemplate, Scholarship, User
from core.pagination import id_param, truthy
from core.services import form_builder
from core.services.audit import log_action

logger = logging.getLogger(__name__)

FIELD_MAP = {
    'title': 'title',
    'description': 'description',
    'version': 'version',
    'isActive': 'is_active',
    'sections': 'sections',
    'estimatedTime': 'estimated_time',
    'instructions': 'instructions',
    'submissionDeadline': 'submission_deadline',
    'allowDraftSaving': 'allow_draft_saving',
    'requireEmailVerification': 'require_email_verification',
    'requirePhoneVerification': 'require_phone_verification',
    'maxFileSize': 'max_file_size',
    'allowedFileTypes': 'allowed_file_types',
}


def filter_templates(params):
    qs = ApplicationTemplate.objects.select_related('scholarship')
    scholarship_id = id_param(params, 'scholarshipId')
    if scholarship_id is not None:
        qs = qs.filter(scholarship_id=scholarship_id)
    if params.get('isActive') not in (None, ''):
        qs = qs.filter(is_active=truthy(params['isActive']))
    search = (params.get('search') or '').strip()
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))
    return qs.order_by('-created_at')


def _raise_if_invalid(title: str, sections) -> None:
    errors = form_builder.validate_template(title, sections)
    if errors:
        raise InvalidInput('Template validation failed', details=errors)


def create_template(user: User, data: Dict[str, Any]) -> ApplicationTemplate:
    scholarship = Scholarship.objects.filter(pk=data['scholarshipId']).first()
    if not scholarship:
        raise NotFound('Scholarship not found')
    sections = data.get('sections') or [form_builder.create_default_section(1)]
    _raise_if_invalid(data['title'], sections)
    template = ApplicationTemplate(scholarship=scholarship, created_by=user, last_modified_by=user)
    for key, attr in FIELD_MAP.items():
        if key in data:
            setattr(template, attr, data[key])
    template.sections = sections
    template.save()
    log_action(user=user, action='template_create', object_type='application_template', object_id=template.id)
    return template


def update_template(template: ApplicationTemplate, user: User, data: Dict[str, Any]) -> ApplicationTemplate:
    if 'scholarshipId' in data and data['scholarshipId'] != template.scholarship_id:
        scholarship = Scholarship.objects.filter(pk=data['scholarshipId']).first()
        if not scholarship:
            raise NotFound('Scholarship not found')
        template.scholarship = scholarship
    for key, attr in FIELD_MAP.items():
        if key in data:
            setattr(template, attr, data[key])
    _raise_if_invalid(template.title, template.sections)
    template.last_modified_by = user
    template.save()
    return template


def delete_template(template: ApplicationTemplate, user: User) -> None:
    log_action(user=user, action='template_delete', object_type='application_template',
               object_id=template.id, detail={'title': template.title})
    template.delete()


def autosave(template: ApplicationTemplate, user: User, sections) -> ApplicationTemplate:
    template.draft_sections = sections
    template.draft_saved_at = timezone.now()
    template.last_modified_by = user
    template.save(update_fields=['draft_sections', 'draft_saved_at', 'last_modified_by', 'updated_at'])
    return template


def apply_builder_operation(template: ApplicationTemplate, user: User, op: str,
                            args: Dict[str, Any]) -> ApplicationTemplate:
    sections = form_builder.apply_operation(template.working_sections(), op, args)
    logger.debug("template %s builder op %s", template.id, op)
    return autosave(template, user, sections)


def bump_patch(version: str) -> str:
    parts = (version or '1.0.0').split('.')
    try:
        major, minor, patch = (int(p) for p in parts)
    except ValueError:
        return '1.0.1'
    return f"{major}.{minor}.{patch + 1}"


def publish(template: ApplicationTemplate, user: User) -> ApplicationTemplate:
    sections = template.working_sections()
    _raise_if_invalid(template.title, sections)
    template.sections = sections
    template.draft_sections = None
    template.draft_saved_at = None
    template.version = bump_patch(template.version)
    template.last_modified_by = user
    template.save()
    log_action(user=user, action='template_publish', object_type='application_template',
               object_id=template.id, detail={'version': template.version})
    logger.info("template %s published as %s", template.id, template.version)
    return template
