"""
Student submissions against published application templates.

A submission moves draft -> in_progress -> submitted, then an admin moves it
through under_review to a decision (approved, rejected or waitlisted). The
student may withdraw it at any point before a final decision. Answers are
checked against the template's published ``sections``, never its draft.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

from django.db import transaction
from django.utils import timezone

from core.exceptions import Conflict, Forbidden, InvalidInput, NotFound
from core.models import ApplicationSubmission, ApplicationTemplate, User
from core.pagination import id_param
from core.permissions import is_admin
from core.services import notifications
from core.services.audit import log_action
from core.services.form_builder import OPTION_TYPES

logger = logging.getLogger(__name__)

MULTI_VALUE_TYPES = ('multiselect', 'checkbox')
NUMERIC_TYPES = ('number', 'gpa', 'test_score')
FINAL_STATUSES = ('approved', 'rejected', 'withdrawn')
REVIEW_TRANSITIONS = {
    'submitted': ('under_review', 'approved', 'rejected', 'waitlisted'),
    'under_review': ('approved', 'rejected', 'waitlisted'),
    'waitlisted': ('approved', 'rejected'),
}


def _questions(template: ApplicationTemplate) -> Iterator[Dict[str, Any]]:
    for section in template.sections or []:
        for question in section.get('questions') or []:
            yield question


def is_answered(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


def requirements_progress(template: ApplicationTemplate, answers: Dict[str, Any]) -> Dict[str, int]:
    total = completed = required = required_completed = 0
    for q in _questions(template):
        done = is_answered(answers.get(q.get('id')))
        total += 1
        completed += done
        if q.get('required'):
            required += 1
            required_completed += done
    return {'total': total, 'completed': completed, 'required': required, 'requiredCompleted': required_completed}


def compute_progress(summary: Dict[str, int]) -> int:
    """Share of required questions answered, or of all questions when none is required."""
    if summary['required']:
        return round(summary['requiredCompleted'] / summary['required'] * 100)
    if summary['total']:
        return round(summary['completed'] / summary['total'] * 100)
    return 0


def missing_required(template: ApplicationTemplate, answers: Dict[str, Any]) -> List[str]:
    return [q['id'] for q in _questions(template) if q.get('required') and not is_answered(answers.get(q['id']))]


def _answer_error(question: Dict[str, Any], value) -> Optional[str]:
    if not is_answered(value):
        return None
    qtype = question.get('type')
    if qtype in OPTION_TYPES:
        allowed = {o.get('value') for o in question.get('options') or []}
        chosen = value if isinstance(value, list) else [value]
        if qtype not in MULTI_VALUE_TYPES and isinstance(value, list):
            return 'Only one option may be chosen'
        if any(c not in allowed for c in chosen):
            return 'Unknown option'
    elif qtype in NUMERIC_TYPES:
        if isinstance(value, bool):
            return 'Must be a number'
        try:
            float(value)
        except (TypeError, ValueError):
            return 'Must be a number'
    elif qtype == 'email' and (not isinstance(value, str) or '@' not in value):
        return 'Must be an email address'
    return None


def validate_answers(template: ApplicationTemplate, answers: Dict[str, Any]) -> None:
    by_id = {q.get('id'): q for q in _questions(template)}
    unknown = sorted(k for k in answers if k not in by_id)
    if unknown:
        raise InvalidInput('Unknown questions', unknown=unknown)
    errors = {}
    for qid, value in answers.items():
        message = _answer_error(by_id[qid], value)
        if message:
            errors[qid] = message
    if errors:
        raise InvalidInput('Invalid answers', details=errors)


def _check_deadline(template: ApplicationTemplate, now) -> None:
    if template.submission_deadline and template.submission_deadline < now:
        raise InvalidInput('The submission deadline has passed')


def _refresh_progress(sub: ApplicationSubmission) -> None:
    sub.progress = compute_progress(requirements_progress(sub.template, sub.answers))


# ---------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------
def filter_submissions(params, *, user: Optional[User] = None):
    qs = ApplicationSubmission.objects.select_related('template', 'scholarship', 'user')
    if user is not None:
        qs = qs.filter(user=user)
    if params.get('status') and params['status'] != 'all':
        qs = qs.filter(status=params['status'])
    scholarship_id = id_param(params, 'scholarshipId')
    if scholarship_id is not None:
        qs = qs.filter(scholarship_id=scholarship_id)
    template_id = id_param(params, 'templateId')
    if template_id is not None:
        qs = qs.filter(template_id=template_id)
    return qs.order_by('-last_activity_at', '-id')


def get_submission(user: User, pk: int) -> ApplicationSubmission:
    """Owners and admins may read a submission; anyone else gets a 404."""
    qs = ApplicationSubmission.objects.select_related('template', 'scholarship', 'user')
    if not is_admin(user):
        qs = qs.filter(user=user)
    sub = qs.filter(pk=pk).first()
    if not sub:
        raise NotFound('Application not found')
    return sub


def ensure_owner(sub: ApplicationSubmission, user: User) -> None:
    if sub.user_id != user.id:
        raise Forbidden('Only the applicant can change this application')


# ---------------------------------------------------------------------
# Student actions
# ---------------------------------------------------------------------
@transaction.atomic
def start_submission(user: User, data: Dict[str, Any]) -> ApplicationSubmission:
    template = ApplicationTemplate.objects.select_related('scholarship').filter(
        pk=data['templateId'], is_active=True,
    ).first()
    if not template:
        raise NotFound('Application template not found')
    now = timezone.now()
    _check_deadline(template, now)
    existing = ApplicationSubmission.objects.filter(user=user, template=template).first()
    if existing:
        raise Conflict('You already have an application for this template', applicationId=existing.id)

    answers = data.get('answers') or {}
    validate_answers(template, answers)
    sub = ApplicationSubmission(
        user=user, template=template, scholarship=template.scholarship, answers=answers,
        current_section_id=data.get('currentSectionId', ''), notes=data.get('notes', ''),
        template_version=template.version, started_at=now, last_activity_at=now,
    )
    if any(is_answered(v) for v in answers.values()):
        sub.status = ApplicationSubmission.STATUS_IN_PROGRESS
    _refresh_progress(sub)
    sub.save()
    log_action(user=user, action='application_start', object_type='application_submission', object_id=sub.id,
               detail={'templateId': template.id})
    return sub


def save_answers(sub: ApplicationSubmission, user: User, data: Dict[str, Any]) -> ApplicationSubmission:
    """Merge ``answers`` into the saved ones; a ``None`` value clears an answer."""
    ensure_owner(sub, user)
    if not sub.is_editable:
        raise InvalidInput('Only draft applications can be edited')
    if not sub.template.allow_draft_saving and 'answers' in data:
        raise InvalidInput('This application must be completed in one sitting')
    incoming = data.get('answers') or {}
    validate_answers(sub.template, {k: v for k, v in incoming.items() if v is not None})
    answers = dict(sub.answers or {})
    for qid, value in incoming.items():
        if value is None:
            answers.pop(qid, None)
        else:
            answers[qid] = value
    sub.answers = answers
    if 'currentSectionId' in data:
        sub.current_section_id = data['currentSectionId']
    if 'notes' in data:
        sub.notes = data['notes']
    if any(is_answered(v) for v in answers.values()):
        sub.status = ApplicationSubmission.STATUS_IN_PROGRESS
    _refresh_progress(sub)
    sub.last_activity_at = timezone.now()
    sub.save()
    return sub


@transaction.atomic
def submit(sub: ApplicationSubmission, user: User) -> ApplicationSubmission:
    ensure_owner(sub, user)
    if not sub.is_editable:
        raise InvalidInput('Application has already been submitted')
    now = timezone.now()
    _check_deadline(sub.template, now)
    # the template may have been republished since the answers were saved
    known = {q.get('id') for q in _questions(sub.template)}
    sub.answers = {k: v for k, v in (sub.answers or {}).items() if k in known}
    validate_answers(sub.template, sub.answers)
    missing = missing_required(sub.template, sub.answers or {})
    if missing:
        raise InvalidInput('Required questions are unanswered', missing=missing)

    sub.status = ApplicationSubmission.STATUS_SUBMITTED
    sub.submitted_at = now
    sub.last_activity_at = now
    sub.template_version = sub.template.version
    _refresh_progress(sub)
    sub.save()
    log_action(user=user, action='application_submit', object_type='application_submission', object_id=sub.id,
               detail={'templateId': sub.template_id, 'templateVersion': sub.template_version})
    notifications.notify(
        user, 'application_status', 'Application submitted',
        f'Your application "{sub.template.title}" was submitted.',
        content={'submissionId': sub.id, 'actionUrl': f'/applications/{sub.id}'},
    )
    logger.info("application %s submitted by user %s", sub.id, user.id)
    return sub


def withdraw(sub: ApplicationSubmission, user: User) -> ApplicationSubmission:
    ensure_owner(sub, user)
    if sub.status in FINAL_STATUSES:
        raise InvalidInput(f'Cannot withdraw an application that is {sub.status}')
    sub.status = 'withdrawn'
    sub.last_activity_at = timezone.now()
    sub.save(update_fields=['status', 'last_activity_at', 'updated_at'])
    log_action(user=user, action='application_withdraw', object_type='application_submission', object_id=sub.id)
    return sub


# ---------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------
@transaction.atomic
def review(sub: ApplicationSubmission, reviewer: User, new_status: str, note: str = '') -> ApplicationSubmission:
    if not is_admin(reviewer):
        raise Forbidden('Admin access required')
    if new_status not in REVIEW_TRANSITIONS.get(sub.status, ()):
        raise InvalidInput(f'Cannot move an application from {sub.status} to {new_status}')
    now = timezone.now()
    previous = sub.status
    sub.status = new_status
    if new_status in ('approved', 'rejected'):
        sub.decided_at = now
    sub.save(update_fields=['status', 'decided_at', 'updated_at'])
    log_action(user=reviewer, action='application_review', object_type='application_submission',
               object_id=sub.id, detail={'from': previous, 'to': new_status})
    label = new_status.replace('_', ' ')
    message = f'Your application "{sub.template.title}" is now {label}.'
    if note:
        message = f'{message} {note}'
    notifications.notify(
        sub.user, 'application_status', 'Application update', message,
        priority='high' if new_status in ('approved', 'rejected') else 'medium',
        content={'submissionId': sub.id, 'status': new_status, 'actionUrl': f'/applications/{sub.id}'},
    )
    return sub


def submission_status(sub: ApplicationSubmission) -> Dict[str, Any]:
    return {
        'id': sub.id,
        'status': sub.status,
        'applicationSubmitted': sub.status not in ('draft', 'in_progress', 'withdrawn'),
        'submittedAt': sub.submitted_at.isoformat() if sub.submitted_at else None,
        'decidedAt': sub.decided_at.isoformat() if sub.decided_at else None,
        'nextStatuses': list(REVIEW_TRANSITIONS.get(sub.status, ())),
        'requirementsProgress': requirements_progress(sub.template, sub.answers or {}),
    }
