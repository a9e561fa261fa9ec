"""
Application tracking: a student's interests and their application packages.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import Conflict, InvalidInput, NotFound
from core.models import ApplicationPackage, Program, School, User, UserInterest
from core.services.audit import log_action

DEFAULT_DOCUMENTS = {
    'program': [
        ('transcript', 'Academic transcript', True),
        ('personal_statement', 'Personal statement', True),
        ('cv', 'Curriculum vitae', True),
        ('recommendation_letter', 'Recommendation letters', True),
        ('test_scores', 'Test scores', False),
    ],
    'scholarship': [
        ('transcript', 'Academic transcript', True),
        ('scholarship_essay', 'Scholarship essay', True),
        ('recommendation_letter', 'Recommendation letters', True),
        ('financial_documents', 'Financial documents', False),
    ],
}
DEFAULT_DOCUMENTS['combined'] = DEFAULT_DOCUMENTS['program'] + [
    d for d in DEFAULT_DOCUMENTS['scholarship'] if d[0] not in {t for t, _, _ in DEFAULT_DOCUMENTS['program']}
]


def default_documents(package_type: str) -> List[Dict[str, Any]]:
    return [
        {'type': t, 'name': name, 'status': 'pending', 'required': required}
        for t, name, required in DEFAULT_DOCUMENTS.get(package_type, DEFAULT_DOCUMENTS['program'])
    ]


# ---------------------------------------------------------------------
# Interests
# ---------------------------------------------------------------------
def filter_interests(user: User, params):
    qs = UserInterest.objects.filter(user=user).select_related('program__school', 'school')
    if params.get('status') and params['status'] != 'all':
        qs = qs.filter(status=params['status'])
    if params.get('priority') and params['priority'] != 'all':
        qs = qs.filter(priority=params['priority'])
    kind = params.get('type')
    if kind == 'program':
        qs = qs.filter(program__isnull=False)
    elif kind == 'school':
        qs = qs.filter(school__isnull=False)
    elif kind == 'external':
        qs = qs.filter(Q(program__isnull=True, school__isnull=True) & (~Q(school_name='') | ~Q(program_name='')))
    return qs.order_by('-created_at')


def _stamp_status(interest: UserInterest, new_status: str) -> None:
    now = timezone.now()
    if new_status == 'applied' and not interest.applied_at:
        interest.applied_at = now
    if new_status in UserInterest.DECISION_STATUSES and not interest.decision_date:
        interest.decision_date = now


def create_interest(user: User, data: Dict[str, Any]) -> UserInterest:
    program = school = None
    if data.get('programId'):
        program = Program.objects.filter(pk=data['programId']).first()
        if not program:
            raise NotFound('Program not found')
    if data.get('schoolId'):
        school = School.objects.filter(pk=data['schoolId']).first()
        if not school:
            raise NotFound('School not found')

    existing = UserInterest.objects.filter(user=user)
    if program:
        existing = existing.filter(program=program)
    elif school:
        existing = existing.filter(school=school)
    else:
        existing = existing.filter(school_name=data.get('schoolName', ''), program_name=data.get('programName', ''))
    duplicate = existing.first()
    if duplicate:
        raise Conflict('Interest already exists', interestId=duplicate.id)

    interest = UserInterest(
        user=user,
        program=program,
        school=school,
        school_name=data.get('schoolName', ''),
        program_name=data.get('programName', ''),
        application_url=data.get('applicationUrl', ''),
        status=data.get('status', 'interested'),
        priority=data.get('priority', 'medium'),
        notes=data.get('notes', ''),
        requires_interview=data.get('requiresInterview', False),
        interview_type=data.get('interviewType', ''),
        interview_date=data.get('interviewDate'),
    )
    _stamp_status(interest, interest.status)
    interest.save()
    return interest


def update_interest(interest: UserInterest, data: Dict[str, Any]) -> UserInterest:
    mapping = {
        'schoolName': 'school_name', 'programName': 'program_name', 'applicationUrl': 'application_url',
        'priority': 'priority', 'notes': 'notes', 'requiresInterview': 'requires_interview',
        'interviewType': 'interview_type', 'interviewDate': 'interview_date',
    }
    for key, attr in mapping.items():
        if key in data:
            setattr(interest, attr, data[key])
    if 'status' in data and data['status'] != interest.status:
        interest.status = data['status']
        _stamp_status(interest, interest.status)
    interest.save()
    return interest


# ---------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------
def filter_packages(user: User, params):
    qs = ApplicationPackage.objects.filter(user=user).select_related('interest__program__school', 'interest__school')
    if params.get('status') and params['status'] != 'all':
        qs = qs.filter(application_status=params['status'])
    if params.get('type') and params['type'] != 'all':
        qs = qs.filter(type=params['type'])
    if params.get('isReady') in ('true', 'false'):
        qs = qs.filter(is_ready=params['isReady'] == 'true')
    return qs.order_by('-updated_at')


def _apply_status(package: ApplicationPackage, data: Dict[str, Any]) -> None:
    now = timezone.now()
    if 'applicationStatus' in data:
        package.application_status = data['applicationStatus']
        if package.application_status == 'submitted' and not package.applied_at:
            package.applied_at = now
    if data.get('decision'):
        package.decision = data['decision']
        package.decision_date = package.decision_date or now
        package.application_status = 'decision_made'


@transaction.atomic
def create_package(user: User, data: Dict[str, Any]) -> ApplicationPackage:
    interest = UserInterest.objects.filter(pk=data['interestId'], user=user).first()
    if not interest:
        raise NotFound('Interest not found')
    existing = ApplicationPackage.objects.filter(user=user, interest=interest).first()
    if existing:
        raise Conflict('Application package already exists for this interest', packageId=existing.id)
    package_type = data.get('type', 'program')
    package = ApplicationPackage(
        user=user,
        interest=interest,
        name=data['name'].strip(),
        type=package_type,
        documents=data.get('documents') or default_documents(package_type),
        linked_scholarships=data.get('linkedScholarships', []),
        notes=data.get('notes', ''),
    )
    _apply_status(package, data)
    package.save()
    log_action(user=user, action='package_create', object_type='application_package', object_id=package.id)
    return package


def update_package(package: ApplicationPackage, data: Dict[str, Any]) -> ApplicationPackage:
    if 'interestId' in data and data['interestId'] != package.interest_id:
        raise InvalidInput('A package cannot be moved to another interest')
    mapping = {'name': 'name', 'type': 'type', 'documents': 'documents',
               'linkedScholarships': 'linked_scholarships', 'notes': 'notes'}
    for key, attr in mapping.items():
        if key in data:
            setattr(package, attr, data[key])
    _apply_status(package, data)
    package.save()
    return package


def set_document_status(package: ApplicationPackage, *, status: str, index: Optional[int] = None,
                        doc_type: Optional[str] = None, document_id: Optional[str] = None) -> ApplicationPackage:
    documents = list(package.documents or [])
    if index is None:
        index = next((i for i, d in enumerate(documents) if d.get('type') == doc_type), None)
    if index is None or index >= len(documents):
        raise NotFound('Document not found in package')
    doc = dict(documents[index])
    doc['status'] = status
    if document_id:
        doc['documentId'] = document_id
    documents[index] = doc
    package.documents = documents
    if package.application_status == 'not_started':
        package.application_status = 'in_progress'
    package.save()
    return package
