"""
Schools, programs and scholarships: filtering, sorting and dashboard stats.
"""
from __future__ import annotations

from typing import Any, Dict

from django.core.cache import cache
from django.db.models import Count, Q, QuerySet

from core.exceptions import NotFound
from core.models import Program, SavedScholarship, Scholarship, School, User
from core.pagination import decimal_param, id_param

PROGRAM_SORTS = {
    'name': 'name',
    'schoolName': 'school__name',
    'degreeType': 'degree_type',
    'fieldOfStudy': 'field_of_study',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}
SCHOOL_SORTS = {
    'name': 'name',
    'country': 'country',
    'globalRanking': 'global_ranking',
    'createdAt': 'created_at',
}
SCHOLARSHIP_SORTS = {
    'title': 'title',
    'value': 'value',
    'deadline': 'deadline',
    'provider': 'provider',
    'createdAt': 'created_at',
}


def _selected(value) -> bool:
    return bool(value) and value != 'all'


def _ordering(params, sorts: Dict[str, str], default: str) -> str:
    field = sorts.get(params.get('sortBy') or default, sorts[default])
    return f"-{field}" if params.get('sortOrder') == 'desc' else field


def filter_schools(params) -> QuerySet:
    qs = School.objects.annotate(program_count=Count('programs'))
    search = params.get('search')
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(city__icontains=search) | Q(country__icontains=search))
    if _selected(params.get('country')):
        qs = qs.filter(country=params['country'])
    return qs.order_by(_ordering(params, SCHOOL_SORTS, 'name'), 'id')


def filter_programs(params) -> QuerySet:
    qs = Program.objects.select_related('school')
    search = params.get('search')
    if search:
        qs = qs.filter(
            Q(name__icontains=search) | Q(field_of_study__icontains=search)
            | Q(degree_type__icontains=search) | Q(subfield__icontains=search)
        )
    school_id = id_param(params, 'schoolId')
    if school_id is not None:
        qs = qs.filter(school_id=school_id)
    filters = {
        'level': 'program_level',
        'degreeType': 'degree_type',
        'fieldOfStudy': 'field_of_study',
        'mode': 'mode',
        'country': 'school__country',
    }
    for param, lookup in filters.items():
        if _selected(params.get(param)):
            qs = qs.filter(**{lookup: params[param]})
    return qs.order_by(_ordering(params, PROGRAM_SORTS, 'name'), 'id')


def filter_scholarships(params) -> QuerySet:
    qs = Scholarship.objects.all()
    search = params.get('search')
    if search:
        qs = qs.filter(
            Q(title__icontains=search) | Q(provider__icontains=search) | Q(scholarship_details__icontains=search)
        )
    if _selected(params.get('provider')):
        qs = qs.filter(provider=params['provider'])
    if _selected(params.get('frequency')):
        qs = qs.filter(frequency=params['frequency'])
    min_value = decimal_param(params, 'minValue')
    if min_value is not None:
        qs = qs.filter(value__gte=min_value)
    tag = params.get('tag')
    if tag:
        # JSON list containment is not portable to SQLite; match the serialised token
        qs = qs.filter(tags__icontains=f'"{tag}"')
    return qs.order_by(_ordering(params, SCHOLARSHIP_SORTS, 'title'), 'id')


def get_school_or_404(school_id: int) -> School:
    school = School.objects.filter(pk=school_id).first()
    if not school:
        raise NotFound('School not found')
    return school


def save_scholarship(user: User, data: Dict[str, Any]):
    """Create or update the user's bookmark; returns ``(saved, created)``."""
    scholarship = Scholarship.objects.filter(pk=data['scholarshipId']).first()
    if not scholarship:
        raise NotFound('Scholarship not found')
    reminder = data.get('reminderDate')
    saved, created = SavedScholarship.objects.update_or_create(
        user=user,
        scholarship=scholarship,
        defaults={
            'status': data.get('status', 'saved'),
            'notes': data.get('notes', ''),
            'reminder_date': reminder,
            'is_reminder_set': bool(reminder),
        },
    )
    return saved, created


def build_dashboard_stats() -> Dict[str, Any]:
    recent = []
    for school in School.objects.order_by('-created_at')[:3]:
        recent.append({
            'id': school.id, 'type': 'school', 'action': 'created', 'title': school.name,
            'timestamp': school.created_at, 'description': f"New school added: {school.name}",
        })
    for program in Program.objects.select_related('school').order_by('-created_at')[:3]:
        recent.append({
            'id': program.id, 'type': 'program', 'action': 'created', 'title': program.name,
            'timestamp': program.created_at,
            'description': f"New program added: {program.name} at {program.school.name}",
        })
    for sch in Scholarship.objects.order_by('-created_at')[:3]:
        recent.append({
            'id': sch.id, 'type': 'scholarship', 'action': 'created', 'title': sch.title,
            'timestamp': sch.created_at, 'description': f"New scholarship added: {sch.title} by {sch.provider}",
        })
    recent.sort(key=lambda a: a['timestamp'], reverse=True)
    for item in recent:
        item['timestamp'] = item['timestamp'].isoformat()

    top_schools = School.objects.annotate(program_count=Count('programs')).order_by('-program_count', 'name')[:5]
    top_scholarships = Scholarship.objects.order_by('-value')[:5]
    return {
        'schools': School.objects.count(),
        'programs': Program.objects.count(),
        'scholarships': Scholarship.objects.count(),
        'recentActivity': recent[:10],
        'topSchools': [
            {'id': s.id, 'name': s.name, 'country': s.country, 'globalRanking': s.global_ranking,
             'programCount': s.program_count}
            for s in top_schools
        ],
        'topScholarships': [
            {'id': s.id, 'title': s.title, 'provider': s.provider, 'value': float(s.value),
             'currency': s.currency, 'deadline': s.deadline}
            for s in top_scholarships
        ],
    }


DASHBOARD_CACHE_KEY = 'dashboard:stats'


def dashboard_stats(refresh: bool = False) -> Dict[str, Any]:
    data = None if refresh else cache.get(DASHBOARD_CACHE_KEY)
    if data is None:
        data = build_dashboard_stats()
        cache.set(DASHBOARD_CACHE_KEY, data, 300)
    return data
