"""
Catalog endpoints: schools, programs, scholarships and saved scholarships.

Browsing is open to every signed-in user; creating, editing and deleting
catalog entries is reserved for administrators.
"""
from __future__ import annotations

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import Forbidden, InvalidInput
from core.models import Program, SavedScholarship, Scholarship, School
from core.pagination import catalog_meta, id_param, page_meta, page_params, paginate
from core.permissions import is_admin
from core.serializers.catalog import (
    ProgramSerializer,
    SaveScholarshipSerializer,
    ScholarshipSerializer,
    SchoolSerializer,
)
from core.services import catalog as svc


def _require_admin(user) -> None:
    if not is_admin(user):
        raise Forbidden('Admin access required')


def serialize_school(s: School) -> dict:
    data = {
        'id': s.id,
        'name': s.name,
        'country': s.country,
        'city': s.city,
        'website': s.website,
        'globalRanking': s.global_ranking,
        'description': s.description,
        'createdAt': s.created_at.isoformat() if s.created_at else None,
    }
    if hasattr(s, 'program_count'):
        data['programCount'] = s.program_count
    return data


def serialize_program(p: Program) -> dict:
    return {
        'id': p.id,
        'schoolId': p.school_id,
        'school': {'id': p.school.id, 'name': p.school.name, 'country': p.school.country, 'city': p.school.city},
        'name': p.name,
        'degreeType': p.degree_type,
        'fieldOfStudy': p.field_of_study,
        'subfield': p.subfield,
        'mode': p.mode,
        'duration': p.duration,
        'programLevel': p.program_level,
        'languages': p.languages,
        'tuitionFees': p.tuition_fees,
        'applicationFee': float(p.application_fee) if p.application_fee is not None else None,
        'programSummary': p.program_summary,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
        'updatedAt': p.updated_at.isoformat() if p.updated_at else None,
    }


def serialize_scholarship(s: Scholarship) -> dict:
    return {
        'id': s.id,
        'title': s.title,
        'scholarshipDetails': s.scholarship_details,
        'provider': s.provider,
        'linkedSchool': s.linked_school,
        'linkedProgram': s.linked_program,
        'coverage': s.coverage,
        'value': float(s.value),
        'currency': s.currency,
        'frequency': s.frequency,
        'numberOfAwardsPerYear': s.number_of_awards_per_year,
        'eligibility': s.eligibility,
        'applicationRequirements': s.application_requirements,
        'deadline': s.deadline,
        'applicationLink': s.application_link,
        'selectionCriteria': s.selection_criteria,
        'tags': s.tags,
        'notes': s.notes,
        'contactInfo': s.contact_info,
        'createdAt': s.created_at.isoformat() if s.created_at else None,
    }


def _apply(obj, validated: dict):
    for attr, value in validated.items():
        setattr(obj, attr, value)
    try:
        obj.full_clean()
    except ModelValidationError as exc:
        raise InvalidInput('Validation failed', details=exc.message_dict if hasattr(exc, 'error_dict') else exc.messages)
    obj.save()
    return obj


# ---------------------------------------------------------------------
# Schools
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def schools_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=12)
        items, total = paginate(svc.filter_schools(request.query_params), page, limit)
        return Response({'schools': [serialize_school(s) for s in items], 'pagination': catalog_meta(page, limit, total)})
    _require_admin(request.user)
    s = SchoolSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    school = School.objects.create(**s.validated_data)
    return Response({'school': serialize_school(school)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def school_detail(request, pk: int):
    school = get_object_or_404(School, pk=pk)
    if request.method == 'GET':
        return Response({'school': serialize_school(school)})
    _require_admin(request.user)
    if request.method == 'PUT':
        s = SchoolSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        return Response({'school': serialize_school(_apply(school, s.validated_data))})
    school.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def programs_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=12)
        items, total = paginate(svc.filter_programs(request.query_params), page, limit)
        return Response({'programs': [serialize_program(p) for p in items], 'pagination': catalog_meta(page, limit, total)})
    _require_admin(request.user)
    s = ProgramSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    svc.get_school_or_404(s.validated_data['school_id'])
    program = Program.objects.create(**s.validated_data)
    return Response({'program': serialize_program(program)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def program_detail(request, pk: int):
    program = get_object_or_404(Program.objects.select_related('school'), pk=pk)
    if request.method == 'GET':
        return Response({'program': serialize_program(program)})
    _require_admin(request.user)
    if request.method == 'PUT':
        s = ProgramSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        if 'school_id' in s.validated_data:
            program.school = svc.get_school_or_404(s.validated_data.pop('school_id'))
        return Response({'program': serialize_program(_apply(program, s.validated_data))})
    program.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------
# Scholarships
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def scholarships_list(request):
    if request.method == 'GET':
        page, limit = page_params(request.query_params, default_limit=12)
        items, total = paginate(svc.filter_scholarships(request.query_params), page, limit)
        return Response({
            'scholarships': [serialize_scholarship(s) for s in items],
            'pagination': catalog_meta(page, limit, total),
        })
    _require_admin(request.user)
    s = ScholarshipSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    scholarship = Scholarship.objects.create(**s.validated_data)
    return Response({'scholarship': serialize_scholarship(scholarship)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def scholarship_detail(request, pk: int):
    scholarship = get_object_or_404(Scholarship, pk=pk)
    if request.method == 'GET':
        return Response({'scholarship': serialize_scholarship(scholarship)})
    _require_admin(request.user)
    if request.method == 'PUT':
        s = ScholarshipSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        return Response({'scholarship': serialize_scholarship(_apply(scholarship, s.validated_data))})
    scholarship.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------
# Saved scholarships
# ---------------------------------------------------------------------
def serialize_saved(saved: SavedScholarship) -> dict:
    return {
        'id': saved.id,
        'status': saved.status,
        'notes': saved.notes,
        'reminderDate': saved.reminder_date.isoformat() if saved.reminder_date else None,
        'isReminderSet': saved.is_reminder_set,
        'savedAt': saved.saved_at.isoformat() if saved.saved_at else None,
        'scholarship': serialize_scholarship(saved.scholarship),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def saved_scholarships(request):
    if request.method == 'GET':
        qs = SavedScholarship.objects.filter(user=request.user).select_related('scholarship')
        st = request.query_params.get('status')
        if st and st != 'all':
            qs = qs.filter(status=st)
        scholarship_id = id_param(request.query_params, 'scholarshipId')
        if scholarship_id is not None:
            qs = qs.filter(scholarship_id=scholarship_id)
        page, limit = page_params(request.query_params, default_limit=10)
        items, total = paginate(qs.order_by('-saved_at'), page, limit)
        return Response({
            'savedScholarships': [serialize_saved(s) for s in items],
            'pagination': page_meta(page, limit, total),
        })
    s = SaveScholarshipSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    with transaction.atomic():
        saved, created = svc.save_scholarship(request.user, s.validated_data)
    return Response(
        {
            'message': 'Scholarship saved successfully' if created else 'Scholarship updated successfully',
            'savedScholarship': serialize_saved(saved),
        },
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def saved_scholarship_detail(request, pk: int):
    saved = get_object_or_404(SavedScholarship, pk=pk, user=request.user)
    saved.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    return Response(svc.dashboard_stats())
