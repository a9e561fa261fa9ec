"""
User interests and application packages. Every object is scoped to its owner.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.models import ApplicationPackage, UserInterest
from core.serializers.applications import DocumentStatusSerializer, InterestSerializer, PackageSerializer
from core.services import applications as svc


def _iso(dt):
    return dt.isoformat() if dt else None


def serialize_interest(i: UserInterest) -> dict:
    program = None
    if i.program_id:
        program = {
            'id': i.program.id,
            'name': i.program.name,
            'degreeType': i.program.degree_type,
            'fieldOfStudy': i.program.field_of_study,
            'school': {'id': i.program.school.id, 'name': i.program.school.name,
                       'country': i.program.school.country, 'city': i.program.school.city},
        }
    school = None
    if i.school_id:
        school = {'id': i.school.id, 'name': i.school.name, 'country': i.school.country, 'city': i.school.city}
    return {
        'id': i.id,
        'program': program,
        'school': school,
        'schoolName': i.school_name,
        'programName': i.program_name,
        'displayName': i.target_name(),
        'applicationUrl': i.application_url,
        'status': i.status,
        'priority': i.priority,
        'notes': i.notes,
        'requiresInterview': i.requires_interview,
        'interviewType': i.interview_type,
        'interviewDate': _iso(i.interview_date),
        'appliedAt': _iso(i.applied_at),
        'decisionDate': _iso(i.decision_date),
        'createdAt': _iso(i.created_at),
        'updatedAt': _iso(i.updated_at),
    }


def serialize_package(p: ApplicationPackage) -> dict:
    return {
        'id': p.id,
        'interestId': p.interest_id,
        'interest': serialize_interest(p.interest),
        'name': p.name,
        'type': p.type,
        'documents': p.documents,
        'progress': p.progress,
        'isReady': p.is_ready,
        'appliedAt': _iso(p.applied_at),
        'applicationStatus': p.application_status,
        'decision': p.decision or None,
        'decisionDate': _iso(p.decision_date),
        'linkedScholarships': p.linked_scholarships,
        'notes': p.notes,
        'createdAt': _iso(p.created_at),
        'updatedAt': _iso(p.updated_at),
    }


# ---------------------------------------------------------------------
# Interests
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def interests_list(request):
    if request.method == 'GET':
        qs = svc.filter_interests(request.user, request.query_params)
        return Response({'interests': [serialize_interest(i) for i in qs]})
    s = InterestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    interest = svc.create_interest(request.user, s.validated_data)
    return Response(
        {'message': 'Interest created successfully', 'interest': serialize_interest(interest)},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def interest_detail(request, pk: int):
    interest = get_object_or_404(UserInterest, pk=pk, user=request.user)
    if request.method == 'GET':
        return Response({'interest': serialize_interest(interest)})
    if request.method == 'PUT':
        s = InterestSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        return Response({'interest': serialize_interest(svc.update_interest(interest, s.validated_data))})
    interest.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def packages_list(request):
    if request.method == 'GET':
        qs = svc.filter_packages(request.user, request.query_params)
        return Response({'packages': [serialize_package(p) for p in qs]})
    s = PackageSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    package = svc.create_package(request.user, s.validated_data)
    return Response({'package': serialize_package(package)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def package_detail(request, pk: int):
    package = get_object_or_404(ApplicationPackage, pk=pk, user=request.user)
    if request.method == 'GET':
        return Response({'package': serialize_package(package)})
    if request.method == 'PUT':
        s = PackageSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        return Response({'package': serialize_package(svc.update_package(package, s.validated_data))})
    package.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def package_document_status(request, pk: int):
    package = get_object_or_404(ApplicationPackage, pk=pk, user=request.user)
    s = DocumentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    package = svc.set_document_status(
        package, status=vd['status'], index=vd.get('index'), doc_type=vd.get('type'), document_id=vd.get('documentId'),
    )
    return Response({'package': serialize_package(package)})
