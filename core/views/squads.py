from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import Forbidden, InvalidInput
from core.models import Squad, User
from core.serializers.squads import GoalSerializer, MembershipSerializer, ProgressSerializer, SquadSerializer
from core.services import squads as svc


def _member(u: User) -> dict:
    return {'id': u.id, 'firstName': u.first_name, 'lastName': u.last_name, 'email': u.email}


def serialize_squad(s: Squad) -> dict:
    members = list(s.members.all())
    return {
        'id': s.id,
        'name': s.name,
        'description': s.description,
        'maxMembers': s.max_members,
        'visibility': s.visibility,
        'formationType': s.formation_type,
        'academicLevel': s.academic_level,
        'fieldOfStudy': s.field_of_study,
        'geographicRegion': s.geographic_region,
        'squadType': s.squad_type,
        'creator': _member(s.creator),
        'members': [_member(m) for m in members],
        'memberCount': len(members),
        'goals': s.goals,
        'totalApplications': s.total_applications,
        'totalDocuments': s.total_documents,
        'totalReviews': s.total_reviews,
        'averageActivityScore': s.average_activity_score,
        'activityLevel': s.activity_level,
        'completionPercentage': s.completion_percentage,
        'lastActivityAt': s.last_activity_at.isoformat() if s.last_activity_at else None,
        'createdAt': s.created_at.isoformat() if s.created_at else None,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def squads_list(request):
    if request.method == 'GET':
        return Response({'squads': [serialize_squad(s) for s in svc.list_squads(request.user, request.query_params)]})
    s = SquadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    squad = svc.create_squad(request.user, s.validated_data)
    return Response({'squad': serialize_squad(svc.get_squad(squad.pk))}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def squad_detail(request, pk: int):
    squad = svc.get_squad(pk)
    if request.method == 'GET':
        svc.ensure_can_view(squad, request.user)
        return Response({'squad': serialize_squad(squad)})
    if request.method == 'PUT':
        s = SquadSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        return Response({'squad': serialize_squad(svc.update_squad(squad, request.user, s.validated_data))})
    svc.delete_squad(squad, request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def squad_members(request, pk: int):
    squad = svc.get_squad(pk)
    if request.method == 'DELETE':
        try:
            member_id = int(request.query_params.get('memberId', ''))
        except ValueError:
            raise InvalidInput('memberId is required')
        svc.remove_member(squad, request.user, member_id)
        return Response({'message': 'Member removed successfully', 'squad': serialize_squad(squad)})

    s = MembershipSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    if s.validated_data['action'] == 'join':
        svc.join(squad, request.user)
        return Response({'message': 'Successfully joined squad', 'squad': serialize_squad(squad)})
    remaining = svc.leave(squad, request.user)
    return Response({
        'message': 'Successfully left squad',
        'squad': serialize_squad(remaining) if remaining else None,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def squad_goals(request, pk: int):
    squad = svc.get_squad(pk)
    if request.method == 'GET':
        svc.ensure_can_view(squad, request.user)
        return Response({'goals': squad.goals})
    s = GoalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    goal = svc.add_goal(squad, request.user, s.validated_data)
    return Response({'message': 'Goal added successfully', 'goal': goal}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def squad_progress(request, pk: int):
    squad = svc.get_squad(pk)
    if request.method == 'GET':
        if not squad.is_member(request.user):
            raise Forbidden('User is not a member of this squad')
        return Response({'squad': serialize_squad(squad), 'progressSummary': svc.progress_summary(squad)})
    s = ProgressSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    squad = svc.report_progress(squad, request.user, s.validated_data['goalType'], s.validated_data['progress'])
    return Response({'message': 'Progress updated successfully', 'squad': serialize_squad(squad)})
