"""
Squads: peer groups with shared goals.

Goals live in the squad's ``goals`` JSON column. Dates inside a goal are
stored as ISO-8601 strings; everything derived from them (days remaining,
on-track flags, totals) is recomputed whenever progress is reported.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.exceptions import Forbidden, InvalidInput, NotFound
from core.models import Squad, User
from core.services import notifications
from core.services.audit import log_action

logger = logging.getLogger(__name__)

TIMEFRAME_DAYS = {'weekly': 7, 'monthly': 30, 'semester': 120}
TOTAL_FIELDS = {
    'applications': 'total_applications',
    'documents': 'total_documents',
    'reviews': 'total_reviews',
}
ON_TRACK_PCT = 75
NEEDS_HELP_PCT = 25
ACTIVE_WINDOW = timedelta(days=7)


def _parse(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return parse_datetime(value)


def days_remaining(end_date, now: Optional[datetime] = None) -> int:
    end = _parse(end_date)
    if end is None:
        return 0
    now = now or timezone.now()
    return max(0, math.ceil((end - now).total_seconds() / 86400))


def build_goal(data: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or timezone.now()
    start = data.get('startDate') or now
    end = data.get('endDate') or start + timedelta(days=TIMEFRAME_DAYS[data['timeframe']])
    return {
        'type': data['type'],
        'target': data['target'],
        'timeframe': data['timeframe'],
        'description': data.get('description', ''),
        'startDate': start.isoformat(),
        'endDate': end.isoformat(),
        'individualTarget': data.get('individualTarget'),
        'currentProgress': 0,
        'progressPercentage': 0,
        'daysRemaining': days_remaining(end, now),
        'isOnTrack': True,
        'memberProgress': [],
    }


def list_squads(user: User, params):
    qs = Squad.objects.select_related('creator').prefetch_related('members')
    if params.get('mine') in ('1', 'true'):
        qs = qs.filter(members=user)
    else:
        qs = qs.filter(visibility='public')
    if params.get('squadType') and params['squadType'] != 'all':
        qs = qs.filter(squad_type=params['squadType'])
    return qs.order_by('-created_at')


def _has_primary(user: User, exclude: Optional[Squad] = None) -> bool:
    qs = Squad.objects.filter(members=user, squad_type='primary')
    if exclude is not None:
        qs = qs.exclude(pk=exclude.pk)
    return qs.exists()


@transaction.atomic
def create_squad(user: User, data: Dict[str, Any]) -> Squad:
    squad_type = data.get('squadType', 'primary')
    if squad_type == 'primary' and _has_primary(user):
        raise InvalidInput('User already has a primary squad')
    squad = Squad.objects.create(
        name=data['name'],
        description=data['description'],
        max_members=data['maxMembers'],
        visibility=data.get('visibility', 'invite_only'),
        formation_type=data.get('formationType', 'manual'),
        academic_level=data.get('academicLevel', []),
        field_of_study=data.get('fieldOfStudy', []),
        geographic_region=data.get('geographicRegion', []),
        squad_type=squad_type,
        creator=user,
        goals=[build_goal(g) for g in data.get('goals', [])],
    )
    squad.members.add(user)
    log_action(user=user, action='squad_create', object_type='squad', object_id=squad.id,
               detail={'name': squad.name, 'squadType': squad_type})
    logger.info("squad %s created by user %s", squad.id, user.id)
    return squad


def get_squad(pk: int) -> Squad:
    squad = Squad.objects.select_related('creator').prefetch_related('members').filter(pk=pk).first()
    if not squad:
        raise NotFound('Squad not found')
    return squad


def ensure_can_view(squad: Squad, user: User) -> None:
    if squad.visibility != 'public' and not squad.is_member(user):
        raise Forbidden('You are not a member of this squad')


def ensure_creator(squad: Squad, user: User) -> None:
    if squad.creator_id != user.id:
        raise Forbidden('Only the squad creator can do this')


def update_squad(squad: Squad, user: User, data: Dict[str, Any]) -> Squad:
    ensure_creator(squad, user)
    if 'maxMembers' in data and data['maxMembers'] < squad.member_count:
        raise InvalidInput('maxMembers cannot be lower than the current member count')
    mapping = {
        'name': 'name', 'description': 'description', 'maxMembers': 'max_members',
        'visibility': 'visibility', 'formationType': 'formation_type', 'academicLevel': 'academic_level',
        'fieldOfStudy': 'field_of_study', 'geographicRegion': 'geographic_region',
    }
    for key, attr in mapping.items():
        if key in data:
            setattr(squad, attr, data[key])
    if 'goals' in data:
        squad.goals = [build_goal(g) for g in data['goals']]
    squad.save()
    return squad


@transaction.atomic
def delete_squad(squad: Squad, user: User) -> None:
    ensure_creator(squad, user)
    log_action(user=user, action='squad_delete', object_type='squad', object_id=squad.id,
               detail={'name': squad.name})
    squad.delete()


@transaction.atomic
def join(squad: Squad, user: User) -> Squad:
    if squad.is_member(user):
        raise InvalidInput('User is already a member')
    if squad.member_count >= squad.max_members:
        raise InvalidInput('Squad is full')
    if squad.visibility == 'private':
        raise Forbidden('Squad is private')
    if squad.squad_type == 'primary' and _has_primary(user, exclude=squad):
        raise InvalidInput('User already has a primary squad')
    squad.members.add(user)
    squad.last_activity_at = timezone.now()
    squad.save(update_fields=['last_activity_at', 'updated_at'])
    if squad.creator_id and squad.creator_id != user.id:
        notifications.notify(
            squad.creator, 'squad_activity', 'New squad member',
            f'{user.display_name()} joined {squad.name}.',
            priority='low', content={'squadId': squad.id, 'memberId': user.id, 'actionUrl': f'/squads/{squad.id}'},
        )
    return squad


@transaction.atomic
def leave(squad: Squad, user: User) -> Optional[Squad]:
    """Remove ``user``; returns ``None`` when the squad was dissolved."""
    if not squad.is_member(user):
        raise InvalidInput('User is not a member')
    squad.members.remove(user)
    if squad.creator_id == user.id and not squad.members.exists():
        logger.info("squad %s dissolved after creator left", squad.id)
        log_action(user=user, action='squad_delete', object_type='squad', object_id=squad.id,
                   detail={'name': squad.name, 'reason': 'creator_left'})
        squad.delete()
        return None
    return squad


def remove_member(squad: Squad, user: User, member_id: int) -> Squad:
    ensure_creator(squad, user)
    if member_id == squad.creator_id:
        raise InvalidInput('The creator cannot be removed')
    member = squad.members.filter(pk=member_id).first()
    if not member:
        raise NotFound('Member not found')
    squad.members.remove(member)
    return squad


def add_goal(squad: Squad, user: User, data: Dict[str, Any]) -> Dict[str, Any]:
    ensure_creator(squad, user)
    goal = build_goal(data)
    squad.goals = list(squad.goals or []) + [goal]
    squad.save(update_fields=['goals', 'updated_at'])
    return goal


def _member_entry(user_id: int, progress: int, goal: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    target = goal.get('individualTarget') or goal['target']
    pct = round(progress / target * 100) if target else 0
    return {
        'userId': user_id,
        'progress': progress,
        'percentage': pct,
        'isOnTrack': pct >= ON_TRACK_PCT,
        'needsHelp': pct < NEEDS_HELP_PCT,
        'lastUpdated': now.isoformat(),
    }


def _recompute_totals(squad: Squad) -> None:
    for field in TOTAL_FIELDS.values():
        setattr(squad, field, 0)
    for goal in squad.goals:
        field = TOTAL_FIELDS.get(goal.get('type'))
        if field:
            setattr(squad, field, getattr(squad, field) + goal.get('currentProgress', 0))


def _activity_score(squad: Squad, now: datetime) -> int:
    total = squad.member_count
    if not total:
        return 0
    active = set()
    for goal in squad.goals:
        for mp in goal.get('memberProgress', []):
            updated = _parse(mp.get('lastUpdated'))
            if updated and now - updated <= ACTIVE_WINDOW:
                active.add(mp['userId'])
    return round(len(active) / total * 100)


@transaction.atomic
def report_progress(squad: Squad, user: User, goal_type: str, progress: int,
                    now: Optional[datetime] = None) -> Squad:
    if not squad.is_member(user):
        raise Forbidden('User is not a member of this squad')
    now = now or timezone.now()
    goals: List[Dict[str, Any]] = [dict(g) for g in squad.goals or []]
    index = next((i for i, g in enumerate(goals) if g.get('type') == goal_type), None)
    if index is None:
        raise NotFound('Goal type not found')

    goal = goals[index]
    members = [mp for mp in goal.get('memberProgress', []) if mp.get('userId') != user.id]
    members.append(_member_entry(user.id, progress, goal, now))
    total = sum(mp['progress'] for mp in members)
    goal.update({
        'memberProgress': members,
        'currentProgress': total,
        'progressPercentage': round(total / goal['target'] * 100) if goal['target'] else 0,
        'daysRemaining': days_remaining(goal.get('endDate'), now),
    })
    goal['isOnTrack'] = goal['progressPercentage'] >= ON_TRACK_PCT
    goals[index] = goal

    squad.goals = goals
    _recompute_totals(squad)
    squad.average_activity_score = _activity_score(squad, now)
    squad.last_activity_at = now
    squad.save()
    return squad


def progress_summary(squad: Squad) -> Dict[str, Any]:
    goals = squad.goals or []
    return {
        'totalGoals': len(goals),
        'completedGoals': sum(1 for g in goals if g.get('progressPercentage', 0) >= 100),
        'onTrackGoals': sum(1 for g in goals if g.get('isOnTrack')),
        'membersNeedingHelp': sum(1 for g in goals for mp in g.get('memberProgress', []) if mp.get('needsHelp')),
        'averageProgress': squad.completion_percentage,
    }
