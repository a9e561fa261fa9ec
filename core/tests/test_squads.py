from datetime import timedelta

import pytest
from django.utils import timezone

from core.exceptions import InvalidInput
from core.models import AuditEvent, Squad
from core.services import squads

pytestmark = pytest.mark.django_db


def squad_payload(**extra):
    payload = {
        'name': 'Study buddies',
        'description': 'Weekly accountability',
        'maxMembers': 3,
        'visibility': 'public',
        'goals': [{'type': 'applications', 'target': 10, 'timeframe': 'monthly'}],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def squad(client_for, student):
    response = client_for(student).post('/api/squads', squad_payload(), format='json')
    assert response.status_code == 201
    return Squad.objects.get(pk=response.data['squad']['id'])


def test_create_adds_creator_and_builds_goals(squad, student):
    assert squad.is_member(student)
    goal = squad.goals[0]
    assert goal['currentProgress'] == 0
    assert goal['isOnTrack'] is True
    assert 29 <= goal['daysRemaining'] <= 30


def test_only_one_primary_squad(client_for, squad, student):
    response = client_for(student).post('/api/squads', squad_payload(name='Another'), format='json')
    assert response.status_code == 400
    secondary = client_for(student).post('/api/squads', squad_payload(squadType='secondary'), format='json')
    assert secondary.status_code == 201


def test_join_rules(client_for, make_user, squad):
    joiner = make_user()
    response = client_for(joiner).post(f'/api/squads/{squad.id}/members', {'action': 'join'}, format='json')
    assert response.status_code == 200
    assert response.data['squad']['memberCount'] == 2

    again = client_for(joiner).post(f'/api/squads/{squad.id}/members', {'action': 'join'}, format='json')
    assert again.status_code == 400

    client_for(make_user()).post(f'/api/squads/{squad.id}/members', {'action': 'join'}, format='json')
    full = client_for(make_user()).post(f'/api/squads/{squad.id}/members', {'action': 'join'}, format='json')
    assert full.status_code == 400
    assert full.data['error']['message'] == 'Squad is full'


def test_private_squad_cannot_be_joined_or_viewed(client_for, make_user, squad):
    squad.visibility = 'private'
    squad.save()
    outsider = make_user()
    assert client_for(outsider).get(f'/api/squads/{squad.id}').status_code == 403
    join = client_for(outsider).post(f'/api/squads/{squad.id}/members', {'action': 'join'}, format='json')
    assert join.status_code == 403


def test_creator_leaving_empty_squad_dissolves_it(client_for, student, squad):
    response = client_for(student).post(f'/api/squads/{squad.id}/members', {'action': 'leave'}, format='json')
    assert response.status_code == 200
    assert response.data['squad'] is None
    assert not Squad.objects.filter(pk=squad.id).exists()
    assert AuditEvent.objects.filter(action='squad_delete', object_id=squad.id,
                                     detail__reason='creator_left').exists()


def test_remove_member_is_creator_only(client_for, make_user, student, squad):
    member = make_user()
    squads.join(squad, member)
    denied = client_for(member).delete(f'/api/squads/{squad.id}/members?memberId={student.id}')
    assert denied.status_code == 403
    creator = client_for(student).delete(f'/api/squads/{squad.id}/members?memberId={student.id}')
    assert creator.status_code == 400
    removed = client_for(student).delete(f'/api/squads/{squad.id}/members?memberId={member.id}')
    assert removed.status_code == 200
    assert not squad.is_member(member)


def test_report_progress_recomputes_goal_and_totals(client_for, make_user, student, squad):
    member = make_user()
    squads.join(squad, member)
    client_for(student).post(f'/api/squads/{squad.id}/progress',
                             {'goalType': 'applications', 'progress': 6}, format='json')
    response = client_for(member).post(f'/api/squads/{squad.id}/progress',
                                       {'goalType': 'applications', 'progress': 2}, format='json')
    assert response.status_code == 200
    data = response.data['squad']
    goal = data['goals'][0]
    assert goal['currentProgress'] == 8
    assert goal['progressPercentage'] == 80
    assert goal['isOnTrack'] is True
    assert data['totalApplications'] == 8
    assert data['averageActivityScore'] == 100
    assert data['activityLevel'] == 'high'
    entry = next(mp for mp in goal['memberProgress'] if mp['userId'] == member.id)
    assert entry['percentage'] == 20
    assert entry['needsHelp'] is True

    # reporting again replaces the member's previous entry
    client_for(member).post(f'/api/squads/{squad.id}/progress',
                            {'goalType': 'applications', 'progress': 4}, format='json')
    squad.refresh_from_db()
    assert squad.goals[0]['currentProgress'] == 10
    assert len(squad.goals[0]['memberProgress']) == 2


def test_progress_for_unknown_goal_type(client_for, student, squad):
    response = client_for(student).post(f'/api/squads/{squad.id}/progress',
                                        {'goalType': 'reviews', 'progress': 1}, format='json')
    assert response.status_code == 404


def test_progress_requires_membership(client_for, make_user, squad):
    outsider = client_for(make_user())
    assert outsider.get(f'/api/squads/{squad.id}/progress').status_code == 403
    response = outsider.post(f'/api/squads/{squad.id}/progress',
                             {'goalType': 'applications', 'progress': 1}, format='json')
    assert response.status_code == 403


def test_progress_summary(client_for, student, squad):
    squads.report_progress(squad, student, 'applications', 10)
    response = client_for(student).get(f'/api/squads/{squad.id}/progress')
    summary = response.data['progressSummary']
    assert summary == {'totalGoals': 1, 'completedGoals': 1, 'onTrackGoals': 1,
                       'membersNeedingHelp': 0, 'averageProgress': 100}


def test_activity_score_ignores_stale_updates(make_user, student, squad):
    member = make_user()
    squads.join(squad, member)
    long_ago = timezone.now() - timedelta(days=10)
    squads.report_progress(squad, member, 'applications', 1, now=long_ago)
    squads.report_progress(squad, student, 'applications', 1)
    squad.refresh_from_db()
    assert squad.average_activity_score == 50


def test_activity_score_comes_from_progress_not_requests(client_for, make_user, student, squad):
    member = make_user()
    squads.join(squad, member)
    for _ in range(3):
        assert client_for(member).get(f'/api/squads/{squad.id}').status_code == 200
    squads.report_progress(squad, student, 'applications', 1)
    squad.refresh_from_db()
    assert squad.average_activity_score == 50
    assert 'last_active_at' not in {f.name for f in member._meta.get_fields()}


def test_goals_endpoint(client_for, make_user, student, squad):
    added = client_for(student).post(f'/api/squads/{squad.id}/goals',
                                     {'type': 'documents', 'target': 5, 'timeframe': 'weekly'}, format='json')
    assert added.status_code == 201
    assert added.data['goal']['daysRemaining'] in (6, 7)
    listing = client_for(student).get(f'/api/squads/{squad.id}/goals')
    assert [g['type'] for g in listing.data['goals']] == ['applications', 'documents']

    member = make_user()
    squads.join(squad, member)
    denied = client_for(member).post(f'/api/squads/{squad.id}/goals',
                                     {'type': 'reviews', 'target': 1, 'timeframe': 'weekly'}, format='json')
    assert denied.status_code == 403


def test_max_members_cannot_drop_below_member_count(make_user, student, squad):
    squads.join(squad, make_user())
    squads.join(squad, make_user())
    with pytest.raises(InvalidInput):
        squads.update_squad(squad, student, {'maxMembers': 2})


def test_list_mine_and_public(client_for, make_user, student, squad):
    other = make_user()
    assert [s['id'] for s in client_for(other).get('/api/squads').data['squads']] == [squad.id]
    assert client_for(other).get('/api/squads', {'mine': 'true'}).data['squads'] == []


def test_create_and_delete_are_audited(client_for, make_user, student, squad):
    created = AuditEvent.objects.get(action='squad_create')
    assert created.user == student
    assert created.object_id == squad.id

    assert client_for(make_user()).delete(f'/api/squads/{squad.id}').status_code == 403
    assert not AuditEvent.objects.filter(action='squad_delete').exists()
    assert client_for(student).delete(f'/api/squads/{squad.id}').status_code == 204
    deleted = AuditEvent.objects.get(action='squad_delete')
    assert deleted.object_type == 'squad'
    assert deleted.detail == {'name': 'Study buddies'}
