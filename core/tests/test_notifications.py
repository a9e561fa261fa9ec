from datetime import timedelta

import pytest
from django.utils import timezone

from core.models import Notification, Recipient, RecommendationRequest, Squad
from core.services import notifications, recommendations, squads

pytestmark = pytest.mark.django_db


def test_list_counts_unread_and_hides_expired(client_for, student):
    notifications.notify(student, 'reminder', 'Old', 'read me')
    notifications.notify(student, 'achievement', 'New', 'badge')
    notifications.notify(student, 'reminder', 'Gone', 'expired', expires_at=timezone.now() - timedelta(hours=1))
    Notification.objects.filter(title='Old').update(is_read=True)

    response = client_for(student).get('/api/notifications')
    assert response.status_code == 200
    assert [n['title'] for n in response.data['notifications']] == ['New', 'Old']
    assert response.data['pagination']['unread'] == 1
    assert response.data['pagination']['hasMore'] is False

    unread = client_for(student).get('/api/notifications', {'unread': 'true'})
    assert [n['title'] for n in unread.data['notifications']] == ['New']


def test_notifications_are_private(client_for, make_user, student):
    item = notifications.notify(student, 'reminder', 'Mine', 'x')
    other = client_for(make_user())
    assert other.get('/api/notifications').data['notifications'] == []
    assert other.patch(f'/api/notifications/{item.id}').status_code == 404
    denied = other.put('/api/notifications', {'action': 'markAsRead', 'notificationId': item.id}, format='json')
    assert denied.status_code == 404


def test_mark_read_and_mark_all(client_for, student):
    first = notifications.notify(student, 'reminder', 'One', 'x')
    notifications.notify(student, 'reminder', 'Two', 'x')
    client = client_for(student)

    one = client.put('/api/notifications', {'action': 'markAsRead', 'notificationId': first.id}, format='json')
    assert one.data == {'success': True, 'updated': 1, 'unread': 1}
    first.refresh_from_db()
    assert first.read_at is not None

    everything = client.put('/api/notifications', {'action': 'markAllAsRead'}, format='json')
    assert everything.data['updated'] == 1
    assert everything.data['unread'] == 0

    bad = client.put('/api/notifications', {'action': 'markAsRead'}, format='json')
    assert bad.status_code == 400


def test_patch_marks_read_and_delete(client_for, student):
    item = notifications.notify(student, 'reminder', 'One', 'x')
    client = client_for(student)
    assert client.patch(f'/api/notifications/{item.id}').data['notification']['isRead'] is True
    assert client.delete(f'/api/notifications/{item.id}').status_code == 204
    assert not Notification.objects.exists()


def test_letter_received_notifies_student(student):
    recipient = Recipient.objects.create(created_by=student, emails=['prof@uni.edu'], name='Prof. Ada')
    req = RecommendationRequest.objects.create(
        student=student, recipient=recipient, title='MSc', description='d',
        deadline=timezone.now() + timedelta(days=10), relationship_context='r', status='sent',
    )
    recommendations.submit_letter(req.secure_token, {'content': 'A glowing letter'})
    note = Notification.objects.get(user=student)
    assert note.type == 'letter_received'
    assert note.priority == 'high'
    assert note.content['requestId'] == req.id


def test_joining_a_squad_notifies_creator(make_user, student):
    squad = Squad.objects.create(name='Crew', description='d', max_members=4, visibility='public',
                                 squad_type='secondary', creator=student)
    squad.members.add(student)
    joiner = make_user()
    squads.join(squad, joiner)
    note = Notification.objects.get(user=student)
    assert note.type == 'squad_activity'
    assert note.content == {'squadId': squad.id, 'memberId': joiner.id, 'actionUrl': f'/squads/{squad.id}'}
