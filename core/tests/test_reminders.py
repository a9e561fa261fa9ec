from datetime import timedelta

import pytest
from django.core import mail
from django.core.management import call_command
from django.utils import timezone

from core.models import Recipient, RecommendationRequest
from core.services import reminders

pytestmark = pytest.mark.django_db


@pytest.fixture
def recipient(student):
    return Recipient.objects.create(
        created_by=student, emails=['prof@uni.edu'], name='Prof', title='Dr', institution='Uni',
    )


def make_request(student, recipient, days, **extra):
    return RecommendationRequest.objects.create(
        student=student, recipient=recipient, title='Letter', description='d',
        deadline=timezone.now() + timedelta(days=days), relationship_context='r', **extra,
    )


@pytest.mark.parametrize('days,urgency', [(0, 'critical'), (1, 'critical'), (2, 'high'), (3, 'high'),
                                          (5, 'medium'), (7, 'medium'), (8, 'low')])
def test_urgency_thresholds(days, urgency):
    assert reminders.urgency_for(days) == urgency


def test_reminder_message_mentions_days():
    assert 'TOMORROW' in reminders.reminder_message(1)
    assert 'due in 5 days' in reminders.reminder_message(5)


def test_next_reminder_date_uses_first_interval_still_ahead():
    deadline = timezone.now() + timedelta(days=5)
    assert reminders.next_reminder_date(deadline, 5, [7, 3, 1]) == deadline - timedelta(days=3)
    assert reminders.next_reminder_date(deadline, 1, [7, 3, 1]) is None
    assert reminders.next_reminder_date(deadline, 5, []) is None


def test_due_request_is_reminded_and_rescheduled(student, recipient):
    req = make_request(student, recipient, 5)
    assert req.next_reminder_date < timezone.now()

    result = reminders.process_reminders()

    assert result['processed'] == 1
    assert result['sent'] == 1
    assert result['details'][0]['urgency'] == 'medium'
    assert result['details'][0]['status'] == 'sent'
    req.refresh_from_db()
    assert req.last_reminder_sent is not None
    assert req.next_reminder_date == req.deadline - timedelta(days=3)
    assert len(mail.outbox) == 1
    assert mail.outbox[0].subject.startswith('Reminder')


def test_request_not_yet_due_is_left_alone(student, recipient):
    make_request(student, recipient, 30)
    result = reminders.process_reminders()
    assert result['processed'] == 0
    assert mail.outbox == []


def test_received_requests_get_no_reminders(student, recipient):
    make_request(student, recipient, 2, status='received')
    assert reminders.process_reminders()['processed'] == 0


def test_unscheduled_request_gets_a_single_reminder(student, recipient):
    req = make_request(student, recipient, 10, reminder_intervals=[])
    assert req.next_reminder_date is None

    assert reminders.process_reminders()['sent'] == 1
    req.refresh_from_db()
    assert req.next_reminder_date is None
    assert reminders.process_reminders()['processed'] == 0


def test_passed_deadline_marks_request_overdue(student, recipient):
    req = make_request(student, recipient, 3)
    RecommendationRequest.objects.filter(pk=req.pk).update(deadline=timezone.now() - timedelta(hours=1))

    result = reminders.process_reminders()

    assert result['overdue'] == 1
    req.refresh_from_db()
    assert req.status == 'overdue'


def test_failed_email_counts_as_error(student, recipient, monkeypatch):
    make_request(student, recipient, 2)
    monkeypatch.setattr(reminders.email, 'send_reminder', lambda *args, **kwargs: False)
    result = reminders.process_reminders()
    assert result['errors'] == 1
    assert result['details'][0]['status'] == 'error'


def test_cron_endpoint_requires_secret(client_for, settings):
    settings.CRON_SECRET = 'cron-secret'
    response = client_for().post('/api/cron/reminders')
    assert response.status_code in (401, 403)

    client = client_for()
    client.credentials(HTTP_AUTHORIZATION='Bearer cron-secret')
    response = client.post('/api/cron/reminders')
    assert response.status_code == 200
    assert response.data['ok'] is True
    assert response.data['processed'] == 0


def test_admin_can_trigger_cron_manually(client_for, admin_user):
    response = client_for(admin_user).get('/api/cron/reminders')
    assert response.status_code == 200


def test_management_command_runs(student, recipient, capsys):
    make_request(student, recipient, 2)
    call_command('send_recommendation_reminders')
    out = capsys.readouterr().out
    assert 'processed=1 sent=1' in out
