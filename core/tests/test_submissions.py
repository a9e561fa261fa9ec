"""
Students filling in and submitting application templates; admin review.
"""
from datetime import timedelta

import pytest
from django.utils import timezone

from core.models import ApplicationSubmission, ApplicationTemplate, AuditEvent, Notification, Scholarship
from core.services import submissions

pytestmark = pytest.mark.django_db


def question(qid, qtype='text', required=False, options=None):
    q = {'id': qid, 'type': qtype, 'title': qid, 'required': required, 'order': 1}
    if options:
        q['options'] = [{'value': o, 'label': o} for o in options]
    return q


@pytest.fixture
def template(admin_user):
    scholarship = Scholarship.objects.create(
        title='Global Award', scholarship_details='d', provider='Foundation', value=1000, currency='USD',
        frequency='Annual', deadline='2030-01-01', application_link='https://example.org',
    )
    return ApplicationTemplate.objects.create(
        scholarship=scholarship, title='Global Award form', created_by=admin_user,
        sections=[
            {'id': 's1', 'title': 'About you', 'order': 1, 'questions': [
                question('name', required=True),
                question('track', 'radio', required=True, options=['stem', 'arts']),
            ]},
            {'id': 's2', 'title': 'Extras', 'order': 2, 'questions': [
                question('gpa', 'gpa'),
                question('tags', 'checkbox', options=['first-gen', 'rural']),
            ]},
        ],
    )


def start(client, template, **extra):
    payload = {'templateId': template.id}
    payload.update(extra)
    return client.post('/api/applications', payload, format='json')


def test_start_creates_draft(client_for, student, template):
    response = start(client_for(student), template)
    assert response.status_code == 201
    data = response.data['application']
    assert data['status'] == 'draft'
    assert data['progress'] == 0
    assert data['requirementsProgress'] == {'total': 4, 'completed': 0, 'required': 2, 'requiredCompleted': 0}
    assert data['scholarship']['title'] == 'Global Award'
    assert data['templateVersion'] == '1.0.0'
    assert AuditEvent.objects.filter(action='application_start', object_id=data['id']).exists()


def test_one_application_per_template(client_for, student, template):
    first = start(client_for(student), template)
    again = start(client_for(student), template)
    assert again.status_code == 409
    assert again.data['applicationId'] == first.data['application']['id']


def test_inactive_template_cannot_be_started(client_for, student, template):
    template.is_active = False
    template.save()
    assert start(client_for(student), template).status_code == 404


def test_closed_template_cannot_be_started(client_for, student, template):
    template.submission_deadline = timezone.now() - timedelta(days=1)
    template.save()
    response = start(client_for(student), template)
    assert response.status_code == 400
    assert response.data['error']['message'] == 'The submission deadline has passed'


def test_progress_counts_required_answers(client_for, student, template):
    client = client_for(student)
    app_id = start(client, template, answers={'name': 'Ada', 'gpa': 3.9}).data['application']['id']
    response = client.get(f'/api/applications/{app_id}')
    data = response.data['application']
    assert data['status'] == 'in_progress'
    assert data['progress'] == 50
    assert data['requirementsProgress']['completed'] == 2

    updated = client.patch(f'/api/applications/{app_id}', {'answers': {'track': 'arts', 'gpa': None},
                                                            'currentSectionId': 's2'}, format='json')
    data = updated.data['application']
    assert data['progress'] == 100
    assert data['answers'] == {'name': 'Ada', 'track': 'arts'}
    assert data['currentSectionId'] == 's2'


@pytest.mark.parametrize('answers, field', [
    ({'track': 'music'}, 'track'),
    ({'track': ['stem', 'arts']}, 'track'),
    ({'tags': ['unknown']}, 'tags'),
    ({'gpa': 'four'}, 'gpa'),
])
def test_invalid_answers_are_rejected(client_for, student, template, answers, field):
    response = start(client_for(student), template, answers=answers)
    assert response.status_code == 400
    assert field in response.data['details']


def test_unknown_questions_are_rejected(client_for, student, template):
    response = start(client_for(student), template, answers={'nope': 'x'})
    assert response.status_code == 400
    assert response.data['unknown'] == ['nope']


def test_submit_requires_required_answers(client_for, student, template):
    client = client_for(student)
    app_id = start(client, template, answers={'name': 'Ada'}).data['application']['id']
    response = client.post(f'/api/applications/{app_id}/submit')
    assert response.status_code == 400
    assert response.data['missing'] == ['track']
    assert ApplicationSubmission.objects.get(pk=app_id).status == 'in_progress'


def test_submit_locks_answers_and_notifies(client_for, student, template):
    client = client_for(student)
    app_id = start(client, template, answers={'name': 'Ada', 'track': 'stem'}).data['application']['id']
    response = client.post(f'/api/applications/{app_id}/submit')
    assert response.status_code == 200
    data = response.data['application']
    assert data['status'] == 'submitted'
    assert data['submittedAt'] is not None

    assert client.post(f'/api/applications/{app_id}/submit').status_code == 400
    edit = client.patch(f'/api/applications/{app_id}', {'answers': {'name': 'Bo'}}, format='json')
    assert edit.status_code == 400
    assert AuditEvent.objects.filter(action='application_submit', object_id=app_id).exists()
    note = Notification.objects.get(user=student)
    assert note.type == 'application_status'
    assert note.content['submissionId'] == app_id


def test_submit_drops_answers_to_removed_questions(student, template):
    sub = submissions.start_submission(student, {'templateId': template.id,
                                                 'answers': {'name': 'Ada', 'track': 'stem', 'gpa': 3}})
    template.sections[1]['questions'] = [question('tags', 'checkbox', options=['rural'])]
    template.save()
    sub = submissions.submit(submissions.get_submission(student, sub.id), student)
    assert sub.answers == {'name': 'Ada', 'track': 'stem'}


def test_applications_are_private(client_for, make_user, student, template):
    app_id = start(client_for(student), template).data['application']['id']
    other = make_user()
    assert client_for(other).get(f'/api/applications/{app_id}').status_code == 404
    assert client_for(other).get('/api/applications').data['pagination']['total'] == 0
    assert client_for(student).get('/api/applications', {'status': 'draft'}).data['pagination']['total'] == 1


def test_admin_reviews_and_student_is_notified(client_for, student, admin_user, template):
    sub = submissions.start_submission(student, {'templateId': template.id,
                                                 'answers': {'name': 'Ada', 'track': 'stem'}})
    admin = client_for(admin_user)
    early = admin.patch(f'/api/applications/{sub.id}/status', {'status': 'approved'}, format='json')
    assert early.status_code == 400

    submissions.submit(sub, student)
    denied = client_for(student).patch(f'/api/applications/{sub.id}/status', {'status': 'approved'}, format='json')
    assert denied.status_code == 403

    review = admin.patch(f'/api/applications/{sub.id}/status', {'status': 'under_review'}, format='json')
    assert review.data['submissionStatus']['nextStatuses'] == ['approved', 'rejected', 'waitlisted']
    decided = admin.patch(f'/api/applications/{sub.id}/status',
                          {'status': 'approved', 'note': 'Congratulations!'}, format='json')
    status_data = decided.data['submissionStatus']
    assert status_data['status'] == 'approved'
    assert status_data['applicationSubmitted'] is True
    assert status_data['decidedAt'] is not None

    latest = Notification.objects.filter(user=student).first()
    assert latest.priority == 'high'
    assert latest.message.endswith('is now approved. Congratulations!')
    assert AuditEvent.objects.filter(action='application_review').count() == 2

    listing = admin.get('/api/admin/applications', {'status': 'approved'})
    assert [a['id'] for a in listing.data['applications']] == [sub.id]
    assert client_for(student).get('/api/admin/applications').status_code == 403


def test_withdraw(client_for, student, template):
    client = client_for(student)
    app_id = start(client, template).data['application']['id']
    response = client.delete(f'/api/applications/{app_id}')
    assert response.status_code == 200
    assert response.data['application']['status'] == 'withdrawn'
    assert client.delete(f'/api/applications/{app_id}').status_code == 400
    status_data = client.get(f'/api/applications/{app_id}/status').data['submissionStatus']
    assert status_data['applicationSubmitted'] is False


def test_draft_saving_can_be_disabled(client_for, student, template):
    template.allow_draft_saving = False
    template.save()
    client = client_for(student)
    app_id = start(client, template).data['application']['id']
    response = client.patch(f'/api/applications/{app_id}', {'answers': {'name': 'Ada'}}, format='json')
    assert response.status_code == 400


def test_malformed_filter_is_rejected(client_for, student):
    response = client_for(student).get('/api/applications', {'templateId': 'abc'})
    assert response.status_code == 400
    assert response.data['error']['code'] == 'validation_error'
