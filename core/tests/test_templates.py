import pytest

from core.models import ApplicationTemplate, AuditEvent, Scholarship
from core.services import form_builder

pytestmark = pytest.mark.django_db


@pytest.fixture
def scholarship():
    return Scholarship.objects.create(
        title='Global Award', scholarship_details='d', provider='Foundation', value=1000, currency='USD',
        frequency='Annual', deadline='2030-01-01', application_link='https://example.org',
    )


@pytest.fixture
def template(scholarship, admin_user):
    return ApplicationTemplate.objects.create(
        scholarship=scholarship, title='Application form', created_by=admin_user,
        sections=[form_builder.create_default_section(1)],
    )


def test_create_template_with_default_section(client_for, admin_user, scholarship):
    response = client_for(admin_user).post('/api/application-templates',
                                           {'scholarshipId': scholarship.id, 'title': 'Form'}, format='json')
    assert response.status_code == 201
    data = response.data['template']
    assert data['version'] == '1.0.0'
    assert len(data['sections']) == 1
    assert data['allowedFileTypes'] == ['pdf', 'doc', 'docx', 'jpg', 'png']
    assert AuditEvent.objects.filter(action='template_create').exists()


def test_students_cannot_create_templates(client_for, student, scholarship):
    response = client_for(student).post('/api/application-templates',
                                        {'scholarshipId': scholarship.id, 'title': 'Form'}, format='json')
    assert response.status_code == 403


def test_invalid_sections_are_rejected_with_details(client_for, admin_user, scholarship):
    response = client_for(admin_user).post('/api/application-templates', {
        'scholarshipId': scholarship.id, 'title': 'Form',
        'sections': [{'id': 's1', 'title': 'One', 'questions': []}],
    }, format='json')
    assert response.status_code == 400
    assert response.data['details'] == ['Section 1: at least one question is required']


def test_list_hides_sections(client_for, student, template):
    response = client_for(student).get('/api/application-templates', {'isActive': 'true'})
    assert response.status_code == 200
    item = response.data['templates'][0]
    assert item['sectionCount'] == 1
    assert 'sections' not in item
    assert response.data['pagination']['total'] == 1


def test_builder_edits_draft_then_publish(client_for, admin_user, template):
    client = client_for(admin_user)
    url = f'/api/application-templates/{template.id}'

    added = client.post(f'{url}/builder', {'op': 'addSection'}, format='json')
    assert added.status_code == 200
    assert len(added.data['sections']) == 2

    renamed = client.post(f'{url}/builder', {'op': 'updateSection', 'sectionIndex': 1,
                                             'changes': {'title': 'Background'}}, format='json')
    assert renamed.data['sections'][1]['title'] == 'Background'

    template.refresh_from_db()
    assert len(template.sections) == 1
    assert len(template.draft_sections) == 2

    published = client.post(f'{url}/publish')
    assert published.status_code == 200
    data = published.data['template']
    assert data['version'] == '1.0.1'
    assert data['hasDraft'] is False
    assert [s['title'] for s in data['sections']] == ['Section 1', 'Background']


def test_builder_error_leaves_draft_untouched(client_for, admin_user, template):
    response = client_for(admin_user).post(f'/api/application-templates/{template.id}/builder',
                                           {'op': 'removeSection', 'sectionIndex': 0}, format='json')
    assert response.status_code == 400
    template.refresh_from_db()
    assert template.draft_sections is None


def test_autosave_and_publish_validation(client_for, admin_user, template):
    client = client_for(admin_user)
    url = f'/api/application-templates/{template.id}'
    saved = client.patch(f'{url}/autosave', {'sections': [{'id': 's', 'title': '', 'questions': []}]}, format='json')
    assert saved.status_code == 200
    assert saved.data['draftSavedAt']

    response = client.post(f'{url}/publish')
    assert response.status_code == 400
    template.refresh_from_db()
    assert template.version == '1.0.0'


def test_builder_requires_admin(client_for, student, template):
    response = client_for(student).post(f'/api/application-templates/{template.id}/builder',
                                        {'op': 'addSection'}, format='json')
    assert response.status_code == 403


def test_question_types(client_for, student):
    response = client_for(student).get('/api/application-templates/question-types')
    types = {t['value']: t for t in response.data['questionTypes']}
    assert len(types) == 21
    assert types['radio']['hasOptions'] is True
    assert types['text']['label'] == 'Short Text'


def test_bump_patch():
    from core.services.templates import bump_patch
    assert bump_patch('1.2.9') == '1.2.10'
    assert bump_patch('garbage') == '1.0.1'


def test_delete_is_admin_only_and_audited(client_for, student, admin_user, template):
    url = f'/api/application-templates/{template.id}'
    assert client_for(student).delete(url).status_code == 403
    assert client_for(admin_user).delete(url).status_code == 204
    assert not ApplicationTemplate.objects.filter(pk=template.id).exists()
    event = AuditEvent.objects.get(action='template_delete')
    assert event.object_id == template.id
    assert event.detail == {'title': 'Application form'}
