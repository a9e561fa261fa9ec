from datetime import timedelta

import pytest
from django.utils import timezone

from core.models import Program, SavedScholarship, Scholarship, School

pytestmark = pytest.mark.django_db


@pytest.fixture
def catalog():
    toronto = School.objects.create(name='University of Toronto', country='Canada', city='Toronto', global_ranking=21)
    munich = School.objects.create(name='TU Munich', country='Germany', city='Munich', global_ranking=37)
    Program.objects.create(school=toronto, name='Computer Science', degree_type='Master', field_of_study='CS')
    Program.objects.create(school=toronto, name='Public Health', degree_type='Master', field_of_study='Health',
                           mode='Online')
    Program.objects.create(school=munich, name='Robotics', degree_type='PhD', field_of_study='Engineering')
    big = Scholarship.objects.create(
        title='Global Award', scholarship_details='Full ride', provider='Global Foundation', value=20000,
        currency='usd', frequency='Annual', deadline='2030-01-31', application_link='https://example.org/a',
        tags=['stem', 'women'],
    )
    small = Scholarship.objects.create(
        title='Travel Grant', scholarship_details='Flights', provider='Travel Trust', value=1500,
        currency='EUR', frequency='One-time', deadline='2030-03-01', application_link='https://example.org/b',
        tags=['travel'],
    )
    return {'toronto': toronto, 'munich': munich, 'big': big, 'small': small}


def test_scholarship_currency_is_uppercased(catalog):
    assert catalog['big'].currency == 'USD'


def test_programs_filter_and_paginate(client_for, student, catalog):
    client = client_for(student)
    response = client.get('/api/programs', {'schoolId': catalog['toronto'].id, 'limit': 1})
    assert response.status_code == 200
    assert len(response.data['programs']) == 1
    pagination = response.data['pagination']
    assert pagination['totalCount'] == 2
    assert pagination['totalPages'] == 2
    assert pagination['hasNextPage'] is True
    assert pagination['hasPrevPage'] is False

    online = client.get('/api/programs', {'mode': 'Online'})
    assert [p['name'] for p in online.data['programs']] == ['Public Health']
    everything = client.get('/api/programs', {'mode': 'all', 'country': 'Germany'})
    assert [p['name'] for p in everything.data['programs']] == ['Robotics']


def test_programs_sort_descending(client_for, student, catalog):
    response = client_for(student).get('/api/programs', {'sortBy': 'name', 'sortOrder': 'desc'})
    assert [p['name'] for p in response.data['programs']] == ['Robotics', 'Public Health', 'Computer Science']


def test_schools_include_program_count(client_for, student, catalog):
    response = client_for(student).get('/api/schools', {'search': 'toronto'})
    assert response.data['schools'][0]['programCount'] == 2


def test_scholarships_filter_by_tag_and_value(client_for, student, catalog):
    client = client_for(student)
    tagged = client.get('/api/scholarships', {'tag': 'stem'})
    assert [s['title'] for s in tagged.data['scholarships']] == ['Global Award']
    rich = client.get('/api/scholarships', {'minValue': 5000})
    assert [s['title'] for s in rich.data['scholarships']] == ['Global Award']


@pytest.mark.parametrize('url, params', [
    ('/api/scholarships', {'minValue': 'abc'}),
    ('/api/scholarships', {'minValue': 'NaN'}),
    ('/api/programs', {'schoolId': 'abc'}),
    ('/api/programs', {'schoolId': '0'}),
    ('/api/application-templates', {'scholarshipId': 'x'}),
    ('/api/user/saved-scholarships', {'scholarshipId': '1.5'}),
])
def test_malformed_filters_are_rejected(client_for, student, catalog, url, params):
    response = client_for(student).get(url, params)
    assert response.status_code == 400
    assert response.data['ok'] is False
    assert response.data['error']['code'] == 'validation_error'


def test_filters_accept_all_and_blank(client_for, student, catalog):
    client = client_for(student)
    assert client.get('/api/programs', {'schoolId': 'all'}).data['pagination']['totalCount'] == 3
    assert len(client.get('/api/scholarships', {'minValue': ''}).data['scholarships']) == 2


def test_only_admins_edit_catalog(client_for, student, admin_user, catalog):
    payload = {'name': 'New School', 'country': 'Kenya'}
    denied = client_for(student).post('/api/schools', payload, format='json')
    assert denied.status_code == 403
    assert denied.data['error']['code'] == 'forbidden'

    created = client_for(admin_user).post('/api/schools', payload, format='json')
    assert created.status_code == 201
    assert created.data['school']['name'] == 'New School'


def test_update_failing_model_validation_is_400(client_for, admin_user, catalog):
    legacy = Program.objects.create(school=catalog['munich'], name='Old', degree_type='Doctorate',
                                    field_of_study='History')
    response = client_for(admin_user).put(f'/api/programs/{legacy.id}', {'name': 'Renamed'}, format='json')
    assert response.status_code == 400
    assert response.data['error']['code'] == 'invalid'
    assert 'degree_type' in response.data['details']
    legacy.refresh_from_db()
    assert legacy.name == 'Old'


def test_program_for_missing_school_is_404(client_for, admin_user):
    response = client_for(admin_user).post('/api/programs', {
        'schoolId': 9999, 'name': 'X', 'degreeType': 'Master', 'fieldOfStudy': 'Y',
    }, format='json')
    assert response.status_code == 404


def test_save_scholarship_twice_updates(client_for, student, catalog):
    client = client_for(student)
    reminder = (timezone.now() + timedelta(days=3)).isoformat()
    first = client.post('/api/user/saved-scholarships',
                        {'scholarshipId': catalog['big'].id, 'reminderDate': reminder}, format='json')
    assert first.status_code == 201
    assert first.data['savedScholarship']['isReminderSet'] is True

    second = client.post('/api/user/saved-scholarships',
                         {'scholarshipId': catalog['big'].id, 'status': 'applied'}, format='json')
    assert second.status_code == 200
    assert second.data['savedScholarship']['status'] == 'applied'
    assert SavedScholarship.objects.filter(user=student).count() == 1

    listing = client.get('/api/user/saved-scholarships', {'status': 'applied'})
    assert listing.data['pagination']['total'] == 1


def test_saved_scholarship_delete_is_owner_only(client_for, student, make_user, catalog):
    saved = SavedScholarship.objects.create(user=student, scholarship=catalog['small'])
    other = make_user()
    assert client_for(other).delete(f'/api/user/saved-scholarships/{saved.id}').status_code == 404
    assert client_for(student).delete(f'/api/user/saved-scholarships/{saved.id}').status_code == 204


def test_dashboard_stats(client_for, student, catalog):
    response = client_for(student).get('/api/dashboard/stats')
    assert response.status_code == 200
    assert response.data['schools'] == 2
    assert response.data['programs'] == 3
    assert response.data['scholarships'] == 2
    assert response.data['topSchools'][0]['name'] == 'University of Toronto'
    assert response.data['topScholarships'][0]['value'] == 20000.0
    assert len(response.data['recentActivity']) == 7
