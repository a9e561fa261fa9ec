import pytest
from rest_framework.authtoken.models import Token
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken

from core.models import AuditEvent, User

pytestmark = pytest.mark.django_db


def login(client, username, password):
    return client.post('/api/auth/login', {'username': username, 'password': password}, format='json')


def test_login_with_username_or_email(client_for, student, password):
    by_name = login(client_for(), student.username, password)
    assert by_name.status_code == 200
    assert by_name.data['ok'] is True
    assert by_name.data['role'] == 'student'
    assert by_name.data['jwt_access'] and by_name.data['jwt_refresh']
    assert Token.objects.get(user=student).key == by_name.data['token']

    by_email = login(client_for(), student.email.upper(), password)
    assert by_email.status_code == 200
    assert by_email.data['user']['id'] == student.id


def test_failed_login_is_audited(client_for, student):
    response = login(client_for(), student.username, 'wrong-password')
    assert response.status_code == 400
    assert response.data['ok'] is False
    event = AuditEvent.objects.get(action='login')
    assert event.user is None
    assert event.detail['result'] == 'fail'


def test_login_requires_fields(client_for):
    response = client_for().post('/api/auth/login', {'username': '  '}, format='json')
    assert response.status_code == 400
    assert response.data['error']['code'] == 'validation_error'


def test_token_authenticates_requests(client_for, student, password):
    token = login(client_for(), student.username, password).data['token']
    client = client_for()
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    assert client.get('/api/auth/me').data['user']['username'] == student.username


def test_jwt_authenticates_requests(client_for, student, password):
    access = login(client_for(), student.username, password).data['jwt_access']
    client = client_for()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    assert client.get('/api/auth/me').status_code == 200


def test_me_requires_login(client_for):
    assert client_for().get('/api/auth/me').status_code == 401


def test_register(client_for):
    payload = {'email': ' New.Student@Example.com ', 'password': 'a-Good-passphrase-7', 'firstName': 'New'}
    response = client_for().post('/api/auth/register', payload, format='json')
    assert response.status_code == 201
    user = User.objects.get(pk=response.data['user']['id'])
    assert user.email == 'new.student@example.com'
    assert user.role == User.ROLE_STUDENT
    assert AuditEvent.objects.filter(action='register', user=user).exists()

    duplicate = client_for().post('/api/auth/register', payload, format='json')
    assert duplicate.status_code == 400


def test_register_rejects_weak_password(client_for):
    response = client_for().post('/api/auth/register', {
        'email': 'weak@example.com', 'password': '12345678', 'firstName': 'Weak',
    }, format='json')
    assert response.status_code == 400
    assert not User.objects.filter(email='weak@example.com').exists()


def test_refresh_returns_jwt_access(client_for, student, password):
    refresh = login(client_for(), student.username, password).data['jwt_refresh']
    response = client_for().post('/api/auth/refresh', {'refresh': refresh}, format='json')
    assert response.status_code == 200
    assert 'jwt_access' in response.data
    assert 'access' not in response.data


def test_logout_blacklists_refresh_token(client_for, student, password):
    tokens = login(client_for(), student.username, password).data
    client = client_for(student)
    response = client.post('/api/auth/logout', {'refresh': tokens['jwt_refresh']}, format='json')
    assert response.data == {'ok': True, 'blacklisted': 1}
    assert BlacklistedToken.objects.count() == 1
    assert not Token.objects.filter(user=student).exists()

    reuse = client_for().post('/api/auth/refresh', {'refresh': tokens['jwt_refresh']}, format='json')
    assert reuse.status_code == 401


def test_logout_without_token_blacklists_all(client_for, student, password):
    login(client_for(), student.username, password)
    login(client_for(), student.username, password)
    response = client_for(student).post('/api/auth/logout', {}, format='json')
    assert response.data['blacklisted'] == 2

    bogus = client_for(student).post('/api/auth/logout', {'refresh': 'not-a-token'}, format='json')
    assert bogus.status_code == 400
