import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from core.models import User

PASSWORD = 'Str0ng-pass-42'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttles and report caches share the default cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def make(role=User.ROLE_STUDENT, **extra):
        counter['n'] += 1
        username = extra.pop('username', f'{role}{counter["n"]}')
        return User.objects.create_user(
            username=username,
            email=extra.pop('email', f'{username}@example.com'),
            password=PASSWORD,
            role=role,
            first_name=extra.pop('first_name', username.title()),
            **extra,
        )
    return make


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
def student(make_user):
    return make_user(User.ROLE_STUDENT)


@pytest.fixture
def admin_user(make_user):
    return make_user(User.ROLE_ADMIN)


@pytest.fixture
def client_for():
    def build(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return build
