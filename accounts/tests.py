"""
Tests for accounts app authentication.
"""
import pytest
from django.contrib.auth import get_user_model

User = get_user_model()


@pytest.mark.django_db
class TestAuthentication:

    def test_login_success(self, api_client, create_user):
        user = create_user()
        response = api_client.post('/api/v1/auth/login/', {
            'email': user.email,
            'password': 'testpass123'
        })
        assert response.status_code == 200
        assert 'token' in response.data
        assert 'refresh_token' in response.data
        assert response.data['user']['email'] == user.email

    def test_login_invalid_credentials(self, api_client, create_user):
        create_user()
        response = api_client.post('/api/v1/auth/login/', {
            'email': 'test@example.com',
            'password': 'wrongpassword'
        })
        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'

    def test_login_missing_fields(self, api_client):
        response = api_client.post('/api/v1/auth/login/', {
            'email': 'test@example.com'
        })
        assert response.status_code == 400

    def test_register_success(self, api_client):
        response = api_client.post('/api/v1/auth/register/', {
            'email': 'newuser@example.com',
            'password': 'securepass123',
            'name': 'New User'
        })
        assert response.status_code == 201
        assert 'token' in response.data
        user = User.objects.get(email='newuser@example.com')
        assert user.first_name == 'New'
        assert user.last_name == 'User'

    def test_register_duplicate_email(self, api_client, create_user):
        user = create_user(email='duplicate@example.com')
        response = api_client.post('/api/v1/auth/register/', {
            'email': user.email,
            'password': 'securepass123'
        })
        assert response.status_code == 400

    def test_refresh_token(self, api_client, create_user):
        create_user()
        login = api_client.post('/api/v1/auth/login/', {
            'email': 'test@example.com',
            'password': 'testpass123'
        })
        response = api_client.post('/api/v1/auth/refresh/', {
            'refresh_token': login.data['refresh_token']
        })
        assert response.status_code == 200
        assert response.data['token']

    def test_refresh_rejects_garbage(self, api_client):
        response = api_client.post('/api/v1/auth/refresh/', {'refresh_token': 'not-a-token'})
        assert response.status_code == 401

    def test_me_requires_auth(self, api_client):
        response = api_client.get('/api/v1/auth/me/')
        assert response.status_code == 401

    def test_me(self, authenticated_client):
        client, user = authenticated_client
        response = client.get('/api/v1/auth/me/')
        assert response.status_code == 200
        assert response.data['user']['email'] == user.email

    def test_me_reports_usage(self, authenticated_client):
        client, user = authenticated_client
        user.domains.create(domain='example.com')
        user.domains.create(domain='example.org')
        response = client.get('/api/v1/auth/me/')
        assert response.data['usage']['domains'] == 2
        assert response.data['usage']['audits'] == 0
        assert response.data['usage']['local_campaigns'] == 0
