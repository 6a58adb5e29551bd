"""
Tests for tracked domains.
"""
import pytest

from .models import Domain
from .utils import is_valid_domain, normalize_domain


class TestNormalizeDomain:

    @pytest.mark.parametrize('raw,expected', [
        ('HTTPS://Example-Dental.com/', 'example-dental.com'),
        ('http://www.example.com/services/?q=1', 'www.example.com'),
        ('example.com:8080', 'example.com'),
        ('  example.com.  ', 'example.com'),
        ('', ''),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_domain(raw) == expected

    def test_validity(self):
        assert is_valid_domain('example-dental.com')
        assert is_valid_domain('sub.example.co.uk')
        assert not is_valid_domain('localhost')
        assert not is_valid_domain('exa mple.com')
        assert not is_valid_domain('')


@pytest.mark.django_db
class TestDomainAPI:

    def test_create_normalizes_domain(self, authenticated_client):
        client, user = authenticated_client
        response = client.post('/api/v1/domains/', {
            'domain': 'https://Example-Dental.com/',
            'display_name': 'Example Dental',
            'city': 'Austin',
            'state': 'tx',
        })
        assert response.status_code == 201
        assert response.data['domain'] == 'example-dental.com'
        assert response.data['state'] == 'TX'
        assert Domain.objects.get(user=user).domain == 'example-dental.com'

    def test_duplicate_domain_rejected(self, authenticated_client):
        client, user = authenticated_client
        Domain.objects.create(user=user, domain='example.com')
        response = client.post('/api/v1/domains/', {'domain': 'http://example.com'})
        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert 'domain' in response.data['error']['detail']

    def test_same_domain_for_two_users(self, authenticated_client, other_user_client):
        client, _ = authenticated_client
        other, _ = other_user_client
        assert client.post('/api/v1/domains/', {'domain': 'example.com'}).status_code == 201
        assert other.post('/api/v1/domains/', {'domain': 'example.com'}).status_code == 201

    def test_invalid_domain(self, authenticated_client):
        client, _ = authenticated_client
        response = client.post('/api/v1/domains/', {'domain': 'not a domain'})
        assert response.status_code == 400

    def test_list_is_owner_scoped(self, authenticated_client, other_user_client):
        client, user = authenticated_client
        _, other = other_user_client
        Domain.objects.create(user=user, domain='mine.com')
        Domain.objects.create(user=other, domain='theirs.com')
        response = client.get('/api/v1/domains/')
        assert response.status_code == 200
        assert [d['domain'] for d in response.data['results']] == ['mine.com']

    def test_other_users_domain_is_forbidden(self, authenticated_client, other_user_client):
        client, _ = authenticated_client
        _, other = other_user_client
        theirs = Domain.objects.create(user=other, domain='theirs.com')
        response = client.get(f'/api/v1/domains/{theirs.id}/')
        assert response.status_code == 403
        assert response.data['error']['code'] == 'FORBIDDEN'
        assert client.delete(f'/api/v1/domains/{theirs.id}/').status_code == 403
        assert Domain.objects.filter(pk=theirs.pk).exists()

    def test_malformed_id(self, authenticated_client):
        client, _ = authenticated_client
        response = client.get('/api/v1/domains/not-a-uuid/')
        assert response.status_code == 400
        assert response.data['error']['code'] == 'INVALID_ID'

    def test_missing_domain(self, authenticated_client):
        client, _ = authenticated_client
        response = client.get('/api/v1/domains/00000000-0000-0000-0000-000000000000/')
        assert response.status_code == 404
        assert response.data['error']['code'] == 'NOT_FOUND'

    def test_update_and_delete(self, authenticated_client):
        client, user = authenticated_client
        domain = Domain.objects.create(user=user, domain='example.com')
        response = client.patch(f'/api/v1/domains/{domain.id}/', {'is_active': False})
        assert response.status_code == 200
        assert response.data['is_active'] is False
        assert client.delete(f'/api/v1/domains/{domain.id}/').status_code == 204
        assert not Domain.objects.filter(pk=domain.pk).exists()

    def test_requires_auth(self, api_client):
        assert api_client.get('/api/v1/domains/').status_code == 401
