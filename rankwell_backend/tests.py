"""
Tests for the project-level plumbing: error envelope, guarded transitions,
pagination, and the health check.
"""
import uuid

import pytest
from rest_framework.exceptions import ValidationError
from rest_framework.request import Request
from rest_framework.test import APIRequestFactory

from audits.lifecycle import ALLOWED_TRANSITIONS
from audits.models import Audit
from domains.models import Domain
from rankwell_backend.exceptions import InvalidTransition, get_owned_or_error, parse_uuid
from rankwell_backend.pagination import paginate
from rankwell_backend.transitions import apply_transition, clamp_progress, update_progress_if_active


def _request(query=''):
    return Request(APIRequestFactory().get(f'/anything/{query}'))


@pytest.fixture
def audit(create_user):
    user = create_user()
    return Audit.objects.create(user=user, domain='example.com', target_keywords=['plumber boise'])


@pytest.mark.django_db
class TestTransitions:

    def test_allowed_move_updates_row(self, audit):
        apply_transition(audit, ALLOWED_TRANSITIONS, Audit.STATUS_CRAWLING, 'Audit', progress=10)
        audit.refresh_from_db()
        assert audit.status == Audit.STATUS_CRAWLING
        assert audit.progress == 10

    def test_disallowed_move_raises(self, audit):
        with pytest.raises(InvalidTransition):
            apply_transition(audit, ALLOWED_TRANSITIONS, Audit.STATUS_COMPLETED, 'Audit')
        audit.refresh_from_db()
        assert audit.status == Audit.STATUS_PENDING

    def test_stale_instance_loses_the_race(self, audit):
        stale = Audit.objects.get(pk=audit.pk)
        apply_transition(audit, ALLOWED_TRANSITIONS, Audit.STATUS_CRAWLING, 'Audit')
        with pytest.raises(InvalidTransition) as excinfo:
            apply_transition(stale, ALLOWED_TRANSITIONS, Audit.STATUS_CRAWLING, 'Audit')
        assert 'status is now CRAWLING' in str(excinfo.value)

    def test_progress_not_written_after_terminal(self, audit):
        Audit.objects.filter(pk=audit.pk).update(status=Audit.STATUS_FAILED)
        assert update_progress_if_active(audit, Audit.TERMINAL_STATUSES, 55) is False
        audit.refresh_from_db()
        assert audit.progress == 0

    @pytest.mark.parametrize('value,expected', [(-5, 0), (42.6, 43), (250, 100), ('x', 0), (None, 0)])
    def test_clamp_progress(self, value, expected):
        assert clamp_progress(value) == expected


@pytest.mark.django_db
class TestOwnership:

    def test_parse_uuid(self):
        value = uuid.uuid4()
        assert parse_uuid(str(value)) == value
        assert parse_uuid('not-a-uuid') is None
        assert parse_uuid(None) is None

    def test_owned_lookup(self, create_user):
        owner = create_user()
        other = create_user(email='other@example.com')
        domain = Domain.objects.create(user=owner, domain='example.com')

        found, error = get_owned_or_error(Domain, str(domain.pk), owner, 'Domain')
        assert found == domain and error is None

        _, error = get_owned_or_error(Domain, str(domain.pk), other, 'Domain')
        assert error.status_code == 403
        assert error.data['error']['code'] == 'FORBIDDEN'

        _, error = get_owned_or_error(Domain, str(uuid.uuid4()), owner, 'Domain')
        assert error.status_code == 404

        _, error = get_owned_or_error(Domain, 'abc', owner, 'Domain')
        assert error.data['error']['code'] == 'INVALID_ID'


@pytest.mark.django_db
class TestPagination:

    @pytest.fixture
    def domains(self, create_user):
        user = create_user()
        for i in range(25):
            Domain.objects.create(user=user, domain=f'site{i}.com')
        return Domain.objects.order_by('domain')

    def test_defaults(self, domains):
        items, meta = paginate(_request(), domains)
        assert len(items) == 10
        assert meta == {'total': 25, 'page': 1, 'limit': 10, 'total_pages': 3, 'has_more': True}

    def test_last_page(self, domains):
        items, meta = paginate(_request('?page=3&limit=10'), domains)
        assert len(items) == 5
        assert meta['has_more'] is False

    @pytest.mark.parametrize('query', ['?limit=0', '?page=abc', '?limit=101'])
    def test_rejects_bad_params(self, domains, query):
        with pytest.raises(ValidationError):
            paginate(_request(query), domains)


@pytest.mark.django_db
class TestProjectEndpoints:

    def test_health_check(self, api_client):
        response = api_client.get('/api/v1/health/')
        assert response.status_code == 200
        assert response.json()['database'] == 'ok'

    def test_unknown_url_returns_json(self, api_client):
        response = api_client.get('/api/v1/does-not-exist/')
        assert response.status_code == 404
        assert response.json()['error']['code'] == 'NOT_FOUND'

    def test_unauthenticated_uses_envelope(self, api_client):
        response = api_client.get('/api/v1/audits/')
        assert response.status_code == 401
        assert response.data['error']['code'] == 'UNAUTHORIZED'
