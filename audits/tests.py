"""
Tests for audits: state machine, keyword generation, pipeline, and API.
"""
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.utils import timezone

from domains.models import Domain
from integrations.dataforseo import DataForSEOClient
from integrations.errors import PERMANENT, QUOTA, RETRYABLE, ProviderError
from jobs.dispatch import process_message
from jobs.models import JobMessage
from rankwell_backend.exceptions import InvalidStatus, InvalidTransition

from . import lifecycle
from .executor import AUDIT_REQUESTED, estimate_avg_position, run_audit
from .keywords import format_location_name, generate_keywords_for_location
from .models import Audit
from .steps import (
    BACKLINKS,
    BUSINESS,
    COMPETITORS,
    ONPAGE,
    SERP,
    BacklinksStepResult,
    CompetitorsStepResult,
    read_step,
)
from .views import estimated_seconds_remaining

HOMEPAGE = {
    'url': 'https://example-dental.com/',
    'status_code': 200,
    'onpage_score': 92.4,
    'checks': {'is_https': True, 'no_title': False, 'is_broken': False, 'no_h1_tag': True},
    'page_timing': {'largest_contentful_paint': 1800, 'first_input_delay': 50},
    'meta': {
        'title': 'Example Dental',
        'htags': {'h1': ['Family dentistry']},
        'content': {'plain_text_word_count': 640},
        'internal_links_count': 12,
        'external_links_count': 2,
        'cumulative_layout_shift': 0.02,
    },
}


@pytest.fixture
def user(create_user):
    return create_user()


@pytest.fixture
def audit(user):
    return Audit.objects.create(user=user, domain='example-dental.com', target_keywords=['dentist austin'])


def _provider():
    client = MagicMock()
    client.instant_page.return_value = HOMEPAGE
    client.ranked_keywords.return_value = {
        'total_count': 2,
        'items': [
            {'keyword': 'dentist austin', 'position': 4, 'url': 'https://example-dental.com/', 'search_volume': 900},
            {'keyword': 'teeth whitening austin', 'position': 18, 'url': None, 'search_volume': 200},
        ],
    }
    client.backlinks_summary.return_value = {
        'backlinks': 1200, 'referring_domains': 80, 'referring_domains_nofollow': 20, 'rank': 310,
    }
    client.domain_rank_overview.return_value = {'count': 10, 'pos_1': 2, 'pos_2_3': 2, 'pos_4_10': 6, 'etv': 512.6}
    client.competitors_domain.return_value = [
        {'domain': 'rival-dental.com', 'avg_position': 8.2, 'intersections': 40},
    ]
    return client


def _backlinks_response(backlinks):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {
        'status_code': 20000,
        'tasks': [{'status_code': 20000, 'result': [{'backlinks': backlinks, 'referring_domains': 5}]}],
    }
    return response


@pytest.mark.django_db
class TestAuditLifecycle:

    def _fail(self, audit, message='Insufficient balance'):
        lifecycle.start_audit(audit)
        lifecycle.fail_audit(audit, message, category=QUOTA)
        audit.refresh_from_db()
        return audit

    def test_forward_path(self, audit):
        lifecycle.start_audit(audit)
        assert audit.progress == 5
        lifecycle.begin_analysis(audit)
        lifecycle.complete_audit(audit, health_score=81)
        audit.refresh_from_db()
        assert audit.status == lifecycle.COMPLETED
        assert audit.progress == 100
        assert audit.current_step is None
        assert audit.health_score == 81

    def test_complete_requires_score(self, audit):
        lifecycle.start_audit(audit)
        lifecycle.begin_analysis(audit)
        with pytest.raises(InvalidTransition):
            lifecycle.complete_audit(audit, health_score=None)

    def test_fail_records_category(self, audit):
        audit = self._fail(audit)
        assert audit.status == lifecycle.FAILED
        assert audit.error_message == 'Insufficient balance'
        assert audit.step_results['_failure']['category'] == QUOTA

    def test_retry_resets_failed_audit(self, audit):
        audit = self._fail(audit)
        lifecycle.retry_audit(audit)
        audit.refresh_from_db()
        assert audit.status == lifecycle.PENDING
        assert audit.progress == 0
        assert audit.error_message is None
        assert audit.current_step is None
        assert audit.started_at is None
        assert audit.completed_at is None
        assert audit.step_results == {}

    @pytest.mark.parametrize('status', [
        Audit.STATUS_PENDING, Audit.STATUS_CRAWLING, Audit.STATUS_ANALYZING, Audit.STATUS_COMPLETED,
    ])
    def test_retry_rejected_unless_failed(self, audit, status):
        Audit.objects.filter(pk=audit.pk).update(status=status, progress=40)
        audit.refresh_from_db()
        with pytest.raises(InvalidStatus) as exc:
            lifecycle.retry_audit(audit)
        assert status in str(exc.value)
        audit.refresh_from_db()
        assert audit.status == status
        assert audit.progress == 40

    def test_save_step_result_keeps_other_stages(self, audit):
        lifecycle.start_audit(audit)
        lifecycle.save_step_result(audit, BACKLINKS, BacklinksStepResult(total_backlinks=5))
        lifecycle.save_step_result(audit, COMPETITORS, CompetitorsStepResult(target={'domain': 'x.com'}))
        audit.refresh_from_db()
        assert read_step(audit, BACKLINKS).total_backlinks == 5
        assert read_step(audit, COMPETITORS).target == {'domain': 'x.com'}
        assert read_step(audit, SERP) is None

    def test_unknown_stage_rejected(self, audit):
        with pytest.raises(ValueError):
            lifecycle.save_step_result(audit, 'llm', {})

    def test_cooldown(self, audit):
        assert lifecycle.was_recently_audited('example-dental.com')
        assert not lifecycle.was_recently_audited('other.com')
        Audit.objects.filter(pk=audit.pk).update(created_at=timezone.now() - timedelta(hours=2))
        assert not lifecycle.was_recently_audited('example-dental.com')

    def test_failed_audit_does_not_trigger_cooldown(self, audit):
        self._fail(audit)
        assert not lifecycle.was_recently_audited('example-dental.com')


class TestKeywords:

    def test_generates_capped_lowercase_keywords(self):
        keywords = generate_keywords_for_location('Austin', 'tx')
        assert len(keywords) == 20
        assert keywords[0] == 'dentist austin'
        assert 'dentist austin tx' in keywords
        assert all(k == k.lower() for k in keywords)

    def test_full_state_name(self):
        keywords = generate_keywords_for_location('Philadelphia', 'PA', limit=50)
        assert 'dentist in philadelphia pennsylvania' in keywords

    def test_without_state_skips_state_templates(self):
        keywords = generate_keywords_for_location('Austin', limit=50)
        assert keywords
        assert not any(k.endswith(' ') or '  ' in k for k in keywords)
        assert 'dentist austin tx' not in keywords

    def test_no_city(self):
        assert generate_keywords_for_location('', 'TX') == []

    def test_location_name(self):
        assert format_location_name('Austin, TX') == 'Austin,Texas,United States'
        assert format_location_name('Austin') is None


class TestEstimates:

    def test_avg_position_from_buckets(self):
        assert estimate_avg_position({'count': 10, 'pos_1': 2, 'pos_2_3': 2, 'pos_4_10': 6}) == 5
        assert estimate_avg_position({}) == 0

    def test_seconds_remaining(self):
        audit = Audit(progress=25, started_at=timezone.now() - timedelta(seconds=30))
        assert estimated_seconds_remaining(audit, now=audit.started_at + timedelta(seconds=30)) == 90
        assert estimated_seconds_remaining(Audit(progress=0)) is None


@pytest.mark.django_db
class TestAuditPipeline:

    @patch('audits.executor.get_places_client')
    @patch('audits.executor.verify_https', return_value=True)
    @patch('audits.executor.get_dataforseo_client')
    def test_runs_every_stage(self, mock_client, mock_https, mock_places, audit):
        mock_client.return_value = _provider()
        mock_places.return_value.is_configured.return_value = False

        run_audit({'audit_id': str(audit.pk)})

        audit.refresh_from_db()
        assert audit.status == lifecycle.COMPLETED
        assert audit.progress == 100
        onpage = read_step(audit, ONPAGE)
        assert onpage.https_verified is True
        assert onpage.issue_counts['errors'] == 1
        assert audit.health_score == onpage.health_score
        serp = read_step(audit, SERP)
        assert serp.tracked_keywords[0]['position'] == 4
        assert serp.top10_count == 1
        assert read_step(audit, BACKLINKS).dofollow_ratio == 0.75
        competitors = read_step(audit, COMPETITORS)
        assert competitors.discovered[0]['domain'] == 'rival-dental.com'
        assert 'warnings' not in audit.step_results

    @patch('audits.executor.get_places_client')
    @patch('audits.executor.verify_https', return_value=True)
    @patch('audits.executor.get_dataforseo_client')
    def test_non_critical_failure_is_a_warning(self, mock_client, mock_https, mock_places, audit):
        client = _provider()
        client.domain_rank_overview.side_effect = ProviderError('Internal error', RETRYABLE)
        mock_client.return_value = client
        mock_places.return_value.is_configured.return_value = False

        run_audit({'audit_id': str(audit.pk)})

        audit.refresh_from_db()
        assert audit.status == lifecycle.COMPLETED
        assert read_step(audit, COMPETITORS) is None
        assert audit.step_results['warnings']['competitors']['message'] == 'Internal error'

    @patch('audits.executor.get_places_client')
    @patch('audits.executor.verify_https', return_value=True)
    @patch('audits.executor.get_dataforseo_client')
    def test_permanent_critical_failure_continues(self, mock_client, mock_https, mock_places, audit):
        client = _provider()
        client.instant_page.side_effect = ProviderError('Invalid target', PERMANENT)
        mock_client.return_value = client
        mock_places.return_value.is_configured.return_value = False

        run_audit({'audit_id': str(audit.pk)})

        audit.refresh_from_db()
        assert audit.status == lifecycle.COMPLETED
        assert audit.health_score == 0
        assert 'onpage' in audit.step_results['warnings']

    @patch('audits.executor.verify_https', return_value=True)
    @patch('audits.executor.get_dataforseo_client')
    def test_retryable_critical_failure_propagates(self, mock_client, mock_https, audit):
        client = _provider()
        client.ranked_keywords.side_effect = ProviderError('Rate limit exceeded', RETRYABLE)
        mock_client.return_value = client

        with pytest.raises(ProviderError):
            run_audit({'audit_id': str(audit.pk)})

        audit.refresh_from_db()
        assert audit.status == lifecycle.ANALYZING
        assert read_step(audit, ONPAGE) is not None

    @patch('audits.executor.get_places_client')
    @patch('audits.executor.verify_https', return_value=True)
    @patch('audits.executor.get_dataforseo_client')
    def test_redelivery_skips_finished_stages(self, mock_client, mock_https, mock_places, audit):
        client = _provider()
        mock_client.return_value = client
        mock_places.return_value.is_configured.return_value = False
        lifecycle.start_audit(audit)
        lifecycle.save_step_result(audit, ONPAGE, {'url': 'https://example-dental.com/', 'health_score': 77})

        run_audit({'audit_id': str(audit.pk)})

        client.instant_page.assert_not_called()
        audit.refresh_from_db()
        assert audit.status == lifecycle.COMPLETED
        assert audit.health_score == 77

    @patch('audits.executor.get_dataforseo_client')
    def test_exhausted_job_fails_with_provider_message(self, mock_client, audit, settings):
        settings.JOBS_MAX_ATTEMPTS = 1
        client = _provider()
        client.instant_page.side_effect = ProviderError('Service unavailable', RETRYABLE)
        mock_client.return_value = client
        message = JobMessage.objects.create(event=AUDIT_REQUESTED, payload={'audit_id': str(audit.pk)})

        with patch('audits.executor.verify_https', return_value=True):
            process_message(message)

        audit.refresh_from_db()
        assert audit.status == lifecycle.FAILED
        assert audit.error_message == 'Service unavailable'
        assert audit.step_results['_failure']['category'] == RETRYABLE

    def _warm_backlinks_run(self, audit, payload):
        """Cache a stale backlinks summary, then run only the backlinks stage."""
        stale = MagicMock()
        stale.request.return_value = _backlinks_response(10)
        DataForSEOClient(session=stale).backlinks_summary(audit.domain)

        lifecycle.start_audit(audit)
        for stage, data in ((ONPAGE, {'health_score': 80}), (SERP, {}), (COMPETITORS, {}), (BUSINESS, {})):
            lifecycle.save_step_result(audit, stage, data)

        fresh = MagicMock()
        fresh.request.return_value = _backlinks_response(250)
        with patch('integrations.dataforseo.requests.Session', return_value=fresh):
            run_audit({'audit_id': str(audit.pk), **payload})
        audit.refresh_from_db()
        return fresh

    def test_retried_audit_bypasses_warm_cache(self, audit):
        fresh = self._warm_backlinks_run(audit, {'skip_cache': True})

        assert fresh.request.call_count == 1
        assert read_step(audit, BACKLINKS).total_backlinks == 250
        assert audit.status == lifecycle.COMPLETED

    def test_first_run_reads_warm_cache(self, audit):
        fresh = self._warm_backlinks_run(audit, {})

        fresh.request.assert_not_called()
        assert read_step(audit, BACKLINKS).total_backlinks == 10

    def test_completed_audit_ignores_redelivery(self, audit):
        Audit.objects.filter(pk=audit.pk).update(status=Audit.STATUS_COMPLETED)
        with patch('audits.executor.get_dataforseo_client') as mock_client:
            run_audit({'audit_id': str(audit.pk)})
        mock_client.assert_not_called()


@pytest.mark.django_db
class TestAuditAPI:

    def test_create_audit(self, authenticated_client):
        client, user = authenticated_client
        Domain.objects.create(user=user, domain='example-dental.com')
        response = client.post('/api/v1/audits/', {
            'domain': 'https://Example-Dental.com/',
            'city': 'Austin',
            'state': 'tx',
            'competitor_domains': ['rival-dental.com'],
        })
        assert response.status_code == 201
        data = response.data['data']
        assert data['domain'] == 'example-dental.com'
        assert data['status'] == 'PENDING'
        assert data['state'] == 'TX'
        assert len(data['target_keywords']) == 20
        assert data['domain_ref'] is not None
        message = JobMessage.objects.get(event=AUDIT_REQUESTED)
        assert message.payload['audit_id'] == data['id']
        assert message.payload['skip_cache'] is False

    def test_cooldown_then_skip_cache(self, authenticated_client):
        client, user = authenticated_client
        first = client.post('/api/v1/audits/', {'domain': 'example-dental.com'})
        assert first.status_code == 201

        second = client.post('/api/v1/audits/', {'domain': 'example-dental.com'})
        assert second.status_code == 429
        assert second.data['error']['code'] == 'RATE_LIMITED'
        assert Audit.objects.filter(domain='example-dental.com').count() == 1

        third = client.post('/api/v1/audits/', {'domain': 'example-dental.com', 'options': {'skip_cache': True}})
        assert third.status_code == 201
        assert third.data['data']['status'] == 'PENDING'
        assert Audit.objects.filter(domain='example-dental.com').count() == 2

    @pytest.mark.parametrize('payload', [
        {'domain': 'not a domain'},
        {'domain': 'example.com', 'state': 'Texas'},
        {'domain': 'example.com', 'competitor_domains': [f'c{i}.com' for i in range(6)]},
        {'domain': 'example.com', 'target_keywords': [f'k{i}' for i in range(21)]},
        {'domain': 'example.com', 'options': {'priority': 'urgent'}},
    ])
    def test_create_validation(self, authenticated_client, payload):
        client, _ = authenticated_client
        response = client.post('/api/v1/audits/', payload)
        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert not Audit.objects.exists()

    def test_list_filters_and_pagination(self, authenticated_client, other_user_client):
        client, user = authenticated_client
        _, other = other_user_client
        for i in range(3):
            Audit.objects.create(user=user, domain=f'site{i}.com')
        Audit.objects.create(user=user, domain='failed.com', status=Audit.STATUS_FAILED)
        Audit.objects.create(user=other, domain='theirs.com')

        response = client.get('/api/v1/audits/?limit=2')
        assert response.status_code == 200
        assert len(response.data['data']) == 2
        assert response.data['meta']['total'] == 4
        assert response.data['meta']['has_more'] is True

        response = client.get('/api/v1/audits/?status=failed')
        assert [a['domain'] for a in response.data['data']] == ['failed.com']

    def test_status_endpoint(self, authenticated_client):
        client, user = authenticated_client
        audit = Audit.objects.create(user=user, domain='example.com', status=Audit.STATUS_ANALYZING,
                                     progress=30, current_step='serp_analysis', started_at=timezone.now())
        response = client.get(f'/api/v1/audits/{audit.pk}/status/')
        data = response.data['data']
        assert data['current_step_description'] == 'Checking keyword rankings and search presence'
        assert data['is_in_progress'] is True
        assert data['is_complete'] is False

    def test_retry_failed_audit(self, authenticated_client):
        client, user = authenticated_client
        audit = Audit.objects.create(user=user, domain='example.com', status=Audit.STATUS_FAILED,
                                     progress=30, error_message='boom', step_results={'onpage': {}})
        response = client.post(f'/api/v1/audits/{audit.pk}/retry/')
        assert response.status_code == 200
        audit.refresh_from_db()
        assert audit.status == Audit.STATUS_PENDING
        assert audit.step_results == {}
        message = JobMessage.objects.get(event=AUDIT_REQUESTED)
        assert message.payload['skip_cache'] is True

    def test_retry_completed_audit_rejected(self, authenticated_client):
        client, user = authenticated_client
        audit = Audit.objects.create(user=user, domain='example.com', status=Audit.STATUS_COMPLETED,
                                     progress=100, health_score=70)
        response = client.post(f'/api/v1/audits/{audit.pk}/retry/')
        assert response.status_code == 400
        assert response.data['error']['code'] == 'INVALID_STATUS'
        assert 'COMPLETED' in response.data['error']['message']
        assert not JobMessage.objects.exists()

    def test_ownership(self, authenticated_client, other_user_client):
        client, _ = authenticated_client
        _, other = other_user_client
        audit = Audit.objects.create(user=other, domain='example.com')
        assert client.get(f'/api/v1/audits/{audit.pk}/').status_code == 403
        assert client.delete(f'/api/v1/audits/{audit.pk}/').status_code == 403
        assert client.get('/api/v1/audits/00000000-0000-0000-0000-000000000000/').status_code == 404
        assert client.get('/api/v1/audits/xyz/').data['error']['code'] == 'INVALID_ID'

    def test_report_without_onpage_data(self, authenticated_client):
        client, user = authenticated_client
        audit = Audit.objects.create(user=user, domain='example.com')
        data = client.get(f'/api/v1/audits/{audit.pk}/report/').data['data']
        assert data['has_onpage_data'] is False
        assert data['issues'] == {'errors': [], 'warnings': [], 'notices': [], 'passed': []}
        assert len(data['thematic_reports']) == 6
        assert all(r['score'] == 0 for r in data['thematic_reports'])
        assert data['health_score'] == 0

    def test_report_with_onpage_data(self, authenticated_client):
        client, user = authenticated_client
        audit = Audit.objects.create(user=user, domain='example.com', step_results={
            'onpage': {'checks': HOMEPAGE['checks'], 'page_timing': HOMEPAGE['page_timing'], 'meta': HOMEPAGE['meta']},
        })
        data = client.get(f'/api/v1/audits/{audit.pk}/report/').data['data']
        assert data['has_onpage_data'] is True
        assert [i['check'] for i in data['issues']['errors']] == ['no_h1_tag']

    @patch('audits.views.get_dataforseo_client')
    def test_competitors_with_failed_gap_lookup(self, mock_client, authenticated_client):
        client, user = authenticated_client
        mock_client.return_value.backlink_gap.side_effect = ProviderError('Rate limit exceeded', RETRYABLE)
        audit = Audit.objects.create(user=user, domain='example.com', step_results={
            'competitors': {'target': {'domain': 'example.com'}, 'competitors': [{'domain': 'rival.com'}]},
        })
        response = client.get(f'/api/v1/audits/{audit.pk}/competitors/')
        data = response.data['data']
        assert response.status_code == 200
        assert data['has_data'] is True
        assert data['competitors'] == [{'domain': 'rival.com'}]
        assert data['backlink_gap'] == []

    def test_competitors_without_stage(self, authenticated_client):
        client, user = authenticated_client
        audit = Audit.objects.create(user=user, domain='example.com')
        data = client.get(f'/api/v1/audits/{audit.pk}/competitors/').data['data']
        assert data['has_data'] is False
        assert data['backlink_gap'] == []
