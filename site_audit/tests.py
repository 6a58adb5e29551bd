"""
Tests for site audit scans: state machine, ingestion, job handlers, and API.
"""
from unittest.mock import MagicMock, patch

import pytest

from audits.models import Audit
from domains.models import Domain
from integrations.errors import PERMANENT, ProviderError
from jobs.dispatch import process_message
from jobs.models import JobMessage
from rankwell_backend.exceptions import InvalidTransition

from . import lifecycle
from .executor import (
    SCAN_POLL,
    SCAN_REQUESTED,
    crawl_progress,
    poll_delay_seconds,
    poll_site_audit,
    run_site_audit,
)
from .ingestion import build_page, extract_issue_types, save_pages, save_summary
from .models import SiteAuditPage, SiteAuditScan, SiteAuditSummary, url_hash


def _item(url, status_code=200, checks=None, **extra):
    item = {
        'url': url,
        'status_code': status_code,
        'onpage_score': 90.5,
        'meta': {
            'title': f'Title {url}',
            'description': 'A page',
            'htags': {'h1': ['Welcome']},
            'content': {'plain_text_word_count': 420},
            'internal_links_count': 5,
            'external_links_count': 1,
            'cumulative_layout_shift': 0.05,
        },
        'page_timing': {'largest_contentful_paint': 2000},
        'checks': checks if checks is not None else {'is_https': True, 'no_title': False},
    }
    item.update(extra)
    return item


SUMMARY = {
    'crawl_status': {'max_crawl_pages': 100, 'pages_crawled': 2},
    'crawl_stop_reason': 'empty_queue',
    'page_metrics': {'onpage_score': 88.1, 'links_internal': 40, 'broken_links': 1},
    'domain_info': {'name': 'example.com', 'ssl_info': {'valid_certificate': True}},
}


@pytest.fixture
def user(create_user):
    return create_user()


@pytest.fixture
def scan(user):
    return SiteAuditScan.objects.create(user=user, domain='example.com')


def _crawling(scan, task_id='task-1'):
    lifecycle.mark_submitting(scan)
    lifecycle.record_task_id(scan, task_id)
    return scan


def _provider(ready=False, pages=None, summary=SUMMARY):
    client = MagicMock()
    client.total_cost = 0.01
    client.submit_crawl_task.return_value = 'task-1'
    client.is_task_ready.return_value = ready
    client.get_crawl_summary.return_value = summary
    client.fetch_all_pages.return_value = pages if pages is not None else [
        _item('https://example.com/'),
        _item('https://example.com/about', checks={'is_https': True, 'has_meta_refresh': False, 'no_title': False}),
    ]
    return client


@pytest.mark.django_db
class TestScanLifecycle:

    def test_cannot_skip_to_completed(self, scan):
        with pytest.raises(InvalidTransition):
            lifecycle.transition(scan, lifecycle.COMPLETED)
        scan.refresh_from_db()
        assert scan.status == lifecycle.PENDING

    def test_task_id_is_required_to_start_crawling(self, scan):
        lifecycle.mark_submitting(scan)
        with pytest.raises(InvalidTransition):
            lifecycle.record_task_id(scan, '')

    def test_complete_requires_summary(self, scan):
        _crawling(scan)
        lifecycle.mark_fetching_results(scan)
        with pytest.raises(InvalidTransition):
            lifecycle.complete_scan(scan)

        save_summary(scan, SUMMARY, [])
        lifecycle.complete_scan(scan, api_cost=0.0312)
        scan.refresh_from_db()
        assert scan.status == lifecycle.COMPLETED
        assert scan.progress == 100
        assert scan.completed_at is not None

    def test_progress_is_clamped(self, scan):
        lifecycle.update_progress(scan, 150)
        scan.refresh_from_db()
        assert scan.progress == 100
        lifecycle.update_progress(scan, -3)
        scan.refresh_from_db()
        assert scan.progress == 0

    def test_progress_ignored_once_terminal(self, scan):
        lifecycle.fail_scan(scan, 'boom')
        assert lifecycle.update_progress(scan, 40) is False
        scan.refresh_from_db()
        assert scan.progress == 0

    def test_fail_with_empty_message(self, scan):
        lifecycle.fail_scan(scan, '  ')
        scan.refresh_from_db()
        assert scan.status == lifecycle.FAILED
        assert scan.error_message == 'Unknown error occurred'

    def test_stale_copy_loses_the_race(self, scan):
        stale = SiteAuditScan.objects.get(pk=scan.pk)
        lifecycle.mark_submitting(scan)
        with pytest.raises(InvalidTransition):
            lifecycle.mark_submitting(stale)


@pytest.mark.django_db
class TestIngestion:

    def test_issue_types_are_exactly_false_checks(self):
        checks = {'no_title': False, 'is_https': True, 'title_too_long': None, 'has_h1': 0}
        assert extract_issue_types(checks) == ['no_title']
        assert extract_issue_types(None) == []

    def test_build_page_truncates_and_flags_redirects(self):
        page = build_page(_item('https://example.com/old', status_code=301,
                                checks={'is_redirect': True}, location='https://example.com/new'))
        assert page['is_redirect'] is True
        assert page['redirect_location'] == 'https://example.com/new'
        assert page['h1_tags'] == ['Welcome']
        assert page['word_count'] == 420

        long_title = build_page(_item('https://example.com/x', meta={'title': 'a' * 1500}))
        assert len(long_title['title']) == 1000

    def test_reingesting_pages_creates_no_duplicates(self, scan):
        pages = [build_page(_item(f'https://example.com/{i}')) for i in range(5)]
        assert save_pages(scan, pages, batch_size=2) == 5
        assert save_pages(scan, pages, batch_size=2) == 0
        assert SiteAuditPage.objects.filter(scan=scan).count() == 5
        stored = SiteAuditPage.objects.get(scan=scan, url='https://example.com/0')
        assert stored.url_hash == url_hash('https://example.com/0')
        assert stored.issue_types == ['no_title']
        assert stored.issue_count == 1

    def test_save_summary_overwrites(self, scan):
        pages = [build_page(_item('https://example.com/'))]
        save_summary(scan, SUMMARY, pages)
        summary = save_summary(scan, {**SUMMARY, 'crawl_stop_reason': 'limit_exceeded'}, pages)
        assert SiteAuditSummary.objects.filter(scan=scan).count() == 1
        assert summary.crawl_stop_reason == 'limit_exceeded'
        assert summary.crawled_pages == 2
        assert summary.avg_lcp == 2000
        assert len(summary.thematic_scores) == 6
        assert 0 <= summary.health_score <= 100


class TestPollingSchedule:

    def test_progress_grows_then_caps(self):
        assert crawl_progress(1) == 7
        assert crawl_progress(10) == 25
        assert crawl_progress(40) == 50

    def test_backoff_every_third_poll(self):
        assert poll_delay_seconds(1) == 30
        assert poll_delay_seconds(3) == pytest.approx(36)
        assert poll_delay_seconds(30) == 60


@pytest.mark.django_db
class TestScanExecutor:

    @patch('site_audit.executor.get_dataforseo_client')
    def test_request_submits_and_schedules_poll(self, mock_client, scan):
        mock_client.return_value = _provider()
        run_site_audit({'scan_id': str(scan.pk)})

        scan.refresh_from_db()
        assert scan.status == lifecycle.CRAWLING
        assert scan.task_id == 'task-1'
        assert scan.progress == 5
        poll = JobMessage.objects.get(event=SCAN_POLL)
        assert poll.payload['attempt'] == 1
        assert poll.payload['waited_seconds'] == 30

    @patch('site_audit.executor.get_dataforseo_client')
    def test_redelivered_request_is_noop(self, mock_client, scan):
        _crawling(scan)
        run_site_audit({'scan_id': str(scan.pk)})
        mock_client.assert_not_called()
        assert not JobMessage.objects.filter(event=SCAN_POLL).exists()

    @patch('site_audit.executor.get_dataforseo_client')
    def test_poll_not_ready_reschedules(self, mock_client, scan):
        _crawling(scan)
        mock_client.return_value = _provider(ready=False)
        poll_site_audit({'scan_id': str(scan.pk), 'attempt': 3, 'waited_seconds': 90})

        scan.refresh_from_db()
        assert scan.status == lifecycle.CRAWLING
        assert scan.progress == 11
        poll = JobMessage.objects.get(event=SCAN_POLL)
        assert poll.payload['attempt'] == 4
        assert poll.payload['waited_seconds'] == pytest.approx(126)

    @patch('site_audit.executor.get_dataforseo_client')
    def test_poll_times_out(self, mock_client, scan):
        _crawling(scan)
        mock_client.return_value = _provider(ready=False)
        poll_site_audit({'scan_id': str(scan.pk), 'attempt': 40, 'waited_seconds': 1800})

        scan.refresh_from_db()
        assert scan.status == lifecycle.FAILED
        assert scan.error_message == 'Crawl timed out after 30 minutes'
        assert not JobMessage.objects.filter(event=SCAN_POLL).exists()

    @patch('site_audit.executor.get_dataforseo_client')
    def test_ready_task_completes_scan(self, mock_client, scan):
        _crawling(scan)
        mock_client.return_value = _provider(ready=True)
        poll_site_audit({'scan_id': str(scan.pk), 'attempt': 2, 'waited_seconds': 60, 'api_cost': 0.02})

        scan.refresh_from_db()
        assert scan.status == lifecycle.COMPLETED
        assert scan.progress == 100
        assert float(scan.api_cost) == pytest.approx(0.03)
        assert scan.pages.count() == 2
        assert scan.summary.health_score is not None

    @patch('site_audit.executor.get_dataforseo_client')
    def test_missing_summary_raises(self, mock_client, scan):
        _crawling(scan)
        mock_client.return_value = _provider(ready=True, summary=None)
        with pytest.raises(ProviderError):
            poll_site_audit({'scan_id': str(scan.pk), 'attempt': 1, 'waited_seconds': 30})
        scan.refresh_from_db()
        assert scan.status == lifecycle.FETCHING_RESULTS

    @patch('site_audit.executor.get_dataforseo_client')
    def test_exhausted_job_fails_scan(self, mock_client, scan, settings):
        settings.JOBS_MAX_ATTEMPTS = 1
        client = _provider()
        client.submit_crawl_task.side_effect = ProviderError('Invalid target', PERMANENT, provider='dataforseo')
        mock_client.return_value = client
        message = JobMessage.objects.create(event=SCAN_REQUESTED, payload={'scan_id': str(scan.pk)})

        assert process_message(message) is False
        scan.refresh_from_db()
        assert scan.status == lifecycle.FAILED
        assert scan.error_message == 'Invalid target'


@pytest.mark.django_db
class TestScanAPI:

    def test_create_scan(self, authenticated_client):
        client, user = authenticated_client
        domain = Domain.objects.create(user=user, domain='www.example.com')
        response = client.post('/api/v1/site-audit/scans/', {
            'domain': 'https://www.Example.com/blog',
            'max_crawl_pages': 50,
        })
        assert response.status_code == 201
        data = response.data['data']
        assert data['domain'] == 'example.com'
        assert data['status'] == 'PENDING'
        assert data['max_crawl_pages'] == 50
        assert str(data['domain_ref']) == str(domain.pk)
        assert JobMessage.objects.filter(event=SCAN_REQUESTED, payload__scan_id=data['id']).exists()

    def test_create_links_owned_audit(self, authenticated_client, other_user_client):
        client, user = authenticated_client
        _, other = other_user_client
        audit = Audit.objects.create(user=user, domain='example.com')
        response = client.post('/api/v1/site-audit/scans/', {'domain': 'example.com', 'audit_id': str(audit.pk)})
        assert response.status_code == 201
        assert SiteAuditScan.objects.get(pk=response.data['data']['id']).audit_id == audit.pk

        foreign = Audit.objects.create(user=other, domain='other.com')
        response = client.post('/api/v1/site-audit/scans/', {'domain': 'other.com', 'audit_id': str(foreign.pk)})
        assert response.status_code == 403

    def test_create_validates_page_limit(self, authenticated_client):
        client, _ = authenticated_client
        response = client.post('/api/v1/site-audit/scans/', {'domain': 'example.com', 'max_crawl_pages': 5})
        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'

    def test_list_is_owner_scoped(self, authenticated_client, other_user_client):
        client, user = authenticated_client
        _, other = other_user_client
        SiteAuditScan.objects.create(user=user, domain='example.com')
        SiteAuditScan.objects.create(user=other, domain='other.com')

        response = client.get('/api/v1/site-audit/scans/')
        assert response.status_code == 200
        assert [s['domain'] for s in response.data['data']] == ['example.com']
        assert response.data['meta']['total'] == 1

    def test_list_filters_by_status(self, authenticated_client):
        client, user = authenticated_client
        SiteAuditScan.objects.create(user=user, domain='example.com')
        SiteAuditScan.objects.create(user=user, domain='done.com', status=SiteAuditScan.STATUS_COMPLETED)

        response = client.get('/api/v1/site-audit/scans/?status=completed')
        assert response.status_code == 200
        assert [s['domain'] for s in response.data['data']] == ['done.com']

    def test_list_rejects_unknown_status(self, authenticated_client):
        client, _ = authenticated_client
        response = client.get('/api/v1/site-audit/scans/?status=finished')
        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert 'status' in response.data['error']['detail']

    def test_limit_above_maximum(self, authenticated_client):
        client, _ = authenticated_client
        response = client.get('/api/v1/site-audit/scans/?limit=101')
        assert response.status_code == 400

    def test_other_users_scan_is_forbidden(self, authenticated_client, other_user_client):
        client, _ = authenticated_client
        _, other = other_user_client
        scan = SiteAuditScan.objects.create(user=other, domain='other.com')
        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/')
        assert response.status_code == 403
        assert response.data['error']['code'] == 'FORBIDDEN'

    def test_malformed_id(self, authenticated_client):
        client, _ = authenticated_client
        response = client.get('/api/v1/site-audit/scans/not-a-uuid/status/')
        assert response.status_code == 400
        assert response.data['error']['code'] == 'INVALID_ID'

    def test_status(self, authenticated_client):
        client, user = authenticated_client
        scan = SiteAuditScan.objects.create(user=user, domain='example.com')
        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/status/')
        assert response.data['data']['status'] == 'PENDING'
        assert response.data['data']['has_summary'] is False

    def test_pages_filters_and_sort(self, authenticated_client):
        client, user = authenticated_client
        scan = SiteAuditScan.objects.create(user=user, domain='example.com')
        save_pages(scan, [
            build_page(_item('https://example.com/a', checks={'no_title': False})),
            build_page(_item('https://example.com/b', status_code=404, checks={'is_https': True})),
            build_page(_item('https://example.com/c', checks={'no_title': False, 'has_h1': False})),
        ])

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/pages/?issue_type=no_title&sort=-issue_count')
        assert [p['url'] for p in response.data['data']] == ['https://example.com/c', 'https://example.com/a']

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/pages/?has_issues=false')
        assert [p['url'] for p in response.data['data']] == ['https://example.com/b']

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/pages/?status_code=404')
        assert response.data['meta']['total'] == 1

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/pages/?sort=bogus')
        assert response.status_code == 400

    def test_page_detail_classifies_issues(self, authenticated_client):
        client, user = authenticated_client
        scan = SiteAuditScan.objects.create(user=user, domain='example.com')
        save_pages(scan, [build_page(_item('https://example.com/'))])
        page = scan.pages.get()
        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/pages/{page.pk}/')
        assert response.status_code == 200
        assert set(response.data['data']['classification']) >= {'errors', 'warnings', 'notices', 'passed'}

    def test_duplicates_and_issue_distribution(self, authenticated_client):
        client, user = authenticated_client
        scan = SiteAuditScan.objects.create(user=user, domain='example.com')
        pages = [build_page(_item(f'https://example.com/{i}')) for i in range(3)]
        for page in pages:
            page['title'] = 'Same title'
        pages.append(build_page(_item('https://example.com/broken', status_code=500, checks={})))
        save_pages(scan, pages)

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/duplicates/?type=title')
        groups = response.data['data']['title']
        assert len(groups) == 1
        assert groups[0]['count'] == 3

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/issues/')
        data = response.data['data']
        assert data['total_pages'] == 4
        assert data['error_pages'] == 1
        assert data['warning_pages'] == 3
        assert data['issue_types'] == {'no_title': 3}

        response = client.get(f'/api/v1/site-audit/scans/{scan.pk}/non-indexable/')
        assert [p['reason'] for p in response.data['data']] == ['HTTP 500']

    def test_delete(self, authenticated_client):
        client, user = authenticated_client
        scan = SiteAuditScan.objects.create(user=user, domain='example.com')
        assert client.delete(f'/api/v1/site-audit/scans/{scan.pk}/').status_code == 204
        assert not SiteAuditScan.objects.filter(pk=scan.pk).exists()
