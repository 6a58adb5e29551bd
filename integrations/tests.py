"""
Tests for provider clients and error classification.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests
from django.test import override_settings

from integrations.dataforseo import _MISS, CACHE_TTL, DataForSEOClient, cache_key
from integrations.errors import (
    PARTIAL,
    PERMANENT,
    QUOTA,
    RETRYABLE,
    ProviderError,
    as_provider_error,
    classify_error,
    classify_http_status,
    classify_status_code,
)
from integrations.https_check import verify_https
from integrations.places import PlacesClient, parse_work_hours


def _response(body, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    return response


def _ok(result, status_code=20000):
    return {
        'status_code': 20000,
        'status_message': 'Ok.',
        'tasks': [{'id': 'task-1', 'status_code': status_code, 'status_message': 'Ok.', 'result': result}],
    }


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return DataForSEOClient(login='login', password='secret', base_url='https://api.test/v3', timeout=5,
                            session=session)


class TestErrorClassification:

    @pytest.mark.parametrize('status_code,expected', [
        (40202, RETRYABLE),
        (40200, QUOTA),
        (40100, PERMANENT),
        (40501, PERMANENT),
        (50000, RETRYABLE),
        (None, None),
    ])
    def test_status_codes(self, status_code, expected):
        assert classify_status_code(status_code) == expected

    @pytest.mark.parametrize('http_status,expected', [
        (429, RETRYABLE), (402, QUOTA), (401, PERMANENT), (404, PERMANENT), (503, RETRYABLE),
    ])
    def test_http_statuses(self, http_status, expected):
        assert classify_http_status(http_status) == expected

    def test_unknown_errors_are_retryable(self):
        assert classify_error(RuntimeError('something odd')) == RETRYABLE
        assert classify_error(requests.Timeout()) == RETRYABLE

    def test_message_patterns(self):
        assert classify_error(Exception('Insufficient balance')) == QUOTA
        assert classify_error(Exception('Invalid credentials')) == PERMANENT

    def test_wrapping_preserves_provider_errors(self):
        original = ProviderError('nope', PERMANENT, provider='dataforseo')
        assert as_provider_error(original) is original
        wrapped = as_provider_error(ValueError('malformed target'), provider='dataforseo')
        assert wrapped.category == PERMANENT
        assert wrapped.to_dict()['retryable'] is False


class TestDataForSEOClient:

    def test_uses_basic_auth(self, client, session):
        assert session.auth == ('login', 'secret')

    def test_submit_crawl_task(self, client, session):
        session.request.return_value = _response(_ok(None, status_code=20100))
        assert client.submit_crawl_task('example.com', max_crawl_pages=50) == 'task-1'
        method, url = session.request.call_args[0]
        assert method == 'POST'
        assert url == 'https://api.test/v3/on_page/task_post'
        task = session.request.call_args[1]['json'][0]
        assert task['target'] == 'example.com'
        assert task['max_crawl_pages'] == 50

    def test_task_level_error_is_classified(self, client, session):
        body = _ok(None, status_code=40200)
        body['tasks'][0]['status_message'] = 'Payment required.'
        session.request.return_value = _response(body)
        with pytest.raises(ProviderError) as exc:
            client.get_crawl_summary('task-1')
        assert exc.value.category == QUOTA
        assert exc.value.status_code == 40200
        assert 'Payment required.' in exc.value.message

    def test_http_error_is_classified(self, client, session):
        session.request.return_value = _response({}, status_code=429)
        with pytest.raises(ProviderError) as exc:
            client.get_tasks_ready()
        assert exc.value.retryable

    def test_network_error_is_retryable(self, client, session):
        session.request.side_effect = requests.ConnectionError('reset')
        with pytest.raises(ProviderError) as exc:
            client.get_tasks_ready()
        assert exc.value.category == RETRYABLE

    def test_missing_credentials(self, session):
        client = DataForSEOClient(login='', password='', base_url='https://api.test/v3', session=session)
        with pytest.raises(ProviderError) as exc:
            client.get_tasks_ready()
        assert exc.value.category == PERMANENT
        session.request.assert_not_called()

    def test_empty_tasks_is_partial(self, client, session):
        session.request.return_value = _response({'status_code': 20000, 'tasks': []})
        with pytest.raises(ProviderError) as exc:
            client.get_crawl_summary('task-1')
        assert exc.value.category == PARTIAL

    def test_tasks_ready(self, client, session):
        session.request.return_value = _response(_ok([{'id': 'a'}, {'id': 'b'}]))
        assert client.get_tasks_ready() == ['a', 'b']
        assert client.is_task_ready('b')

    def test_fetch_all_pages_pages_through_results(self, client, session):
        first = [{'url': f'https://example.com/{i}'} for i in range(100)]
        second = [{'url': 'https://example.com/last'}]
        session.request.side_effect = [
            _response(_ok([{'items': first, 'total_items_count': 101}])),
            _response(_ok([{'items': second, 'total_items_count': 101}])),
        ]
        pages = client.fetch_all_pages('task-1')
        assert len(pages) == 101
        offsets = [c[1]['json'][0]['offset'] for c in session.request.call_args_list]
        assert offsets == [0, 100]

    def test_maps_search_keeps_listings_only(self, client, session):
        session.request.return_value = _response(_ok([{'items': [
            {'type': 'maps_search', 'rank_group': 1, 'title': 'Smile Dental', 'domain': 'smile.com',
             'rating': {'value': 4.8, 'votes_count': 120}},
            {'type': 'maps_paid_item', 'rank_group': 1, 'title': 'Ad'},
        ]}]))
        listings = client.maps_search('dentist', '40.0000000,-75.0000000,14')
        assert listings == [{
            'rank': 1, 'business_name': 'Smile Dental', 'domain': 'smile.com', 'cid': None,
            'place_id': None, 'rating': 4.8, 'review_count': 120, 'address': None, 'category': None,
        }]

    def test_backlink_gap_without_competitors(self, client, session):
        assert client.backlink_gap('example.com', []) == []
        session.request.assert_not_called()


class TestResponseCache:

    def _summary(self, backlinks):
        return _response(_ok([{'target': 'example.com', 'backlinks': backlinks}]))

    def test_cache_keys(self):
        key = cache_key('serp', 'maps', 'dentist', '30.2,-97.7,14')
        assert key.startswith('dfs:serp:maps:')
        assert len(key.split(':')) == 5
        assert key == cache_key('serp', 'maps', 'dentist', '30.2,-97.7,14')
        assert key != cache_key('serp', 'maps', 'dentist', '30.3,-97.7,14')

    def test_warm_cache_skips_the_request(self, client, session):
        session.request.return_value = self._summary(10)
        assert client.backlinks_summary('example.com')['backlinks'] == 10
        session.request.return_value = self._summary(99)
        assert client.backlinks_summary('example.com')['backlinks'] == 10
        assert session.request.call_count == 1

    def test_entries_expire_per_area(self, session):
        cache = MagicMock()
        cache.get.return_value = _MISS
        client = DataForSEOClient(login='login', password='secret', base_url='https://api.test/v3',
                                  session=session, cache=cache)
        session.request.return_value = _response(_ok([{'items': []}]))
        client.maps_search('dentist', '30.2,-97.7,14')
        key, _, ttl = cache.set.call_args[0]
        assert key.startswith('dfs:serp:maps:')
        assert ttl == CACHE_TTL['serp'] == 4 * 60 * 60

    def test_skip_cache_fetches_fresh_and_refreshes(self, client, session):
        session.request.return_value = self._summary(10)
        client.backlinks_summary('example.com')

        session.request.return_value = self._summary(99)
        fresh = DataForSEOClient(login='login', password='secret', base_url='https://api.test/v3',
                                 session=session, skip_cache=True)
        assert fresh.backlinks_summary('example.com')['backlinks'] == 99
        assert client.backlinks_summary('example.com')['backlinks'] == 99
        assert session.request.call_count == 2

    def test_errors_are_not_cached(self, client, session):
        session.request.return_value = _response({}, status_code=503)
        with pytest.raises(ProviderError):
            client.backlinks_summary('example.com')
        session.request.return_value = self._summary(10)
        assert client.backlinks_summary('example.com')['backlinks'] == 10

    @override_settings(DATAFORSEO_CACHE_ENABLED=False)
    def test_caching_can_be_disabled(self, session):
        client = DataForSEOClient(login='login', password='secret', base_url='https://api.test/v3',
                                  session=session)
        session.request.return_value = self._summary(10)
        client.backlinks_summary('example.com')
        client.backlinks_summary('example.com')
        assert session.request.call_count == 2

    def test_crawl_calls_are_not_cached(self, client, session):
        session.request.return_value = _response(_ok([{'id': 'a'}]))
        client.get_tasks_ready()
        client.get_tasks_ready()
        assert session.request.call_count == 2


class TestPlacesClient:

    def test_find_business(self, session):
        session.get.side_effect = [
            _response({'status': 'OK', 'candidates': [{'place_id': 'p1'}]}),
            _response({'status': 'OK', 'result': {
                'place_id': 'p1',
                'name': 'Smile Dental',
                'types': ['dentist', 'health', 'point_of_interest'],
                'rating': 4.7,
                'user_ratings_total': 88,
                'opening_hours': {'periods': [{'open': {'day': 1, 'time': '0900'},
                                               'close': {'day': 1, 'time': '1700'}}]},
            }}),
        ]
        profile = PlacesClient(api_key='key', timeout=5, session=session).find_business('Smile Dental', 'Austin, TX')
        assert profile['place_id'] == 'p1'
        assert profile['categories'] == ['dentist', 'health']
        assert profile['primary_category'] == 'dentist'
        assert profile['review_count'] == 88
        assert profile['hours'] == {'monday': [{'open': '09:00', 'close': '17:00'}]}

    def test_no_match(self, session):
        session.get.return_value = _response({'status': 'ZERO_RESULTS', 'candidates': []})
        assert PlacesClient(api_key='key', timeout=5, session=session).find_business('Nobody') is None

    def test_denied_is_permanent(self, session):
        session.get.return_value = _response({'status': 'REQUEST_DENIED', 'error_message': 'bad key'})
        with pytest.raises(ProviderError) as exc:
            PlacesClient(api_key='key', timeout=5, session=session).find_business('Smile Dental')
        assert exc.value.category == PERMANENT

    def test_open_period_without_close(self):
        hours = parse_work_hours({'periods': [{'open': {'day': 0, 'time': '0000'}}]})
        assert hours == {'sunday': [{'open': '00:00', 'close': '23:59'}]}


class TestHttpsCheck:

    @patch('integrations.https_check.requests.head')
    def test_ok(self, mock_head):
        mock_head.return_value = MagicMock(status_code=301)
        assert verify_https('example.com') is True
        assert mock_head.call_args[0][0] == 'https://example.com'

    @patch('integrations.https_check.requests.head', side_effect=requests.exceptions.SSLError('bad cert'))
    def test_certificate_failure(self, mock_head):
        assert verify_https('example.com') is False
