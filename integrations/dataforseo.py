"""
DataForSEO Integration

HTTP client for the crawl (OnPage), rank (Labs / SERP), and backlinks APIs.
Every call returns the first task's result payload or raises ProviderError.

Live lookups (instant page, Labs, backlinks, maps SERP) are cached in the
Django cache under `dfs:<area>:<kind>:<hash>` keys with per-area TTLs.
A client built with `skip_cache=True` never reads the cache but still
refreshes it with what it fetched. Crawl task calls are never cached.
"""
import hashlib
import logging
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings
from django.core.cache import caches

from .errors import (
    PARTIAL,
    PERMANENT,
    STATUS_SUCCESS,
    STATUS_TASK_CREATED,
    ProviderError,
    classify_http_status,
    classify_status_code,
)

logger = logging.getLogger(__name__)

PROVIDER = 'dataforseo'
DEFAULT_LOCATION = 'United States'
DEFAULT_LANGUAGE = 'en'
PAGES_PAGE_SIZE = 100

_OK_STATUSES = (STATUS_SUCCESS, STATUS_TASK_CREATED)

# Seconds
CACHE_TTL = {
    'serp': 4 * 60 * 60,
    'onpage': 24 * 60 * 60,
    'backlinks': 24 * 60 * 60,
    'keywords': 24 * 60 * 60,
}

_MISS = object()


def _hash(value) -> str:
    return hashlib.sha256(str(value).encode('utf-8')).hexdigest()[:12]


def cache_key(area, kind, *parts) -> str:
    """`dfs:serp:maps:<hash>:<hash>`; every part is hashed to keep keys short."""
    return ':'.join(['dfs', area, kind] + [_hash(part) for part in parts])


def get_response_cache():
    """The configured cache backend, or None when response caching is off."""
    if not getattr(settings, 'DATAFORSEO_CACHE_ENABLED', True):
        return None
    return caches[getattr(settings, 'DATAFORSEO_CACHE_ALIAS', 'default')]


class DataForSEOClient:
    def __init__(self, login=None, password=None, base_url=None, timeout=None, session=None,
                 skip_cache=False, cache=None):
        self.login = login if login is not None else settings.DATAFORSEO_LOGIN
        self.password = password if password is not None else settings.DATAFORSEO_PASSWORD
        self.base_url = (base_url or settings.DATAFORSEO_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.DATAFORSEO_TIMEOUT
        self.session = session or requests.Session()
        self.session.auth = (self.login, self.password)
        self.skip_cache = skip_cache
        self.cache = cache if cache is not None else get_response_cache()
        self.total_cost = 0.0

    # ------------------------------------------------------------------
    # Response cache
    # ------------------------------------------------------------------

    def _cached(self, key, area, fetch):
        if self.cache is None:
            return fetch()
        if not self.skip_cache:
            value = self.cache.get(key, _MISS)
            if value is not _MISS:
                logger.debug("DataForSEO cache hit %s", key)
                return value
        value = fetch()
        self.cache.set(key, value, CACHE_TTL[area])
        return value

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method, path, payload=None) -> Dict[str, Any]:
        if not self.login or not self.password:
            raise ProviderError('DataForSEO credentials are not configured', PERMANENT, provider=PROVIDER)

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise ProviderError(f"DataForSEO request timed out: {path}", provider=PROVIDER) from e
        except requests.RequestException as e:
            raise ProviderError(f"DataForSEO network error: {e}", provider=PROVIDER) from e

        if response.status_code != 200:
            category = classify_http_status(response.status_code)
            raise ProviderError(
                f"DataForSEO HTTP {response.status_code} for {path}",
                category or PERMANENT,
                provider=PROVIDER,
                http_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(f"DataForSEO returned invalid JSON for {path}", provider=PROVIDER) from e

        self.total_cost += body.get('cost') or 0
        status_code = body.get('status_code')
        if status_code not in _OK_STATUSES:
            raise self._body_error(body, path)
        return body

    def _body_error(self, body, path):
        status_code = body.get('status_code')
        message = body.get('status_message') or 'Unknown DataForSEO error'
        return ProviderError(
            f"{message} ({path})",
            classify_status_code(status_code) or PERMANENT,
            provider=PROVIDER,
            status_code=status_code,
        )

    def _first_task(self, body, path) -> Dict[str, Any]:
        tasks = body.get('tasks') or []
        if not tasks:
            raise ProviderError(f"DataForSEO returned no tasks ({path})", PARTIAL, provider=PROVIDER)
        task = tasks[0]
        if task.get('status_code') not in _OK_STATUSES:
            raise self._body_error(task, path)
        return task

    def _first_result(self, body, path) -> Optional[Dict[str, Any]]:
        result = self._first_task(body, path).get('result') or []
        return result[0] if result else None

    def _post(self, path, task: dict):
        return self._request('POST', path, [task])

    def _get(self, path):
        return self._request('GET', path)

    # ------------------------------------------------------------------
    # OnPage (site crawl)
    # ------------------------------------------------------------------

    def submit_crawl_task(self, target, max_crawl_pages=100, enable_javascript=True,
                          enable_browser_rendering=True, store_raw_html=False,
                          calculate_keyword_density=False, start_url=None) -> str:
        """Create an OnPage crawl task and return its task id."""
        task = {
            'target': target,
            'max_crawl_pages': max_crawl_pages,
            'enable_javascript': enable_javascript,
            'enable_browser_rendering': enable_browser_rendering,
            # Browser rendering needs resources loaded
            'load_resources': enable_browser_rendering,
            'store_raw_html': store_raw_html,
            'calculate_keyword_density': calculate_keyword_density,
            'disable_cookie_popup': True,
        }
        if start_url:
            task['start_url'] = start_url
        path = 'on_page/task_post'
        task_id = self._first_task(self._post(path, task), path).get('id')
        if not task_id:
            raise ProviderError('DataForSEO did not return a task id', provider=PROVIDER)
        logger.info("Submitted crawl task %s for %s", task_id, target)
        return task_id

    def get_tasks_ready(self) -> List[str]:
        """Ids of OnPage tasks whose crawl has finished (rate limited upstream to 20/min)."""
        body = self._get('on_page/tasks_ready')
        ready = []
        for task in body.get('tasks') or []:
            for item in task.get('result') or []:
                if item.get('id'):
                    ready.append(item['id'])
        return ready

    def is_task_ready(self, task_id) -> bool:
        return task_id in self.get_tasks_ready()

    def get_crawl_summary(self, task_id) -> Optional[Dict[str, Any]]:
        path = f'on_page/summary/{task_id}'
        return self._first_result(self._get(path), path)

    def get_crawled_pages(self, task_id, limit=PAGES_PAGE_SIZE, offset=0) -> Dict[str, Any]:
        path = 'on_page/pages'
        result = self._first_result(self._post(path, {'id': task_id, 'limit': limit, 'offset': offset}), path) or {}
        return {
            'items': result.get('items') or [],
            'total_count': result.get('total_items_count') or 0,
            'crawl_progress': result.get('crawl_progress'),
        }

    def fetch_all_pages(self, task_id) -> List[Dict[str, Any]]:
        pages = []
        offset = 0
        while True:
            batch = self.get_crawled_pages(task_id, limit=PAGES_PAGE_SIZE, offset=offset)
            pages.extend(batch['items'])
            if len(batch['items']) < PAGES_PAGE_SIZE or len(pages) >= batch['total_count']:
                break
            offset += PAGES_PAGE_SIZE
        return pages

    def instant_page(self, url, enable_javascript=True) -> Optional[Dict[str, Any]]:
        """Single-page live audit: returns the page item (checks, meta, page_timing)."""
        path = 'on_page/instant_pages'

        def fetch():
            result = self._first_result(self._post(path, {'url': url, 'enable_javascript': enable_javascript}), path)
            items = (result or {}).get('items') or []
            return items[0] if items else None

        return self._cached(cache_key('onpage', 'instant', url, enable_javascript), 'onpage', fetch)

    # ------------------------------------------------------------------
    # Labs (keywords and competitors)
    # ------------------------------------------------------------------

    def ranked_keywords(self, target, location_name=DEFAULT_LOCATION, language_code=DEFAULT_LANGUAGE,
                        limit=100) -> Dict[str, Any]:
        path = 'dataforseo_labs/google/ranked_keywords/live'

        def fetch():
            result = self._first_result(self._post(path, {
                'target': target,
                'location_name': location_name,
                'language_code': language_code,
                'limit': limit,
            }), path) or {}
            keywords = []
            for item in result.get('items') or []:
                keyword_data = item.get('keyword_data') or {}
                info = keyword_data.get('keyword_info') or {}
                serp_item = (item.get('ranked_serp_element') or {}).get('serp_item') or {}
                keywords.append({
                    'keyword': keyword_data.get('keyword'),
                    'position': serp_item.get('rank_absolute'),
                    'url': serp_item.get('url'),
                    'search_volume': info.get('search_volume'),
                    'cpc': info.get('cpc'),
                })
            return {'total_count': result.get('total_count') or 0, 'items': keywords}

        key = cache_key('labs', 'ranked', target, location_name, language_code, limit)
        return self._cached(key, 'keywords', fetch)

    def domain_rank_overview(self, target, location_name=DEFAULT_LOCATION,
                             language_code=DEFAULT_LANGUAGE) -> Optional[Dict[str, Any]]:
        path = 'dataforseo_labs/google/domain_rank_overview/live'

        def fetch():
            result = self._first_result(self._post(path, {
                'target': target,
                'location_name': location_name,
                'language_code': language_code,
            }), path) or {}
            items = result.get('items') or []
            return ((items[0].get('metrics') or {}).get('organic')) if items else None

        key = cache_key('labs', 'rank', target, location_name, language_code)
        return self._cached(key, 'keywords', fetch)

    def competitors_domain(self, target, location_name=DEFAULT_LOCATION, language_code=DEFAULT_LANGUAGE,
                           limit=10) -> List[Dict[str, Any]]:
        path = 'dataforseo_labs/google/competitors_domain/live'

        def fetch():
            result = self._first_result(self._post(path, {
                'target': target,
                'location_name': location_name,
                'language_code': language_code,
                'limit': limit,
                'exclude_top_domains': True,
            }), path) or {}
            return [
                {
                    'domain': item.get('domain'),
                    'avg_position': item.get('avg_position'),
                    'intersections': item.get('intersections') or 0,
                }
                for item in result.get('items') or []
                if item.get('domain') and item.get('domain') != target
            ]

        key = cache_key('labs', 'competitors', target, location_name, language_code, limit)
        return self._cached(key, 'keywords', fetch)

    # ------------------------------------------------------------------
    # Backlinks
    # ------------------------------------------------------------------

    def backlinks_summary(self, target, include_subdomains=True) -> Optional[Dict[str, Any]]:
        path = 'backlinks/summary/live'

        def fetch():
            return self._first_result(self._post(path, {
                'target': target,
                'include_subdomains': include_subdomains,
            }), path)

        return self._cached(cache_key('backlinks', 'summary', target, include_subdomains), 'backlinks', fetch)

    def backlink_gap(self, target, competitors, limit=50) -> List[Dict[str, Any]]:
        """Referring domains that link to the competitors but not to `target`."""
        if not competitors:
            return []
        path = 'backlinks/domain_intersection/live'

        def fetch():
            result = self._first_result(self._post(path, {
                'targets': {str(i + 1): domain for i, domain in enumerate(competitors)},
                'exclude_targets': [target],
                'limit': limit,
            }), path) or {}
            gaps = []
            for item in result.get('items') or []:
                intersection = item.get('domain_intersection') or {}
                linked = [c for c in intersection.values() if c]
                first = next(iter(intersection.values()), None) or {}
                gaps.append({
                    'referring_domain': first.get('domain') or item.get('domain'),
                    'rank': first.get('rank'),
                    'competitors_linked': len(linked),
                })
            return gaps

        key = cache_key('backlinks', 'gap', target, ','.join(sorted(competitors)), limit)
        return self._cached(key, 'backlinks', fetch)

    # ------------------------------------------------------------------
    # SERP (Google Maps for geo-grid sampling)
    # ------------------------------------------------------------------

    def maps_search(self, keyword, location_coordinate, language_code=DEFAULT_LANGUAGE,
                    depth=20) -> List[Dict[str, Any]]:
        """Ranked local pack listings for `keyword` at "lat,lng,zoom"."""
        path = 'serp/google/maps/live/advanced'

        def fetch():
            result = self._first_result(self._post(path, {
                'keyword': keyword,
                'location_coordinate': location_coordinate,
                'language_code': language_code,
                'depth': depth,
            }), path) or {}
            listings = []
            for item in result.get('items') or []:
                if item.get('type') != 'maps_search':
                    continue
                rating = item.get('rating') or {}
                listings.append({
                    'rank': item.get('rank_group') or item.get('rank_absolute'),
                    'business_name': item.get('title') or '',
                    'domain': item.get('domain'),
                    'cid': item.get('cid'),
                    'place_id': item.get('place_id'),
                    'rating': rating.get('value'),
                    'review_count': rating.get('votes_count'),
                    'address': item.get('address'),
                    'category': item.get('category'),
                })
            return listings

        key = cache_key('serp', 'maps', keyword, location_coordinate, language_code, depth)
        return self._cached(key, 'serp', fetch)


def get_dataforseo_client(skip_cache=False):
    return DataForSEOClient(skip_cache=skip_cache)
