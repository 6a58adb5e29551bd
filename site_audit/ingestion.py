"""
Turning crawl provider output into scan summary and page rows.
"""
import logging

from django.conf import settings

from seo.issue_classification import get_issue_counts
from seo.thematic_reports import score_pages

from .models import SiteAuditPage, SiteAuditSummary, url_hash

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 1000
DESCRIPTION_MAX_LENGTH = 2000
REDIRECT_MAX_LENGTH = 2000


def extract_issue_types(checks):
    """
    Names of checks whose value is exactly False, the provider's own
    "this check did not pass" convention.
    """
    if not checks:
        return []
    return [name for name, value in checks.items() if value is False]


def _truncate(value, length):
    return value[:length] if isinstance(value, str) else value


def build_page(item):
    """Map one provider page item onto SiteAuditPage field values."""
    meta = item.get('meta') or {}
    checks = item.get('checks') or {}
    htags = meta.get('htags') or {}
    content = meta.get('content') or {}
    return {
        'url': item['url'],
        'status_code': item.get('status_code') or 0,
        'onpage_score': item.get('onpage_score'),
        'title': _truncate(meta.get('title'), TITLE_MAX_LENGTH),
        'description': _truncate(meta.get('description'), DESCRIPTION_MAX_LENGTH),
        'h1_tags': htags.get('h1') or [],
        'word_count': content.get('plain_text_word_count'),
        'redirect_location': _truncate(item.get('location'), REDIRECT_MAX_LENGTH),
        'is_redirect': checks.get('is_redirect') is True,
        'page_timing': item.get('page_timing'),
        'checks': item.get('checks'),
        'meta': item.get('meta'),
    }


def _page_row(scan, page):
    checks = page.get('checks')
    issue_types = extract_issue_types(checks) if checks else list(page.get('issue_types') or [])
    issue_count = page.get('issue_count')
    return SiteAuditPage(
        scan=scan,
        url=page['url'],
        url_hash=url_hash(page['url']),
        status_code=page.get('status_code') or 0,
        onpage_score=page.get('onpage_score'),
        title=page.get('title'),
        description=page.get('description'),
        h1_tags=page.get('h1_tags') or [],
        word_count=page.get('word_count'),
        redirect_location=page.get('redirect_location'),
        is_redirect=bool(page.get('is_redirect')),
        page_timing=page.get('page_timing'),
        checks=checks,
        meta=page.get('meta'),
        issue_types=issue_types,
        issue_count=issue_count if issue_count is not None else len(issue_types),
    )


def save_pages(scan, pages, batch_size=None):
    """
    Insert pages in batches, skipping any (scan, url_hash) already stored.

    Safe to call again with the same pages. Returns the number of new rows.
    """
    batch_size = batch_size or settings.SITE_AUDIT_PAGE_BATCH_SIZE
    before = SiteAuditPage.objects.filter(scan=scan).count()
    pages = list(pages)
    for start in range(0, len(pages), batch_size):
        rows = [_page_row(scan, page) for page in pages[start:start + batch_size]]
        SiteAuditPage.objects.bulk_create(rows, ignore_conflicts=True)
    created = SiteAuditPage.objects.filter(scan=scan).count() - before
    logger.info("Scan %s: stored %s new pages (%s submitted)", scan.pk, created, len(pages))
    return created


def calculate_cwv_averages(pages):
    """Mean LCP (page_timing) and CLS (meta) across pages that report them."""
    lcp = [
        (p.get('page_timing') or {}).get('largest_contentful_paint') for p in pages
    ]
    cls = [
        (p.get('meta') or {}).get('cumulative_layout_shift') for p in pages
    ]
    lcp = [v for v in lcp if v is not None]
    cls = [v for v in cls if v is not None]
    return {
        'avg_lcp': sum(lcp) / len(lcp) if lcp else None,
        'avg_cls': sum(cls) / len(cls) if cls else None,
    }


def calculate_issue_counts(pages):
    """Failing checks across all pages, bucketed by severity tier."""
    totals = {'errors': 0, 'warnings': 0, 'notices': 0}
    for page in pages:
        counts = get_issue_counts(page.get('checks'))
        for tier in totals:
            totals[tier] += counts[tier]
    return totals


def save_summary(scan, summary, pages):
    """
    Persist the scan summary from the provider summary plus crawled pages.
    Re-saving overwrites the existing row.
    """
    crawl_status = summary.get('crawl_status') or {}
    metrics = summary.get('page_metrics') or {}
    domain_info = summary.get('domain_info') or {}
    issue_counts = calculate_issue_counts(pages)
    cwv = calculate_cwv_averages(pages)
    scores = score_pages(pages)

    values = {
        'total_pages': crawl_status.get('max_crawl_pages') or 0,
        'crawled_pages': crawl_status.get('pages_crawled') or len(pages),
        'crawl_stop_reason': summary.get('crawl_stop_reason'),
        'errors_count': issue_counts['errors'],
        'warnings_count': issue_counts['warnings'],
        'notices_count': issue_counts['notices'],
        'onpage_score': metrics.get('onpage_score'),
        'avg_lcp': cwv['avg_lcp'],
        'avg_cls': cwv['avg_cls'],
        'total_images': sum(((p.get('meta') or {}).get('images_count') or 0) for p in pages),
        'broken_resources': metrics.get('broken_resources') or 0,
        'internal_links': metrics.get('links_internal') or 0,
        'external_links': metrics.get('links_external') or 0,
        'broken_links': metrics.get('broken_links') or 0,
        'non_indexable': metrics.get('non_indexable') or 0,
        'redirects': sum(1 for p in pages if (p.get('checks') or {}).get('is_redirect') is True),
        'duplicate_title': metrics.get('duplicate_title') or 0,
        'duplicate_description': metrics.get('duplicate_description') or 0,
        'duplicate_content': metrics.get('duplicate_content') or 0,
        'domain_info': domain_info or None,
        'ssl_info': domain_info.get('ssl_info'),
        'page_metrics_checks': metrics.get('checks'),
        'thematic_scores': scores['categories'],
        'health_score': scores['health_score'],
    }
    obj, _ = SiteAuditSummary.objects.update_or_create(scan=scan, defaults=values)
    return obj
