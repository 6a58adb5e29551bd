"""
Read-side aggregations over a scan's stored pages.
"""
from collections import OrderedDict

from .models import SiteAuditPage

DUPLICATE_FIELDS = {
    'title': 'title',
    'description': 'description',
}


def _page_ref(page, *extra):
    ref = {
        'id': str(page.id),
        'url': page.url,
        'status_code': page.status_code,
        'onpage_score': page.onpage_score,
    }
    for name in extra:
        ref[name] = getattr(page, name)
    return ref


def get_issue_distribution(scan):
    """
    Page health split (error / warning / ok) and how many pages carry each
    issue type, most common first.
    """
    distribution = {}
    error_pages = warning_pages = ok_pages = 0
    pages = SiteAuditPage.objects.filter(scan=scan).only('status_code', 'issue_types')
    total = 0
    for page in pages:
        total += 1
        if page.status_code >= 400:
            error_pages += 1
        elif page.issue_types:
            warning_pages += 1
        else:
            ok_pages += 1
        for issue in page.issue_types or []:
            distribution[issue] = distribution.get(issue, 0) + 1

    return {
        'total_pages': total,
        'error_pages': error_pages,
        'warning_pages': warning_pages,
        'ok_pages': ok_pages,
        'issue_types': OrderedDict(sorted(distribution.items(), key=lambda kv: (-kv[1], kv[0]))),
    }


def get_duplicate_groups(scan, field):
    """Groups of 2+ pages sharing the same non-empty title or description, largest first."""
    column = DUPLICATE_FIELDS[field]
    pages = (
        SiteAuditPage.objects.filter(scan=scan)
        .exclude(**{f'{column}__isnull': True})
        .exclude(**{column: ''})
        .order_by(column, 'url')
    )
    groups = OrderedDict()
    for page in pages:
        groups.setdefault(getattr(page, column), []).append(page)

    extra = ('title',) if field == 'description' else ()
    duplicates = [
        {field: value, 'count': len(group), 'pages': [_page_ref(p, *extra) for p in group]}
        for value, group in groups.items()
        if len(group) > 1
    ]
    duplicates.sort(key=lambda group: -group['count'])
    return duplicates


def non_indexable_reason(page):
    checks = page.checks or {}
    if checks.get('noindex') is True or checks.get('no_index') is True:
        return 'noindex tag'
    if checks.get('robots_txt_blocked') is True:
        return 'blocked by robots.txt'
    if page.status_code >= 400:
        return f'HTTP {page.status_code}'
    if page.is_redirect or 300 <= page.status_code < 400:
        return 'redirect'
    if page.status_code and not 200 <= page.status_code < 300:
        return f'HTTP {page.status_code}'
    return None


def get_non_indexable_pages(scan):
    results = []
    for page in SiteAuditPage.objects.filter(scan=scan).order_by('url'):
        reason = non_indexable_reason(page)
        if reason:
            results.append({**_page_ref(page, 'title'), 'reason': reason})
    return results


def get_redirect_pages(scan):
    pages = SiteAuditPage.objects.filter(scan=scan, is_redirect=True).order_by('url')
    return [_page_ref(p, 'title', 'redirect_location') for p in pages]
