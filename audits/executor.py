"""
Audit pipeline job handler.

audit/requested runs the stages in order:

    onpage       10 -> 25   (CRAWLING)
    serp         30 -> 50   (ANALYZING from here on)
    backlinks    55 -> 70
    competitors  72 -> 75
    business     78 -> 88

then completes the audit with the homepage health score. A stage whose
result is already stored is skipped, so a redelivered message resumes
where the previous delivery stopped.
"""
import logging
from urllib.parse import urlparse

from integrations.dataforseo import DEFAULT_LOCATION, get_dataforseo_client
from integrations.errors import PARTIAL, ProviderError, as_provider_error
from integrations.https_check import verify_https
from integrations.places import get_places_client
from jobs.registry import job_handler
from rankwell_backend.exceptions import InvalidTransition
from seo.issue_classification import get_issue_counts
from seo.thematic_reports import calculate_all_thematic_reports, calculate_overall_health_score

from . import lifecycle
from .keywords import format_location_name
from .models import Audit
from .steps import (
    BACKLINKS,
    BUSINESS,
    COMPETITORS,
    ONPAGE,
    SERP,
    BacklinksStepResult,
    BusinessStepResult,
    CompetitorsStepResult,
    OnPageStepResult,
    SerpStepResult,
    has_step,
    read_step,
)

logger = logging.getLogger(__name__)

AUDIT_REQUESTED = 'audit/requested'

# Retryable failures here retry the whole job; anything else is a warning
CRITICAL_STAGES = (ONPAGE, SERP, BACKLINKS)

STAGE_PROGRESS = {
    ONPAGE: (10, 25),
    SERP: (30, 50),
    BACKLINKS: (55, 70),
    COMPETITORS: (72, 75),
    BUSINESS: (78, 88),
}

STEP_LABELS = {
    ONPAGE: 'onpage_crawl',
    SERP: 'serp_analysis',
    BACKLINKS: 'backlinks_analysis',
    COMPETITORS: 'competitor_analysis',
    BUSINESS: 'business_data',
}

STEP_DESCRIPTIONS = {
    'onpage_crawl': 'Analyzing technical SEO and page performance',
    'serp_analysis': 'Checking keyword rankings and search presence',
    'backlinks_analysis': 'Evaluating backlink profile and authority',
    'competitor_analysis': 'Comparing against competing domains',
    'business_data': 'Gathering business listing and review data',
}

MAX_COMPETITORS = 5

# Midpoint of each organic position bucket, for the average-position estimate
POSITION_BUCKETS = (
    ('pos_1', 1), ('pos_2_3', 2.5), ('pos_4_10', 7), ('pos_11_20', 15),
    ('pos_21_30', 25), ('pos_31_40', 35), ('pos_41_50', 45), ('pos_51_60', 55),
    ('pos_61_70', 65), ('pos_71_80', 75), ('pos_81_90', 85), ('pos_91_100', 95),
)


def _load_audit(payload):
    audit = Audit.objects.filter(pk=payload.get('audit_id')).first()
    if audit is None:
        logger.warning("Audit %s no longer exists; dropping message", payload.get('audit_id'))
    return audit


def fail_audit_from_job(payload, error):
    """on_failure hook: store the provider's message verbatim."""
    audit = _load_audit(payload)
    if audit is None or audit.status in Audit.TERMINAL_STATUSES:
        return
    error = as_provider_error(error)
    try:
        lifecycle.fail_audit(audit, error.message, category=error.category)
    except InvalidTransition as e:
        logger.info("Audit %s already finished: %s", audit.pk, e)


@job_handler(AUDIT_REQUESTED, on_failure=fail_audit_from_job)
def run_audit(payload):
    audit = _load_audit(payload)
    if audit is None:
        return

    if audit.status == lifecycle.PENDING:
        lifecycle.start_audit(audit)
    elif audit.status not in (lifecycle.CRAWLING, lifecycle.ANALYZING):
        logger.info("Audit %s is %s; ignoring redelivered request", audit.pk, audit.status)
        return

    skip_cache = bool(payload.get('skip_cache'))
    if skip_cache:
        logger.info("Audit %s: running with skip_cache", audit.pk)

    client = get_dataforseo_client(skip_cache=skip_cache)
    _run_stage(audit, ONPAGE, lambda: run_onpage_step(client, audit.domain))
    _run_stage(audit, SERP, lambda: run_serp_step(client, audit))
    _run_stage(audit, BACKLINKS, lambda: run_backlinks_step(client, audit.domain))
    _run_stage(audit, COMPETITORS, lambda: run_competitor_step(client, audit))
    _run_stage(audit, BUSINESS, lambda: run_business_step(audit))

    lifecycle.complete_audit(audit, audit_health_score(audit))
    logger.info("Audit %s completed (health %s, warnings: %s)",
                audit.pk, audit.health_score, ', '.join(audit.warnings) or 'none')


def _run_stage(audit, stage, runner):
    start, end = STAGE_PROGRESS[stage]
    label = STEP_LABELS[stage]
    if stage != ONPAGE and audit.status == lifecycle.CRAWLING:
        lifecycle.begin_analysis(audit, progress=start, step=label)

    if has_step(audit, stage):
        logger.info("Audit %s: %s already stored, skipping", audit.pk, stage)
        return

    lifecycle.update_step_progress(audit, start, step=label)
    try:
        result = runner()
    except Exception as exc:
        error = as_provider_error(exc)
        if stage in CRITICAL_STAGES and error.retryable:
            if error is exc:
                raise
            raise error from exc
        lifecycle.record_warning(audit, stage, error)
    else:
        lifecycle.save_step_result(audit, stage, result)
    lifecycle.update_step_progress(audit, end)


def audit_health_score(audit):
    """Homepage health score; an audit without onpage data scores 0."""
    onpage = read_step(audit, ONPAGE)
    if onpage is not None:
        return onpage.health_score
    return calculate_overall_health_score(calculate_all_thematic_reports({}))


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def run_onpage_step(client, domain):
    url = f"https://{domain}"
    page = client.instant_page(url)
    if not page:
        raise ProviderError(f"No page data returned for {url}", PARTIAL, provider='dataforseo')

    checks = page.get('checks') or {}
    meta = page.get('meta') or {}
    timing = page.get('page_timing') or {}
    https_verified = verify_https(domain)
    if bool(checks.get('is_https')) != https_verified:
        logger.warning("HTTPS mismatch for %s: crawler says %s, direct check says %s",
                       domain, bool(checks.get('is_https')), https_verified)

    reports = calculate_all_thematic_reports({
        'checks': checks,
        'timing': timing,
        'meta': meta,
        'https_verified': https_verified,
    })
    return OnPageStepResult(
        url=page.get('url') or url,
        status_code=page.get('status_code'),
        onpage_score=page.get('onpage_score'),
        title=meta.get('title'),
        description=meta.get('description'),
        h1=(meta.get('htags') or {}).get('h1') or [],
        word_count=(meta.get('content') or {}).get('plain_text_word_count'),
        checks=checks,
        page_timing=timing,
        meta=meta,
        https_verified=https_verified,
        issue_counts=get_issue_counts(checks),
        thematic_scores=[r.to_dict() for r in reports],
        health_score=calculate_overall_health_score(reports),
    )


def run_serp_step(client, audit):
    location_name = format_location_name(audit.location) or DEFAULT_LOCATION
    ranked = client.ranked_keywords(audit.domain, location_name=location_name)
    keywords = ranked['items']

    by_keyword = {(k.get('keyword') or '').lower(): k for k in keywords}
    tracked = []
    for keyword in audit.target_keywords or []:
        match = by_keyword.get(keyword.lower()) or {}
        tracked.append({
            'keyword': keyword,
            'position': match.get('position'),
            'url': match.get('url'),
            'search_volume': match.get('search_volume'),
        })

    positions = [k['position'] for k in keywords if k.get('position')]
    return SerpStepResult(
        location_name=location_name,
        total_keywords=ranked['total_count'],
        keywords=keywords,
        tracked_keywords=tracked,
        top10_count=sum(1 for p in positions if p <= 10),
        avg_position=round(sum(positions) / len(positions), 1) if positions else None,
    )


def run_backlinks_step(client, domain):
    summary = client.backlinks_summary(domain)
    if not summary:
        return BacklinksStepResult()
    referring = summary.get('referring_domains') or 0
    nofollow = summary.get('referring_domains_nofollow') or 0
    return BacklinksStepResult(
        total_backlinks=summary.get('backlinks') or 0,
        referring_domains=referring,
        domain_rank=summary.get('rank') or 0,
        spam_score=summary.get('backlinks_spam_score') or 0,
        dofollow_ratio=round((referring - nofollow) / referring, 2) if referring else 0.0,
    )


def estimate_avg_position(organic):
    count = organic.get('count') or 0
    if not count:
        return 0
    weighted = sum((organic.get(key) or 0) * midpoint for key, midpoint in POSITION_BUCKETS)
    return round(weighted / count)


def domain_metrics(client, domain):
    organic = client.domain_rank_overview(domain) or {}
    backlinks = client.backlinks_summary(domain) or {}
    return {
        'domain': domain,
        'rank': backlinks.get('rank') or 0,
        'backlinks': backlinks.get('backlinks') or 0,
        'referring_domains': backlinks.get('referring_domains') or 0,
        'organic_traffic': round(organic.get('etv') or 0),
        'traffic_value': round(organic.get('estimated_paid_traffic_cost') or 0),
        'ranking_keywords': organic.get('count') or 0,
        'top10_keywords': sum(organic.get(k) or 0 for k in ('pos_1', 'pos_2_3', 'pos_4_10')),
        'avg_position': estimate_avg_position(organic),
    }


def run_competitor_step(client, audit):
    target = domain_metrics(client, audit.domain)

    competitors = []
    for domain in (audit.competitor_domains or [])[:MAX_COMPETITORS]:
        try:
            competitors.append(domain_metrics(client, domain))
        except ProviderError as e:
            logger.warning("Audit %s: metrics for competitor %s failed: %s", audit.pk, domain, e)

    discovered = []
    if len(competitors) < MAX_COMPETITORS:
        known = {audit.domain} | {c['domain'] for c in competitors}
        try:
            found = client.competitors_domain(audit.domain)
        except ProviderError as e:
            logger.warning("Audit %s: competitor discovery failed: %s", audit.pk, e)
            found = []
        discovered = [c for c in found if c['domain'] not in known][:MAX_COMPETITORS - len(competitors)]

    return CompetitorsStepResult(target=target, competitors=competitors, discovered=discovered)


def _host(url):
    host = urlparse(url if '://' in url else f"http://{url}").hostname or ''
    return host.lower().removeprefix('www.')


def run_business_step(audit):
    places = get_places_client()
    if not places.is_configured():
        logger.info("Audit %s: Places API not configured, skipping business lookup", audit.pk)
        return BusinessStepResult()

    if audit.gmb_place_id:
        profile = places.get_business_by_place_id(audit.gmb_place_id)
    elif audit.business_name:
        profile = places.find_business(audit.business_name, audit.location)
    else:
        profile = None

    if not profile:
        return BusinessStepResult()

    website = profile.get('website')
    return BusinessStepResult(
        found=True,
        source='google_places',
        profile=profile,
        nap_consistent=_host(website) == _host(audit.domain) if website else None,
    )
