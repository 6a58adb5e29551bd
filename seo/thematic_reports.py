"""
Thematic report cards: six weighted category scores plus an overall health score.

Signals for one page look like:
    {
        'checks': {...provider boolean checks...},
        'timing': {'largest_contentful_paint': ms, 'first_input_delay': ms},
        'meta': {'cumulative_layout_shift': float,
                 'internal_links_count': int, 'external_links_count': int},
        'https_verified': bool | None,
    }

Missing data scores as 0 rather than being excluded, so the overall score is
always the mean of exactly six categories.
"""
import math
from dataclasses import dataclass, asdict
from typing import Iterable, List, Optional, Sequence, Tuple

from seo.thresholds import (
    CWV_THRESHOLDS,
    LINK_THRESHOLDS,
    SCORE_STATUS_GOOD,
    SCORE_STATUS_MODERATE,
    THEMATIC_SCORE_WEIGHTS,
)

CATEGORY_TITLES = (
    ('crawlability', 'Crawlability'),
    ('https', 'HTTPS'),
    ('core_web_vitals', 'Core Web Vitals'),
    ('performance', 'Site Performance'),
    ('internal_linking', 'Internal Linking'),
    ('markup', 'Markup'),
)


@dataclass(frozen=True)
class ThematicReport:
    id: str
    title: str
    score: int
    status: str

    def to_dict(self) -> dict:
        return asdict(self)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))


def get_score_status(score: int) -> str:
    if score >= SCORE_STATUS_GOOD:
        return 'good'
    if score >= SCORE_STATUS_MODERATE:
        return 'moderate'
    return 'poor'


def calculate_weighted_score(factors: Sequence[Tuple[Optional[bool], float]]) -> int:
    """
    Score (value, weight) pairs. None values contribute nothing to the total;
    with no applicable weight the score is 0.
    """
    total_weight = 0
    score = 0
    for value, weight in factors:
        if value is None:
            continue
        total_weight += weight
        if value:
            score += weight
    if total_weight <= 0:
        return 0
    return round_half_up(score / total_weight * 100)


def _report(category: str, score: int) -> ThematicReport:
    title = dict(CATEGORY_TITLES)[category]
    return ThematicReport(id=category, title=title, score=score, status=get_score_status(score))


def _positive(checks: dict, name: str) -> Optional[bool]:
    value = checks.get(name)
    return value if isinstance(value, bool) else None


def calculate_crawlability_score(checks: Optional[dict]) -> ThematicReport:
    if not checks:
        return _report('crawlability', 0)
    w = THEMATIC_SCORE_WEIGHTS['crawlability']
    score = calculate_weighted_score([
        (not checks.get('is_broken'), w['not_broken']),
        (not checks.get('is_4xx_code'), w['no_4xx_code']),
        (not checks.get('is_5xx_code'), w['no_5xx_code']),
        (not checks.get('is_redirect'), w['not_redirect']),
        (_positive(checks, 'canonical'), w['has_canonical']),
        (not checks.get('has_meta_refresh_redirect'), w['no_meta_refresh']),
    ])
    return _report('crawlability', score)


def calculate_https_score(checks: Optional[dict], https_verified: Optional[bool] = None) -> ThematicReport:
    if not checks:
        return _report('https', 0)
    w = THEMATIC_SCORE_WEIGHTS['https']
    score = calculate_weighted_score([
        (_positive(checks, 'is_https'), w['is_https']),
        (not checks.get('https_to_http_links'), w['no_mixed_content']),
        (https_verified if isinstance(https_verified, bool) else None, w['https_verified']),
    ])
    return _report('https', score)


def _vital_points(value, thresholds: dict, weight: float) -> float:
    if value <= thresholds['good']:
        return weight
    if value <= thresholds['moderate']:
        return weight * 0.5
    return 0


def calculate_core_web_vitals_score(timing: Optional[dict], meta: Optional[dict] = None) -> ThematicReport:
    """
    Each vital only counts toward the total when measured: full weight when
    good, half weight when moderate, nothing when poor.
    """
    timing = timing or {}
    meta = meta or {}
    w = THEMATIC_SCORE_WEIGHTS['core_web_vitals']
    measured = (
        ('lcp', timing.get('largest_contentful_paint')),
        ('fid', timing.get('first_input_delay')),
        ('cls', meta.get('cumulative_layout_shift')),
    )

    total_weight = 0
    score = 0
    for name, value in measured:
        if value is None:
            continue
        total_weight += w[name]
        score += _vital_points(value, CWV_THRESHOLDS[name], w[name])

    final = round_half_up(score / total_weight * 100) if total_weight > 0 else 0
    return _report('core_web_vitals', final)


def calculate_performance_score(checks: Optional[dict]) -> ThematicReport:
    if not checks:
        return _report('performance', 0)
    w = THEMATIC_SCORE_WEIGHTS['performance']
    score = calculate_weighted_score([
        (not checks.get('high_loading_time'), w['no_high_load_time']),
        (not checks.get('high_waiting_time'), w['no_high_wait_time']),
        (not checks.get('has_render_blocking_resources'), w['no_render_blocking']),
        (not checks.get('no_content_encoding'), w['has_compression']),
        (not checks.get('size_greater_than_3mb'), w['under_size_limit']),
    ])
    return _report('performance', score)


def calculate_internal_linking_score(checks: Optional[dict], meta: Optional[dict]) -> ThematicReport:
    if not checks or not meta:
        return _report('internal_linking', 0)
    w = THEMATIC_SCORE_WEIGHTS['internal_linking']
    internal = meta.get('internal_links_count') or 0
    external = meta.get('external_links_count') or 0
    total_links = internal + external
    external_ratio = external / total_links if total_links > 0 else 0

    score = calculate_weighted_score([
        (not checks.get('broken_links'), w['no_broken_links']),
        (internal >= LINK_THRESHOLDS['min_internal_links'], w['has_internal_links']),
        (external_ratio <= LINK_THRESHOLDS['max_external_ratio'], w['good_external_ratio']),
    ])
    return _report('internal_linking', score)


def calculate_markup_score(checks: Optional[dict]) -> ThematicReport:
    if not checks:
        return _report('markup', 0)
    w = THEMATIC_SCORE_WEIGHTS['markup']
    score = calculate_weighted_score([
        (_positive(checks, 'has_html_doctype'), w['has_doctype']),
        (not checks.get('deprecated_html_tags'), w['no_deprecated_tags']),
        (not checks.get('frame'), w['no_frames']),
        (not checks.get('flash'), w['no_flash']),
        (_positive(checks, 'has_micromarkup'), w['has_schema']),
        (not checks.get('has_micromarkup_errors'), w['no_schema_errors']),
    ])
    return _report('markup', score)


def calculate_all_thematic_reports(signals: Optional[dict]) -> List[ThematicReport]:
    """All six category reports, in display order."""
    signals = signals or {}
    checks = signals.get('checks')
    timing = signals.get('timing')
    meta = signals.get('meta')
    return [
        calculate_crawlability_score(checks),
        calculate_https_score(checks, signals.get('https_verified')),
        calculate_core_web_vitals_score(timing, meta),
        calculate_performance_score(checks),
        calculate_internal_linking_score(checks, meta),
        calculate_markup_score(checks),
    ]


def calculate_overall_health_score(reports: Iterable[ThematicReport]) -> int:
    scores = [r.score for r in reports]
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def score_pages(pages: Iterable[dict]) -> dict:
    """
    Site-level report: each category is the mean of that category across pages.

    Each page dict carries `checks`, `page_timing` (or `timing`), and `meta`.
    Returns {'categories': [...], 'health_score': int}.
    """
    totals = {category: 0 for category, _ in CATEGORY_TITLES}
    count = 0
    for page in pages:
        reports = calculate_all_thematic_reports({
            'checks': page.get('checks'),
            'timing': page.get('page_timing') or page.get('timing'),
            'meta': page.get('meta'),
            'https_verified': page.get('https_verified'),
        })
        for report in reports:
            totals[report.id] += report.score
        count += 1

    categories = [
        _report(category, round_half_up(totals[category] / count) if count else 0)
        for category, _ in CATEGORY_TITLES
    ]
    return {
        'categories': [c.to_dict() for c in categories],
        'health_score': calculate_overall_health_score(categories),
    }
