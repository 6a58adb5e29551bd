"""
Tests for issue classification and thematic scoring.
"""
import pytest

from seo.issue_classification import (
    ISSUE_DEFINITIONS,
    categorize_issues,
    get_all_issues,
    get_issue_counts,
    is_check_failing,
)
from seo.thematic_reports import (
    ThematicReport,
    calculate_all_thematic_reports,
    calculate_core_web_vitals_score,
    calculate_crawlability_score,
    calculate_https_score,
    calculate_internal_linking_score,
    calculate_markup_score,
    calculate_overall_health_score,
    calculate_performance_score,
    calculate_weighted_score,
    get_score_status,
    round_half_up,
    score_pages,
)
from seo.thresholds import ISSUE_SEVERITY_CONFIG, THEMATIC_SCORE_WEIGHTS


HEALTHY_CHECKS = {
    'is_broken': False,
    'is_4xx_code': False,
    'is_5xx_code': False,
    'is_redirect': False,
    'canonical': True,
    'has_meta_refresh_redirect': False,
    'is_https': True,
    'https_to_http_links': False,
    'high_loading_time': False,
    'high_waiting_time': False,
    'has_render_blocking_resources': False,
    'no_content_encoding': False,
    'size_greater_than_3mb': False,
    'broken_links': False,
    'has_html_doctype': True,
    'deprecated_html_tags': False,
    'frame': False,
    'flash': False,
    'has_micromarkup': True,
    'has_micromarkup_errors': False,
}


class TestSeverityConfiguration:

    def test_every_tier_member_has_metadata(self):
        for tier, checks in ISSUE_SEVERITY_CONFIG.items():
            for check in checks:
                assert check in ISSUE_DEFINITIONS, f"{check} ({tier}) has no definition"

    def test_no_check_sits_in_two_tiers(self):
        seen = []
        for checks in ISSUE_SEVERITY_CONFIG.values():
            seen.extend(checks)
        assert len(seen) == len(set(seen))

    def test_theme_weights_sum_to_100(self):
        for theme, weights in THEMATIC_SCORE_WEIGHTS.items():
            assert sum(weights.values()) == 100, theme


class TestIssueClassification:

    def test_fails_when_true_check_failing(self):
        result = categorize_issues({'is_broken': True})
        assert [d.check for d in result.errors] == ['is_broken']
        assert result.passed == []

    def test_fails_when_true_check_passing(self):
        result = categorize_issues({'is_broken': False})
        assert result.errors == []
        assert [d.check for d in result.passed] == ['is_broken']

    def test_fails_when_false_polarity(self):
        failing = categorize_issues({'meta_charset_consistency': False})
        assert [d.check for d in failing.notices] == ['meta_charset_consistency']
        passing = categorize_issues({'meta_charset_consistency': True})
        assert [d.check for d in passing.passed] == ['meta_charset_consistency']

    def test_checks_without_severity_are_excluded(self):
        result = categorize_issues({'canonical': False, 'has_html_doctype': True, 'is_www': True})
        assert result.errors == result.warnings == result.notices == result.passed == []

    def test_unknown_and_non_boolean_checks_are_ignored(self):
        result = categorize_issues({'brand_new_check': True, 'no_title': None, 'no_h1_tag': 1})
        assert get_issue_counts({'brand_new_check': True})['total'] == 0
        assert result.passed == []

    def test_each_check_lands_in_exactly_one_bucket(self):
        checks = {name: True for name in ISSUE_DEFINITIONS}
        checks.update({'is_https': False, 'title_too_long': False})
        result = categorize_issues(checks)
        buckets = result.errors + result.warnings + result.notices + result.passed
        names = [d.check for d in buckets]
        assert len(names) == len(set(names))
        configured = {c for tier in ISSUE_SEVERITY_CONFIG.values() for c in tier}
        assert set(names) == configured

    def test_issue_counts(self):
        counts = get_issue_counts({
            'no_title': True,
            'title_too_long': True,
            'frame': True,
            'no_description': False,
        })
        assert counts == {'errors': 1, 'warnings': 1, 'notices': 1, 'passed': 1, 'total': 3}

    def test_get_all_issues_orders_by_severity(self):
        issues = get_all_issues({'frame': True, 'title_too_long': True, 'is_broken': True})
        assert [i['severity'] for i in issues] == ['error', 'warning', 'notice']
        assert issues[0]['title'] == 'Page is Broken'

    def test_is_check_failing(self):
        assert is_check_failing('is_https', False) is True
        assert is_check_failing('is_https', True) is False
        assert is_check_failing('not_a_check', True) is False

    def test_empty_checks(self):
        assert categorize_issues(None).to_dict() == {'errors': [], 'warnings': [], 'notices': [], 'passed': []}


class TestWeightedScore:

    def test_zero_total_weight_scores_zero(self):
        assert calculate_weighted_score([]) == 0
        assert calculate_weighted_score([(None, 40), (None, 60)]) == 0

    def test_none_entries_drop_out_of_total(self):
        assert calculate_weighted_score([(True, 30), (None, 70)]) == 100

    def test_rounds_half_up(self):
        assert calculate_weighted_score([(True, 1), (False, 7)]) == 13
        assert round_half_up(2.5) == 3
        assert round_half_up(73.5) == 74

    @pytest.mark.parametrize('score,expected', [
        (100, 'good'), (80, 'good'), (79, 'moderate'), (50, 'moderate'), (49, 'poor'), (0, 'poor'),
    ])
    def test_status_bands(self, score, expected):
        assert get_score_status(score) == expected


class TestCategoryScores:

    def test_crawlability_healthy(self):
        assert calculate_crawlability_score(HEALTHY_CHECKS).score == 100

    def test_crawlability_broken_page(self):
        checks = dict(HEALTHY_CHECKS, is_broken=True)
        report = calculate_crawlability_score(checks)
        assert report.score == 75
        assert report.status == 'moderate'

    def test_crawlability_missing_canonical_drops_from_total(self):
        checks = {k: v for k, v in HEALTHY_CHECKS.items() if k != 'canonical'}
        assert calculate_crawlability_score(checks).score == 100
        assert calculate_crawlability_score(dict(HEALTHY_CHECKS, canonical=False)).score == 85

    def test_https(self):
        assert calculate_https_score(HEALTHY_CHECKS, True).score == 100
        assert calculate_https_score(dict(HEALTHY_CHECKS, is_https=False), False).score == 30

    def test_core_web_vitals_partial_credit(self):
        report = calculate_core_web_vitals_score(
            {'largest_contentful_paint': 3000, 'first_input_delay': 50}, {}
        )
        # lcp moderate (20 of 40) + fid good (30 of 30), cls unmeasured
        assert report.score == 71

    def test_core_web_vitals_all_poor(self):
        report = calculate_core_web_vitals_score(
            {'largest_contentful_paint': 9000, 'first_input_delay': 900},
            {'cumulative_layout_shift': 0.5},
        )
        assert report.score == 0
        assert report.status == 'poor'

    def test_core_web_vitals_without_measurements(self):
        assert calculate_core_web_vitals_score(None).score == 0

    def test_performance(self):
        assert calculate_performance_score(HEALTHY_CHECKS).score == 100
        assert calculate_performance_score(dict(HEALTHY_CHECKS, high_loading_time=True)).score == 70

    def test_internal_linking(self):
        meta = {'internal_links_count': 5, 'external_links_count': 1}
        assert calculate_internal_linking_score(HEALTHY_CHECKS, meta).score == 100
        lonely = {'internal_links_count': 0, 'external_links_count': 0}
        assert calculate_internal_linking_score(HEALTHY_CHECKS, lonely).score == 70
        outbound = {'internal_links_count': 3, 'external_links_count': 20}
        assert calculate_internal_linking_score(HEALTHY_CHECKS, outbound).score == 70

    def test_internal_linking_needs_meta(self):
        assert calculate_internal_linking_score(HEALTHY_CHECKS, None).score == 0

    def test_markup(self):
        assert calculate_markup_score(HEALTHY_CHECKS).score == 100
        assert calculate_markup_score(dict(HEALTHY_CHECKS, has_micromarkup=False)).score == 75


class TestOverallHealthScore:

    def test_mean_of_six_categories(self):
        scores = {'crawlability': 92, 'https': 100, 'core_web_vitals': 40,
                  'performance': 55, 'internal_linking': 70, 'markup': 85}
        reports = [ThematicReport(id=k, title=k, score=v, status=get_score_status(v)) for k, v in scores.items()]
        assert calculate_overall_health_score(reports) == 74

    def test_all_six_present_without_signals(self):
        reports = calculate_all_thematic_reports({})
        assert [r.id for r in reports] == [
            'crawlability', 'https', 'core_web_vitals', 'performance', 'internal_linking', 'markup',
        ]
        assert all(r.score == 0 for r in reports)
        assert calculate_overall_health_score(reports) == 0

    def test_full_signals(self):
        reports = calculate_all_thematic_reports({
            'checks': HEALTHY_CHECKS,
            'timing': {'largest_contentful_paint': 1200, 'first_input_delay': 20},
            'meta': {'cumulative_layout_shift': 0.01, 'internal_links_count': 12, 'external_links_count': 2},
            'https_verified': True,
        })
        assert calculate_overall_health_score(reports) == 100

    def test_score_pages_averages_categories(self):
        healthy = {
            'checks': HEALTHY_CHECKS,
            'page_timing': {'largest_contentful_paint': 1000, 'first_input_delay': 10},
            'meta': {'cumulative_layout_shift': 0.0, 'internal_links_count': 10, 'external_links_count': 0},
        }
        broken = dict(healthy, checks=dict(HEALTHY_CHECKS, is_broken=True))
        result = score_pages([healthy, broken])
        by_id = {c['id']: c['score'] for c in result['categories']}
        assert by_id['crawlability'] == 88  # (100 + 75) / 2 rounds half up
        assert len(result['categories']) == 6

    def test_score_pages_without_pages(self):
        result = score_pages([])
        assert result['health_score'] == 0
        assert len(result['categories']) == 6
