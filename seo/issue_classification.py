"""
Technical issue classification.

Maps a page's raw boolean checks onto error / warning / notice / passed buckets
using the severity tiers and per-check polarity in seo.thresholds.
"""
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from seo.thresholds import CHECK_METADATA, ISSUE_SEVERITY_CONFIG, SEVERITY_LABELS


@dataclass(frozen=True)
class IssueDefinition:
    check: str
    title: str
    fails_when_true: bool


@dataclass
class CategorizedIssues:
    errors: List[IssueDefinition] = field(default_factory=list)
    warnings: List[IssueDefinition] = field(default_factory=list)
    notices: List[IssueDefinition] = field(default_factory=list)
    passed: List[IssueDefinition] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            bucket: [asdict(d) for d in getattr(self, bucket)]
            for bucket in ('errors', 'warnings', 'notices', 'passed')
        }


ISSUE_DEFINITIONS: Dict[str, IssueDefinition] = {
    check: IssueDefinition(check=check, title=title, fails_when_true=fails_when_true)
    for check, (title, fails_when_true) in CHECK_METADATA.items()
}

_SEVERITY_BY_CHECK: Dict[str, str] = {
    check: tier
    for tier, checks in ISSUE_SEVERITY_CONFIG.items()
    for check in checks
}


def get_severity(check: str) -> Optional[str]:
    """Return the tier ('errors', 'warnings', 'notices') for a check, or None."""
    return _SEVERITY_BY_CHECK.get(check)


def is_check_failing(check: str, value) -> bool:
    """
    Apply the check's polarity. Unknown checks never fail.
    """
    definition = ISSUE_DEFINITIONS.get(check)
    if definition is None:
        return False
    if definition.fails_when_true:
        return value is True
    return value is False


def categorize_issues(checks: Optional[dict]) -> CategorizedIssues:
    """
    Sort every recognised, severity-configured check into exactly one bucket.

    Failing checks go to their tier; passing checks go to `passed`. Checks with
    no tier, unknown names, and non-boolean values are left out.
    """
    result = CategorizedIssues()
    if not checks:
        return result

    for check, value in checks.items():
        if not isinstance(value, bool):
            continue
        definition = ISSUE_DEFINITIONS.get(check)
        if definition is None:
            continue
        tier = get_severity(check)
        if tier is None:
            continue

        if is_check_failing(check, value):
            getattr(result, tier).append(definition)
        else:
            result.passed.append(definition)

    return result


def get_issue_counts(checks: Optional[dict]) -> dict:
    categorized = categorize_issues(checks)
    counts = {
        'errors': len(categorized.errors),
        'warnings': len(categorized.warnings),
        'notices': len(categorized.notices),
        'passed': len(categorized.passed),
    }
    counts['total'] = counts['errors'] + counts['warnings'] + counts['notices']
    return counts


def get_all_issues(checks: Optional[dict]) -> List[dict]:
    """Flat list of failing issues, errors first, then warnings, then notices."""
    categorized = categorize_issues(checks)
    issues = []
    for tier in ('errors', 'warnings', 'notices'):
        for definition in getattr(categorized, tier):
            issues.append({
                'check': definition.check,
                'title': definition.title,
                'severity': SEVERITY_LABELS[tier],
            })
    return issues
