"""
Typed audit stage results.

Each pipeline stage stores its result under its own key in
`Audit.step_results`. Readers go through `read_step`, which returns the
stage's dataclass or None when that stage has no result yet.
"""
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

ONPAGE = 'onpage'
SERP = 'serp'
BACKLINKS = 'backlinks'
COMPETITORS = 'competitors'
BUSINESS = 'business'

STAGES = (ONPAGE, SERP, BACKLINKS, COMPETITORS, BUSINESS)

WARNINGS_KEY = 'warnings'
FAILURE_KEY = '_failure'


class _StepResult:
    stage = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in (data or {}).items() if key in known})


@dataclass
class OnPageStepResult(_StepResult):
    """Homepage audit: raw checks plus the classified and scored view of them."""
    stage = ONPAGE

    url: str = ''
    status_code: Optional[int] = None
    onpage_score: Optional[float] = None
    title: Optional[str] = None
    description: Optional[str] = None
    h1: List[str] = field(default_factory=list)
    word_count: Optional[int] = None
    checks: Dict[str, Any] = field(default_factory=dict)
    page_timing: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    https_verified: Optional[bool] = None
    issue_counts: Dict[str, int] = field(default_factory=dict)
    thematic_scores: List[dict] = field(default_factory=list)
    health_score: int = 0


@dataclass
class SerpStepResult(_StepResult):
    stage = SERP

    location_name: Optional[str] = None
    total_keywords: int = 0
    keywords: List[dict] = field(default_factory=list)
    tracked_keywords: List[dict] = field(default_factory=list)
    top10_count: int = 0
    avg_position: Optional[float] = None


@dataclass
class BacklinksStepResult(_StepResult):
    stage = BACKLINKS

    total_backlinks: int = 0
    referring_domains: int = 0
    domain_rank: int = 0
    spam_score: int = 0
    dofollow_ratio: float = 0.0


@dataclass
class CompetitorsStepResult(_StepResult):
    """Target metrics next to named and auto-discovered competitors."""
    stage = COMPETITORS

    target: Dict[str, Any] = field(default_factory=dict)
    competitors: List[dict] = field(default_factory=list)
    discovered: List[dict] = field(default_factory=list)

    @property
    def competitor_domains(self) -> List[str]:
        return [c['domain'] for c in self.competitors + self.discovered if c.get('domain')]


@dataclass
class BusinessStepResult(_StepResult):
    stage = BUSINESS

    found: bool = False
    source: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)
    nap_consistent: Optional[bool] = None


STEP_TYPES = {
    cls.stage: cls
    for cls in (OnPageStepResult, SerpStepResult, BacklinksStepResult, CompetitorsStepResult, BusinessStepResult)
}


def read_step(audit, stage):
    """The typed result stored for `stage`, or None when it has not run."""
    data = (audit.step_results or {}).get(stage)
    if data is None:
        return None
    return STEP_TYPES[stage].from_dict(data)


def has_step(audit, stage) -> bool:
    return (audit.step_results or {}).get(stage) is not None
