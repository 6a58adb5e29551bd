"""
Competitor aggregation across geo-grid samples.

A sample is one (keyword, grid point) map-pack lookup:

    {
        'keyword': str,
        'row': int, 'col': int,
        'succeeded': bool,
        'target_rank': int | None,
        'top_competitors': [{'rank', 'business_name', 'cid', 'rating', 'review_count', ...}],
    }

Every business seen in a successful sample gets one aggregate row. The
target business is aggregated with the same formula and is always
present, even when it never appeared.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from django.conf import settings

TIER_LIMITS = (('dominant', 3), ('strong', 10), ('moderate', 20))

RECOMMENDATIONS = {
    'dominant': 'Maintain strong position. Focus on review acquisition and content updates.',
    'strong': 'Good visibility. Optimize the business profile and increase review velocity '
              'to reach a dominant position.',
    'moderate': 'Improve local signals. Focus on proximity optimization, review generation, '
                'and category relevance.',
    'weak': 'Significant improvement needed. Audit profile completeness, build citations, '
            'and implement a local content strategy.',
    'not_ranking': 'Not appearing in local results. Verify the listing is claimed, categories '
                   'are correct, and NAP details are consistent.',
}

SORT_KEYS = ('avg_rank', 'share_of_voice', 'times_in_top3', 'review_count')

_QUOTES_RE = re.compile(r"[‘’`]")
_DASHES_RE = re.compile(r"[–—]")
_SPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[.,]")


def normalize_competitor_key(name: Optional[str]) -> str:
    """Case, quote, dash, whitespace and punctuation-insensitive business key."""
    key = (name or '').lower()
    key = _QUOTES_RE.sub("'", key)
    key = _DASHES_RE.sub('-', key)
    key = _SPACE_RE.sub(' ', key)
    key = _PUNCT_RE.sub('', key)
    return key.strip()


def is_target_match(business_name: Optional[str], target_name: Optional[str]) -> bool:
    """
    Exact key match, or one key containing the other where the contained
    key covers at least half of the shorter one.
    """
    business = normalize_competitor_key(business_name)
    target = normalize_competitor_key(target_name)
    if not business or not target:
        return False
    if business == target:
        return True

    overlap = 0
    if target in business:
        overlap = len(target)
    if business in target:
        overlap = max(overlap, len(business))
    if not overlap:
        return False
    return overlap >= min(len(business), len(target)) * 0.5


def is_target_listing(listing: dict, target_name: Optional[str], gmb_cid: Optional[str] = None) -> bool:
    """A listing is the target when its CID equals the campaign's, or its name matches."""
    cid = listing.get('cid')
    if gmb_cid and cid and str(cid) == str(gmb_cid):
        return True
    return is_target_match(listing.get('business_name'), target_name)


def rank_weight(rank: Optional[int]) -> float:
    """Visibility weight of one appearance; ranks outside the table weigh 0."""
    if not rank or rank < 1:
        return 0.0
    return float(settings.SHARE_OF_VOICE_RANK_WEIGHTS.get(rank, 0))


def _max_weight() -> float:
    weights = settings.SHARE_OF_VOICE_RANK_WEIGHTS
    return float(max(weights.values())) if weights else 0.0


@dataclass
class _Accumulator:
    business_name: str
    competitor_key: str
    is_target: bool = False
    gmb_cid: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    total_rank: int = 0
    appearances: int = 0
    times_in_top3: int = 0
    times_in_top10: int = 0
    times_in_top20: int = 0
    weight: float = 0.0

    def add(self, listing: dict):
        rank = listing['rank']
        self.total_rank += rank
        self.appearances += 1
        if rank <= 3:
            self.times_in_top3 += 1
        if rank <= 10:
            self.times_in_top10 += 1
        if rank <= 20:
            self.times_in_top20 += 1
        self.weight += rank_weight(rank)

        # Keep the rating reported alongside the largest review count
        review_count = listing.get('review_count')
        if listing.get('rating') and (self.rating is None or (review_count or 0) > (self.review_count or 0)):
            self.rating = listing.get('rating')
            self.review_count = review_count
        if listing.get('cid') and not self.gmb_cid:
            self.gmb_cid = str(listing['cid'])

    def to_row(self, possible_weight: float) -> dict:
        share = round(self.weight / possible_weight * 100, 2) if possible_weight > 0 else 0.0
        return {
            'business_name': self.business_name,
            'competitor_key': self.competitor_key,
            'is_target': self.is_target,
            'gmb_cid': self.gmb_cid,
            'rating': self.rating,
            'review_count': self.review_count,
            'avg_rank': round(self.total_rank / self.appearances, 2) if self.appearances else None,
            'appearances': self.appearances,
            'times_in_top3': self.times_in_top3,
            'times_in_top10': self.times_in_top10,
            'times_in_top20': self.times_in_top20,
            'share_of_voice': share,
            'prev_avg_rank': None,
            'rank_change': None,
        }


@dataclass
class ScanAggregation:
    target: dict
    competitors: List[dict] = field(default_factory=list)
    overall: dict = field(default_factory=dict)

    @property
    def rows(self) -> List[dict]:
        return [self.target] + self.competitors

    def to_dict(self) -> dict:
        return {'target': self.target, 'competitors': self.competitors, 'overall': self.overall}


def _valid_listings(sample: dict) -> Iterable[dict]:
    for listing in sample.get('top_competitors') or []:
        if isinstance(listing.get('rank'), int) and listing['rank'] > 0 and listing.get('business_name'):
            yield listing


def aggregate_competitors(samples: Iterable[dict], target_name: str,
                          previous: Optional[Dict[str, dict]] = None,
                          gmb_cid: Optional[str] = None) -> ScanAggregation:
    """
    Aggregate every successful sample.

    avg_rank is the mean over appearances only. share_of_voice is the
    summed rank weight as a percentage of the best possible weight over
    all successful samples, so a sample with no listings still counts in
    the denominator. A business counts at most once per sample, at its
    best rank. `previous` maps competitor keys to the prior scan's rows.
    A listing carrying the campaign's `gmb_cid` is the target whatever its
    title.
    """
    target_key = normalize_competitor_key(target_name)
    target = _Accumulator(business_name=target_name, competitor_key=target_key, is_target=True)
    others: Dict[str, _Accumulator] = {}
    successful = 0
    failed = 0

    for sample in samples:
        if not sample.get('succeeded', True):
            failed += 1
            continue
        successful += 1
        seen = set()
        for listing in sorted(_valid_listings(sample), key=lambda item: item['rank']):
            name = listing['business_name']
            if is_target_listing(listing, target_name, gmb_cid):
                acc = target
            else:
                key = normalize_competitor_key(name)
                acc = others.get(key)
                if acc is None:
                    acc = others[key] = _Accumulator(business_name=name, competitor_key=key)
            if acc.competitor_key in seen:
                continue
            seen.add(acc.competitor_key)
            acc.add(listing)

    possible_weight = successful * _max_weight()
    target_row = target.to_row(possible_weight)
    competitors = [acc.to_row(possible_weight) for acc in others.values()]
    competitors.sort(key=lambda row: (-row['share_of_voice'], _rank_sort_value(row['avg_rank'])))

    if previous:
        target_row = calculate_rank_changes([target_row], previous)[0]
        competitors = calculate_rank_changes(competitors, previous)

    overall = {
        'avg_rank': target_row['avg_rank'],
        'share_of_voice': target_row['share_of_voice'],
        'top_competitor': competitors[0]['business_name'] if competitors else None,
        'total_competitors_found': len(competitors),
        'successful_samples': successful,
        'failed_samples': failed,
    }
    return ScanAggregation(target=target_row, competitors=competitors, overall=overall)


def _rank_sort_value(avg_rank):
    return avg_rank if avg_rank is not None else float('inf')


def summarize_target_ranks(ranks: Iterable[Optional[int]]) -> dict:
    """Target-only figures for one grid view; None ranks count as not ranking."""
    ranks = list(ranks)
    found = [r for r in ranks if r]
    possible_weight = len(ranks) * _max_weight()
    weight = sum(rank_weight(r) for r in found)
    return {
        'avg_rank': round(sum(found) / len(found), 2) if found else None,
        'share_of_voice': round(weight / possible_weight * 100, 2) if possible_weight > 0 else 0.0,
        'times_in_top3': sum(1 for r in found if r <= 3),
        'times_not_ranking': len(ranks) - len(found),
        'total_points': len(ranks),
    }


def calculate_rank_changes(rows: List[dict], previous: Optional[Dict[str, dict]]) -> List[dict]:
    """
    Attach prev_avg_rank and rank_change (previous minus current, so a
    positive change is an improvement) where the prior scan has the row.
    """
    if not previous:
        return rows
    updated = []
    for row in rows:
        key = row.get('competitor_key') or normalize_competitor_key(row['business_name'])
        prior = previous.get(key)
        if prior is None or prior.get('avg_rank') is None or row['avg_rank'] is None:
            updated.append(row)
            continue
        prev_avg = float(prior['avg_rank'])
        updated.append({
            **row,
            'prev_avg_rank': prev_avg,
            'rank_change': round(prev_avg - row['avg_rank'], 2),
        })
    return updated


def performance_tier(avg_rank: Optional[float]) -> str:
    if avg_rank is not None:
        for tier, limit in TIER_LIMITS:
            if avg_rank <= limit:
                return tier
    return 'weak'


def group_by_performance_tier(rows: Iterable[dict]) -> Dict[str, List[dict]]:
    groups = {'dominant': [], 'strong': [], 'moderate': [], 'weak': []}
    for row in rows:
        groups[performance_tier(row['avg_rank'])].append(row)
    return groups


def get_top_competitors(rows: Iterable[dict], n: int, sort_by: str = 'avg_rank') -> List[dict]:
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Cannot sort competitors by {sort_by!r}")
    if sort_by == 'avg_rank':
        return sorted(rows, key=lambda row: _rank_sort_value(row['avg_rank']))[:n]
    return sorted(rows, key=lambda row: row.get(sort_by) or 0, reverse=True)[:n]


def generate_competitive_summary(aggregation: ScanAggregation) -> dict:
    """Where the target stands, who is ahead, and what to do about it."""
    target = aggregation.target
    avg_rank = target['avg_rank']
    if avg_rank is None or not target['times_in_top20']:
        position = 'not_ranking'
    else:
        position = performance_tier(avg_rank)

    if avg_rank is None:
        ahead = sum(1 for c in aggregation.competitors if c['avg_rank'] is not None)
    else:
        ahead = sum(1 for c in aggregation.competitors if c['avg_rank'] is not None and c['avg_rank'] < avg_rank)

    threats = [
        c['business_name'] for c in aggregation.competitors
        if c['share_of_voice'] > target['share_of_voice']
    ][:3]

    return {
        'target_position': position,
        'competitors_ahead': ahead,
        'main_threats': threats,
        'recommendation': RECOMMENDATIONS[position],
    }
