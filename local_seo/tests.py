"""
Tests for local_seo: grid geometry, competitor aggregation, the scan job,
scheduling, and the API.
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.utils import timezone

from integrations.errors import QUOTA, ProviderError
from jobs.models import JobMessage

from .aggregation import (
    aggregate_competitors,
    calculate_rank_changes,
    generate_competitive_summary,
    get_top_competitors,
    group_by_performance_tier,
    is_target_match,
    normalize_competitor_key,
    rank_weight,
    summarize_target_ranks,
)
from .executor import GRID_SCAN_REQUESTED, find_target_rank, run_grid_scan
from .grid import calculate_distance, format_coordinate, generate_grid_points, grid_center
from .models import CompetitorStat, GridPointResult, GridScan, LocalCampaign

AUSTIN = (30.2672, -97.7431)
TARGET = 'Bright Smile Dental'


def _listing(rank, name, **extra):
    return {'rank': rank, 'business_name': name, **extra}


def _sample(listings, succeeded=True, keyword='dentist austin', row=0, col=0):
    return {
        'keyword': keyword,
        'row': row,
        'col': col,
        'succeeded': succeeded,
        'target_rank': None,
        'top_competitors': listings,
    }


SAMPLES = [
    _sample([_listing(1, TARGET), _listing(2, 'Rival Dental', cid='111'), _listing(3, 'Third Dental')]),
    _sample([_listing(1, 'Rival Dental', rating=4.8, review_count=120), _listing(4, 'Bright Smile Dental, LLC')],
            col=1),
    _sample([], row=1),
    _sample([], succeeded=False, row=1, col=1),
]


@pytest.fixture
def user(create_user):
    return create_user()


@pytest.fixture
def campaign(user):
    return LocalCampaign.objects.create(
        user=user,
        name='Austin office',
        business_name=TARGET,
        center_lat=Decimal('30.2672000'),
        center_lng=Decimal('-97.7431000'),
        grid_size=2,
        grid_radius_miles=Decimal('1.00'),
        keywords=['dentist austin'],
    )


class TestGrid:

    def test_single_point_grid_is_center(self):
        points = generate_grid_points(*AUSTIN, grid_size=1, radius_miles=5)
        assert len(points) == 1
        assert (points[0].lat, points[0].lng) == AUSTIN

    def test_seven_by_seven(self):
        points = generate_grid_points(*AUSTIN, grid_size=7, radius_miles=5)
        assert len(points) == 49
        assert (points[0].row, points[0].col) == (0, 0)
        assert (points[-1].row, points[-1].col) == (6, 6)

        by_cell = {(p.row, p.col): p for p in points}
        center = by_cell[grid_center(7)]
        assert calculate_distance(center.lat, center.lng, *AUSTIN) < 0.05

        first, second = by_cell[(0, 0)], by_cell[(0, 1)]
        assert calculate_distance(first.lat, first.lng, second.lat, second.lng) == pytest.approx(10 / 6, abs=0.02)
        assert first.lat > center.lat
        assert first.lng < center.lng

    def test_coordinates_rounded(self):
        for point in generate_grid_points(*AUSTIN, grid_size=3, radius_miles=2):
            assert round(point.lat, 7) == point.lat
            assert round(point.lng, 7) == point.lng

    @pytest.mark.parametrize('grid_size, radius', [(0, 5), (16, 5), (7, 0), (7, 51)])
    def test_invalid_grid(self, grid_size, radius):
        with pytest.raises(ValueError):
            generate_grid_points(*AUSTIN, grid_size=grid_size, radius_miles=radius)

    def test_format_coordinate(self):
        assert format_coordinate(30.2672, -97.7431) == '30.2672000,-97.7431000,14'
        assert format_coordinate(30.2672, -97.7431, zoom=17).endswith(',17')

    def test_distance(self):
        assert calculate_distance(*AUSTIN, *AUSTIN) == 0
        # Austin to Dallas is roughly 182 miles
        assert calculate_distance(*AUSTIN, 32.7767, -96.7970) == pytest.approx(182, abs=3)


class TestMatching:

    def test_normalize(self):
        assert normalize_competitor_key("  Dr. Smith’s   Dental, P.C. ") == "dr smith's dental pc"
        assert normalize_competitor_key('Smile – Center') == 'smile - center'

    @pytest.mark.parametrize('name, expected', [
        ('Bright Smile Dental', True),
        ('bright smile dental.', True),
        ('Bright Smile Dental - Dr. Smith', True),
        ('Rival Dental', False),
        ('', False),
    ])
    def test_target_match(self, name, expected):
        assert is_target_match(name, TARGET) is expected

    def test_rank_weights_decrease(self):
        weights = [rank_weight(r) for r in range(1, 21)]
        assert weights[0] == 1.0
        assert weights == sorted(weights, reverse=True)
        assert rank_weight(21) == 0
        assert rank_weight(None) == 0

    def test_find_target_rank_prefers_cid(self):
        listings = [_listing(1, 'Other Dental', cid='999'), _listing(2, TARGET)]
        assert find_target_rank(listings, TARGET) == 2
        assert find_target_rank(listings, 'Renamed Practice', gmb_cid='999') == 1
        assert find_target_rank([], TARGET) is None


class TestAggregation:

    def test_aggregates_rows(self):
        result = aggregate_competitors(SAMPLES, TARGET)

        target = result.target
        assert target['is_target'] is True
        assert target['avg_rank'] == 2.5
        assert target['appearances'] == 2
        assert target['times_in_top3'] == 1
        assert target['times_in_top10'] == 2
        # (1.0 + 0.55) / 3 successful samples
        assert target['share_of_voice'] == 51.67

        names = [row['business_name'] for row in result.competitors]
        assert names == ['Rival Dental', 'Third Dental']
        rival = result.competitors[0]
        assert rival['avg_rank'] == 1.5
        assert rival['share_of_voice'] == 61.67
        assert rival['gmb_cid'] == '111'
        assert rival['rating'] == 4.8
        assert result.competitors[1]['share_of_voice'] == 23.33

        assert result.overall == {
            'avg_rank': 2.5,
            'share_of_voice': 51.67,
            'top_competitor': 'Rival Dental',
            'total_competitors_found': 2,
            'successful_samples': 3,
            'failed_samples': 1,
        }

    def test_absent_target_still_has_row(self):
        result = aggregate_competitors([_sample([_listing(1, 'Rival Dental')])], TARGET)
        assert result.target['business_name'] == TARGET
        assert result.target['avg_rank'] is None
        assert result.target['share_of_voice'] == 0
        assert len(result.competitors) == 1

    def test_target_matched_by_cid_under_another_title(self):
        samples = [_sample([_listing(1, 'Austin Family Dentistry', cid='999'), _listing(2, 'Rival Dental')])]
        result = aggregate_competitors(samples, TARGET, gmb_cid='999')
        assert result.target['avg_rank'] == 1
        assert result.target['gmb_cid'] == '999'
        assert [c['business_name'] for c in result.competitors] == ['Rival Dental']
        assert result.overall['top_competitor'] == 'Rival Dental'

    def test_business_counted_once_per_sample(self):
        result = aggregate_competitors([
            _sample([_listing(5, 'Rival Dental'), _listing(2, 'Rival Dental')]),
        ], TARGET)
        rival = result.competitors[0]
        assert rival['appearances'] == 1
        assert rival['avg_rank'] == 2

    def test_no_successful_samples(self):
        result = aggregate_competitors([_sample([], succeeded=False)], TARGET)
        assert result.competitors == []
        assert result.target['share_of_voice'] == 0
        assert result.overall['top_competitor'] is None

    def test_rank_changes(self):
        previous = {'rival dental': {'avg_rank': 3.0}, 'bright smile dental': {'avg_rank': 2.0}}
        result = aggregate_competitors(SAMPLES, TARGET, previous=previous)
        assert result.competitors[0]['prev_avg_rank'] == 3.0
        assert result.competitors[0]['rank_change'] == 1.5
        assert result.target['rank_change'] == -0.5
        assert result.competitors[1]['rank_change'] is None

    def test_rank_changes_without_previous(self):
        rows = [{'business_name': 'A', 'avg_rank': 2.0}]
        assert calculate_rank_changes(rows, None) is rows

    def test_tiers(self):
        rows = [{'business_name': str(r), 'avg_rank': r} for r in (2, 5, 15, 25, None)]
        tiers = group_by_performance_tier(rows)
        assert [len(tiers[t]) for t in ('dominant', 'strong', 'moderate', 'weak')] == [1, 1, 1, 2]

    def test_top_competitors(self):
        rows = aggregate_competitors(SAMPLES, TARGET).competitors
        assert [r['business_name'] for r in get_top_competitors(rows, 1, 'avg_rank')] == ['Rival Dental']
        assert [r['business_name'] for r in get_top_competitors(rows, 5, 'share_of_voice')][0] == 'Rival Dental'
        with pytest.raises(ValueError):
            get_top_competitors(rows, 1, 'name')

    def test_competitive_summary(self):
        summary = generate_competitive_summary(aggregate_competitors(SAMPLES, TARGET))
        assert summary['target_position'] == 'dominant'
        assert summary['competitors_ahead'] == 1
        assert summary['main_threats'] == ['Rival Dental']
        assert summary['recommendation']

    def test_summary_when_not_ranking(self):
        summary = generate_competitive_summary(
            aggregate_competitors([_sample([_listing(1, 'Rival Dental')])], TARGET)
        )
        assert summary['target_position'] == 'not_ranking'
        assert summary['competitors_ahead'] == 1

    def test_target_rank_summary(self):
        assert summarize_target_ranks([1, 4, None, None]) == {
            'avg_rank': 2.5,
            'share_of_voice': 38.75,
            'times_in_top3': 1,
            'times_not_ranking': 2,
            'total_points': 4,
        }
        assert summarize_target_ranks([])['avg_rank'] is None


@pytest.mark.django_db
class TestGridScanJob:

    def _scan(self, campaign, **fields):
        return GridScan.objects.create(campaign=campaign, keywords=campaign.keywords,
                                       grid_size=campaign.grid_size, **fields)

    @patch('local_seo.executor.get_dataforseo_client')
    def test_scan_completes_with_failed_samples(self, mock_client, campaign):
        mock_client.return_value.maps_search.side_effect = [
            [_listing(1, TARGET), _listing(2, 'Rival Dental')],
            ProviderError('Rate limit exceeded'),
            [_listing(1, 'Rival Dental'), _listing(3, TARGET)],
            [],
        ]
        scan = self._scan(campaign)

        run_grid_scan({'scan_id': str(scan.pk)})

        scan.refresh_from_db()
        assert scan.status == GridScan.STATUS_COMPLETED
        assert scan.progress == 100
        assert scan.failed_points == 1
        assert scan.api_calls_used == 3
        assert scan.points_completed == 4
        assert scan.avg_rank == Decimal('2.00')
        assert scan.top_competitor == 'Rival Dental'

        points = GridPointResult.objects.filter(scan=scan)
        assert points.count() == 4
        assert points.filter(succeeded=False).get().error_message == 'Rate limit exceeded'
        assert sorted(p.target_rank for p in points if p.target_rank) == [1, 3]

        stats = CompetitorStat.objects.filter(scan=scan)
        assert stats.get(is_target=True).business_name == TARGET
        assert stats.get(competitor_key='rival dental').appearances == 2

        campaign.refresh_from_db()
        assert campaign.last_scan_at is not None
        assert campaign.next_scan_at == campaign.last_scan_at + timedelta(days=7)

        coordinate = mock_client.return_value.maps_search.call_args_list[0].args[1]
        assert coordinate.endswith(',14')

    @patch('local_seo.executor.get_dataforseo_client')
    def test_point_rank_and_aggregate_agree_on_cid_match(self, mock_client, campaign):
        campaign.gmb_cid = '999'
        campaign.grid_size = 1
        campaign.save()
        mock_client.return_value.maps_search.return_value = [
            _listing(1, 'Austin Family Dentistry', cid='999'),
            _listing(2, 'Rival Dental'),
        ]
        scan = self._scan(campaign)

        run_grid_scan({'scan_id': str(scan.pk)})

        scan.refresh_from_db()
        assert scan.status == GridScan.STATUS_COMPLETED
        assert GridPointResult.objects.get(scan=scan).target_rank == 1
        assert scan.avg_rank == Decimal('1.00')
        assert scan.top_competitor == 'Rival Dental'

        stats = CompetitorStat.objects.filter(scan=scan)
        assert stats.get(is_target=True).avg_rank == Decimal('1.00')
        assert not stats.filter(competitor_key='austin family dentistry').exists()

    @patch('local_seo.executor.get_dataforseo_client')
    def test_scan_fails_when_every_sample_fails(self, mock_client, campaign):
        mock_client.return_value.maps_search.side_effect = ProviderError('Insufficient balance', QUOTA)
        scan = self._scan(campaign)

        run_grid_scan({'scan_id': str(scan.pk)})

        scan.refresh_from_db()
        assert scan.status == GridScan.STATUS_FAILED
        assert scan.error_message == 'All 4 grid samples failed'
        assert scan.failed_points == 4
        assert not CompetitorStat.objects.filter(scan=scan).exists()
        campaign.refresh_from_db()
        assert campaign.last_scan_at is None

    def test_scan_without_keywords_fails(self, campaign):
        campaign.keywords = []
        campaign.save()
        scan = self._scan(campaign)
        with patch('local_seo.executor.get_dataforseo_client') as mock_client:
            run_grid_scan({'scan_id': str(scan.pk)})
        mock_client.assert_not_called()
        scan.refresh_from_db()
        assert scan.status == GridScan.STATUS_FAILED
        assert scan.error_message == 'No keywords to scan'

    @patch('local_seo.executor.get_dataforseo_client')
    def test_redelivery_reuses_stored_samples(self, mock_client, campaign):
        mock_client.return_value.maps_search.return_value = [_listing(2, TARGET)]
        scan = self._scan(campaign, status=GridScan.STATUS_SCANNING)
        GridPointResult.objects.create(
            scan=scan, keyword='dentist austin', grid_row=0, grid_col=0,
            lat=Decimal('30.2816'), lng=Decimal('-97.7599'), target_rank=1,
            top_competitors=[_listing(1, TARGET)], total_results=1,
        )

        run_grid_scan({'scan_id': str(scan.pk)})

        assert mock_client.return_value.maps_search.call_count == 3
        scan.refresh_from_db()
        assert scan.status == GridScan.STATUS_COMPLETED
        assert GridPointResult.objects.filter(scan=scan).count() == 4

    def test_finished_scan_ignores_redelivery(self, campaign):
        scan = self._scan(campaign, status=GridScan.STATUS_COMPLETED)
        with patch('local_seo.executor.get_dataforseo_client') as mock_client:
            run_grid_scan({'scan_id': str(scan.pk)})
        mock_client.assert_not_called()

    @patch('local_seo.executor.get_dataforseo_client')
    def test_rank_change_against_previous_scan(self, mock_client, campaign):
        previous = self._scan(campaign, status=GridScan.STATUS_COMPLETED,
                              completed_at=timezone.now() - timedelta(days=7))
        CompetitorStat.objects.create(scan=previous, competitor_key='rival dental',
                                      business_name='Rival Dental', avg_rank=Decimal('4.00'))
        mock_client.return_value.maps_search.return_value = [_listing(1, 'Rival Dental')]
        scan = self._scan(campaign)

        run_grid_scan({'scan_id': str(scan.pk)})

        rival = CompetitorStat.objects.get(scan=scan, competitor_key='rival dental')
        assert rival.prev_avg_rank == Decimal('4.00')
        assert rival.rank_change == Decimal('3.00')


@pytest.mark.django_db
class TestScheduling:

    def test_queues_due_campaigns(self, campaign, user):
        LocalCampaign.objects.filter(pk=campaign.pk).update(next_scan_at=timezone.now() - timedelta(hours=1))
        LocalCampaign.objects.create(
            user=user, name='Later', business_name='Later Dental', center_lat=Decimal('30'),
            center_lng=Decimal('-97'), keywords=['dentist'], next_scan_at=timezone.now() + timedelta(days=1),
        )
        LocalCampaign.objects.create(
            user=user, name='Paused', business_name='Paused Dental', center_lat=Decimal('30'),
            center_lng=Decimal('-97'), keywords=['dentist'], status=LocalCampaign.STATUS_PAUSED,
            next_scan_at=timezone.now() - timedelta(days=1),
        )

        out = StringIO()
        call_command('schedule_grid_scans', stdout=out)

        assert 'Queued 1 grid scan(s)' in out.getvalue()
        scan = GridScan.objects.get()
        assert scan.campaign == campaign
        assert JobMessage.objects.get(event=GRID_SCAN_REQUESTED).payload == {'scan_id': str(scan.pk)}

    def test_skips_campaign_with_scan_in_flight(self, campaign):
        LocalCampaign.objects.filter(pk=campaign.pk).update(next_scan_at=timezone.now() - timedelta(hours=1))
        GridScan.objects.create(campaign=campaign, status=GridScan.STATUS_SCANNING)

        call_command('schedule_grid_scans', stdout=StringIO())

        assert GridScan.objects.count() == 1
        assert not JobMessage.objects.exists()


@pytest.mark.django_db
class TestLocalSeoAPI:
    BASE = '/api/v1/local-seo/campaigns/'

    @pytest.fixture
    def user(self, authenticated_client):
        return authenticated_client[1]

    def _payload(self, **overrides):
        payload = {
            'business_name': TARGET,
            'center_lat': 30.2672,
            'center_lng': -97.7431,
            'keywords': ['dentist austin', 'emergency dentist austin'],
        }
        payload.update(overrides)
        return payload

    def test_create_campaign_queues_scan(self, authenticated_client):
        client, _ = authenticated_client
        response = client.post(self.BASE, self._payload())
        assert response.status_code == 201
        data = response.data['data']
        assert data['grid_size'] == 7
        assert data['grid_point_count'] == 49
        assert data['name'] == TARGET
        assert data['status'] == 'ACTIVE'
        scan = GridScan.objects.get(pk=data['initial_scan_id'])
        assert scan.keywords == ['dentist austin', 'emergency dentist austin']
        assert JobMessage.objects.filter(event=GRID_SCAN_REQUESTED, payload__scan_id=str(scan.pk)).exists()

    def test_create_without_initial_scan(self, authenticated_client):
        client, _ = authenticated_client
        response = client.post(self.BASE, self._payload(trigger_initial_scan=False, grid_size=1))
        assert response.status_code == 201
        assert response.data['data']['initial_scan_id'] is None
        assert not GridScan.objects.exists()

    @pytest.mark.parametrize('overrides', [
        {'grid_size': 16},
        {'grid_radius_miles': 0},
        {'grid_radius_miles': 51},
        {'center_lat': 91},
        {'keywords': []},
        {'keywords': [f'k{i}' for i in range(11)]},
        {'scan_frequency': 'hourly'},
    ])
    def test_create_validation(self, authenticated_client, overrides):
        client, _ = authenticated_client
        response = client.post(self.BASE, self._payload(**overrides))
        assert response.status_code == 400
        assert response.data['error']['code'] == 'VALIDATION_ERROR'
        assert not LocalCampaign.objects.exists()

    def test_list_and_ownership(self, authenticated_client, other_user_client, campaign):
        client, _ = authenticated_client
        other_client, _ = other_user_client
        response = client.get(self.BASE)
        assert response.data['meta']['total'] == 1
        assert other_client.get(self.BASE).data['meta']['total'] == 0
        assert other_client.get(f'{self.BASE}{campaign.pk}/').status_code == 403
        assert client.get(f'{self.BASE}nope/').data['error']['code'] == 'INVALID_ID'

    def test_update_campaign(self, authenticated_client, campaign):
        client, _ = authenticated_client
        response = client.patch(f'{self.BASE}{campaign.pk}/', {'status': 'PAUSED', 'keywords': ['dentist']})
        assert response.status_code == 200
        campaign.refresh_from_db()
        assert campaign.status == LocalCampaign.STATUS_PAUSED
        assert campaign.keywords == ['dentist']

    def test_delete_campaign(self, authenticated_client, campaign):
        client, _ = authenticated_client
        assert client.delete(f'{self.BASE}{campaign.pk}/').status_code == 204
        assert not LocalCampaign.objects.exists()

    def test_trigger_scan(self, authenticated_client, campaign):
        client, _ = authenticated_client
        response = client.post(f'{self.BASE}{campaign.pk}/scan/', {'keywords': ['emergency dentist']})
        assert response.status_code == 202
        assert response.data['data']['keywords'] == ['emergency dentist']
        assert response.data['data']['status'] == 'PENDING'

    def test_trigger_scan_rejected_while_in_flight(self, authenticated_client, campaign):
        client, _ = authenticated_client
        GridScan.objects.create(campaign=campaign, status=GridScan.STATUS_SCANNING)
        response = client.post(f'{self.BASE}{campaign.pk}/scan/', {})
        assert response.status_code == 409
        assert response.data['error']['code'] == 'SCAN_IN_PROGRESS'
        assert GridScan.objects.count() == 1

    def test_trigger_scan_on_paused_campaign(self, authenticated_client, campaign):
        client, _ = authenticated_client
        LocalCampaign.objects.filter(pk=campaign.pk).update(status=LocalCampaign.STATUS_PAUSED)
        response = client.post(f'{self.BASE}{campaign.pk}/scan/', {})
        assert response.status_code == 400
        assert response.data['error']['code'] == 'INVALID_STATUS'

    def _completed_scan(self, campaign):
        scan = GridScan.objects.create(campaign=campaign, status=GridScan.STATUS_COMPLETED,
                                       keywords=campaign.keywords, grid_size=2, completed_at=timezone.now())
        for col, rank in ((0, 1), (1, None)):
            GridPointResult.objects.create(
                scan=scan, keyword='dentist austin', grid_row=0, grid_col=col,
                lat=Decimal('30.28'), lng=Decimal('-97.75'), target_rank=rank,
                top_competitors=[_listing(1, 'Rival Dental')],
            )
        GridPointResult.objects.create(
            scan=scan, keyword='dentist', grid_row=0, grid_col=0,
            lat=Decimal('30.28'), lng=Decimal('-97.75'), target_rank=4,
        )
        CompetitorStat.objects.create(scan=scan, competitor_key='bright smile dental', business_name=TARGET,
                                      is_target=True, avg_rank=Decimal('2.50'), appearances=2,
                                      times_in_top3=1, times_in_top10=2, times_in_top20=2,
                                      share_of_voice=Decimal('40.00'))
        CompetitorStat.objects.create(scan=scan, competitor_key='rival dental', business_name='Rival Dental',
                                      avg_rank=Decimal('1.50'), appearances=2, times_in_top3=2,
                                      times_in_top10=2, times_in_top20=2, share_of_voice=Decimal('60.00'))
        return scan

    def test_scan_list_and_detail(self, authenticated_client, campaign):
        client, _ = authenticated_client
        scan = self._completed_scan(campaign)
        response = client.get(f'{self.BASE}{campaign.pk}/scans/')
        assert response.data['meta']['total'] == 1

        detail = client.get(f'{self.BASE}{campaign.pk}/scans/{scan.pk}/').data['data']
        assert detail['is_complete'] is True
        assert [c['business_name'] for c in detail['competitors']] == [TARGET, 'Rival Dental']

        missing = client.get(f'{self.BASE}{campaign.pk}/scans/00000000-0000-0000-0000-000000000000/')
        assert missing.status_code == 404

    def test_grid_for_keyword(self, authenticated_client, campaign):
        client, _ = authenticated_client
        scan = self._completed_scan(campaign)
        data = client.get(f'{self.BASE}{campaign.pk}/scans/{scan.pk}/grid/', {'keyword': 'dentist austin'}).data['data']
        assert data['keyword'] == 'dentist austin'
        assert len(data['points']) == 2
        assert data['points'][0]['row'] == 0
        assert data['aggregates']['avg_rank'] == 1
        assert data['aggregates']['times_not_ranking'] == 1

    def test_grid_grouped_by_position(self, authenticated_client, campaign):
        client, _ = authenticated_client
        scan = self._completed_scan(campaign)
        data = client.get(f'{self.BASE}{campaign.pk}/scans/{scan.pk}/grid/').data['data']
        assert data['keyword'] == 'all'
        assert len(data['points']) == 2
        assert len(data['points'][0]['keywords']) == 2
        assert data['aggregates']['total_points'] == 3

    def test_competitors_without_completed_scan(self, authenticated_client, campaign):
        client, _ = authenticated_client
        GridScan.objects.create(campaign=campaign, status=GridScan.STATUS_SCANNING)
        data = client.get(f'{self.BASE}{campaign.pk}/competitors/').data['data']
        assert data['has_data'] is False
        assert data['competitors'] == []
        assert data['summary'] is None

    def test_competitors(self, authenticated_client, campaign):
        client, _ = authenticated_client
        scan = self._completed_scan(campaign)
        data = client.get(f'{self.BASE}{campaign.pk}/competitors/').data['data']
        assert data['has_data'] is True
        assert data['scan_id'] == str(scan.pk)
        assert data['target']['business_name'] == TARGET
        assert [c['business_name'] for c in data['competitors']] == ['Rival Dental']
        assert data['summary']['target_position'] == 'dominant'
        assert data['summary']['main_threats'] == ['Rival Dental']
        assert len(data['tiers']['dominant']) == 1
