"""
API endpoints for geo-grid local rank tracking.
"""
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from domains.models import Domain
from jobs.dispatch import dispatch
from rankwell_backend.exceptions import (
    error_response,
    get_owned_or_error,
    invalid_id_response,
    not_found_response,
    parse_uuid,
    validation_error_response,
)
from rankwell_backend.pagination import paginate

from . import lifecycle
from .aggregation import (
    ScanAggregation,
    generate_competitive_summary,
    get_top_competitors,
    group_by_performance_tier,
    summarize_target_ranks,
)
from .executor import GRID_SCAN_REQUESTED
from .models import GridPointResult, GridScan, LocalCampaign
from .serializers import (
    CompetitorStatSerializer,
    GridPointSerializer,
    GridScanSerializer,
    LocalCampaignCreateSerializer,
    LocalCampaignSerializer,
    LocalCampaignUpdateSerializer,
    ScanTriggerSerializer,
)

logger = logging.getLogger(__name__)

TOP_BY_SHARE = 10


def _get_campaign_or_error(request, campaign_id):
    return get_owned_or_error(LocalCampaign, campaign_id, request.user, 'Campaign')


def _get_scan_or_error(campaign, scan_id):
    pk = parse_uuid(scan_id)
    if pk is None:
        return None, invalid_id_response('scan id')
    scan = GridScan.objects.filter(pk=pk, campaign=campaign).first()
    if scan is None:
        return None, not_found_response('Grid scan')
    return scan, None


def _queue_scan(campaign, keywords=None):
    with transaction.atomic():
        scan = lifecycle.create_scan(campaign, keywords)
        dispatch(GRID_SCAN_REQUESTED, {'scan_id': str(scan.pk)})
    logger.info("Queued grid scan %s for campaign %s", scan.pk, campaign.pk)
    return scan


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def campaign_list(request):
    """
    GET  /api/v1/local-seo/campaigns/?status=&page=&limit=
    POST /api/v1/local-seo/campaigns/
    """
    if request.method == 'POST':
        return _create_campaign(request)

    queryset = LocalCampaign.objects.filter(user=request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        status_filter = status_filter.upper()
        if status_filter not in dict(LocalCampaign.STATUS_CHOICES):
            return validation_error_response({'status': [f'"{status_filter}" is not a valid status.']})
        queryset = queryset.filter(status=status_filter)

    campaigns, meta = paginate(request, queryset)
    return Response({'data': LocalCampaignSerializer(campaigns, many=True).data, 'meta': meta})


def _create_campaign(request):
    serializer = LocalCampaignCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = dict(serializer.validated_data)
    trigger_scan = data.pop('trigger_initial_scan')
    domain_id = data.pop('domain_id', None)

    domain_ref = None
    if domain_id:
        domain_ref, error = get_owned_or_error(Domain, domain_id, request.user, 'Domain')
        if error:
            return error

    name = data.pop('name', '') or data['business_name']

    campaign = LocalCampaign.objects.create(
        user=request.user,
        domain_ref=domain_ref,
        name=name,
        next_scan_at=timezone.now(),
        **data,
    )
    scan = _queue_scan(campaign) if trigger_scan else None

    logger.info("Created local campaign %s (%sx%s grid)", campaign.pk, campaign.grid_size, campaign.grid_size)
    return Response({'data': {
        **LocalCampaignSerializer(campaign).data,
        'grid_point_count': campaign.total_points,
        'initial_scan_id': str(scan.pk) if scan else None,
    }}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def campaign_detail(request, campaign_id):
    """
    GET    /api/v1/local-seo/campaigns/{id}/
    PATCH  /api/v1/local-seo/campaigns/{id}/
    DELETE /api/v1/local-seo/campaigns/{id}/
    """
    campaign, error = _get_campaign_or_error(request, campaign_id)
    if error:
        return error

    if request.method == 'DELETE':
        campaign.delete()
        logger.info("Deleted local campaign %s", campaign_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    if request.method == 'PATCH':
        serializer = LocalCampaignUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        for field, value in serializer.validated_data.items():
            setattr(campaign, field, value)
        if 'scan_frequency' in serializer.validated_data and campaign.last_scan_at:
            campaign.next_scan_at = campaign.next_scan_after(campaign.last_scan_at)
        campaign.save()

    return Response({'data': LocalCampaignSerializer(campaign).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def campaign_scan(request, campaign_id):
    """
    POST /api/v1/local-seo/campaigns/{id}/scan/

    Body (optional): {"keywords": [...]} to scan a subset instead of the
    campaign keywords. Rejected while another scan is pending or running.
    """
    campaign, error = _get_campaign_or_error(request, campaign_id)
    if error:
        return error

    if campaign.status != LocalCampaign.STATUS_ACTIVE:
        return error_response('INVALID_STATUS', 'Campaign is not active.', status.HTTP_400_BAD_REQUEST)

    serializer = ScanTriggerSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    keywords = serializer.validated_data.get('keywords') or campaign.keywords
    if not keywords:
        return validation_error_response({'keywords': ['No keywords to scan.']})

    if lifecycle.has_scan_in_flight(campaign):
        return error_response(
            'SCAN_IN_PROGRESS', 'A scan is already pending or running for this campaign.',
            status.HTTP_409_CONFLICT,
        )

    scan = _queue_scan(campaign, keywords)
    return Response({'data': {
        **GridScanSerializer(scan).data,
        'message': 'Grid scan has been queued',
    }}, status=status.HTTP_202_ACCEPTED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def campaign_scans(request, campaign_id):
    """GET /api/v1/local-seo/campaigns/{id}/scans/?page=&limit="""
    campaign, error = _get_campaign_or_error(request, campaign_id)
    if error:
        return error
    scans, meta = paginate(request, campaign.scans.all())
    return Response({'data': GridScanSerializer(scans, many=True).data, 'meta': meta})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_detail(request, campaign_id, scan_id):
    """GET /api/v1/local-seo/campaigns/{id}/scans/{scan_id}/"""
    campaign, error = _get_campaign_or_error(request, campaign_id)
    if error:
        return error
    scan, error = _get_scan_or_error(campaign, scan_id)
    if error:
        return error

    stats = scan.competitor_stats.all()
    return Response({'data': {
        **GridScanSerializer(scan).data,
        'competitors': CompetitorStatSerializer(stats, many=True).data,
    }})


def _group_by_position(points):
    cells = {}
    for point in points:
        cell = cells.setdefault((point.grid_row, point.grid_col), {
            'row': point.grid_row,
            'col': point.grid_col,
            'lat': float(point.lat),
            'lng': float(point.lng),
            'keywords': [],
        })
        cell['keywords'].append({
            'keyword': point.keyword,
            'target_rank': point.target_rank,
            'succeeded': point.succeeded,
        })
    return [cells[key] for key in sorted(cells)]


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_grid(request, campaign_id, scan_id):
    """
    GET /api/v1/local-seo/campaigns/{id}/scans/{scan_id}/grid/?keyword=

    With a keyword, one entry per grid point for that keyword; without,
    points are grouped by grid position with every keyword's rank.
    """
    campaign, error = _get_campaign_or_error(request, campaign_id)
    if error:
        return error
    scan, error = _get_scan_or_error(campaign, scan_id)
    if error:
        return error

    keyword = request.query_params.get('keyword')
    points = GridPointResult.objects.filter(scan=scan)
    if keyword:
        points = points.filter(keyword=keyword)
    points = list(points)

    succeeded = [p for p in points if p.succeeded]
    return Response({'data': {
        'scan_id': str(scan.id),
        'campaign_id': str(campaign.id),
        'keyword': keyword or 'all',
        'grid_size': scan.grid_size,
        'center_lat': float(campaign.center_lat),
        'center_lng': float(campaign.center_lng),
        'points': GridPointSerializer(points, many=True).data if keyword else _group_by_position(points),
        'aggregates': summarize_target_ranks(p.target_rank for p in succeeded),
    }})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def campaign_competitors(request, campaign_id):
    """
    GET /api/v1/local-seo/campaigns/{id}/competitors/

    Aggregates from the latest completed scan, with the competitive summary
    and performance tiers.
    """
    campaign, error = _get_campaign_or_error(request, campaign_id)
    if error:
        return error

    scan = campaign.latest_completed_scan()
    if scan is None:
        return Response({'data': {
            'has_data': False,
            'scan_id': None,
            'target': None,
            'competitors': [],
            'top_by_share_of_voice': [],
            'tiers': {'dominant': [], 'strong': [], 'moderate': [], 'weak': []},
            'summary': None,
        }})

    rows = CompetitorStatSerializer(scan.competitor_stats.all(), many=True).data
    target = next((row for row in rows if row['is_target']), None)
    competitors = [row for row in rows if not row['is_target']]
    aggregation = ScanAggregation(target=target, competitors=competitors)

    return Response({'data': {
        'has_data': True,
        'scan_id': str(scan.id),
        'completed_at': scan.completed_at,
        'target': target,
        'competitors': competitors,
        'top_by_share_of_voice': get_top_competitors(competitors, TOP_BY_SHARE, sort_by='share_of_voice'),
        'tiers': group_by_performance_tier(competitors),
        'summary': generate_competitive_summary(aggregation) if target else None,
    }})
