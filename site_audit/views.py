"""
API endpoints for full-site crawls.
"""
import logging

from django.db import transaction
from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from audits.models import Audit
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

from .executor import SCAN_REQUESTED
from .models import SiteAuditPage, SiteAuditScan
from .reports import (
    DUPLICATE_FIELDS,
    get_duplicate_groups,
    get_issue_distribution,
    get_non_indexable_pages,
    get_redirect_pages,
)
from .serializers import (
    ScanCreateSerializer,
    SiteAuditPageDetailSerializer,
    SiteAuditPageListSerializer,
    SiteAuditScanListSerializer,
    SiteAuditScanSerializer,
)

logger = logging.getLogger(__name__)

PAGE_SORT_FIELDS = ('url', 'onpage_score', 'status_code', 'issue_count', 'word_count')


def _get_scan_or_error(request, scan_id):
    return get_owned_or_error(SiteAuditScan, scan_id, request.user, 'Scan')


def _resolve_links(request, data):
    """
    Resolve the optional audit and domain references on a new scan.

    Returns (links, error Response). Without an explicit domain_id the
    user's tracked domain with the same name is linked, if there is one.
    """
    links = {'audit': None, 'domain_ref': None}
    if data.get('audit_id'):
        audit, error = get_owned_or_error(Audit, data['audit_id'], request.user, 'Audit')
        if error:
            return None, error
        links['audit'] = audit

    if data.get('domain_id'):
        domain, error = get_owned_or_error(Domain, data['domain_id'], request.user, 'Domain')
        if error:
            return None, error
        links['domain_ref'] = domain
    else:
        links['domain_ref'] = Domain.objects.filter(
            user=request.user,
            domain__in=[data['domain'], f"www.{data['domain']}"],
        ).first()
    return links, None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def scan_list(request):
    """
    GET  /api/v1/site-audit/scans/?status=&domain=&page=&limit=
    POST /api/v1/site-audit/scans/
    """
    if request.method == 'POST':
        return _create_scan(request)

    queryset = SiteAuditScan.objects.filter(user=request.user).select_related('summary')
    status_filter = request.query_params.get('status')
    if status_filter:
        status_filter = status_filter.upper()
        if status_filter not in dict(SiteAuditScan.STATUS_CHOICES):
            return validation_error_response({'status': [f'"{status_filter}" is not a valid status.']})
        queryset = queryset.filter(status=status_filter)
    domain_filter = request.query_params.get('domain')
    if domain_filter:
        queryset = queryset.filter(domain__icontains=domain_filter.strip().lower())

    scans, meta = paginate(request, queryset)
    return Response({'data': SiteAuditScanListSerializer(scans, many=True).data, 'meta': meta})


def _create_scan(request):
    serializer = ScanCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data

    links, error = _resolve_links(request, data)
    if error:
        return error

    with transaction.atomic():
        scan = SiteAuditScan.objects.create(
            user=request.user,
            domain=data['domain'],
            max_crawl_pages=data['max_crawl_pages'],
            enable_javascript=data['enable_javascript'],
            enable_browser_rendering=data['enable_browser_rendering'],
            store_raw_html=data['store_raw_html'],
            calculate_keyword_density=data['calculate_keyword_density'],
            start_url=data.get('start_url'),
            **links,
        )
        dispatch(SCAN_REQUESTED, {'scan_id': str(scan.pk)})

    logger.info("Created site audit scan %s for %s", scan.pk, scan.domain)
    return Response({'data': SiteAuditScanSerializer(scan).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def scan_detail(request, scan_id):
    """
    GET    /api/v1/site-audit/scans/{id}/
    DELETE /api/v1/site-audit/scans/{id}/
    """
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error

    if request.method == 'DELETE':
        scan.delete()
        logger.info("Deleted site audit scan %s", scan_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    return Response({'data': SiteAuditScanSerializer(scan).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_status(request, scan_id):
    """GET /api/v1/site-audit/scans/{id}/status/"""
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error
    return Response({'data': {
        'id': str(scan.id),
        'status': scan.status,
        'progress': scan.progress,
        'error_message': scan.error_message,
        'is_complete': scan.is_complete,
        'is_failed': scan.is_failed,
        'has_summary': scan.has_summary,
    }})


def _bool_param(value):
    return value.lower() in ('1', 'true', 'yes')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_pages(request, scan_id):
    """
    GET /api/v1/site-audit/scans/{id}/pages/

    Query params: status_code, issue_type, has_issues, search,
    sort (url | onpage_score | status_code | issue_count | word_count,
    prefix "-" for descending), page, limit.
    """
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error

    params = request.query_params
    queryset = SiteAuditPage.objects.filter(scan=scan)

    status_code = params.get('status_code')
    if status_code:
        try:
            queryset = queryset.filter(status_code=int(status_code))
        except ValueError:
            return validation_error_response({'status_code': ['Must be an integer.']})

    issue_type = params.get('issue_type')
    if issue_type:
        # JSON text match on the quoted name so "title" does not match "no_title"
        queryset = queryset.filter(issue_types__icontains=f'"{issue_type}"')

    has_issues = params.get('has_issues')
    if has_issues:
        if _bool_param(has_issues):
            queryset = queryset.filter(issue_count__gt=0)
        else:
            queryset = queryset.filter(issue_count=0)

    search = params.get('search')
    if search:
        queryset = queryset.filter(Q(url__icontains=search) | Q(title__icontains=search))

    sort = params.get('sort', 'url')
    if sort.lstrip('-') not in PAGE_SORT_FIELDS:
        return validation_error_response({'sort': [f"Must be one of: {', '.join(PAGE_SORT_FIELDS)}."]})
    queryset = queryset.order_by(sort, 'url')

    pages, meta = paginate(request, queryset, default_limit=50)
    return Response({'data': SiteAuditPageListSerializer(pages, many=True).data, 'meta': meta})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def page_detail(request, scan_id, page_id):
    """GET /api/v1/site-audit/scans/{id}/pages/{page_id}/"""
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error
    pk = parse_uuid(page_id)
    if pk is None:
        return invalid_id_response('page id')
    page = SiteAuditPage.objects.filter(scan=scan, pk=pk).first()
    if page is None:
        return not_found_response('Page')
    return Response({'data': SiteAuditPageDetailSerializer(page).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_duplicates(request, scan_id):
    """GET /api/v1/site-audit/scans/{id}/duplicates/?type=title|description|all"""
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error

    kind = request.query_params.get('type', 'all')
    if kind != 'all' and kind not in DUPLICATE_FIELDS:
        return validation_error_response({'type': ['Must be one of: title, description, all.']})

    fields = list(DUPLICATE_FIELDS) if kind == 'all' else [kind]
    return Response({'data': {field: get_duplicate_groups(scan, field) for field in fields}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_issues(request, scan_id):
    """GET /api/v1/site-audit/scans/{id}/issues/"""
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error
    return Response({'data': get_issue_distribution(scan)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_non_indexable(request, scan_id):
    """GET /api/v1/site-audit/scans/{id}/non-indexable/"""
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error
    pages = get_non_indexable_pages(scan)
    return Response({'data': pages, 'meta': {'total': len(pages)}})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scan_redirects(request, scan_id):
    """GET /api/v1/site-audit/scans/{id}/redirects/"""
    scan, error = _get_scan_or_error(request, scan_id)
    if error:
        return error
    if not scan.is_complete:
        return error_response('INVALID_STATUS', f'Scan is {scan.status}; redirects are available once it completes.',
                              status.HTTP_400_BAD_REQUEST)
    pages = get_redirect_pages(scan)
    return Response({'data': pages, 'meta': {'total': len(pages)}})
