"""
API endpoints for keyword / competitor audits.
"""
import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from domains.models import Domain
from integrations.dataforseo import get_dataforseo_client
from integrations.errors import ProviderError
from jobs.dispatch import dispatch
from rankwell_backend.exceptions import (
    RateLimited,
    get_owned_or_error,
    validation_error_response,
)
from rankwell_backend.pagination import paginate
from seo.issue_classification import categorize_issues, get_issue_counts
from seo.thematic_reports import calculate_all_thematic_reports, calculate_overall_health_score

from . import lifecycle
from .executor import AUDIT_REQUESTED, STEP_DESCRIPTIONS
from .keywords import generate_keywords_for_location
from .models import Audit
from .serializers import AuditCreateSerializer, AuditListSerializer, AuditSerializer
from .steps import COMPETITORS, ONPAGE, read_step

logger = logging.getLogger(__name__)

BACKLINK_GAP_LIMIT = 50


def _get_audit_or_error(request, audit_id):
    return get_owned_or_error(Audit, audit_id, request.user, 'Audit')


def _job_payload(audit, skip_cache=False):
    return {
        'audit_id': str(audit.pk),
        'skip_cache': skip_cache,
        'options': audit.options or {},
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def audit_list(request):
    """
    GET  /api/v1/audits/?status=&domain=&page=&limit=
    POST /api/v1/audits/
    """
    if request.method == 'POST':
        return _create_audit(request)

    queryset = Audit.objects.filter(user=request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        status_filter = status_filter.upper()
        if status_filter not in dict(Audit.STATUS_CHOICES):
            return validation_error_response({'status': [f'"{status_filter}" is not a valid status.']})
        queryset = queryset.filter(status=status_filter)
    domain_filter = request.query_params.get('domain')
    if domain_filter:
        queryset = queryset.filter(domain__icontains=domain_filter.strip().lower())

    audits, meta = paginate(request, queryset)
    return Response({'data': AuditListSerializer(audits, many=True).data, 'meta': meta})


def _create_audit(request):
    serializer = AuditCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)
    data = serializer.validated_data
    options = dict(data.get('options') or {})
    domain = data['domain']

    if lifecycle.was_recently_audited(domain) and not options.get('skip_cache'):
        raise RateLimited(
            'This domain was audited recently. Please wait before requesting another audit.',
            retry_after=settings.AUDIT_COOLDOWN_HOURS * 3600,
        )

    domain_ref = None
    if data.get('domain_id'):
        domain_ref, error = get_owned_or_error(Domain, data['domain_id'], request.user, 'Domain')
        if error:
            return error
    else:
        domain_ref = Domain.objects.filter(user=request.user, domain=domain).first()

    target_keywords = data.get('target_keywords') or []
    if not target_keywords and data.get('city'):
        target_keywords = generate_keywords_for_location(data['city'], data.get('state'))
        logger.info("Generated %s keywords for %s, %s", len(target_keywords), data['city'], data.get('state'))

    with transaction.atomic():
        audit = Audit.objects.create(
            user=request.user,
            domain=domain,
            domain_ref=domain_ref,
            business_name=data.get('business_name') or None,
            location=data.get('location') or None,
            city=data.get('city') or None,
            state=data.get('state') or None,
            gmb_place_id=data.get('gmb_place_id') or None,
            target_keywords=target_keywords,
            competitor_domains=data.get('competitor_domains') or [],
            options=options,
        )
        dispatch(AUDIT_REQUESTED, _job_payload(audit, skip_cache=options.get('skip_cache', False)))

    logger.info("Created audit %s for %s", audit.pk, domain)
    return Response({'data': {
        **AuditSerializer(audit).data,
        'message': 'Audit has been queued and will start shortly',
    }}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def audit_detail(request, audit_id):
    """
    GET    /api/v1/audits/{id}/
    DELETE /api/v1/audits/{id}/
    """
    audit, error = _get_audit_or_error(request, audit_id)
    if error:
        return error

    if request.method == 'DELETE':
        audit.delete()
        logger.info("Deleted audit %s", audit_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    return Response({'data': AuditSerializer(audit).data})


def estimated_seconds_remaining(audit, now=None):
    """Linear extrapolation from elapsed time and progress; None when not running."""
    if not audit.started_at or not 0 < audit.progress < 100:
        return None
    elapsed = ((now or timezone.now()) - audit.started_at).total_seconds()
    total = elapsed / audit.progress * 100
    return round(total - elapsed)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_status(request, audit_id):
    """GET /api/v1/audits/{id}/status/ - lightweight progress polling."""
    audit, error = _get_audit_or_error(request, audit_id)
    if error:
        return error
    return Response({'data': {
        'id': str(audit.id),
        'status': audit.status,
        'progress': audit.progress,
        'current_step': audit.current_step,
        'current_step_description': (
            STEP_DESCRIPTIONS.get(audit.current_step, audit.current_step) if audit.current_step else None
        ),
        'error_message': audit.error_message,
        'started_at': audit.started_at,
        'completed_at': audit.completed_at,
        'estimated_seconds_remaining': estimated_seconds_remaining(audit),
        'is_complete': audit.is_complete,
        'is_failed': audit.is_failed,
        'is_in_progress': audit.is_in_progress,
        'health_score': audit.health_score,
    }})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def audit_retry(request, audit_id):
    """POST /api/v1/audits/{id}/retry/ - FAILED audits only."""
    audit, error = _get_audit_or_error(request, audit_id)
    if error:
        return error

    with transaction.atomic():
        lifecycle.retry_audit(audit)
        dispatch(AUDIT_REQUESTED, _job_payload(audit, skip_cache=True))

    logger.info("Retrying audit %s", audit.pk)
    return Response({'data': {
        'id': str(audit.id),
        'status': audit.status,
        'message': 'Audit has been queued for retry',
    }})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_report(request, audit_id):
    """
    GET /api/v1/audits/{id}/report/

    Issue classification and thematic scores for the audited homepage. An
    audit without onpage data reports empty buckets and zero scores.
    """
    audit, error = _get_audit_or_error(request, audit_id)
    if error:
        return error

    onpage = read_step(audit, ONPAGE)
    checks = {}
    signals = {}
    if onpage is not None:
        checks = onpage.checks
        signals = {
            'checks': onpage.checks,
            'timing': onpage.page_timing,
            'meta': onpage.meta,
            'https_verified': onpage.https_verified,
        }
    reports = calculate_all_thematic_reports(signals)

    return Response({'data': {
        'id': str(audit.id),
        'domain': audit.domain,
        'status': audit.status,
        'has_onpage_data': onpage is not None,
        'issues': categorize_issues(checks).to_dict(),
        'issue_counts': get_issue_counts(checks),
        'thematic_reports': [r.to_dict() for r in reports],
        'health_score': calculate_overall_health_score(reports),
        'warnings': audit.warnings,
    }})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_competitors(request, audit_id):
    """
    GET /api/v1/audits/{id}/competitors/

    Target vs competitor metrics from the competitors stage, plus a live
    backlink gap lookup that falls back to an empty list.
    """
    audit, error = _get_audit_or_error(request, audit_id)
    if error:
        return error

    result = read_step(audit, COMPETITORS)
    if result is None:
        return Response({'data': {
            'has_data': False,
            'target': None,
            'competitors': [],
            'discovered': [],
            'backlink_gap': [],
        }})

    backlink_gap = []
    competitor_domains = result.competitor_domains
    if competitor_domains:
        try:
            backlink_gap = get_dataforseo_client().backlink_gap(
                audit.domain, competitor_domains, limit=BACKLINK_GAP_LIMIT
            )
        except ProviderError as e:
            logger.warning("Backlink gap lookup for audit %s failed: %s", audit.pk, e)

    return Response({'data': {
        'has_data': True,
        'target': result.target,
        'competitors': result.competitors,
        'discovered': result.discovered,
        'backlink_gap': backlink_gap,
    }})
