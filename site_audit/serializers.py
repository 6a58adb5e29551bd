"""
Serializers for site audit scans, summaries, and pages.
"""
from rest_framework import serializers

from domains.fields import DomainNameField
from seo.issue_classification import categorize_issues, get_all_issues

from .models import SiteAuditPage, SiteAuditScan, SiteAuditSummary


class ScanCreateSerializer(serializers.Serializer):
    domain = DomainNameField(strip_www=True)
    max_crawl_pages = serializers.IntegerField(min_value=10, max_value=500, default=100)
    enable_javascript = serializers.BooleanField(default=True)
    enable_browser_rendering = serializers.BooleanField(default=True)
    store_raw_html = serializers.BooleanField(default=False)
    calculate_keyword_density = serializers.BooleanField(default=False)
    start_url = serializers.URLField(max_length=2000, required=False, allow_null=True)
    audit_id = serializers.UUIDField(required=False, allow_null=True)
    domain_id = serializers.UUIDField(required=False, allow_null=True)


class SiteAuditSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = SiteAuditSummary
        exclude = ('id', 'scan')


class SiteAuditScanListSerializer(serializers.ModelSerializer):
    """Compact scan row with the headline summary numbers."""
    summary = serializers.SerializerMethodField()

    class Meta:
        model = SiteAuditScan
        fields = (
            'id', 'domain', 'domain_ref', 'status', 'progress', 'max_crawl_pages',
            'created_at', 'completed_at', 'summary',
        )

    def get_summary(self, obj):
        summary = obj.get_summary()
        if summary is None:
            return None
        return {
            'crawled_pages': summary.crawled_pages,
            'onpage_score': summary.onpage_score,
            'errors_count': summary.errors_count,
            'health_score': summary.health_score,
        }


class SiteAuditScanSerializer(serializers.ModelSerializer):
    summary = serializers.SerializerMethodField()
    is_complete = serializers.BooleanField(read_only=True)
    is_failed = serializers.BooleanField(read_only=True)
    has_summary = serializers.BooleanField(read_only=True)

    class Meta:
        model = SiteAuditScan
        fields = (
            'id', 'domain', 'domain_ref', 'audit', 'status', 'progress', 'task_id',
            'max_crawl_pages', 'enable_javascript', 'enable_browser_rendering',
            'store_raw_html', 'calculate_keyword_density', 'start_url',
            'api_cost', 'error_message', 'started_at', 'completed_at',
            'created_at', 'updated_at', 'is_complete', 'is_failed', 'has_summary', 'summary',
        )

    def get_summary(self, obj):
        summary = obj.get_summary()
        return SiteAuditSummarySerializer(summary).data if summary else None


class SiteAuditPageListSerializer(serializers.ModelSerializer):
    h1 = serializers.SerializerMethodField()

    class Meta:
        model = SiteAuditPage
        fields = (
            'id', 'url', 'status_code', 'onpage_score', 'title', 'description',
            'h1', 'word_count', 'is_redirect', 'issue_types', 'issue_count',
        )

    def get_h1(self, obj):
        return obj.h1_tags[0] if obj.h1_tags else None


class SiteAuditPageDetailSerializer(serializers.ModelSerializer):
    """Full page row plus its checks run through the issue classifier."""
    issues = serializers.SerializerMethodField()
    classification = serializers.SerializerMethodField()

    class Meta:
        model = SiteAuditPage
        fields = (
            'id', 'scan', 'url', 'url_hash', 'status_code', 'onpage_score', 'title',
            'description', 'h1_tags', 'word_count', 'redirect_location', 'is_redirect',
            'page_timing', 'checks', 'meta', 'issue_types', 'issue_count', 'created_at',
            'issues', 'classification',
        )

    def get_issues(self, obj):
        return get_all_issues(obj.checks)

    def get_classification(self, obj):
        return categorize_issues(obj.checks).to_dict()
