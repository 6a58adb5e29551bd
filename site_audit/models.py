"""
Full-site crawl models: one scan, its summary, and its crawled pages.
"""
import hashlib
import uuid

from django.conf import settings
from django.db import models


def url_hash(url):
    """Stable identity for a page URL within a scan."""
    return hashlib.sha256(url.encode('utf-8')).hexdigest()


class SiteAuditScan(models.Model):
    """
    A full-site crawl of one domain.

    PENDING -> SUBMITTING -> CRAWLING -> FETCHING_RESULTS -> COMPLETED,
    or FAILED from any non-terminal status.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_SUBMITTING = 'SUBMITTING'
    STATUS_CRAWLING = 'CRAWLING'
    STATUS_FETCHING_RESULTS = 'FETCHING_RESULTS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SUBMITTING, 'Submitting'),
        (STATUS_CRAWLING, 'Crawling'),
        (STATUS_FETCHING_RESULTS, 'Fetching results'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='site_audit_scans'
    )
    domain = models.CharField(max_length=255)
    domain_ref = models.ForeignKey(
        'domains.Domain',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='site_audit_scans'
    )
    audit = models.ForeignKey(
        'audits.Audit',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='site_audit_scans'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    progress = models.IntegerField(default=0)
    task_id = models.CharField(max_length=100, blank=True, null=True, help_text="Remote crawl task id")

    # Crawl configuration
    max_crawl_pages = models.IntegerField(default=100)
    enable_javascript = models.BooleanField(default=True)
    enable_browser_rendering = models.BooleanField(default=True)
    store_raw_html = models.BooleanField(default=False)
    calculate_keyword_density = models.BooleanField(default=False)
    start_url = models.URLField(max_length=2000, blank=True, null=True)

    api_cost = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    error_message = models.TextField(blank=True, null=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'site_audit_scans'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='scan_user_created_idx'),
        ]

    def __str__(self):
        return f"{self.domain} [{self.status}]"

    @property
    def is_complete(self):
        return self.status == self.STATUS_COMPLETED

    @property
    def is_failed(self):
        return self.status == self.STATUS_FAILED

    @property
    def has_summary(self):
        return self.get_summary() is not None

    def get_summary(self):
        try:
            return self.summary
        except SiteAuditSummary.DoesNotExist:
            return None

    def crawl_config(self):
        return {
            'max_crawl_pages': self.max_crawl_pages,
            'enable_javascript': self.enable_javascript,
            'enable_browser_rendering': self.enable_browser_rendering,
            'store_raw_html': self.store_raw_html,
            'calculate_keyword_density': self.calculate_keyword_density,
            'start_url': self.start_url,
        }


class SiteAuditSummary(models.Model):
    """Aggregate results of a finished crawl. Written before the scan completes."""
    scan = models.OneToOneField(SiteAuditScan, on_delete=models.CASCADE, related_name='summary')
    total_pages = models.IntegerField(default=0)
    crawled_pages = models.IntegerField(default=0)
    crawl_stop_reason = models.CharField(max_length=100, blank=True, null=True)
    errors_count = models.IntegerField(default=0)
    warnings_count = models.IntegerField(default=0)
    notices_count = models.IntegerField(default=0)
    onpage_score = models.FloatField(null=True, blank=True)
    avg_lcp = models.FloatField(null=True, blank=True)
    avg_cls = models.FloatField(null=True, blank=True)
    total_images = models.IntegerField(default=0)
    broken_resources = models.IntegerField(default=0)
    internal_links = models.IntegerField(default=0)
    external_links = models.IntegerField(default=0)
    broken_links = models.IntegerField(default=0)
    non_indexable = models.IntegerField(default=0)
    redirects = models.IntegerField(default=0)
    duplicate_title = models.IntegerField(default=0)
    duplicate_description = models.IntegerField(default=0)
    duplicate_content = models.IntegerField(default=0)
    domain_info = models.JSONField(null=True, blank=True)
    ssl_info = models.JSONField(null=True, blank=True)
    page_metrics_checks = models.JSONField(null=True, blank=True)
    thematic_scores = models.JSONField(default=list, blank=True)
    health_score = models.IntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'site_audit_summaries'

    def __str__(self):
        return f"Summary for {self.scan_id}"


class SiteAuditPage(models.Model):
    """One crawled page. Unique per (scan, url_hash) so re-ingestion is a no-op."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    scan = models.ForeignKey(SiteAuditScan, on_delete=models.CASCADE, related_name='pages')
    url = models.TextField()
    url_hash = models.CharField(max_length=64)
    status_code = models.IntegerField(default=0)
    onpage_score = models.FloatField(null=True, blank=True)
    title = models.CharField(max_length=1000, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    h1_tags = models.JSONField(default=list, blank=True)
    word_count = models.IntegerField(null=True, blank=True)
    redirect_location = models.CharField(max_length=2000, blank=True, null=True)
    is_redirect = models.BooleanField(default=False)
    page_timing = models.JSONField(null=True, blank=True)
    checks = models.JSONField(null=True, blank=True)
    meta = models.JSONField(null=True, blank=True)
    issue_types = models.JSONField(default=list, blank=True)
    issue_count = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'site_audit_pages'
        ordering = ['url']
        constraints = [
            models.UniqueConstraint(fields=['scan', 'url_hash'], name='unique_scan_url_hash'),
        ]
        indexes = [
            models.Index(fields=['scan', 'status_code'], name='scan_page_status_idx'),
            models.Index(fields=['scan', 'issue_count'], name='scan_page_issues_idx'),
        ]

    def __str__(self):
        return self.url
