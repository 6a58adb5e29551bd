"""
Keyword / competitor audit of one domain.
"""
import uuid

from django.conf import settings
from django.db import models


class Audit(models.Model):
    """
    One audit request.

    PENDING -> CRAWLING -> ANALYZING -> COMPLETED, FAILED from any
    non-terminal status, and FAILED -> PENDING through an explicit retry.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_CRAWLING = 'CRAWLING'
    STATUS_ANALYZING = 'ANALYZING'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CRAWLING, 'Crawling'),
        (STATUS_ANALYZING, 'Analyzing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)
    IN_PROGRESS_STATUSES = (STATUS_PENDING, STATUS_CRAWLING, STATUS_ANALYZING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='audits'
    )
    domain = models.CharField(max_length=255, db_index=True)
    domain_ref = models.ForeignKey(
        'domains.Domain',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audits'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    progress = models.IntegerField(default=0)
    current_step = models.CharField(max_length=50, blank=True, null=True)
    error_message = models.TextField(blank=True, null=True)

    # Enrichment inputs
    business_name = models.CharField(max_length=200, blank=True, null=True)
    location = models.CharField(max_length=200, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=2, blank=True, null=True)
    gmb_place_id = models.CharField(max_length=100, blank=True, null=True)
    target_keywords = models.JSONField(default=list, blank=True)
    competitor_domains = models.JSONField(default=list, blank=True)
    options = models.JSONField(default=dict, blank=True)

    # Stage key -> serialized stage result, plus 'warnings' and '_failure'
    step_results = models.JSONField(default=dict, blank=True)
    health_score = models.IntegerField(null=True, blank=True)

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'audits'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['domain', 'created_at'], name='audit_domain_created_idx'),
            models.Index(fields=['user', 'created_at'], name='audit_user_created_idx'),
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
    def is_in_progress(self):
        return self.status in self.IN_PROGRESS_STATUSES

    @property
    def warnings(self):
        return (self.step_results or {}).get('warnings') or {}
