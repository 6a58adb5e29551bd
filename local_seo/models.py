"""
Geo-grid local rank tracking: campaigns, scans, per-point samples and
per-competitor aggregates.
"""
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class LocalCampaign(models.Model):
    """A business tracked on a grid of map points around its location."""
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_PAUSED = 'PAUSED'
    STATUS_ARCHIVED = 'ARCHIVED'

    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_PAUSED, 'Paused'),
        (STATUS_ARCHIVED, 'Archived'),
    ]

    FREQUENCY_DAILY = 'daily'
    FREQUENCY_WEEKLY = 'weekly'
    FREQUENCY_MONTHLY = 'monthly'

    FREQUENCY_CHOICES = [
        (FREQUENCY_DAILY, 'Daily'),
        (FREQUENCY_WEEKLY, 'Weekly'),
        (FREQUENCY_MONTHLY, 'Monthly'),
    ]
    FREQUENCY_INTERVALS = {
        FREQUENCY_DAILY: timedelta(days=1),
        FREQUENCY_WEEKLY: timedelta(days=7),
        FREQUENCY_MONTHLY: timedelta(days=30),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='local_campaigns'
    )
    domain_ref = models.ForeignKey(
        'domains.Domain',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='local_campaigns'
    )
    name = models.CharField(max_length=200)
    business_name = models.CharField(max_length=200)
    gmb_place_id = models.CharField(max_length=100, blank=True, null=True)
    gmb_cid = models.CharField(max_length=50, blank=True, null=True)
    address = models.CharField(max_length=500, blank=True, null=True)
    center_lat = models.DecimalField(max_digits=10, decimal_places=7)
    center_lng = models.DecimalField(max_digits=10, decimal_places=7)
    grid_size = models.IntegerField(default=7, validators=[MinValueValidator(1), MaxValueValidator(15)])
    grid_radius_miles = models.DecimalField(
        max_digits=5, decimal_places=2, default=5,
        validators=[MinValueValidator(0), MaxValueValidator(50)]
    )
    keywords = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    scan_frequency = models.CharField(max_length=10, choices=FREQUENCY_CHOICES, default=FREQUENCY_WEEKLY)
    last_scan_at = models.DateTimeField(null=True, blank=True)
    next_scan_at = models.DateTimeField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'local_campaigns'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.business_name})"

    @property
    def total_points(self):
        return self.grid_size * self.grid_size

    def next_scan_after(self, when):
        return when + self.FREQUENCY_INTERVALS.get(self.scan_frequency, timedelta(days=7))

    def latest_completed_scan(self, exclude=None):
        scans = self.scans.filter(status=GridScan.STATUS_COMPLETED)
        if exclude is not None:
            scans = scans.exclude(pk=exclude)
        return scans.order_by('-completed_at', '-created_at').first()


class GridScan(models.Model):
    """
    One pass over every (keyword, grid point) sample of a campaign.

    PENDING -> SCANNING -> COMPLETED or FAILED.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_SCANNING = 'SCANNING'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SCANNING, 'Scanning'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)
    IN_FLIGHT_STATUSES = (STATUS_PENDING, STATUS_SCANNING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    campaign = models.ForeignKey(LocalCampaign, on_delete=models.CASCADE, related_name='scans')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    progress = models.IntegerField(default=0)
    keywords = models.JSONField(default=list, blank=True, help_text="Keywords sampled by this scan")
    grid_size = models.IntegerField(default=7)
    points_completed = models.IntegerField(default=0)
    avg_rank = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    share_of_voice = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    top_competitor = models.CharField(max_length=200, blank=True, null=True)
    api_calls_used = models.IntegerField(default=0)
    failed_points = models.IntegerField(default=0)
    error_message = models.TextField(blank=True, null=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'local_grid_scans'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['campaign', 'created_at'], name='gridscan_campaign_created_idx'),
        ]

    def __str__(self):
        return f"Scan of {self.campaign_id} [{self.status}]"

    @property
    def is_complete(self):
        return self.status == self.STATUS_COMPLETED

    @property
    def is_failed(self):
        return self.status == self.STATUS_FAILED


class GridPointResult(models.Model):
    """The map pack seen for one keyword at one grid point."""
    id = models.BigAutoField(primary_key=True)
    scan = models.ForeignKey(GridScan, on_delete=models.CASCADE, related_name='points')
    keyword = models.CharField(max_length=200)
    grid_row = models.IntegerField()
    grid_col = models.IntegerField()
    lat = models.DecimalField(max_digits=10, decimal_places=7)
    lng = models.DecimalField(max_digits=10, decimal_places=7)
    target_rank = models.IntegerField(null=True, blank=True, help_text="Null when the business was not found")
    top_competitors = models.JSONField(default=list, blank=True)
    total_results = models.IntegerField(default=0)
    succeeded = models.BooleanField(default=True)
    error_message = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'local_grid_points'
        ordering = ['keyword', 'grid_row', 'grid_col']
        constraints = [
            models.UniqueConstraint(
                fields=['scan', 'keyword', 'grid_row', 'grid_col'], name='unique_scan_keyword_point'
            ),
        ]

    def __str__(self):
        return f"{self.keyword} @ ({self.grid_row}, {self.grid_col})"


class CompetitorStat(models.Model):
    """Aggregate for one business (the target included) across a scan."""
    id = models.BigAutoField(primary_key=True)
    scan = models.ForeignKey(GridScan, on_delete=models.CASCADE, related_name='competitor_stats')
    competitor_key = models.CharField(max_length=200)
    business_name = models.CharField(max_length=200)
    is_target = models.BooleanField(default=False)
    gmb_cid = models.CharField(max_length=50, blank=True, null=True)
    rating = models.FloatField(null=True, blank=True)
    review_count = models.IntegerField(null=True, blank=True)
    avg_rank = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    appearances = models.IntegerField(default=0)
    times_in_top3 = models.IntegerField(default=0)
    times_in_top10 = models.IntegerField(default=0)
    times_in_top20 = models.IntegerField(default=0)
    share_of_voice = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    prev_avg_rank = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    rank_change = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)

    class Meta:
        db_table = 'local_competitor_stats'
        ordering = ['-is_target', '-share_of_voice', 'avg_rank']
        constraints = [
            models.UniqueConstraint(fields=['scan', 'competitor_key'], name='unique_scan_competitor'),
        ]

    def __str__(self):
        return self.business_name

    def to_row(self):
        """Aggregate-row shape shared with local_seo.aggregation."""
        return {
            'business_name': self.business_name,
            'competitor_key': self.competitor_key,
            'is_target': self.is_target,
            'gmb_cid': self.gmb_cid,
            'rating': self.rating,
            'review_count': self.review_count,
            'avg_rank': float(self.avg_rank) if self.avg_rank is not None else None,
            'appearances': self.appearances,
            'times_in_top3': self.times_in_top3,
            'times_in_top10': self.times_in_top10,
            'times_in_top20': self.times_in_top20,
            'share_of_voice': float(self.share_of_voice),
            'prev_avg_rank': float(self.prev_avg_rank) if self.prev_avg_rank is not None else None,
            'rank_change': float(self.rank_change) if self.rank_change is not None else None,
        }
