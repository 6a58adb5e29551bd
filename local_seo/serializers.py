"""
Serializers for local SEO campaigns and grid scans.
"""
from rest_framework import serializers

from .grid import MAX_GRID_SIZE, MAX_RADIUS_MILES, MIN_GRID_SIZE
from .models import CompetitorStat, GridPointResult, GridScan, LocalCampaign


def keyword_list(**kwargs):
    return serializers.ListField(
        child=serializers.CharField(min_length=1, max_length=100), min_length=1, max_length=10, **kwargs
    )


def _clean_keywords(value):
    keywords = []
    for keyword in value:
        keyword = keyword.strip()
        if keyword and keyword not in keywords:
            keywords.append(keyword)
    if not keywords:
        raise serializers.ValidationError("At least one keyword is required.")
    return keywords


class LocalCampaignCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    business_name = serializers.CharField(min_length=1, max_length=200)
    gmb_place_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    gmb_cid = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    center_lat = serializers.DecimalField(max_digits=10, decimal_places=7, min_value=-90, max_value=90)
    center_lng = serializers.DecimalField(max_digits=10, decimal_places=7, min_value=-180, max_value=180)
    grid_size = serializers.IntegerField(min_value=MIN_GRID_SIZE, max_value=MAX_GRID_SIZE, default=7)
    grid_radius_miles = serializers.DecimalField(
        max_digits=5, decimal_places=2, max_value=MAX_RADIUS_MILES, default=5
    )
    keywords = keyword_list()
    scan_frequency = serializers.ChoiceField(choices=LocalCampaign.FREQUENCY_CHOICES, default='weekly')
    trigger_initial_scan = serializers.BooleanField(default=True)
    domain_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_grid_radius_miles(self, value):
        if value <= 0:
            raise serializers.ValidationError("Radius must be greater than 0.")
        return value

    def validate_keywords(self, value):
        return _clean_keywords(value)


class LocalCampaignUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    business_name = serializers.CharField(min_length=1, max_length=200, required=False)
    keywords = keyword_list(required=False)
    status = serializers.ChoiceField(choices=LocalCampaign.STATUS_CHOICES, required=False)
    scan_frequency = serializers.ChoiceField(choices=LocalCampaign.FREQUENCY_CHOICES, required=False)

    def validate_keywords(self, value):
        return _clean_keywords(value)


class ScanTriggerSerializer(serializers.Serializer):
    keywords = keyword_list(required=False)

    def validate_keywords(self, value):
        return _clean_keywords(value)


class GridScanSerializer(serializers.ModelSerializer):
    is_complete = serializers.BooleanField(read_only=True)
    is_failed = serializers.BooleanField(read_only=True)

    class Meta:
        model = GridScan
        fields = (
            'id', 'campaign', 'status', 'progress', 'keywords', 'grid_size', 'points_completed',
            'avg_rank', 'share_of_voice', 'top_competitor', 'api_calls_used', 'failed_points',
            'error_message', 'started_at', 'completed_at', 'created_at', 'is_complete', 'is_failed',
        )


class LocalCampaignSerializer(serializers.ModelSerializer):
    total_points = serializers.IntegerField(read_only=True)
    latest_scan = serializers.SerializerMethodField()

    class Meta:
        model = LocalCampaign
        fields = (
            'id', 'domain_ref', 'name', 'business_name', 'gmb_place_id', 'gmb_cid', 'address',
            'center_lat', 'center_lng', 'grid_size', 'grid_radius_miles', 'keywords', 'status',
            'scan_frequency', 'last_scan_at', 'next_scan_at', 'created_at', 'updated_at',
            'total_points', 'latest_scan',
        )

    def get_latest_scan(self, obj):
        scan = obj.scans.order_by('-created_at').first()
        if scan is None:
            return None
        return {
            'id': str(scan.id),
            'status': scan.status,
            'progress': scan.progress,
            'avg_rank': scan.avg_rank,
            'share_of_voice': scan.share_of_voice,
            'completed_at': scan.completed_at,
        }


class GridPointSerializer(serializers.ModelSerializer):
    row = serializers.IntegerField(source='grid_row')
    col = serializers.IntegerField(source='grid_col')
    lat = serializers.FloatField()
    lng = serializers.FloatField()

    class Meta:
        model = GridPointResult
        fields = (
            'row', 'col', 'lat', 'lng', 'keyword', 'target_rank', 'top_competitors',
            'total_results', 'succeeded', 'error_message',
        )


class CompetitorStatSerializer(serializers.ModelSerializer):
    avg_rank = serializers.FloatField(allow_null=True)
    share_of_voice = serializers.FloatField()
    rank_change = serializers.FloatField(allow_null=True)

    class Meta:
        model = CompetitorStat
        fields = (
            'business_name', 'competitor_key', 'is_target', 'gmb_cid', 'rating', 'review_count',
            'avg_rank', 'appearances', 'times_in_top3', 'times_in_top10', 'times_in_top20',
            'share_of_voice', 'rank_change',
        )
