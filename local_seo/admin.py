from django.contrib import admin
from .models import CompetitorStat, GridPointResult, GridScan, LocalCampaign


@admin.register(LocalCampaign)
class LocalCampaignAdmin(admin.ModelAdmin):
    list_display = ('name', 'business_name', 'user', 'grid_size', 'status', 'scan_frequency', 'next_scan_at')
    list_filter = ('status', 'scan_frequency')
    search_fields = ('name', 'business_name', 'user__email')
    readonly_fields = ('created_at', 'updated_at', 'last_scan_at')


@admin.register(GridScan)
class GridScanAdmin(admin.ModelAdmin):
    list_display = ('campaign', 'status', 'progress', 'avg_rank', 'share_of_voice', 'failed_points', 'created_at')
    list_filter = ('status', 'created_at')
    readonly_fields = ('created_at', 'updated_at', 'started_at', 'completed_at')


@admin.register(GridPointResult)
class GridPointResultAdmin(admin.ModelAdmin):
    list_display = ('scan', 'keyword', 'grid_row', 'grid_col', 'target_rank', 'succeeded')
    list_filter = ('succeeded',)
    search_fields = ('keyword',)


@admin.register(CompetitorStat)
class CompetitorStatAdmin(admin.ModelAdmin):
    list_display = ('business_name', 'scan', 'is_target', 'avg_rank', 'share_of_voice', 'rank_change')
    list_filter = ('is_target',)
    search_fields = ('business_name',)
