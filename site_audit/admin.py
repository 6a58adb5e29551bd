from django.contrib import admin
from .models import SiteAuditPage, SiteAuditScan, SiteAuditSummary


@admin.register(SiteAuditScan)
class SiteAuditScanAdmin(admin.ModelAdmin):
    list_display = ('domain', 'user', 'status', 'progress', 'max_crawl_pages', 'created_at', 'completed_at')
    list_filter = ('status', 'created_at')
    search_fields = ('domain', 'task_id', 'user__email')
    readonly_fields = ('created_at', 'updated_at', 'started_at', 'completed_at', 'api_cost')


@admin.register(SiteAuditSummary)
class SiteAuditSummaryAdmin(admin.ModelAdmin):
    list_display = ('scan', 'crawled_pages', 'errors_count', 'warnings_count', 'health_score', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(SiteAuditPage)
class SiteAuditPageAdmin(admin.ModelAdmin):
    list_display = ('url', 'scan', 'status_code', 'onpage_score', 'issue_count')
    list_filter = ('status_code',)
    search_fields = ('url', 'title')
