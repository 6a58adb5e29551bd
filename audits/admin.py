from django.contrib import admin
from .models import Audit


@admin.register(Audit)
class AuditAdmin(admin.ModelAdmin):
    list_display = ('domain', 'user', 'status', 'progress', 'current_step', 'health_score', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('domain', 'business_name', 'user__email')
    readonly_fields = ('created_at', 'updated_at', 'started_at', 'completed_at', 'step_results')
