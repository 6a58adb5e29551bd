from django.contrib import admin
from .models import JobMessage


@admin.register(JobMessage)
class JobMessageAdmin(admin.ModelAdmin):
    list_display = ('event', 'status', 'attempts', 'available_at', 'processed_at', 'created_at')
    list_filter = ('status', 'event')
    search_fields = ('event', 'last_error')
    readonly_fields = ('created_at', 'updated_at', 'processed_at')
