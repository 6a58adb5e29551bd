from django.apps import AppConfig


class SiteAuditConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'site_audit'
    verbose_name = 'Site Audit'
