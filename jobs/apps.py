from django.apps import AppConfig


class JobsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'jobs'

    def ready(self):
        # Handler modules register themselves on import
        from jobs.registry import autodiscover_handlers
        autodiscover_handlers()
