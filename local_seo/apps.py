from django.apps import AppConfig


class LocalSeoConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'local_seo'
    verbose_name = 'Local SEO'
