"""
API URL routing for rankwell_backend.
All API endpoints are prefixed with /api/v1/
"""
from django.urls import path, include


def _lazy(module, attr):
    """Lazy view import to avoid AppRegistryNotReady."""
    def view(*args, **kwargs):
        import importlib
        mod = importlib.import_module(module)
        return getattr(mod, attr)(*args, **kwargs)
    return view


urlpatterns = [
    # Health check (no auth) - GET /api/v1/health/
    path('health/', _lazy('rankwell_backend.views', 'health_check')),
    # Dashboard authentication
    path('auth/', include('accounts.urls')),
    # Tracked domains
    path('domains/', include('domains.urls')),
    # Keyword / competitor audits
    path('audits/', include('audits.urls')),
    # Full-site crawls
    path('site-audit/', include('site_audit.urls')),
    # Geo-grid local rank tracking
    path('local-seo/', include('local_seo.urls')),
]
