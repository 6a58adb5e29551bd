"""
URL routing for accounts app.
"""
from django.urls import path
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

# Lazy view imports to avoid AppRegistryNotReady
@csrf_exempt
@require_http_methods(["POST"])
def login_view(request):
    from .auth import login
    return login(request)

@csrf_exempt
@require_http_methods(["POST"])
def register_view(request):
    from .auth import register
    return register(request)

@csrf_exempt
@require_http_methods(["POST"])
def refresh_view(request):
    from .auth import refresh
    return refresh(request)

@csrf_exempt
@require_http_methods(["GET"])
def me_view(request):
    from .auth import me
    return me(request)

urlpatterns = [
    path('login/', login_view, name='login'),
    path('register/', register_view, name='register'),
    path('refresh/', refresh_view, name='token_refresh'),
    path('me/', me_view, name='me'),
]
