"""
Custom middleware for rankwell_backend.
"""
from django.middleware.common import CommonMiddleware


class APICommonMiddleware(CommonMiddleware):
    """
    CommonMiddleware that never appends a slash on /api/ routes, so POSTs to a
    slash-less API path get a 404 instead of a redirect that drops the body.
    """
    def should_redirect_with_slash(self, request):
        if request.path.startswith('/api/'):
            return False
        return super().should_redirect_with_slash(request)
