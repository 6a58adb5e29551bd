"""
WSGI config for rankwell_backend project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rankwell_backend.settings')

application = get_wsgi_application()
