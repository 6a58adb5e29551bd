"""
Settings used by the pytest suite.
"""
from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

JOBS_EAGER = False
JOBS_MAX_ATTEMPTS = 3

DATAFORSEO_LOGIN = 'test-login'
DATAFORSEO_PASSWORD = 'test-password'
GOOGLE_PLACES_API_KEY = 'test-places-key'

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'rankwell-tests',
    }
}
