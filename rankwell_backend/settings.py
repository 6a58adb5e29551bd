"""
Django settings for rankwell_backend project.
"""

from pathlib import Path
import os
from datetime import timedelta
from dotenv import load_dotenv

# Load .env from the project root so it works when run from the repo root or a subdirectory
_project_root = Path(__file__).resolve().parent.parent
load_dotenv(_project_root / ".env")

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = _project_root


# Quick-start development settings - unsuitable for production
# See https://docs.djangoproject.com/en/5.0/howto/deployment/checklist/

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-change-this-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() in ('true', '1', 'yes')

# Comma-separated list; APP_DOMAIN is appended when the platform sets it
_default_hosts = 'localhost,127.0.0.1,host.docker.internal'
_app_domain = os.getenv('APP_DOMAIN', '')
if _app_domain:
    _default_hosts = _default_hosts + ',' + _app_domain
ALLOWED_HOSTS = [h.strip() for h in os.getenv('ALLOWED_HOSTS', _default_hosts).split(',') if h.strip()]


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'accounts',
    'domains',
    'jobs',
    'audits',
    'site_audit',
    'local_seo',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'rankwell_backend.middleware.APICommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'rankwell_backend.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'rankwell_backend.wsgi.application'


# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases
# DATABASE_URL wins when set (managed Postgres); otherwise discrete DB_* variables are used.

import dj_database_url

DATABASES = {}
if os.getenv('DATABASE_URL'):
    DATABASES['default'] = dj_database_url.config(
        conn_max_age=600,
        conn_health_checks=True,
        ssl_require=os.getenv('DB_SSL', 'true').lower() in ('true', '1', 'yes'),
    )
else:
    DATABASES['default'] = {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.getenv('DB_NAME', 'rankwell_db'),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', 'localhost'),
        'PORT': os.getenv('DB_PORT', '5432'),
        'OPTIONS': {'sslmode': 'require'} if os.getenv('DB_SSL') else {},
    }

# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization
# https://docs.djangoproject.com/en/5.0/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.0/howto/static-files/
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}

# Default primary key field type
# https://docs.djangoproject.com/en/5.0/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework configuration
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'DEFAULT_PARSER_CLASSES': (
        'rest_framework.parsers.JSONParser',
    ),
    'EXCEPTION_HANDLER': 'rankwell_backend.exceptions.api_exception_handler',
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# JWT Settings
SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(days=7),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=30),
    'ROTATE_REFRESH_TOKENS': True,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'user_id',
}

# CORS Settings
# Add production origins via CORS_ALLOWED_ORIGINS_EXTRA (comma-separated)
_cors_extra = os.getenv('CORS_ALLOWED_ORIGINS_EXTRA', '')
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
] + [o.strip() for o in _cors_extra.split(',') if o.strip()]
CORS_ALLOW_CREDENTIALS = True

# Custom User Model
AUTH_USER_MODEL = 'accounts.User'

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        name: {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False}
        for name in ('rankwell_backend', 'audits', 'site_audit', 'local_seo', 'jobs', 'integrations')
    },
}

# Cache (DataForSEO response cache)
CACHES = {
    'default': {
        'BACKEND': os.getenv('CACHE_BACKEND', 'django.core.cache.backends.locmem.LocMemCache'),
        'LOCATION': os.getenv('CACHE_LOCATION', 'rankwell'),
    }
}

# Background jobs (database outbox drained by `manage.py run_jobs`)
JOBS_EAGER = os.getenv('JOBS_EAGER', 'False').lower() in ('true', '1', 'yes')
JOBS_MAX_ATTEMPTS = int(os.getenv('JOBS_MAX_ATTEMPTS', '3'))
JOBS_RETRY_DELAY_SECONDS = int(os.getenv('JOBS_RETRY_DELAY_SECONDS', '60'))
JOBS_VISIBILITY_TIMEOUT_SECONDS = int(os.getenv('JOBS_VISIBILITY_TIMEOUT_SECONDS', '900'))

# Audit pipeline
AUDIT_COOLDOWN_HOURS = int(os.getenv('AUDIT_COOLDOWN_HOURS', '1'))

# Site audit crawl
SITE_AUDIT_PAGE_BATCH_SIZE = int(os.getenv('SITE_AUDIT_PAGE_BATCH_SIZE', '100'))
SITE_AUDIT_POLLING = {
    'initial_delay_seconds': 30,
    'max_delay_seconds': 60,
    'backoff_multiplier': 1.2,
    'max_wait_minutes': 30,
}

# Geo-grid share of voice: weight per rank position, ranks beyond the table weigh 0
SHARE_OF_VOICE_RANK_WEIGHTS = {
    1: 1.0,
    2: 0.85,
    3: 0.7,
    4: 0.55,
    5: 0.45,
    6: 0.38,
    7: 0.32,
    8: 0.27,
    9: 0.23,
    10: 0.2,
    11: 0.1,
    12: 0.1,
    13: 0.1,
    14: 0.1,
    15: 0.1,
    16: 0.05,
    17: 0.05,
    18: 0.05,
    19: 0.05,
    20: 0.05,
}

# DataForSEO (crawl, rank, backlinks, maps SERP)
DATAFORSEO_LOGIN = os.getenv('DATAFORSEO_LOGIN', '')
DATAFORSEO_PASSWORD = os.getenv('DATAFORSEO_PASSWORD', '')
DATAFORSEO_BASE_URL = os.getenv('DATAFORSEO_BASE_URL', 'https://api.dataforseo.com/v3')
DATAFORSEO_TIMEOUT = int(os.getenv('DATAFORSEO_TIMEOUT', '60'))
DATAFORSEO_CACHE_ENABLED = os.getenv('DATAFORSEO_CACHE_ENABLED', 'True').lower() in ('true', '1', 'yes')
DATAFORSEO_CACHE_ALIAS = os.getenv('DATAFORSEO_CACHE_ALIAS', 'default')

# Google Places (business profile enrichment)
GOOGLE_PLACES_API_KEY = os.getenv('GOOGLE_PLACES_API_KEY', '')
GOOGLE_PLACES_TIMEOUT = int(os.getenv('GOOGLE_PLACES_TIMEOUT', '30'))
