"""
Provider error taxonomy.

Every failure from an upstream data provider is raised as ProviderError with
a category that drives retry behaviour:

- retryable: rate limits, timeouts, network and 5xx failures
- permanent: auth failures and invalid input; retrying will not help
- quota: account balance or plan limits; needs user action
- partial: the request succeeded but some tasks returned no data
"""
import requests

RETRYABLE = 'retryable'
PERMANENT = 'permanent'
QUOTA = 'quota'
PARTIAL = 'partial'

ERROR_CATEGORIES = (RETRYABLE, PERMANENT, QUOTA, PARTIAL)

# DataForSEO body-level status codes
STATUS_SUCCESS = 20000
STATUS_TASK_CREATED = 20100
STATUS_AUTH_ERROR = 40100
STATUS_PAYMENT_REQUIRED = 40200
STATUS_RATE_LIMIT_EXCEEDED = 40202
STATUS_INTERNAL_ERROR = 50000

_RETRYABLE_PATTERNS = (
    'rate limit', 'too many requests', 'timeout', 'timed out', 'network',
    'connection', 'internal server', 'service unavailable',
)
_QUOTA_PATTERNS = ('payment', 'quota', 'balance', 'insufficient')
_PERMANENT_PATTERNS = (
    'unauthorized', 'authentication', 'invalid credentials', 'invalid',
    'malformed', 'bad request', 'not found', 'does not exist',
)


class ProviderError(Exception):
    def __init__(self, message, category=RETRYABLE, provider=None, status_code=None, http_status=None):
        super().__init__(message)
        self.message = message
        self.category = category if category in ERROR_CATEGORIES else RETRYABLE
        self.provider = provider
        self.status_code = status_code
        self.http_status = http_status

    @property
    def retryable(self):
        return self.category == RETRYABLE

    def to_dict(self):
        return {
            'message': self.message,
            'category': self.category,
            'provider': self.provider,
            'status_code': self.status_code,
            'http_status': self.http_status,
            'retryable': self.retryable,
        }


def classify_status_code(status_code):
    """Map a provider body status code (e.g. 40202) to a category, or None if unknown."""
    if status_code is None:
        return None
    if status_code == STATUS_RATE_LIMIT_EXCEEDED:
        return RETRYABLE
    if status_code == STATUS_PAYMENT_REQUIRED:
        return QUOTA
    if status_code == STATUS_AUTH_ERROR:
        return PERMANENT
    if 40000 <= status_code < 50000:
        return PERMANENT
    if status_code >= STATUS_INTERNAL_ERROR:
        return RETRYABLE
    return None


def classify_http_status(http_status):
    if http_status == 429:
        return RETRYABLE
    if http_status == 402:
        return QUOTA
    if http_status in (401, 403):
        return PERMANENT
    if http_status is not None and 400 <= http_status < 500:
        return PERMANENT
    if http_status is not None and http_status >= 500:
        return RETRYABLE
    return None


def classify_message(message):
    text = (message or '').lower()
    if any(p in text for p in _RETRYABLE_PATTERNS):
        return RETRYABLE
    if any(p in text for p in _QUOTA_PATTERNS):
        return QUOTA
    if any(p in text for p in _PERMANENT_PATTERNS):
        return PERMANENT
    return RETRYABLE


def classify_error(error, status_code=None, http_status=None):
    """
    Category for an arbitrary exception. Body status codes win over HTTP
    status, which wins over message patterns; unknown errors are retryable.
    """
    if isinstance(error, ProviderError):
        return error.category
    if isinstance(error, (requests.Timeout, requests.ConnectionError)):
        return RETRYABLE
    return (
        classify_status_code(status_code)
        or classify_http_status(http_status)
        or classify_message(str(error))
    )


def as_provider_error(error, provider=None):
    """Wrap any exception as a ProviderError, preserving an existing category."""
    if isinstance(error, ProviderError):
        return error
    return ProviderError(str(error) or error.__class__.__name__, classify_error(error), provider=provider)
