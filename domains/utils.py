"""
Domain string helpers shared by domains, audits, and site audit scans.
"""
import re

_SCHEME_RE = re.compile(r'^[a-z][a-z0-9+.-]*://')
_HOSTNAME_RE = re.compile(
    r'^(?=.{1,253}$)(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$'
)


def normalize_domain(value, strip_www=False):
    """
    Lowercase a domain and strip the scheme, path, port and trailing slash.

    'HTTPS://Example-Dental.com/' -> 'example-dental.com'. A leading
    'www.' is kept unless `strip_www` is set.
    """
    domain = (value or '').strip().lower()
    domain = _SCHEME_RE.sub('', domain)
    domain = domain.split('/', 1)[0].split('?', 1)[0].split('#', 1)[0]
    domain = domain.split('@')[-1].split(':', 1)[0]
    domain = domain.rstrip('.')
    if strip_www and domain.startswith('www.'):
        domain = domain[4:]
    return domain


def is_valid_domain(domain):
    return bool(_HOSTNAME_RE.match(domain or ''))
