import logging

import requests

logger = logging.getLogger(__name__)

HTTPS_CHECK_TIMEOUT = 10


def verify_https(domain, timeout=HTTPS_CHECK_TIMEOUT):
    """
    HEAD https://<domain> following redirects. Any network, certificate or
    timeout failure means HTTPS does not work.
    """
    try:
        response = requests.head(f"https://{domain}", timeout=timeout, allow_redirects=True)
    except requests.RequestException as e:
        logger.info("HTTPS check failed for %s: %s", domain, e)
        return False
    return response.status_code < 400
