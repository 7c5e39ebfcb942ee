"""
HTTP session setup for the router console.

Provides a ``requests.Session`` with the transport retry policy and a
browser-like identity pre-configured.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import MAX_RETRIES, RETRY_BACKOFF, RETRY_JITTER


def build_retry() -> Retry:
    """
    Bounded retry with jittered backoff for transient transport errors.

    Connection failures are retried for every method, the request never
    reached the router.  Read errors and 5xx answers are retried only for
    idempotent methods, so a form POST is never submitted twice.
    """
    return Retry(
        total=MAX_RETRIES,
        connect=MAX_RETRIES,
        read=MAX_RETRIES,
        status=MAX_RETRIES,
        redirect=0,
        backoff_factor=RETRY_BACKOFF,
        backoff_jitter=RETRY_JITTER,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=Retry.DEFAULT_ALLOWED_METHODS,
        raise_on_status=False,
        raise_on_redirect=False,
    )


def build_session(verify_ssl: bool = True) -> requests.Session:
    """Return a requests.Session with retry logic and keep-alive pre-configured."""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=build_retry())
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify_ssl
    # The console rejects clients that do not look like a browser.
    session.headers.update({
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "Connection": "keep-alive",
    })
    return session
