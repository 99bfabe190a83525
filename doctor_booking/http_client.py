"""HTTP session with retry and connection pooling.

Pattern: requests.Session with a pooled adapter plus tenacity exponential
backoff around GET. The adapter itself never retries, so a failing GET is
attempted at most ``max_retries + 1`` times in total.

Only GET is retried automatically. POST /bookings is not idempotent: a
retried booking can reserve the slot twice, so booking retries are always
user-initiated.
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log
)
from urllib3.util.retry import Retry

from doctor_booking import config

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)

RETRYABLE_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    requests.exceptions.HTTPError
)


def create_http_session(
    max_retries: int = config.CLINIC_API_MAX_RETRIES,
    backoff_factor: float = config.CLINIC_API_BACKOFF,
    timeout: float = config.CLINIC_API_TIMEOUT
) -> requests.Session:
    """
    Create HTTP session with retry and connection pooling.

    Args:
        max_retries: Maximum number of GET retry attempts (default: 3)
        backoff_factor: Backoff multiplier; delays are 1x, 2x, 4x this value
                        (0 disables waiting, useful in tests)
        timeout: Request timeout in seconds, applied to GET and POST

    Returns:
        Session whose get() retries and whose post() does not
    """
    session = requests.Session()

    # Retries belong to get_with_retry; urllib3 only pools connections
    no_retry = Retry(total=0, redirect=5, raise_on_status=False)

    adapter = HTTPAdapter(
        max_retries=no_retry,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    original_get = session.get
    original_post = session.post

    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_factor, min=backoff_factor, max=8),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def get_with_retry(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        response = original_get(*args, **kwargs)
        # 4xx is an answer, not an outage: hand it back for envelope parsing
        if response.status_code in RETRY_STATUSES:
            response.raise_for_status()
        return response

    def post_once(*args, **kwargs):
        kwargs.setdefault('timeout', timeout)
        return original_post(*args, **kwargs)

    session.get = get_with_retry
    session.post = post_once

    return session
