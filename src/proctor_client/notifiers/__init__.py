"""
Notifiers - HTTP side-channels to the proctoring backend.

The socket carries the event stream; anything too large for it (evidence
images) goes over plain HTTP through here.
"""

import logging
import time
from typing import Callable

import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 1.0  # seconds


def with_retry(
    func: Callable[[], requests.Response],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Execute a request function with exponential backoff retry.

    Retries 5xx responses and transient network errors (timeout,
    connection error). 4xx responses are returned immediately.

    Args:
        func: Callable that performs the request and returns Response
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds, doubles each retry
        sleep: Delay function

    Returns:
        The last Response received

    Raises:
        requests.RequestException: If the final attempt hit a network error
    """
    for attempt in range(max_retries + 1):
        delay = base_delay * (2**attempt)
        try:
            response = func()
        except (requests.Timeout, requests.ConnectionError) as e:
            if attempt >= max_retries:
                raise
            logger.warning(
                f"Network error, retry {attempt + 1}/{max_retries} in {delay}s: {e}"
            )
            sleep(delay)
            continue

        if response.status_code < 500 or attempt >= max_retries:
            return response
        logger.warning(
            f"Server error {response.status_code}, retry {attempt + 1}/{max_retries} in {delay}s"
        )
        sleep(delay)

    raise requests.RequestException("Retry exhausted")


__all__ = ["with_retry"]
