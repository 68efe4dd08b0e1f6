# src/binfetch/utils.py
import importlib.metadata
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from binfetch.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    RATE_LIMIT_WARNING_THRESHOLD,
    RETRY_STATUS_FORCELIST,
)
from binfetch.exceptions import (
    AuthenticationError,
    ProviderTransportError,
    RateLimitError,
    ReleaseNotFoundError,
)
from binfetch.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None

# GitHub sends X-RateLimit-*, GitLab sends RateLimit-*
_REMAINING_HEADERS = ("X-RateLimit-Remaining", "RateLimit-Remaining")
_RESET_HEADERS = ("X-RateLimit-Reset", "RateLimit-Reset")


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `binfetch/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("binfetch")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"binfetch/{app_version}"

    return _USER_AGENT_CACHE


def _parse_rate_limit_header(header_value: Any) -> Optional[int]:
    """
    Parse a rate-limit header value into a non-negative integer.

    Returns:
        Optional[int]: The parsed value, or None when the header is missing or not numeric.
    """
    if header_value is None:
        return None
    try:
        value = int(str(header_value).strip())
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


def _first_header(headers: Any, names) -> Optional[str]:
    if headers is None or not hasattr(headers, "get"):
        return None
    for name in names:
        value = headers.get(name)
        if value is not None:
            return value
    return None


def _format_reset_time(reset_time: Optional[int]) -> str:
    if reset_time is None:
        return "unknown"
    try:
        return datetime.fromtimestamp(reset_time, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
    except (OverflowError, OSError, ValueError):
        return "unknown"


def _log_rate_limit(response: requests.Response) -> None:
    headers = getattr(response, "headers", None)
    remaining = _parse_rate_limit_header(_first_header(headers, _REMAINING_HEADERS))
    if remaining is None:
        logger.debug("No rate limit information available")
        return
    logger.debug(f"Provider API rate-limit remaining: {remaining}")
    if remaining <= RATE_LIMIT_WARNING_THRESHOLD:
        logger.warning(
            f"Provider API rate limit running low: {remaining} requests remaining"
        )


def make_api_request(
    session: requests.Session,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> requests.Response:
    """
    Perform a provider API GET request and classify failures.

    The request is made exactly once; retry policy belongs to the caller.

    Parameters:
        session (requests.Session): Session used for the request; closing it aborts pending work.
        url (str): API URL to request.
        headers (Optional[Dict[str, str]]): Extra headers, typically authentication, merged over the User-Agent.
        params (Optional[Dict[str, Any]]): Query parameters to include in the request.
        timeout (Optional[float]): Request timeout in seconds; if omitted the module default is used.

    Returns:
        requests.Response: The successful HTTP response.

    Raises:
        ReleaseNotFoundError: For HTTP 404 responses.
        AuthenticationError: For HTTP 401 responses.
        RateLimitError: For 403/429 responses whose rate-limit budget is exhausted.
        ProviderTransportError: For any other HTTP error or network failure.
    """
    request_headers = {"User-Agent": get_user_agent()}
    if headers:
        request_headers.update(headers)

    actual_timeout = timeout or DEFAULT_REQUEST_TIMEOUT
    logger.debug(f"Making provider API request: {url}")
    try:
        response = session.get(
            url, headers=request_headers, params=params, timeout=actual_timeout
        )
        response.raise_for_status()
    except requests.HTTPError as e:
        error_response = e.response
        status = error_response.status_code if error_response is not None else None
        if status == 404:
            raise ReleaseNotFoundError(
                "Release not found", endpoint=url, status_code=404
            ) from e
        if status == 401:
            raise AuthenticationError(
                "Provider rejected the API token",
                endpoint=url,
                status_code=401,
                details="check the configured token",
            ) from e
        if status in (403, 429):
            resp_headers = error_response.headers
            remaining = _parse_rate_limit_header(
                _first_header(resp_headers, _REMAINING_HEADERS)
            )
            if remaining == 0 or status == 429:
                reset_time = _parse_rate_limit_header(
                    _first_header(resp_headers, _RESET_HEADERS)
                )
                message = (
                    f"Provider API rate limit exceeded. Resets at "
                    f"{_format_reset_time(reset_time)}. "
                    f"Configure an API token for higher rate limits."
                )
                logger.warning(message)
                raise RateLimitError(
                    message,
                    reset_time=reset_time,
                    remaining=remaining or 0,
                    endpoint=url,
                    status_code=status,
                ) from e
            raise ProviderTransportError(
                "Provider API access forbidden", endpoint=url, status_code=status
            ) from e
        raise ProviderTransportError(
            f"Provider API request failed with HTTP {status}",
            endpoint=url,
            status_code=status,
        ) from e
    except requests.RequestException as e:
        raise ProviderTransportError(
            "Network error talking to provider API", endpoint=url, details=str(e)
        ) from e

    _log_rate_limit(response)
    return response


def create_download_session() -> requests.Session:
    """
    Create a requests session that retries transient download failures.

    Connection errors and the status codes in RETRY_STATUS_FORCELIST are
    retried with exponential backoff, honouring Retry-After headers.
    """
    session = requests.Session()
    retry_strategy: Retry = Retry(
        total=DEFAULT_CONNECT_RETRIES,
        connect=DEFAULT_CONNECT_RETRIES,
        read=DEFAULT_CONNECT_RETRIES,
        status=DEFAULT_CONNECT_RETRIES,
        backoff_factor=DEFAULT_BACKOFF_FACTOR,
        status_forcelist=list(RETRY_STATUS_FORCELIST),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
