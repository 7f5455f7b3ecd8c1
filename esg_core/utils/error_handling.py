"""
Error handling utilities for data-source HTTP calls.

Shared by the FMP client: decide whether a failure is an upstream API
problem (rate limit, auth, plan restriction) and format consistent log lines.
"""

from __future__ import annotations
from typing import Optional

import httpx


# Keywords that indicate rate limits, plan restrictions or authentication issues
API_ERROR_KEYWORDS = [
    'rate limit',
    '429',
    'too many requests',
    'limit reach',
    'quota',
    '403',
    '401',
    '402',
    'payment required',
    'premium',
    'exclusive endpoint',
    'invalid api key',
    'timeout',
    'unauthorized',
    'forbidden',
]

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
NON_RETRYABLE_STATUS_CODES = {401, 402, 403}


def _status_code(exception: BaseException) -> Optional[int]:
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code
    return None


def is_api_error(exception: BaseException) -> bool:
    """
    Check if an exception is an upstream API error (rate limit, auth, plan)
    rather than a bug in our own handling.

    Examples:
        >>> try:
        ...     response.raise_for_status()
        ... except httpx.HTTPStatusError as e:
        ...     if is_api_error(e):
        ...         logger.warning(format_api_error_message("FMP", symbol="AAPL", error=e))
    """
    status = _status_code(exception)
    if status is not None and (status in RETRYABLE_STATUS_CODES or status in NON_RETRYABLE_STATUS_CODES):
        return True
    if isinstance(exception, httpx.TimeoutException):
        return True
    error_str = str(exception).lower()
    return any(keyword in error_str for keyword in API_ERROR_KEYWORDS)


def should_retry_error(exception: BaseException) -> bool:
    """
    Rate limits, 5xx and timeouts are retryable; authentication and plan
    restrictions (401/402/403) are not.
    """
    status = _status_code(exception)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES
    if isinstance(exception, (httpx.TimeoutException, httpx.NetworkError)):
        return True

    error_str = str(exception).lower()
    if any(k in error_str for k in ['401', '402', '403', 'unauthorized', 'forbidden', 'payment required']):
        return False
    return any(k in error_str for k in ['rate limit', '429', 'too many requests', 'timeout'])


def format_api_error_message(
    source: str,
    symbol: Optional[str] = None,
    endpoint: Optional[str] = None,
    error: Optional[BaseException] = None,
    additional_info: Optional[str] = None,
) -> str:
    """
    Format a standardized data-source error message.

    Examples:
        >>> format_api_error_message("FMP", symbol="AAPL", endpoint="quote", additional_info="empty response")
        '[FMP] symbol=AAPL endpoint=quote empty response'
    """
    parts = [f"[{source}]"]

    if symbol:
        parts.append(f"symbol={symbol}")
    if endpoint:
        parts.append(f"endpoint={endpoint}")

    if error is not None:
        status = _status_code(error)
        if status is not None:
            parts.append(f"status={status}")
        parts.append(f"error: {error}")

    if additional_info:
        parts.append(additional_info)

    return " ".join(parts)
