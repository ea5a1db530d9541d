# src/sluice/plugins/sources/http.py
"""HTTP helpers shared by the REST, GraphQL and remote file sources.

Classification lives here so that every source assigns ``retryable`` the
same way, once, at the point the failure is observed:

    Retryable:     429, every 5xx, any transport failure (connect, read, timeout)
    Not retryable: every other 4xx (408 included), unparseable bodies
"""

from __future__ import annotations

import json
import math
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import httpx

from sluice.contracts import ErrorCode, SourceError

# Status codes outside 5xx that are worth retrying
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429})


def is_retryable_status(status_code: int) -> bool:
    """429 and all 5xx are retryable. Every other status is terminal."""
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code <= 599


def classify_status(response: httpx.Response) -> SourceError:
    """Turn a non-2xx response into one HTTP_ERROR."""
    return SourceError(
        code=ErrorCode.HTTP_ERROR,
        message=f"HTTP {response.status_code}: {response.reason_phrase}",
        retryable=is_retryable_status(response.status_code),
        details={"status": response.status_code, "url": redact_url(str(response.request.url))},
    )


def classify_transport_error(error: Exception) -> SourceError:
    """Turn an exception raised while sending a request into one retryable error.

    httpx timeouts (connect, read, write, pool) become TIMEOUT. Anything
    else, including non-httpx exceptions raised inside a fetch loop, becomes
    FETCH_ERROR.
    """
    if isinstance(error, httpx.TimeoutException):
        return SourceError(
            code=ErrorCode.TIMEOUT,
            message=f"Request timed out: {error}" if str(error) else "Request timed out",
            retryable=True,
        )
    return SourceError(
        code=ErrorCode.FETCH_ERROR,
        message=str(error) or type(error).__name__,
        retryable=True,
        details={"error_type": type(error).__name__},
    )


def body_parse_error(message: str) -> SourceError:
    """A 2xx response whose body could not be decoded. Never retryable."""
    return SourceError(code=ErrorCode.PARSE_ERROR, message=message, retryable=False)


def _contains_non_finite(obj: Any) -> bool:
    """Recursively check if a parsed JSON value contains NaN or Infinity."""
    if isinstance(obj, float):
        return math.isnan(obj) or math.isinf(obj)
    if isinstance(obj, dict):
        return any(_contains_non_finite(v) for v in obj.values())
    if isinstance(obj, list):
        return any(_contains_non_finite(v) for v in obj)
    return False


def parse_json_strict(text: str) -> tuple[Any, str | None]:
    """Parse a JSON response body with strict rejection of NaN/Infinity.

    Returns:
        Tuple of (parsed_value, error_message)
        - On success: (parsed_value, None)
        - On failure: (None, error_message)
    """
    try:
        parsed = json.loads(text)
        non_finite = _contains_non_finite(parsed)
    except ValueError as e:
        return None, f"Invalid JSON response body: {e}"
    except RecursionError:
        return None, "Invalid JSON response body: nesting exceeds the maximum supported depth"

    if non_finite:
        return None, "JSON contains non-finite values (NaN or Infinity)"

    return parsed, None


def join_url(base_url: str, endpoint: str) -> str:
    """Join base_url with endpoint, handling slash combinations.

    An absolute endpoint URL is returned unchanged.
    """
    if endpoint.startswith(("http://", "https://")):
        return endpoint
    if not endpoint:
        return base_url
    return f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"


def redact_url(url: str) -> str:
    """Strip userinfo and query string from a URL for logs and error details.

    Query strings may carry api keys (api_key auth in query mode).
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    netloc = f"{host}:{parts.port}" if parts.port else host
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def new_client(timeout: float) -> httpx.Client:
    """Client for one fetch() call. Requests are issued sequentially on it."""
    return httpx.Client(timeout=timeout, follow_redirects=True)
