"""JSON-over-HTTP requests with retry, shared by the API clients."""

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from .errors import UpstreamError

logger = logging.getLogger(__name__)

RETRY_DELAYS = [1, 2, 4]  # seconds
FATAL_STATUSES = (400, 401, 403, 404)
RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


def request_json(
    method: str,
    url: str,
    *,
    service: str,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    body: Any = None,
    timeout: float = 30,
    retries: int = 3,
    error_cls: type[UpstreamError] = UpstreamError,
) -> Any:
    """Send a request and decode the JSON response.

    Args:
        method: HTTP method
        url: Endpoint URL without query string
        service: Name used in error messages and logs
        headers: Extra request headers
        params: Query parameters
        body: JSON-serializable request body
        timeout: Socket timeout in seconds
        retries: Retries for 429/5xx, network errors and timeouts
        error_cls: UpstreamError subclass to raise

    Raises:
        UpstreamError: (as error_cls) on HTTP errors, exhausted retries or
            an undecodable response body.
    """
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"
    all_headers = {"Accept": "application/json"}
    data = None
    if body is not None:
        data = json.dumps(body).encode("utf-8")
        all_headers["Content-Type"] = "application/json"
    all_headers.update(headers or {})

    for attempt in range(retries + 1):
        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(req, timeout=timeout) as response:
                raw = response.read()
            break

        except urllib.error.HTTPError as e:
            status = e.code
            error_body = e.read().decode("utf-8", errors="replace")

            if status in FATAL_STATUSES:
                raise error_cls(f"{service} error {status}: {error_body}", retryable=False)

            if status in RETRYABLE_STATUSES:
                if attempt < retries:
                    logger.warning("%s returned %d, retrying (%d/%d)", service, status, attempt + 1, retries)
                    time.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                    continue
                raise error_cls(f"{service} error {status} after retries: {error_body}", retryable=True)

            raise error_cls(f"{service} error {status}: {error_body}", retryable=False)

        except urllib.error.URLError as e:
            if attempt < retries:
                time.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                continue
            raise error_cls(f"{service} network error: {e.reason}", retryable=True)

        except TimeoutError:
            if attempt < retries:
                time.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                continue
            raise error_cls(f"{service} request timed out", retryable=True)

        except OSError as e:
            # Connection reset or closed mid-response
            if attempt < retries:
                logger.warning("%s connection failed: %s, retrying (%d/%d)", service, e, attempt + 1, retries)
                time.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                continue
            raise error_cls(f"{service} connection error: {e}", retryable=True)
    else:
        raise error_cls(f"{service}: max retries exceeded", retryable=True)

    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise error_cls(f"{service} returned invalid JSON: {e}") from e
