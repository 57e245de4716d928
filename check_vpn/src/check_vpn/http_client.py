# --- Standard library imports ---
import json
import time
from typing import Callable, Optional

# --- Third-party imports ---
import requests

# --- Project imports ---
from .config import Config
from .logger import get_logger
from .errors import (
    ClientError,
    MalformedBodyError,
    ProviderError,
    RateLimitedError,
    ResponseTooLargeError,
    ServerError,
    TransportError,
)


# Define the logger once for the entire module
logger = get_logger("http_client")

READ_CHUNK_BYTES = 16 * 1024

def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """
    Parse a Retry-After header carrying integer seconds.

    HTTP-date values and anything non-numeric are ignored (None), in which
    case the caller falls back to the regular linear backoff.
    """
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)

def _read_capped(resp: requests.Response, max_bytes: int) -> bytes:
    """
    Read a streamed response body, refusing anything larger than `max_bytes`.

    The declared Content-Length is checked first so oversized bodies are
    rejected before any byte is read; the actual size is enforced while
    reading because the header can be absent or wrong.
    """
    declared = resp.headers.get("Content-Length")
    if declared is not None and declared.strip().isdigit():
        if int(declared) > max_bytes:
            raise ResponseTooLargeError(int(declared), max_bytes)

    buf = bytearray()
    try:
        for chunk in resp.iter_content(chunk_size=READ_CHUNK_BYTES):
            buf.extend(chunk)
            if len(buf) > max_bytes:
                raise ResponseTooLargeError(None, max_bytes)
    except requests.RequestException as e:
        raise TransportError(f"failed to read response body: {e}") from e

    return bytes(buf)

def _check_status(resp: requests.Response) -> None:
    """Map a non-2xx status onto the provider error taxonomy."""
    status = resp.status_code
    if 200 <= status < 300:
        return

    if status == 429:
        raise RateLimitedError(
            status,
            retry_after=parse_retry_after(resp.headers.get("Retry-After")),
        )
    if status >= 500:
        raise ServerError(status)
    raise ClientError(status)

def _get_once(url: str, max_bytes: int, timeout: float) -> dict:
    """
    One GET attempt: status check, capped read, JSON object decode.
    """
    try:
        resp = requests.get(
            url,
            headers={
                "User-Agent": Config.USER_AGENT,
                "Accept": "application/json",
            },
            timeout=timeout,
            stream=True,
        )
    except requests.RequestException as e:
        raise TransportError(f"http request failed: {e.__class__.__name__}: {e}") from e

    with resp:
        _check_status(resp)
        body = _read_capped(resp, max_bytes)

    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedBodyError(f"failed to parse json: {e}") from e

    if not isinstance(data, dict):
        raise MalformedBodyError(
            f"expected a JSON object, got {type(data).__name__}"
        )

    return data

def _backoff_delay(error: ProviderError, attempt: int) -> float:
    """
    Delay before the next attempt (attempt is 0-based).

    429 honours Retry-After (clamped to MAX_RETRY_AFTER_S) when present;
    everything else uses the linear 500ms × attempt backoff.
    """
    if isinstance(error, RateLimitedError) and error.retry_after is not None:
        return float(min(error.retry_after, Config.MAX_RETRY_AFTER_S))
    return Config.HTTP_BACKOFF_S * (attempt + 1)

def fetch_json(
    url: str,
    retries: int = 1,
    max_bytes: int = Config.DEFAULT_MAX_RESPONSE_BYTES,
    timeout: float = Config.API_TIMEOUT,
    sleep: Optional[Callable[[float], None]] = None,
) -> dict:
    """
    GET a JSON object with bounded retries.

    Retry matrix:
        transport failure, 5xx  → retry, 500ms × attempt backoff
        429                     → retry, Retry-After (≤60s) else linear backoff
        other 4xx               → fail immediately
        too large / bad JSON    → fail immediately

    Args:
        url: Endpoint to query.
        retries: Total attempts (minimum 1).
        max_bytes: Response size cap (declared and actual).
        timeout: Per-request client timeout in seconds.
        sleep: Injection point for backoff waits.

    Returns:
        The decoded JSON object.

    Raises:
        ProviderError: The final, already-exhausted failure.
    """
    sleep = sleep or time.sleep
    attempts = max(1, retries)

    for attempt in range(attempts):
        try:
            return _get_once(url, max_bytes, timeout)

        except ProviderError as e:
            if not e.retryable or attempt + 1 >= attempts:
                raise

            delay = _backoff_delay(e, attempt)
            logger.warning(
                f"{url} attempt {attempt + 1}/{attempts} failed ({e}); "
                f"retrying in {delay:.1f}s"
            )
            sleep(delay)

    # Unreachable: the loop either returns or raises
    raise TransportError(f"failed to query {url}")
