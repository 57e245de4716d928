import json
import pytest
import requests
import responses
from unittest.mock import call, patch

from check_vpn.config import Config
from check_vpn.http_client import fetch_json, parse_retry_after
from check_vpn.errors import (
    ClientError,
    MalformedBodyError,
    RateLimitedError,
    ResponseTooLargeError,
    ServerError,
    TransportError,
)


URL = "https://ident.example/json"


class FakeStreamedResponse:
    """Minimal stand-in for a streamed requests.Response"""

    def __init__(self, chunks, headers=None, status_code=200):
        self._chunks = chunks
        self.headers = headers or {}
        self.status_code = status_code
        self.chunks_read = 0

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            self.chunks_read += 1
            yield chunk

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


# ========
# FIXTURES
# ========
@pytest.fixture
def mock_sleep():
    with patch("check_vpn.http_client.time.sleep", return_value=None) as mock_sleep:
        yield mock_sleep


# ===========================
# TEST GROUP: Happy Path
# ===========================
@responses.activate
def test_fetch_json_success(mock_sleep):
    responses.add(responses.GET, URL, json={"isp": "Example Net"}, status=200)

    assert fetch_json(URL) == {"isp": "Example Net"}
    assert len(responses.calls) == 1
    assert responses.calls[0].request.headers["User-Agent"] == Config.USER_AGENT
    mock_sleep.assert_not_called()


# ===========================
# TEST GROUP: Retry Matrix
# ===========================
@responses.activate
def test_server_error_then_success(mock_sleep):
    """500 → retry after 500ms → 200"""
    responses.add(responses.GET, URL, status=500)
    responses.add(responses.GET, URL, json={"isp": "Example Net"}, status=200)

    assert fetch_json(URL, retries=2) == {"isp": "Example Net"}
    assert len(responses.calls) == 2
    assert mock_sleep.call_args_list == [call(pytest.approx(0.5))]

@responses.activate
def test_server_error_exhausted(mock_sleep):
    """Persistent 503 → ServerError after every attempt is used"""
    responses.add(responses.GET, URL, status=503)

    with pytest.raises(ServerError) as exc_info:
        fetch_json(URL, retries=2)

    assert exc_info.value.status == 503
    assert str(exc_info.value) == "non-success status: 503"
    assert len(responses.calls) == 2
    assert mock_sleep.call_count == 1

@responses.activate
def test_linear_backoff_grows_per_attempt(mock_sleep):
    responses.add(responses.GET, URL, status=502)

    with pytest.raises(ServerError):
        fetch_json(URL, retries=3)

    assert mock_sleep.call_args_list == [call(pytest.approx(0.5)), call(pytest.approx(1.0))]

@responses.activate
@pytest.mark.parametrize(
    "headers, expected_delay",
    [
        # ✅ Integer seconds honoured
        ({"Retry-After": "3"}, 3.0),

        # ✅ Clamped to the 60s ceiling
        ({"Retry-After": "3600"}, 60.0),

        # ❌ No header → linear backoff
        ({}, 0.5),

        # ❌ HTTP-date form is ignored → linear backoff
        ({"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"}, 0.5),
    ],
)
def test_rate_limited_retry_after(headers, expected_delay, mock_sleep):
    responses.add(responses.GET, URL, status=429, headers=headers)
    responses.add(responses.GET, URL, json={"isp": "Example Net"}, status=200)

    assert fetch_json(URL, retries=2) == {"isp": "Example Net"}
    assert mock_sleep.call_args_list == [call(pytest.approx(expected_delay))]

@responses.activate
def test_rate_limited_exhausted_raises(mock_sleep):
    responses.add(responses.GET, URL, status=429, headers={"Retry-After": "1"})

    with pytest.raises(RateLimitedError) as exc_info:
        fetch_json(URL, retries=1)

    assert exc_info.value.retry_after == 1
    mock_sleep.assert_not_called()

@responses.activate
@pytest.mark.parametrize("status", [400, 403, 404])
def test_client_error_not_retried(status, mock_sleep):
    responses.add(responses.GET, URL, status=status)

    with pytest.raises(ClientError):
        fetch_json(URL, retries=3)

    assert len(responses.calls) == 1
    mock_sleep.assert_not_called()

@responses.activate
def test_transport_error_then_success(mock_sleep):
    responses.add(responses.GET, URL, body=requests.exceptions.ConnectionError("boom"))
    responses.add(responses.GET, URL, json={"isp": "Example Net"}, status=200)

    assert fetch_json(URL, retries=2) == {"isp": "Example Net"}
    assert mock_sleep.call_count == 1

@responses.activate
def test_transport_error_exhausted(mock_sleep):
    responses.add(responses.GET, URL, body=requests.exceptions.ConnectTimeout("slow"))

    with pytest.raises(TransportError) as exc_info:
        fetch_json(URL, retries=2)

    assert "ConnectTimeout" in str(exc_info.value)
    assert mock_sleep.call_count == 1

@responses.activate
def test_retries_below_one_still_attempts_once(mock_sleep):
    responses.add(responses.GET, URL, status=500)

    with pytest.raises(ServerError):
        fetch_json(URL, retries=0)

    assert len(responses.calls) == 1


# ===========================
# TEST GROUP: Response Cap
# ===========================
@responses.activate
def test_declared_too_large_not_retried(mock_sleep):
    body = json.dumps({"isp": "x" * 200})
    responses.add(
        responses.GET, URL, body=body, status=200,
        headers={"Content-Length": str(len(body))},
        content_type="application/json",
    )

    with pytest.raises(ResponseTooLargeError):
        fetch_json(URL, retries=3, max_bytes=64)

    assert len(responses.calls) == 1
    mock_sleep.assert_not_called()

def test_declared_length_rejected_before_reading(mock_sleep):
    """Content-Length over the cap → refuse without touching the body"""
    fake = FakeStreamedResponse([b"{}"], headers={"Content-Length": "10485760"})

    with patch("check_vpn.http_client.requests.get", return_value=fake):
        with pytest.raises(ResponseTooLargeError) as exc_info:
            fetch_json(URL, max_bytes=Config.DEFAULT_MAX_RESPONSE_BYTES)

    assert exc_info.value.size == 10 * 1024 * 1024
    assert str(exc_info.value) == "response too large: 10485760 bytes"
    assert fake.chunks_read == 0

def test_actual_size_enforced_without_header(mock_sleep):
    """No Content-Length → the cap is enforced while streaming"""
    fake = FakeStreamedResponse([b"a" * 40, b"b" * 40, b"c" * 40])

    with patch("check_vpn.http_client.requests.get", return_value=fake):
        with pytest.raises(ResponseTooLargeError) as exc_info:
            fetch_json(URL, max_bytes=64)

    assert exc_info.value.size is None
    assert str(exc_info.value) == "response too large (>64 bytes)"
    assert fake.chunks_read == 2

def test_body_exactly_at_cap_is_accepted(mock_sleep):
    body = json.dumps({"isp": "Example Net"}).encode()
    fake = FakeStreamedResponse([body])

    with patch("check_vpn.http_client.requests.get", return_value=fake):
        assert fetch_json(URL, max_bytes=len(body)) == {"isp": "Example Net"}


# ===========================
# TEST GROUP: Body Decoding
# ===========================
@responses.activate
@pytest.mark.parametrize(
    "body",
    [
        "not json",             # ❌ Not JSON at all
        "",                     # ❌ Empty body
        '["isp", "array"]',     # ❌ JSON, but not an object
        '"just a string"',      # ❌ JSON scalar
    ],
)
def test_malformed_body(body, mock_sleep):
    responses.add(responses.GET, URL, body=body, status=200)

    with pytest.raises(MalformedBodyError):
        fetch_json(URL, retries=3)

    assert len(responses.calls) == 1


# ================================
# TEST GROUP: Retry-After Parsing
# ================================
@pytest.mark.parametrize(
    "value, expected",
    [
        ("5", 5),           # ✅ Plain seconds
        (" 12 ", 12),       # ✅ Whitespace tolerated
        ("0", 0),           # ✅ Zero
        (None, None),       # ❌ Missing
        ("", None),         # ❌ Empty
        ("-1", None),       # ❌ Negative
        ("1.5", None),      # ❌ Fractional
        ("Fri, 31 Dec 1999 23:59:59 GMT", None),  # ❌ HTTP-date
    ],
)
def test_parse_retry_after(value, expected):
    assert parse_retry_after(value) == expected
