# --- Standard library imports ---
from typing import Optional


class CheckVpnError(Exception):
    """Base class for every failure raised by check_vpn."""


# --- Configuration ---
class ConfigError(CheckVpnError):
    """
    One or more configuration values are invalid.

    All problems are collected so the operator sees them in one pass.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


# --- Reachability ---
class DnsResolutionError(CheckVpnError):
    """Name lookup failed for a probe candidate (never retried)."""

    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"DNS resolution failed for {address}: {reason}")


# --- Identity providers ---
class ProviderError(CheckVpnError):
    """A single identity provider call failed."""

    retryable = False


class TransportError(ProviderError):
    """Connection or IO failure below HTTP."""

    retryable = True


class HTTPStatusError(ProviderError):
    def __init__(self, status: int):
        self.status = status
        super().__init__(f"non-success status: {status}")


class ServerError(HTTPStatusError):
    retryable = True


class RateLimitedError(HTTPStatusError):
    retryable = True

    def __init__(self, status: int = 429, retry_after: Optional[int] = None):
        super().__init__(status)
        self.retry_after = retry_after


class ClientError(HTTPStatusError):
    retryable = False


class ResponseTooLargeError(ProviderError):
    def __init__(self, size: Optional[int], limit: int):
        self.size = size
        self.limit = limit
        if size is None:
            super().__init__(f"response too large (>{limit} bytes)")
        else:
            super().__init__(f"response too large: {size} bytes")


class MalformedBodyError(ProviderError):
    """Body is not a JSON object or lacks every recognized identity field."""


class ChainExhaustedError(CheckVpnError):
    """
    Every provider in the chain failed.

    The message is the last recorded failure; `failures` keeps all of them
    (`"<provider>: <reason>"`) for diagnostics.
    """

    def __init__(self, failures: list[str]):
        self.failures = list(failures)
        if self.failures:
            super().__init__(self.failures[-1])
        else:
            super().__init__("no providers configured")


# --- Actions ---
class ActionError(CheckVpnError):
    """The configured corrective action could not be carried out."""
