# --- Standard library imports ---
import time
import socket
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

# --- Project imports ---
from .config import Config
from .logger import get_logger
from .errors import DnsResolutionError


# Define the logger once for the entire module
logger = get_logger("networking")

# --- Probe defaults ---
DEFAULT_PORTS = (443, 53, 80)   # tried in order when an endpoint has no port
DEFAULT_TIMEOUT_S = 2.0
DEFAULT_RETRIES = 2

@dataclass(frozen=True)
class ProbeConfig:
    """
    Reachability policy for one decision cycle.

    Created once per cycle from Settings and never mutated during a probe.
    """
    endpoints: tuple[str, ...]
    ports: tuple[int, ...] = DEFAULT_PORTS
    timeout: float = DEFAULT_TIMEOUT_S
    retries: int = DEFAULT_RETRIES

    @classmethod
    def from_settings(cls, settings) -> "ProbeConfig":
        return cls(
            endpoints=tuple(settings.connectivity_endpoints),
            ports=tuple(settings.connectivity_ports),
            timeout=settings.connectivity_timeout,
            retries=settings.connectivity_retries,
        )


def split_endpoint(endpoint: str) -> tuple[str, Optional[str]]:
    """
    Split an endpoint into (host, port) where port is None when absent.

    Accepted forms:
        host            → (host, None)
        host:port       → (host, "port")
        host:           → (host, None)     # empty port means no port
        [v6addr]:port   → (v6addr, "port")
        v6addr          → (v6addr, None)   # bare IPv6, more than one colon

    The port is returned unparsed; a bad port surfaces as a resolution
    failure when the candidate is probed.
    """
    ep = endpoint.strip()

    if ep.startswith("["):
        host, _, rest = ep[1:].partition("]")
        if rest.startswith(":") and rest[1:]:
            return host, rest[1:]
        return host, None

    if ep.count(":") == 1:
        host, _, port = ep.partition(":")
        return host, port or None

    return ep, None

def candidate_addresses(
    endpoint: str,
    ports: Sequence[int]
) -> list[tuple[str, str]]:
    """
    Expand one endpoint into the ordered (host, port) candidates to probe.

    An explicit port yields exactly one candidate; the port list is never
    consulted for it.
    """
    host, port = split_endpoint(endpoint)
    if port is not None:
        return [(host, port)]
    return [(host, str(p)) for p in ports]

def try_connect(host: str, port: str, timeout: float) -> bool:
    """
    Resolve host:port and attempt a TCP connect to each resolved address.

    Performs a Layer 4 handshake only (no ICMP, no privileges needed).
    A filtered port and a down host look the same here (both time out).

    Returns:
        True on the first address that accepts the connection, else False.

    Raises:
        DnsResolutionError: If name resolution fails.
    """
    address = f"{host}:{port}"

    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError, OverflowError) as e:
        raise DnsResolutionError(address, str(e)) from e

    for family, socktype, proto, _, sockaddr in infos:
        try:
            with socket.socket(family, socktype, proto) as sock:
                sock.settimeout(timeout)
                sock.connect(sockaddr)
                logger.debug(f"Connected {address} → {sockaddr[0]}")
                return True
        except OSError as e:
            logger.debug(f"Connect to {sockaddr[0]}:{sockaddr[1]} failed ({e})")

    return False

def is_online(
    endpoints: Iterable[str],
    ports: Sequence[int] = DEFAULT_PORTS,
    timeout: float = DEFAULT_TIMEOUT_S,
    retries: int = DEFAULT_RETRIES,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """
    Decide whether the internet is "up" via multi-endpoint TCP probing.

    Endpoints are tried in order; each expands into candidates (explicit
    port, or one per entry in `ports`). Each candidate gets up to `retries`
    attempts (minimum 1) with a linear 200ms × attempt backoff in between.

    Returns:
        True as soon as any candidate accepts a connection.
        False when every endpoint/port/attempt is exhausted (never an error).

    Raises:
        DnsResolutionError: On the first candidate whose name does not
            resolve. Not retried: it points at configuration or the local
            resolver, not at transient unreachability.
    """
    sleep = sleep or time.sleep
    attempts = max(1, retries)

    for endpoint in endpoints:
        for host, port in candidate_addresses(endpoint, ports):
            for attempt in range(attempts):
                if try_connect(host, port, timeout):
                    logger.debug(
                        f"🌐 Reachable via {host}:{port} "
                        f"(attempt {attempt + 1}/{attempts})"
                    )
                    return True

                if attempt + 1 < attempts:
                    sleep(Config.PROBE_BACKOFF_S * (attempt + 1))

            logger.debug(f"Unreachable {host}:{port} after {attempts} attempt(s)")

    return False

def probe(
    config: ProbeConfig,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """Run `is_online` for a ProbeConfig."""
    return is_online(
        config.endpoints,
        ports=config.ports,
        timeout=config.timeout,
        retries=config.retries,
        sleep=sleep,
    )
