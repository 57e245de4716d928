# --- Standard library imports ---
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

# --- Third-party imports ---
from dotenv import dotenv_values

# --- Project imports ---
from .errors import ConfigError


VERSION = "0.3.0"

ALLOWED_ACTION_TYPES = ("reboot", "restart-unit", "command")

class Config:
    """Operational constants (NOT user configurable)"""

    # --- Network Policy ---
    API_TIMEOUT = 5   # seconds, per HTTP request
    USER_AGENT = f"check_vpn/{VERSION}"

    # --- Resource bounds ---
    DEFAULT_MAX_RESPONSE_BYTES = 5 * 1024 * 1024   # 5 MiB
    MAX_RETRY_AFTER_S = 60

    # --- Backoff steps (linear: step × attempt) ---
    PROBE_BACKOFF_S = 0.2
    HTTP_BACKOFF_S = 0.5

    # --- Exit codes ---
    EXIT_OK = 0
    EXIT_ACTION_FAILED = 1
    EXIT_INVALID_CONFIG = 2
    EXIT_CONNECTIVITY_DNS = 3
    EXIT_CONNECTIVITY_FAILURE = 4
    EXIT_ISP_FAILURE = 5

    # --- Config file ---
    ENV_FILE = os.getenv("CHECK_VPN_ENV_FILE", ".env")


# --- Env parsing helpers ---
def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, default))
    except (TypeError, ValueError):
        return default

def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, default))
    except (TypeError, ValueError):
        return default

def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")

def _get_list(
    env: Mapping[str, str],
    name: str,
    default: tuple[str, ...]
) -> tuple[str, ...]:
    raw = env.get(name)
    if raw is None:
        return default
    return split_csv([raw])

def split_csv(values) -> tuple[str, ...]:
    """
    Flatten repeated and comma-delimited values into one ordered tuple.

    `["a,b", "c"]` → `("a", "b", "c")`; blank items are dropped.
    """
    items = []
    for value in values or ():
        for part in value.split(","):
            part = part.strip()
            if part:
                items.append(part)
    return tuple(items)

def parse_ports(tokens) -> tuple[int, ...]:
    """Parse port tokens; anything non-numeric becomes -1 so validation can flag it."""
    ports = []
    for token in tokens:
        try:
            ports.append(int(token))
        except (TypeError, ValueError):
            ports.append(-1)
    return tuple(ports)


@dataclass(frozen=True)
class Settings:
    """
    User policy for one or more decision cycles.

    Built from the environment (and an optional .env file), optionally
    overridden by CLI flags, then validated before use. Immutable: a
    reload produces a new instance.
    """

    # --- Scheduling ---
    cycle_interval: int = 60

    # --- Decision policy ---
    isp_to_check: str = "Hutchison 3G UK Ltd"
    action_type: str = "reboot"
    action_arg: str = "/sbin/shutdown -r now"
    dry_run: bool = False
    exit_on_error: bool = False
    run_once: bool = False

    # --- Reachability probing ---
    connectivity_endpoints: tuple[str, ...] = ("8.8.8.8", "google.com")
    connectivity_ports: tuple[int, ...] = (443, 53, 80)
    connectivity_timeout: float = 2.0
    connectivity_retries: int = 2

    # --- Identity providers ---
    http_retries: int = 2
    max_response_bytes: int = Config.DEFAULT_MAX_RESPONSE_BYTES
    enable_ip_api: bool = True
    enable_ifconfig_co: bool = True
    provider_urls: tuple[str, ...] = ()
    custom_json_server: Optional[str] = None
    custom_json_key: Optional[str] = None

    # --- Observability ---
    log_level: str = "INFO"
    log_timing: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from an environment mapping (defaults to os.environ)."""
        env = os.environ if env is None else env
        d = cls()

        return cls(
            cycle_interval=_get_int(env, "CYCLE_INTERVAL", d.cycle_interval),
            isp_to_check=env.get("ISP_TO_CHECK", d.isp_to_check),
            action_type=env.get("VPN_LOST_ACTION_TYPE", d.action_type).strip(),
            action_arg=env.get("VPN_LOST_ACTION_ARG", d.action_arg),
            dry_run=_get_bool(env, "DRY_RUN", d.dry_run),
            exit_on_error=_get_bool(env, "EXIT_ON_ERROR", d.exit_on_error),
            connectivity_endpoints=_get_list(
                env, "CONNECTIVITY_ENDPOINTS", d.connectivity_endpoints
            ),
            connectivity_ports=parse_ports(
                _get_list(
                    env,
                    "CONNECTIVITY_PORTS",
                    tuple(str(p) for p in d.connectivity_ports),
                )
            ),
            connectivity_timeout=_get_float(
                env, "CONNECTIVITY_TIMEOUT", d.connectivity_timeout
            ),
            connectivity_retries=_get_int(
                env, "CONNECTIVITY_RETRIES", d.connectivity_retries
            ),
            http_retries=_get_int(env, "HTTP_RETRIES", d.http_retries),
            max_response_bytes=_get_int(
                env, "MAX_RESPONSE_BYTES", d.max_response_bytes
            ),
            enable_ip_api=_get_bool(env, "ENABLE_IP_API", d.enable_ip_api),
            enable_ifconfig_co=_get_bool(
                env, "ENABLE_IFCONFIG_CO", d.enable_ifconfig_co
            ),
            provider_urls=_get_list(env, "PROVIDER_URLS", d.provider_urls),
            custom_json_server=env.get("CUSTOM_JSON_SERVER") or None,
            custom_json_key=env.get("CUSTOM_JSON_KEY") or None,
            log_level=env.get("LOG_LEVEL", d.log_level).upper(),
            log_timing=_get_bool(env, "LOG_TIMING", d.log_timing),
        )

    def with_overrides(self, **overrides) -> "Settings":
        """
        Return a copy with every non-None override applied (CLI wins).
        """
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")

        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def validate(self) -> None:
        """
        Check every invariant and raise ConfigError listing all violations.
        """
        errors: list[str] = []

        if self.cycle_interval <= 0:
            errors.append("interval must be greater than zero")

        if not self.isp_to_check.strip():
            errors.append("isp_to_check must be a non-empty string")

        if self.action_type not in ALLOWED_ACTION_TYPES:
            errors.append(
                "vpn_lost_action_type must be one of: "
                + ", ".join(ALLOWED_ACTION_TYPES)
            )

        if (
            self.action_type in ("restart-unit", "command")
            and not self.action_arg.strip()
        ):
            errors.append(
                "vpn_lost_action_arg must be provided for restart-unit "
                "and command action types"
            )

        if not self.connectivity_endpoints:
            errors.append("connectivity_endpoints must include at least one endpoint")
        elif any(not ep.strip() for ep in self.connectivity_endpoints):
            errors.append("connectivity_endpoints contains an empty string")

        if not self.connectivity_ports:
            errors.append("connectivity_ports must include at least one port")
        elif any(not 0 < p <= 65535 for p in self.connectivity_ports):
            errors.append("connectivity_ports must be integers between 1 and 65535")

        if self.connectivity_timeout <= 0:
            errors.append("connectivity_timeout must be greater than zero")

        if self.connectivity_retries < 1:
            errors.append("connectivity_retries must be at least 1")

        if self.http_retries < 1:
            errors.append("http_retries must be at least 1")

        if self.max_response_bytes <= 0:
            errors.append("max_response_bytes must be greater than zero")

        if errors:
            raise ConfigError(errors)

    def summary(self) -> dict[str, object]:
        """Structured view for startup diagnostics."""
        return {
            "cycle_interval": self.cycle_interval,
            "isp_to_check": self.isp_to_check,
            "action": f"{self.action_type} {self.action_arg}".strip(),
            "dry_run": self.dry_run,
            "endpoints": ",".join(self.connectivity_endpoints),
            "ports": ",".join(str(p) for p in self.connectivity_ports),
            "timeout_s": self.connectivity_timeout,
            "retries": self.connectivity_retries,
            "http_retries": self.http_retries,
        }


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Load settings from the process environment with .env fallback.

    Process environment wins over the file (python-dotenv convention).
    A missing file is not an error. The file is re-read on every call,
    which is what makes hot reload work.
    """
    path = env_file or Config.ENV_FILE
    file_values = {
        k: v for k, v in dotenv_values(path).items() if v is not None
    }
    return Settings.from_env({**file_values, **os.environ})
