# --- Standard library imports ---
import os
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

# --- Third-party imports ---
from dotenv import set_key

# --- Project imports ---
from .config import Settings
from .logger import get_logger
from .errors import ChainExhaustedError
from .resolver import resolve_identity
from .providers import IfconfigCoProvider, IpApiProvider, Provider


logger = get_logger("init_wizard")

PLACEHOLDER_ISP = "Your ISP Here"

DEFAULT_ACTION_ARGS = {
    "restart-unit": "openvpn-client@myvpn.service",
    "command": "/usr/local/bin/reconnect_vpn.sh",
}

def is_interactive() -> bool:
    """Prompt only on a TTY, and never under CI or when explicitly disabled."""
    if os.getenv("CI") or os.getenv("CHECK_VPN_INIT_NO_PROMPT"):
        return False
    return sys.stdin.isatty()

def _prompt(interactive: bool, ask: Callable[[str], str], label: str, default: str) -> str:
    if not interactive:
        return default
    answer = ask(f"{label} [{default}]: ").strip()
    return answer or default

def detect_isp(providers: Optional[Sequence[Provider]] = None) -> str:
    """Best-effort ISP detection; falls back to a placeholder."""
    chain = providers if providers is not None else [
        IpApiProvider(),
        IfconfigCoProvider(),
    ]
    try:
        return resolve_identity(chain).isp
    except ChainExhaustedError as e:
        logger.warning(f"ISP detection failed ({e}); using placeholder")
        return PLACEHOLDER_ISP

def run_init(
    output: Optional[str] = None,
    no_fetch: bool = False,
    interactive: Optional[bool] = None,
    providers: Optional[Sequence[Provider]] = None,
    ask: Callable[[str], str] = input,
) -> Path:
    """
    Generate a starter .env file for check_vpn.

    Run this while the VPN is DOWN: the detected ISP is the one that
    should trigger the action.

    Returns:
        Path of the written file.
    """
    interactive = is_interactive() if interactive is None else interactive
    defaults = Settings()

    detected = PLACEHOLDER_ISP if no_fetch else detect_isp(providers)

    isp = _prompt(interactive, ask, "ISP to watch for (vpn lost)", detected)
    interval = _prompt(interactive, ask, "Interval seconds", str(defaults.cycle_interval))
    action = _prompt(interactive, ask, "Action type (reboot|restart-unit|command)", "restart-unit")
    action_arg = ""
    if action in DEFAULT_ACTION_ARGS:
        action_arg = _prompt(interactive, ask, "Action argument", DEFAULT_ACTION_ARGS[action])

    values = {
        "CYCLE_INTERVAL": interval if interval.isdigit() else str(defaults.cycle_interval),
        "ISP_TO_CHECK": isp,
        "VPN_LOST_ACTION_TYPE": action,
        "VPN_LOST_ACTION_ARG": action_arg,
        "DRY_RUN": "false",
        "EXIT_ON_ERROR": "false",
        "CONNECTIVITY_ENDPOINTS": ",".join(defaults.connectivity_endpoints),
        "CONNECTIVITY_PORTS": "443,53",
        "CONNECTIVITY_TIMEOUT": str(int(defaults.connectivity_timeout)),
        "CONNECTIVITY_RETRIES": str(defaults.connectivity_retries),
        "ENABLE_IP_API": "true",
        "ENABLE_IFCONFIG_CO": "true",
    }

    path = Path(output or ".env")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()
    for key, value in values.items():
        set_key(str(path), key, value)

    logger.info(f"📝 Wrote {path}")
    return path
