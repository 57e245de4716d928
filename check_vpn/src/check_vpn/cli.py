# --- Standard library imports ---
import argparse
from typing import Optional, Sequence

# --- Project imports ---
from .config import VERSION, ALLOWED_ACTION_TYPES, parse_ports, split_csv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-vpn",
        description=(
            "Detect when internet egress falls back to an unwanted ISP "
            "(e.g. the VPN dropped) and run a corrective action. "
            "Flags override environment/.env settings."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    # --- Decision policy ---
    parser.add_argument("--interval", type=int, help="Seconds between checks")
    parser.add_argument("-i", "--isp-to-check", help="ISP string that indicates the VPN is lost")
    parser.add_argument(
        "-t", "--vpn-lost-action-type",
        help=f"Action when the VPN is lost: {', '.join(ALLOWED_ACTION_TYPES)}",
    )
    parser.add_argument(
        "-a", "--vpn-lost-action-arg",
        help="Unit name for restart-unit, command string for command",
    )
    parser.add_argument("--dry-run", action="store_true", help="Log the action instead of running it")

    # --- Reachability probing ---
    parser.add_argument(
        "--connectivity-endpoint", action="append", dest="connectivity_endpoints",
        metavar="HOST[:PORT]",
        help="Endpoint to probe (repeatable or comma-separated)",
    )
    parser.add_argument(
        "--connectivity-ports", action="append",
        metavar="PORTS",
        help="Ports to try for endpoints without a port, e.g. 443,53",
    )
    parser.add_argument("--connectivity-timeout", type=float, help="TCP connect timeout (seconds)")
    parser.add_argument("--connectivity-retries", type=int, help="Attempts per probe candidate")

    # --- Identity providers ---
    parser.add_argument("--disable-ip-api", action="store_true", help="Disable the ip-api.com provider")
    parser.add_argument("--disable-ifconfig-co", action="store_true", help="Disable the ifconfig.co provider")
    parser.add_argument(
        "--provider-url", action="append", dest="provider_urls",
        metavar="URL",
        help="Custom JSON provider queried before built-ins (repeatable or comma-separated)",
    )
    parser.add_argument("--custom-json-server", metavar="URL", help="Single custom JSON server")
    parser.add_argument("--custom-json-key", metavar="KEY", help="JSON key to read from the custom server")

    # --- Process behavior ---
    parser.add_argument("--run-once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument(
        "--exit-on-error", action="store_true",
        help="Exit with a non-zero code on a failed cycle, even when looping",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")

    # --- Init wizard ---
    parser.add_argument("--init", action="store_true", help="Generate a .env config and exit")
    parser.add_argument("--init-output", metavar="PATH", help="Output path for --init (default ./.env)")
    parser.add_argument("--init-no-fetch", action="store_true", help="Do not detect the current ISP during --init")

    return parser

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)

def settings_overrides(args: argparse.Namespace) -> dict:
    """
    Translate parsed flags into Settings overrides.

    Flags that were not given map to None and leave the env value alone.
    """
    return {
        "cycle_interval": args.interval,
        "isp_to_check": args.isp_to_check,
        "action_type": args.vpn_lost_action_type,
        "action_arg": args.vpn_lost_action_arg,
        "dry_run": True if args.dry_run else None,
        "exit_on_error": True if args.exit_on_error else None,
        "run_once": True if args.run_once else None,
        "connectivity_endpoints": (
            split_csv(args.connectivity_endpoints)
            if args.connectivity_endpoints else None
        ),
        "connectivity_ports": (
            parse_ports(split_csv(args.connectivity_ports))
            if args.connectivity_ports else None
        ),
        "connectivity_timeout": args.connectivity_timeout,
        "connectivity_retries": args.connectivity_retries,
        "enable_ip_api": False if args.disable_ip_api else None,
        "enable_ifconfig_co": False if args.disable_ifconfig_co else None,
        "provider_urls": split_csv(args.provider_urls) if args.provider_urls else None,
        "custom_json_server": args.custom_json_server,
        "custom_json_key": args.custom_json_key,
    }
