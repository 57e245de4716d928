# --- Standard library imports ---
import sys
import time
import signal
import threading
from typing import Optional, Sequence

# --- Project imports ---
from .agent import VpnWatchdog
from .errors import ConfigError
from .init_wizard import run_init
from .engine import exit_code_for
from .config import Config, load_settings
from .cli import parse_args, settings_overrides
from .logger import get_logger, level_from_verbosity, setup_logging


def install_signal_handlers(stop: threading.Event) -> None:
    """Translate SIGINT/SIGTERM into a stop request for the polling loop."""
    logger = get_logger("main")

    def _handler(signum, _frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

def reload_settings(
    watchdog: VpnWatchdog,
    overrides: dict,
    env_file: Optional[str] = None,
    verbosity: int = 0,
) -> None:
    """
    Re-read env/.env, merge CLI overrides, and apply only if valid and changed.

    An invalid or unreadable reload is logged and the previous settings stay
    in effect. Logging is reconfigured when LOG_LEVEL or LOG_TIMING change.
    """
    logger = get_logger("reload")

    try:
        new_settings = load_settings(env_file).with_overrides(**overrides)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read configuration, keeping previous config: {e}")
        return

    if new_settings == watchdog.settings:
        return

    try:
        new_settings.validate()
    except ConfigError as e:
        logger.error("New configuration is invalid, keeping previous config:")
        for problem in e.errors:
            logger.error(f"  - {problem}")
        return

    old_settings = watchdog.settings
    if (new_settings.log_level, new_settings.log_timing) != (
        old_settings.log_level, old_settings.log_timing
    ):
        setup_logging(
            level=level_from_verbosity(verbosity, new_settings.log_level),
            timing_enabled=new_settings.log_timing,
        )
        logger.info(
            f"Logging reconfigured (level={new_settings.log_level}, "
            f"timing={new_settings.log_timing})"
        )

    watchdog.reload(new_settings)

def main_loop(
    watchdog: VpnWatchdog,
    stop: threading.Event,
    overrides: Optional[dict] = None,
    env_file: Optional[str] = None,
    verbosity: int = 0,
) -> int:
    """
    Supervisor loop: one decision cycle per interval until `stop` is set.

    Responsibilities:
        - Hot-reload configuration before each cycle.
        - Run the cycle; unexpected exceptions are logged, never fatal.
        - Honour exit_on_error by returning the cycle's exit code.
        - Sleep for the remainder of the interval, waking early on stop.

    Returns:
        Process exit code.
    """
    logger = get_logger("main_loop")
    overrides = overrides or {}

    while not stop.is_set():
        reload_settings(watchdog, overrides, env_file, verbosity)
        start = time.monotonic()

        try:
            result = watchdog.run_cycle()
        except Exception as e:
            logger.exception(f"Unhandled exception during run cycle: {e}")
            result = None

        if result is not None:
            logger.info(f"🛜 Cycle outcome [{result.outcome.label}]")
            code = exit_code_for(result)
            if code != Config.EXIT_OK and watchdog.settings.exit_on_error:
                logger.error(f"Exiting on failed cycle (exit code {code})")
                return code

        elapsed = time.monotonic() - start
        remaining = max(0.0, watchdog.settings.cycle_interval - elapsed)
        logger.info(f"💤 Sleeping ... {remaining:.2f} s\n")
        stop.wait(remaining)

    logger.info("Exiting check_vpn run loop")
    return Config.EXIT_OK

def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point: parse flags, configure logging, validate settings, then
    run the init wizard, a single cycle, or the polling loop.
    """
    args = parse_args(argv)
    overrides = settings_overrides(args)
    try:
        settings = load_settings().with_overrides(**overrides)
    except (OSError, ValueError) as e:
        setup_logging(level=level_from_verbosity(args.verbose))
        get_logger("main").error(f"Failed to read configuration: {e}")
        return Config.EXIT_INVALID_CONFIG

    # Setup logging policy
    setup_logging(
        level=level_from_verbosity(args.verbose, settings.log_level),
        timing_enabled=settings.log_timing,
    )
    logger = get_logger("main")

    if args.init:
        run_init(output=args.init_output, no_fetch=args.init_no_fetch)
        return Config.EXIT_OK

    try:
        settings.validate()
    except ConfigError as e:
        logger.error("Configuration validation failed:")
        for problem in e.errors:
            logger.error(f"  - {problem}")
        return Config.EXIT_INVALID_CONFIG

    logger.info(
        f"🚀 Starting check_vpn (interval={settings.cycle_interval}s, "
        f"isp_to_check={settings.isp_to_check!r})"
    )
    logger.debug(f"Python version: {sys.version}")
    for key, value in settings.summary().items():
        logger.debug(f"  {key:<16} {value}")

    watchdog = VpnWatchdog(settings)

    if settings.run_once:
        result = watchdog.run_cycle()
        logger.info(f"🛜 Cycle outcome [{result.outcome.label}]")
        return exit_code_for(result)

    stop = threading.Event()
    install_signal_handlers(stop)
    return main_loop(watchdog, stop, overrides=overrides, verbosity=args.verbose)

if __name__ == "__main__":
    sys.exit(main())
