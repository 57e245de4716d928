# --- Standard library imports ---
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, Sequence

# --- Project imports ---
from .config import Config
from .telemetry import tlog
from .logger import get_logger
from .utils import PhaseTimer
from .actions import Action, ActionRunner
from .networking import ProbeConfig, probe
from .providers import Identity, Provider
from .resolver import resolve_identity
from .errors import (
    ActionError,
    ChainExhaustedError,
    CheckVpnError,
    DnsResolutionError,
)


logger = get_logger("engine")

class DecisionOutcome(Enum):
    """
    Per-cycle verdict, one per operator-visible state.
    """
    NETWORK_DOWN = ("internet down", "🔴")
    IDENTITY_UNKNOWN = ("identity resolution failed", "🟠")
    VPN_ACTIVE = ("network active (identity differs from watched)", "🟢")
    ACTION_TRIGGERED = ("action triggered", "🔴")
    ACTION_TRIGGERED_DRY_RUN = ("action triggered (dry-run)", "🟡")

    def __init__(self, label: str, emoji: str):
        self.label = label
        self.emoji = emoji

    @property
    def action_taken(self) -> bool:
        return self in (
            DecisionOutcome.ACTION_TRIGGERED,
            DecisionOutcome.ACTION_TRIGGERED_DRY_RUN,
        )

@dataclass(frozen=True)
class CycleResult:
    """
    Outcome of one decision cycle.

    `error` carries the typed failure of the cycle (DNS failure, exhausted
    provider chain, failed action) so the caller can apply its own
    fatal-vs-tolerant policy. Plain unreachability has no error.
    """
    outcome: DecisionOutcome
    identity: Optional[Identity] = None
    error: Optional[CheckVpnError] = None
    detail: Optional[str] = None
    timings_ms: dict[str, float] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.error is not None


Prober = Callable[[ProbeConfig], bool]
Resolver = Callable[[Sequence[Provider]], Identity]

def decide(
    probe_config: ProbeConfig,
    providers: Sequence[Provider],
    watched_identity: str,
    action: Action,
    dry_run: bool,
    runner: ActionRunner,
    prober: Prober = probe,
    resolver: Resolver = resolve_identity,
    timer: Optional[PhaseTimer] = None,
) -> CycleResult:
    """
    Run one decision cycle: probe → resolve → compare → (maybe) dispatch.

    The comparison is an exact, case-sensitive string match. Equality means
    the unwanted path (e.g. the carrier ISP) is in effect and the action is
    dispatched; inequality means the protected path is active.

    Retries happen only inside the prober and the provider HTTP calls; the
    cycle itself is never retried here. Nothing in this function terminates
    the process.
    """
    timer = timer or PhaseTimer(logger)
    timer.start_cycle()

    def finish(result: CycleResult) -> CycleResult:
        timer.end_cycle()
        return replace(result, timings_ms=dict(timer.laps))

    # --- PHASE 1: Reachability gate ---
    try:
        reachable = prober(probe_config)
    except DnsResolutionError as e:
        timer.lap("reachability probe")
        tlog(logger, "🔴", "NETWORK", "DNS FAILURE", primary=e.address,
             meta=e.reason, level=logging.ERROR)
        return finish(CycleResult(DecisionOutcome.NETWORK_DOWN, error=e, detail=str(e)))

    timer.lap("reachability probe")

    if not reachable:
        tlog(logger, "🔴", "NETWORK", "DOWN",
             primary=f"{len(probe_config.endpoints)} endpoint(s)",
             meta="connectivity checks failed", level=logging.ERROR)
        return finish(CycleResult(
            DecisionOutcome.NETWORK_DOWN,
            detail="connectivity checks failed",
        ))

    tlog(logger, "🟢", "NETWORK", "UP")

    # --- PHASE 2: Identity resolution ---
    try:
        identity = resolver(providers)
    except ChainExhaustedError as e:
        timer.lap("identity resolution")
        detail = "; ".join(e.failures) or str(e)
        tlog(logger, "🟠", "IDENTITY", "UNKNOWN", primary=str(e),
             meta=detail, level=logging.ERROR)
        return finish(CycleResult(DecisionOutcome.IDENTITY_UNKNOWN, error=e, detail=detail))

    timer.lap("identity resolution")

    # --- PHASE 3: Compare ---
    if identity.isp != watched_identity:
        tlog(logger, "🟢", "VPN", "ACTIVE", primary=identity.isp)
        return finish(CycleResult(DecisionOutcome.VPN_ACTIVE, identity=identity))

    # --- PHASE 4: Dispatch ---
    tlog(logger, "🔴", "VPN", "LOST", primary=identity.isp,
         meta=f"action={action.describe()} | dry_run={dry_run}",
         level=logging.WARNING)

    dispatched = runner.execute(action, dry_run)
    timer.lap("action dispatch")

    outcome = (
        DecisionOutcome.ACTION_TRIGGERED_DRY_RUN if dry_run
        else DecisionOutcome.ACTION_TRIGGERED
    )

    if not dispatched:
        error = ActionError(f"action failed: {action.describe()}")
        tlog(logger, "🔴", "ACTION", "FAILED", primary=action.describe(),
             level=logging.ERROR)
        return finish(CycleResult(outcome, identity=identity, error=error, detail=str(error)))

    tlog(logger, outcome.emoji, "ACTION", "DISPATCHED", primary=action.describe())
    return finish(CycleResult(outcome, identity=identity))

def exit_code_for(result: CycleResult) -> int:
    """
    Map a cycle result onto the process exit codes used by single-shot
    runs and `exit_on_error` mode.
    """
    if isinstance(result.error, DnsResolutionError):
        return Config.EXIT_CONNECTIVITY_DNS
    if result.outcome is DecisionOutcome.NETWORK_DOWN:
        return Config.EXIT_CONNECTIVITY_FAILURE
    if result.outcome is DecisionOutcome.IDENTITY_UNKNOWN:
        return Config.EXIT_ISP_FAILURE
    if isinstance(result.error, ActionError):
        return Config.EXIT_ACTION_FAILED
    return Config.EXIT_OK
