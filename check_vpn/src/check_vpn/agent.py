# --- Standard library imports ---
from typing import Optional, Sequence

# --- Project imports ---
from .config import Settings
from .logger import get_logger
from .utils import PhaseTimer
from .networking import ProbeConfig
from .providers import Provider
from .resolver import build_provider_chain
from .engine import CycleResult, decide
from .actions import ActionRunner, SystemActionRunner, parse_action


class VpnWatchdog:
    """
    Watches for the machine's egress falling back to an unwanted network
    (e.g. the VPN dropped and traffic leaves via the carrier ISP) and
    dispatches the configured corrective action when it does.

    Owns the production wiring (provider chain, action runner) for one
    Settings value; each `run_cycle()` builds fresh per-cycle values and
    delegates the decision to the engine. No state is carried between
    cycles apart from the settings themselves.
    """

    def __init__(
        self,
        settings: Settings,
        runner: Optional[ActionRunner] = None,
        providers: Optional[Sequence[Provider]] = None,
    ):
        self.logger = get_logger("agent")
        self.timer = PhaseTimer(self.logger)
        self.runner = runner or SystemActionRunner()

        # Injected providers are kept across reloads (tests, embedding)
        self._fixed_providers = list(providers) if providers is not None else None

        self.settings = settings
        self.providers = self._providers_for(settings)
        self.action = parse_action(settings.action_type, settings.action_arg)

    def _providers_for(self, settings: Settings) -> list[Provider]:
        if self._fixed_providers is not None:
            return list(self._fixed_providers)
        return build_provider_chain(settings)

    def reload(self, settings: Settings) -> None:
        """Swap in new (already validated) settings for subsequent cycles."""
        self.settings = settings
        self.providers = self._providers_for(settings)
        self.action = parse_action(settings.action_type, settings.action_arg)
        self.logger.info("🔁 Configuration reloaded")

    def run_cycle(self) -> CycleResult:
        """
        Run a single decision cycle with the current settings.

        Returns:
            CycleResult: outcome plus any typed failure of the cycle.
        """
        return decide(
            probe_config=ProbeConfig.from_settings(self.settings),
            providers=self.providers,
            watched_identity=self.settings.isp_to_check,
            action=self.action,
            dry_run=self.settings.dry_run,
            runner=self.runner,
            timer=self.timer,
        )
