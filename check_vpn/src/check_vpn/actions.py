# --- Standard library imports ---
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

# --- Project imports ---
from .logger import get_logger


logger = get_logger("actions")

class ActionKind(Enum):
    REBOOT = "reboot"
    RESTART_UNIT = "restart-unit"
    COMMAND = "command"

@dataclass(frozen=True)
class Action:
    kind: ActionKind
    argument: str = ""

    def describe(self) -> str:
        if self.kind is ActionKind.REBOOT:
            return "reboot"
        return f"{self.kind.value} {self.argument!r}"


def parse_action(action_type: str, argument: str = "") -> Action:
    """
    Parse an action type and argument into an Action.

    Unknown types are logged and fall back to running `argument` as a
    command.
    """
    try:
        kind = ActionKind(action_type.strip())
    except ValueError:
        logger.warning(
            f"Unknown action type {action_type!r}, "
            f"falling back to command with given arg"
        )
        kind = ActionKind.COMMAND

    if kind is ActionKind.REBOOT:
        return Action(kind)
    return Action(kind, argument)


class ActionRunner(ABC):
    """
    Side-effect boundary for the corrective action.

    `execute` must not touch the system when `dry_run` is True and must
    still report success in that case.
    """

    @abstractmethod
    def execute(self, action: Action, dry_run: bool) -> bool:
        ...


class SystemActionRunner(ActionRunner):
    """
    Production dispatcher backed by systemd (`systemctl`) and `sh -c`.

    Returns:
        True if the action was issued, False otherwise. Never raises for
        ordinary process failures; they are logged instead.
    """

    # Reboot/restart requests return as soon as systemd accepts the job
    SYSTEMCTL_TIMEOUT_S = 30

    def execute(self, action: Action, dry_run: bool) -> bool:
        if dry_run:
            logger.info(f"[dry-run] would execute: {action.describe()}")
            return True

        match action.kind:
            case ActionKind.REBOOT:
                return self._systemctl("reboot")
            case ActionKind.RESTART_UNIT:
                return self._systemctl("restart", action.argument)
            case ActionKind.COMMAND:
                return self._run_command(action.argument)

        return False

    def _systemctl(self, *args: str) -> bool:
        cmd = ["systemctl", *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.SYSTEMCTL_TIMEOUT_S,
            )
        except (OSError, subprocess.SubprocessError):
            logger.exception(f"Failed to run {' '.join(cmd)}")
            return False

        if result.returncode != 0:
            logger.error(
                f"{' '.join(cmd)} exited with {result.returncode}: "
                f"{result.stderr.strip()}"
            )
            return False

        logger.info(f"Requested {' '.join(args)} via systemd")
        return True

    def _run_command(self, command: str) -> bool:
        try:
            result = subprocess.run(["sh", "-c", command])
        except OSError:
            logger.exception(f"Failed to spawn command: {command}")
            return False

        if result.returncode == 0:
            logger.info("Command executed successfully")
        else:
            # Still counts as dispatched; the command ran
            logger.error(f"Command exited with status {result.returncode}")
        return True
