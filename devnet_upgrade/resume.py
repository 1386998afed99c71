"""
Resume orchestration for interrupted upgrades.

ResumeFacade ties the store, detector and transitioner together: it loads
the saved state under the upgrade lock, reconciles the saved stage with what
the chain reports, and hands the reconciled state to an UpgradeExecutor to
continue from the right step.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from structlog.types import FilteringBoundLogger

from .errors import DetectionError, InvalidTransitionError, StateCorruptionError
from .logging.config import get_reconcile_logger, log_reconciliation
from .persistence.state_store import StateStore
from .state.detector import StateDetector
from .state.models import UpgradeStage, UpgradeState
from .state.transitions import StateTransitioner

CLEAR_STATE_HINT = "use --clear-state to remove"

MSG_STATE_CLEARED = "State cleared successfully"
MSG_CURRENT_STATE = "Current upgrade state"
MSG_FORCE_RESTART = "Starting fresh (--force-restart)"
MSG_NO_STATE = "No existing upgrade state found"
MSG_RESUMED = "Upgrade resumed and completed"


@dataclass
class ResumeOptions:
    """Operator choices for a resume run."""
    force_restart: bool = False
    resume_from: Optional[UpgradeStage] = None
    clear_state: bool = False
    show_status: bool = False


@dataclass
class ResumeResult:
    """Outcome of a resume run."""
    resumed: bool
    state: Optional[UpgradeState] = None
    upgrade_output: Any = None
    message: str = ""


@dataclass
class ExecuteUpgradeInput:
    """Parameters handed through to the upgrade executor."""
    upgrade_name: str
    mode: str
    skip_governance: bool = False
    target_binary: str = ""
    target_image: str = ""
    target_version: str = ""
    upgrade_height: int = 0
    home_dir: str = ""


class UpgradeExecutor(ABC):
    """Runs the remaining upgrade steps starting from a reconciled state."""

    @abstractmethod
    def execute(self, upgrade_input: ExecuteUpgradeInput, state: UpgradeState) -> Any:
        """
        Continue the upgrade from state.stage.

        Returns:
            Executor-specific output, carried in ResumeResult.upgrade_output
        """
        pass


class ResumeFacade:
    """Entry point for resume, status, clear and reconcile operations."""

    def __init__(
        self,
        store: StateStore,
        detector: StateDetector,
        transitioner: StateTransitioner,
        executor: Optional[UpgradeExecutor] = None,
        logger: Optional[FilteringBoundLogger] = None
    ):
        self.store = store
        self.detector = detector
        self.transitioner = transitioner
        self.executor = executor
        self.logger = logger or get_reconcile_logger(__name__)

    def check_state(self) -> Optional[UpgradeState]:
        """Load the persisted state without locking."""
        return self.store.load_state()

    def get_status(self) -> Optional[UpgradeState]:
        """Current upgrade state for display, or None if nothing is tracked."""
        return self.store.load_state()

    def clear_state(self) -> None:
        """
        Delete the persisted state.

        Takes the upgrade lock so state is never removed under a live upgrade.

        Raises:
            UpgradeInProgressError: If another process holds the upgrade lock
        """
        with self.store.locked():
            self.store.delete_state()

    def reconcile(self, cancel: Optional[threading.Event] = None) -> Optional[UpgradeState]:
        """
        Bring the saved stage in line with the chain without resuming.

        Returns:
            The possibly updated state, or None if no state is saved
        """
        with self.store.locked():
            state = self.store.load_state()
            if state is None:
                return None
            self._reconcile_stage(state, "reconciliation", cancel)
            return state

    def resume(
        self,
        upgrade_input: ExecuteUpgradeInput,
        options: Optional[ResumeOptions] = None,
        cancel: Optional[threading.Event] = None
    ) -> ResumeResult:
        """
        Resume an interrupted upgrade from the stage the chain has reached.

        Args:
            upgrade_input: Parameters passed on to the executor
            options: Operator choices; defaults to a plain resume
            cancel: Optional event that aborts chain sampling

        Returns:
            ResumeResult describing what happened

        Raises:
            StateCorruptionError: If the saved state is unreadable or invalid
            UpgradeInProgressError: If another process holds the upgrade lock
            InvalidTransitionError: If resume_from is not reachable
            RuntimeError: If no executor is configured when one is needed
        """
        options = options or ResumeOptions()

        if options.clear_state:
            self.clear_state()
            return ResumeResult(resumed=False, message=MSG_STATE_CLEARED)

        if options.show_status:
            state = self._load_checked()
            return ResumeResult(resumed=False, state=state, message=MSG_CURRENT_STATE)

        if options.force_restart:
            self.clear_state()
            self.logger.info("Cleared previous upgrade state for a fresh start")
            return ResumeResult(resumed=False, message=MSG_FORCE_RESTART)

        with self.store.locked():
            state = self._load_checked()
            if state is None:
                return ResumeResult(resumed=False, message=MSG_NO_STATE)

            try:
                self.store.validate_state(state)
            except StateCorruptionError as e:
                raise StateCorruptionError(f"{e.reason} ({CLEAR_STATE_HINT})") from e

            if state.stage.is_terminal:
                return ResumeResult(
                    resumed=False,
                    state=state,
                    message=f"Previous upgrade is in terminal state: {state.stage}"
                )

            if options.resume_from is not None:
                self._apply_resume_from(state, options.resume_from)
            else:
                self._reconcile_stage(state, "detected from chain state", cancel)

            terminal_message = self._terminal_message(state)
            if terminal_message:
                return ResumeResult(resumed=False, state=state, message=terminal_message)

            if self.executor is None:
                raise RuntimeError("no upgrade executor configured")

            self.logger.info(
                "Resuming upgrade",
                upgrade_name=state.upgrade_name,
                stage=str(state.stage)
            )
            output = self.executor.execute(upgrade_input, state)

            return ResumeResult(
                resumed=True,
                state=state,
                upgrade_output=output,
                message=MSG_RESUMED
            )

    def _load_checked(self) -> Optional[UpgradeState]:
        try:
            return self.store.load_state()
        except StateCorruptionError as e:
            raise StateCorruptionError(f"{e.reason} ({CLEAR_STATE_HINT})") from e

    def _reconcile_stage(
        self,
        state: UpgradeState,
        reason: str,
        cancel: Optional[threading.Event]
    ) -> None:
        """Move state to the detected stage when that is a single legal hop."""
        saved_stage = state.stage
        try:
            detected_stage = self.detector.detect_current_stage(state, cancel)
        except DetectionError as e:
            self.logger.warning(
                "Stage detection failed, using saved state",
                upgrade_name=state.upgrade_name,
                error=str(e)
            )
            return

        if detected_stage == saved_stage:
            log_reconciliation(self.logger, state.upgrade_name, saved_stage, detected_stage, applied=False)
            return

        if not self.transitioner.can_transition(saved_stage, detected_stage):
            log_reconciliation(
                self.logger, state.upgrade_name, saved_stage, detected_stage,
                applied=False,
                context={"reason": "not a single legal transition"}
            )
            return

        self.transitioner.transition_to(state, detected_stage, reason)
        self.store.save_state(state)
        log_reconciliation(self.logger, state.upgrade_name, saved_stage, detected_stage, applied=True)

    def _apply_resume_from(self, state: UpgradeState, resume_from: UpgradeStage) -> None:
        """Operator override of the detected stage."""
        resume_from = UpgradeStage(resume_from)
        if state.stage != resume_from:
            if not self.transitioner.can_transition(state.stage, resume_from):
                raise InvalidTransitionError(state.stage, resume_from)
            self.transitioner.transition_to(state, resume_from, "manual override via --resume-from")
            self.store.save_state(state)

        self.logger.info(
            "Resuming from stage (manual override)",
            upgrade_name=state.upgrade_name,
            stage=str(resume_from)
        )

    @staticmethod
    def _terminal_message(state: UpgradeState) -> Optional[str]:
        if state.stage == UpgradeStage.PROPOSAL_REJECTED:
            return "Governance proposal was rejected during interruption"
        if state.stage == UpgradeStage.FAILED:
            return f"Upgrade failed: {state.error}"
        if state.stage == UpgradeStage.COMPLETED:
            return "Upgrade already completed"
        return None
