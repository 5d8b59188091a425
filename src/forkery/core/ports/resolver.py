"""Port conflict resolution.

States, as recorded in ``ResolutionResult.trail``::

    CHECKING_AVAILABILITY -> AVAILABLE -> DONE
                          -> BUSY -> CLASSIFYING
    CLASSIFYING -> OWN_ECOSYSTEM -> NEGOTIATING
                -> FOREIGN -> RECLAIMING
    NEGOTIATING -> DONE (alternative) | RECLAIMING (stop other) | FAILED (cancel)
    RECLAIMING -> VERIFY_FREED -> FREED -> DONE
                               -> STILL_BUSY -> DONE (fallback alternative)

Own-ecosystem occupants are only touched after the decision provider
agrees. Foreign or unidentifiable occupants are reclaimed without asking;
if the port stays busy the resolver moves on to an alternative port and
records a warning instead of failing.
"""
from __future__ import annotations

import dataclasses
import logging
import time
from pathlib import Path
from typing import AbstractSet, List, Optional

from forkery.core.exceptions import UserCancelledError
from forkery.core.process.classifier import ProcessClassifier
from forkery.core.process.inspector import ProcessInspector
from forkery.core.process.models import ProcessInfo
from forkery.core.process.os_utility import OsProcessUtility
from forkery.core.process.termination import is_protected_pid, terminate_process

from .alternatives import AlternativePortFinder
from .availability import PortAvailabilityChecker
from .decisions import DecisionProvider
from .models import (
    ConflictAction,
    PortConflictDecision,
    ResolutionOutcome,
    ResolutionResult,
    ResolverState,
)
from .port_config import NullPortConfigWriter, PortConfigWriter

logger = logging.getLogger(__name__)

_VERIFY_INTERVAL = 0.1


class ConflictResolver:
    def __init__(
        self,
        *,
        checker: PortAvailabilityChecker,
        inspector: ProcessInspector,
        classifier: ProcessClassifier,
        finder: AlternativePortFinder,
        decision_provider: DecisionProvider,
        os_utility: OsProcessUtility,
        port_config_writer: Optional[PortConfigWriter] = None,
        reclaim_grace_seconds: float = 0.5,
        stop_other_grace_seconds: float = 2.5,
        settle_seconds: float = 1.0,
        protected_pids: AbstractSet[int] = frozenset(),
        repo_root: Optional[Path] = None,
    ) -> None:
        self.checker = checker
        self.inspector = inspector
        self.classifier = classifier
        self.finder = finder
        self.decision_provider = decision_provider
        self.os_utility = os_utility
        self.port_config_writer = port_config_writer or NullPortConfigWriter()
        self.reclaim_grace_seconds = reclaim_grace_seconds
        self.stop_other_grace_seconds = stop_other_grace_seconds
        self.settle_seconds = settle_seconds
        self.protected_pids = frozenset(protected_pids)
        self.repo_root = repo_root

    def resolve(
        self, desired_port: int, framework: str, workspace_path: Optional[Path] = None
    ) -> ResolutionResult:
        """Return a port the dev server can bind, starting from ``desired_port``.

        Raises:
            UserCancelledError: The decision provider chose to cancel.
            PortUnavailableError: No alternative port could be found.
        """
        run = _Run(desired_port)
        run.enter(ResolverState.CHECKING_AVAILABILITY)
        if self.checker.is_available(desired_port):
            run.enter(ResolverState.AVAILABLE)
            return run.done(desired_port, ResolutionOutcome.AVAILABLE)

        run.enter(ResolverState.BUSY)
        run.enter(ResolverState.CLASSIFYING)
        occupant = self._identify_occupant(desired_port)

        if occupant is not None and occupant.is_own_ecosystem:
            run.occupant = occupant
            run.enter(ResolverState.OWN_ECOSYSTEM)
            return self._negotiate(run, occupant, framework, workspace_path)

        run.occupant = occupant
        run.enter(ResolverState.FOREIGN)
        return self._reclaim_foreign(run, occupant, framework)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _identify_occupant(self, port: int) -> Optional[ProcessInfo]:
        try:
            occupant = self.inspector.inspect(port)
            if occupant is None:
                return None
            classification = self.classifier.classify(occupant)
        except Exception as exc:  # noqa: BLE001 - unknown occupants take the foreign path
            logger.warning("Could not classify occupant of port %s, treating as foreign: %s", port, exc)
            return None
        return dataclasses.replace(occupant, is_own_ecosystem=classification.own_ecosystem)

    # ------------------------------------------------------------------
    # Own-ecosystem path
    # ------------------------------------------------------------------

    def _negotiate(
        self,
        run: _Run,
        occupant: ProcessInfo,
        framework: str,
        workspace_path: Optional[Path],
    ) -> ResolutionResult:
        run.enter(ResolverState.NEGOTIATING)
        decision = self.decision_provider.ask_conflict(run.desired_port, occupant)
        logger.info(
            "Port %s held by %s (pid %s): decision %s",
            run.desired_port,
            occupant.display_name,
            occupant.pid,
            decision.action.value,
        )

        if decision.action is ConflictAction.CANCEL:
            run.enter(ResolverState.FAILED)
            raise UserCancelledError(
                f"Start cancelled: port {run.desired_port} is used by {occupant.display_name}",
                context={"port": run.desired_port, "pid": occupant.pid, "reason": decision.reason},
            )

        if decision.action is ConflictAction.USE_ALTERNATIVE:
            port = self._choose_alternative(run.desired_port, framework, decision)
            self._write_port_config(run, workspace_path, framework, port)
            return run.done(port, ResolutionOutcome.ALTERNATIVE)

        run.enter(ResolverState.RECLAIMING)
        self._terminate_all(
            run, [occupant], grace_seconds=self.stop_other_grace_seconds, reason="stop other dev server"
        )
        return self._verify_or_fallback(run, framework, ResolutionOutcome.STOPPED_OTHER)

    def _choose_alternative(self, desired_port: int, framework: str, decision: PortConflictDecision) -> int:
        suggested = decision.alternative_port
        if suggested and suggested != desired_port and self.checker.is_available(suggested):
            return suggested
        return self.finder.find_alternative(desired_port, framework)

    def _write_port_config(
        self, run: _Run, workspace_path: Optional[Path], framework: str, port: int
    ) -> None:
        if workspace_path is None:
            return
        try:
            changed = self.port_config_writer.update_port(Path(workspace_path), framework, port)
        except OSError as exc:
            run.warn(f"Could not update the project's port setting to {port}: {exc}")
            return
        if changed is not None:
            logger.info("Project port setting in %s now %s", changed, port)

    # ------------------------------------------------------------------
    # Foreign path
    # ------------------------------------------------------------------

    def _reclaim_foreign(
        self, run: _Run, first: Optional[ProcessInfo], framework: str
    ) -> ResolutionResult:
        run.enter(ResolverState.RECLAIMING)
        try:
            occupants = self.inspector.inspect_all(run.desired_port)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not enumerate occupants of port %s: %s", run.desired_port, exc)
            occupants = []
        if first is not None and all(o.pid != first.pid for o in occupants):
            occupants.insert(0, first)
        if not occupants:
            run.warn(f"Could not identify the process holding port {run.desired_port}")
        self._terminate_all(run, occupants, grace_seconds=self.reclaim_grace_seconds, reason="reclaim port")
        return self._verify_or_fallback(run, framework, ResolutionOutcome.RECLAIMED)

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def _terminate_all(
        self, run: _Run, occupants: List[ProcessInfo], *, grace_seconds: float, reason: str
    ) -> None:
        for info in occupants:
            if is_protected_pid(info.pid, self.protected_pids):
                run.warn(f"Not terminating protected pid {info.pid} on port {run.desired_port}")
                continue
            gone = terminate_process(
                self.os_utility,
                info.pid,
                grace_seconds=grace_seconds,
                settle_seconds=self.settle_seconds,
                reason=reason,
                port=run.desired_port,
                repo_root=self.repo_root,
            )
            if not gone:
                run.warn(f"Process {info.pid} on port {run.desired_port} survived termination")

    def _verify_or_fallback(
        self, run: _Run, framework: str, freed_outcome: ResolutionOutcome
    ) -> ResolutionResult:
        run.enter(ResolverState.VERIFY_FREED)
        if self._wait_until_free(run.desired_port):
            run.enter(ResolverState.FREED)
            return run.done(run.desired_port, freed_outcome)

        run.enter(ResolverState.STILL_BUSY)
        try:
            port = self.finder.find_alternative(run.desired_port, framework)
        except Exception:
            run.enter(ResolverState.FAILED)
            raise
        run.warn(f"Port {run.desired_port} is still in use after cleanup; using {port} instead")
        return run.done(port, ResolutionOutcome.FALLBACK_ALTERNATIVE)

    def _wait_until_free(self, port: int) -> bool:
        deadline = time.monotonic() + self.settle_seconds
        while True:
            if self.checker.is_available(port):
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(_VERIFY_INTERVAL)


class _Run:
    """Mutable bookkeeping for one ``resolve()`` call."""

    def __init__(self, desired_port: int) -> None:
        self.desired_port = desired_port
        self.occupant: Optional[ProcessInfo] = None
        self.trail: List[ResolverState] = []
        self.warnings: List[str] = []

    def enter(self, state: ResolverState) -> None:
        logger.debug("port %s: %s", self.desired_port, state.value)
        self.trail.append(state)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def done(self, port: int, outcome: ResolutionOutcome) -> ResolutionResult:
        self.enter(ResolverState.DONE)
        return ResolutionResult(
            port=port,
            requested_port=self.desired_port,
            outcome=outcome,
            occupant=self.occupant,
            warnings=tuple(self.warnings),
            trail=tuple(self.trail),
        )


__all__ = ["ConflictResolver"]
