"""Decision providers for own-ecosystem port conflicts.

The resolver never prompts by itself; it asks whichever provider it was
built with. Production wires an interactive prompt, headless runs use a
fixed policy.
"""
from __future__ import annotations

import sys
from typing import Callable, Optional, Protocol, TextIO

from forkery.core.process.models import ProcessInfo

from .models import ConflictAction, PortConflictDecision


class DecisionProvider(Protocol):
    def ask_conflict(self, port: int, info: ProcessInfo) -> PortConflictDecision: ...


class AutomaticDecisionProvider:
    """Answers every conflict with the same action."""

    def __init__(self, action: ConflictAction = ConflictAction.USE_ALTERNATIVE) -> None:
        self.action = action

    @classmethod
    def from_policy(cls, policy: str) -> "AutomaticDecisionProvider":
        return cls(ConflictAction(policy))

    def ask_conflict(self, port: int, info: ProcessInfo) -> PortConflictDecision:
        return PortConflictDecision(action=self.action, reason=f"policy: {self.action.value}")


_CHOICES = {
    "1": ConflictAction.USE_ALTERNATIVE,
    "a": ConflictAction.USE_ALTERNATIVE,
    "2": ConflictAction.STOP_OTHER,
    "s": ConflictAction.STOP_OTHER,
    "3": ConflictAction.CANCEL,
    "c": ConflictAction.CANCEL,
}


class PromptDecisionProvider:
    """Asks on the terminal which way to resolve the conflict.

    End of input or an unrecognised answer three times in a row cancels.
    """

    def __init__(
        self,
        *,
        input_fn: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ) -> None:
        self._input = input_fn
        self._output = output

    def _write(self, text: str) -> None:
        print(text, file=self._output or sys.stderr)

    def ask_conflict(self, port: int, info: ProcessInfo) -> PortConflictDecision:
        started = info.started_at.strftime("%Y-%m-%d %H:%M:%S") if info.started_at else "unknown"
        self._write(f"Port {port} is already used by another dev server.")
        self._write(f"  Project: {info.display_name}")
        self._write(f"  Started: {started}")
        self._write(f"  PID:     {info.pid}")
        self._write("  [1] Use Alternative Port  [2] Stop Other Project  [3] Cancel")

        for _ in range(3):
            try:
                answer = self._input("Choice [1/2/3]: ").strip().lower()
            except EOFError:
                break
            action = _CHOICES.get(answer[:1]) if answer else None
            if action is not None:
                return PortConflictDecision(action=action, reason="prompt")
            self._write("Please answer 1, 2 or 3.")
        return PortConflictDecision(action=ConflictAction.CANCEL, reason="no answer")


def decision_provider_for_policy(policy: str, *, interactive: bool) -> DecisionProvider:
    """Provider for a ``ports.conflict_policy`` value.

    ``ask`` prompts when a terminal is attached and otherwise falls back to
    using an alternative port.
    """
    if policy == "ask":
        if interactive:
            return PromptDecisionProvider()
        return AutomaticDecisionProvider(ConflictAction.USE_ALTERNATIVE)
    return AutomaticDecisionProvider.from_policy(policy)


__all__ = [
    "AutomaticDecisionProvider",
    "DecisionProvider",
    "PromptDecisionProvider",
    "decision_provider_for_policy",
]
