from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class ForkeryError(Exception):
    """Base exception for forkery."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigError(ForkeryError, ValueError):
    """Raised when configuration files are unreadable or fail schema validation."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ForkeryError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class PortUnavailableError(ForkeryError, RuntimeError):
    """Raised when every port resolution path is exhausted."""

    def __init__(
        self,
        message: str,
        *,
        port: Optional[int] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if port is not None:
            ctx["port"] = port
        ForkeryError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)
        self.port = port


class ProcessSpawnError(ForkeryError, RuntimeError):
    """Raised when the dev-server child fails to launch or dies before it is ready.

    ``stderr`` carries whatever the child wrote before failing.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Optional[list[str]] = None,
        stderr: str = "",
        exit_code: Optional[int] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if command:
            ctx["command"] = list(command)
        if stderr:
            ctx["stderr"] = stderr
        if exit_code is not None:
            ctx["exit_code"] = exit_code
        ForkeryError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)
        self.command = list(command or [])
        self.stderr = stderr
        self.exit_code = exit_code


class DependencyMissingError(ForkeryError, FileNotFoundError):
    """Raised when a required OS utility or executable is absent."""

    def __init__(self, message: str = "", *, tool: str = "", context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        if tool:
            ctx["tool"] = tool
        ForkeryError.__init__(self, message, context=ctx)
        FileNotFoundError.__init__(self, message)
        self.tool = tool


class UserCancelledError(ForkeryError):
    """Raised when a port conflict decision declines to proceed."""


class RunStateError(ForkeryError, RuntimeError):
    """Raised on an illegal run-state transition or a second concurrent start."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ForkeryError.__init__(self, message, context=context)
        RuntimeError.__init__(self, message)


class ShutdownVerificationWarning(ForkeryError, UserWarning):
    """Non-fatal: the port still looked busy after shutdown cleanup.

    Attached to stop results; never raised by the shutdown path.
    """

    def __init__(self, message: str = "", *, port: Optional[int] = None, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        if port is not None:
            ctx["port"] = port
        ForkeryError.__init__(self, message, context=ctx)
        self.port = port


class ForkeryPathError(ForkeryError, ValueError):
    """Raised when a project root cannot be used."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ForkeryError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "ForkeryError",
    "ConfigError",
    "PortUnavailableError",
    "ProcessSpawnError",
    "DependencyMissingError",
    "UserCancelledError",
    "RunStateError",
    "ShutdownVerificationWarning",
    "ForkeryPathError",
]
