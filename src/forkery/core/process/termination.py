"""Signal primitives shared by port reclamation and dev-server shutdown.

Every signal is audited (port, PID, signal, reason) before it is sent.
"""
from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import AbstractSet, Optional

from forkery.core.audit import audit_event

from .os_utility import OsProcessUtility, ProcessSignal

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.05


def is_protected_pid(pid: int, protected: AbstractSet[int] = frozenset()) -> bool:
    """True for PIDs that must never be signalled (ourselves, our parent, configured)."""
    return pid <= 1 or pid == os.getpid() or pid == os.getppid() or pid in protected


def wait_for_exit(os_utility: OsProcessUtility, pid: int, timeout: float) -> bool:
    """Poll until ``pid`` is gone or ``timeout`` elapses; True when gone."""
    deadline = time.monotonic() + max(0.0, float(timeout))
    while True:
        if not os_utility.is_alive(pid):
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(_POLL_INTERVAL)


def send_audited_signal(
    os_utility: OsProcessUtility,
    pid: int,
    sig: ProcessSignal,
    *,
    reason: str,
    port: Optional[int] = None,
    group: bool = False,
    repo_root: Optional[Path] = None,
) -> bool:
    audit_event(
        "signal.send",
        repo_root=repo_root,
        port=port,
        pid=pid,
        signal=sig.value,
        group=group,
        reason=reason,
    )
    delivered = os_utility.send_signal(pid, sig, group=group)
    if not delivered:
        logger.debug("Signal %s to pid %s was not delivered", sig.value, pid)
    return delivered


def terminate_process(
    os_utility: OsProcessUtility,
    pid: int,
    *,
    grace_seconds: float,
    reason: str,
    port: Optional[int] = None,
    settle_seconds: float = 1.0,
    group: bool = False,
    protected: AbstractSet[int] = frozenset(),
    repo_root: Optional[Path] = None,
) -> bool:
    """Terminate ``pid`` gracefully, then forcefully after ``grace_seconds``.

    Returns True when the process is gone afterwards. Protected PIDs are
    never signalled and report False.
    """
    if is_protected_pid(pid, protected):
        logger.warning("Refusing to signal protected pid %s on port %s", pid, port)
        return False
    if not os_utility.is_alive(pid):
        return True

    send_audited_signal(
        os_utility, pid, ProcessSignal.TERMINATE, reason=reason, port=port, group=group, repo_root=repo_root
    )
    if wait_for_exit(os_utility, pid, grace_seconds):
        return True

    send_audited_signal(
        os_utility, pid, ProcessSignal.KILL, reason=f"{reason} (escalated)", port=port, group=group, repo_root=repo_root
    )
    return wait_for_exit(os_utility, pid, settle_seconds)


__all__ = ["is_protected_pid", "send_audited_signal", "terminate_process", "wait_for_exit"]
