"""OS process inspection, classification and termination."""
from .classifier import Classification, ProcessClassifier
from .inspector import ProcessInspector
from .models import ProcessInfo
from .os_utility import (
    OsProcessUtility,
    PosixProcessUtility,
    ProcessSignal,
    WindowsProcessUtility,
    select_os_utility,
)
from .termination import is_protected_pid, send_audited_signal, terminate_process, wait_for_exit

__all__ = [
    "Classification",
    "OsProcessUtility",
    "PosixProcessUtility",
    "ProcessClassifier",
    "ProcessInfo",
    "ProcessInspector",
    "ProcessSignal",
    "WindowsProcessUtility",
    "is_protected_pid",
    "select_os_utility",
    "send_audited_signal",
    "terminate_process",
    "wait_for_exit",
]
