"""Dev server lifecycle: spawn, readiness, staged shutdown and orchestration."""
from .events import EVENTS, EventEmitter
from .models import Framework, ProjectConfig, RunHandle, RunState, StopResult, can_transition
from .orchestrator import Orchestrator
from .readiness import ReadinessDetector, ReadinessPoller, ReadinessSettings, ReadyLatch
from .shutdown import ShutdownCoordinator
from .spawner import ProcessSpawner, build_command, build_env

__all__ = [
    "EVENTS",
    "EventEmitter",
    "Framework",
    "Orchestrator",
    "ProcessSpawner",
    "ProjectConfig",
    "ReadinessDetector",
    "ReadinessPoller",
    "ReadinessSettings",
    "ReadyLatch",
    "RunHandle",
    "RunState",
    "ShutdownCoordinator",
    "StopResult",
    "build_command",
    "build_env",
    "can_transition",
]
