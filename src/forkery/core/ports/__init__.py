"""Port availability, alternative selection and conflict resolution."""
from .alternatives import AlternativePortFinder
from .availability import PortAvailabilityChecker, ephemeral_port
from .decisions import (
    AutomaticDecisionProvider,
    DecisionProvider,
    PromptDecisionProvider,
    decision_provider_for_policy,
)
from .models import (
    ConflictAction,
    PortConflictDecision,
    ResolutionOutcome,
    ResolutionResult,
    ResolverState,
)
from .port_config import NullPortConfigWriter, PortConfigWriter, ViteConfigPortWriter
from .resolver import ConflictResolver

__all__ = [
    "AlternativePortFinder",
    "AutomaticDecisionProvider",
    "ConflictAction",
    "ConflictResolver",
    "DecisionProvider",
    "NullPortConfigWriter",
    "PortAvailabilityChecker",
    "PortConfigWriter",
    "PortConflictDecision",
    "PromptDecisionProvider",
    "ResolutionOutcome",
    "ResolutionResult",
    "ResolverState",
    "ViteConfigPortWriter",
    "decision_provider_for_policy",
    "ephemeral_port",
]
