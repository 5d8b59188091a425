"""Conflict resolution against scripted OS collaborators.

No real processes are touched: the fake OS utility frees a port in the
paired fake checker when its last listener is killed.
"""
from __future__ import annotations

import os

import pytest

from forkery.core.exceptions import DependencyMissingError, PortUnavailableError, UserCancelledError
from forkery.core.ports import (
    AlternativePortFinder,
    ConflictAction,
    ConflictResolver,
    PortConflictDecision,
    ResolutionOutcome,
    ResolverState,
    ViteConfigPortWriter,
)
from forkery.core.process import ProcessClassifier, ProcessInspector, ProcessSignal
from helpers.fakes import (
    FakeOsProcessUtility,
    FakePortAvailabilityChecker,
    ScriptedDecisionProvider,
    dev_server_process,
    foreign_process,
)

ALTERNATIVES = {
    "react": [3001, 3002, 3003, 3004, 3005],
    "next": [3001, 3002, 3003, 3004, 3005],
    "vite": [5174, 5175, 5176, 5177, 5178],
}
PATTERNS = ["npm run dev", "vite", "next dev"]


class SpyInspector(ProcessInspector):
    def __init__(self, os_utility):
        super().__init__(os_utility)
        self.calls = 0

    def inspect(self, port):
        self.calls += 1
        return super().inspect(port)


class SpyClassifier(ProcessClassifier):
    def __init__(self, patterns):
        super().__init__(patterns)
        self.calls = 0

    def classify(self, info):
        self.calls += 1
        return super().classify(info)


def _resolver(checker, utility, provider=None, **kwargs):
    inspector = kwargs.pop("inspector", None) or SpyInspector(utility)
    classifier = kwargs.pop("classifier", None) or SpyClassifier(PATTERNS)
    return ConflictResolver(
        checker=checker,
        inspector=inspector,
        classifier=classifier,
        finder=AlternativePortFinder(checker, alternatives=ALTERNATIVES),
        decision_provider=provider or ScriptedDecisionProvider(),
        os_utility=utility,
        reclaim_grace_seconds=kwargs.pop("reclaim_grace_seconds", 0.05),
        stop_other_grace_seconds=kwargs.pop("stop_other_grace_seconds", 0.05),
        settle_seconds=kwargs.pop("settle_seconds", 0.05),
        **kwargs,
    )


class TestFreePort:
    def test_free_port_returned_unchanged_without_inspection(self):
        checker = FakePortAvailabilityChecker()
        utility = FakeOsProcessUtility(checker=checker)
        resolver = _resolver(checker, utility)

        result = resolver.resolve(5173, "vite")

        assert result.port == 5173
        assert result.outcome is ResolutionOutcome.AVAILABLE
        assert result.changed_port is False
        assert resolver.inspector.calls == 0
        assert resolver.classifier.calls == 0
        assert utility.find_calls == []
        assert utility.signals == []
        assert result.trail == (
            ResolverState.CHECKING_AVAILABILITY,
            ResolverState.AVAILABLE,
            ResolverState.DONE,
        )


class TestOwnEcosystem:
    def test_use_alternative_returns_first_table_entry(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility(
            {3000: [dev_server_process(900001, workspace="/work/demo-app")]}, checker=checker
        )
        provider = ScriptedDecisionProvider(PortConflictDecision(ConflictAction.USE_ALTERNATIVE))
        resolver = _resolver(checker, utility, provider)

        result = resolver.resolve(3000, "react")

        assert result.port == 3001
        assert result.outcome is ResolutionOutcome.ALTERNATIVE
        assert checker.is_available(result.port)
        assert utility.signals == []
        asked_port, asked_info = provider.asked[0]
        assert asked_port == 3000
        assert asked_info.project_name == "demo-app"
        assert asked_info.is_own_ecosystem is True
        assert result.occupant is not None and result.occupant.pid == 900001
        assert ResolverState.NEGOTIATING in result.trail

    def test_use_alternative_skips_busy_table_entries(self):
        checker = FakePortAvailabilityChecker(busy={3000, 3001, 3002})
        utility = FakeOsProcessUtility({3000: [dev_server_process(900002)]}, checker=checker)
        provider = ScriptedDecisionProvider(PortConflictDecision(ConflictAction.USE_ALTERNATIVE))

        result = _resolver(checker, utility, provider).resolve(3000, "next")

        assert result.port == 3003

    def test_provider_suggested_port_is_honoured_when_free(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [dev_server_process(900003)]}, checker=checker)
        provider = ScriptedDecisionProvider(
            PortConflictDecision(ConflictAction.USE_ALTERNATIVE, alternative_port=4321)
        )

        result = _resolver(checker, utility, provider).resolve(3000, "react")

        assert result.port == 4321

    def test_stop_other_terminates_and_reuses_port(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [dev_server_process(900004)]}, checker=checker)
        provider = ScriptedDecisionProvider(PortConflictDecision(ConflictAction.STOP_OTHER))

        result = _resolver(checker, utility, provider).resolve(3000, "react")

        assert result.port == 3000
        assert result.outcome is ResolutionOutcome.STOPPED_OTHER
        assert (900004, ProcessSignal.TERMINATE, False) in utility.signals
        assert ResolverState.FREED in result.trail

    def test_cancel_raises_and_touches_nothing(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [dev_server_process(900005)]}, checker=checker)
        provider = ScriptedDecisionProvider(PortConflictDecision(ConflictAction.CANCEL))

        with pytest.raises(UserCancelledError) as excinfo:
            _resolver(checker, utility, provider).resolve(3000, "react")

        assert excinfo.value.context["port"] == 3000
        assert utility.signals == []

    def test_use_alternative_rewrites_vite_config(self, tmp_path):
        config_file = tmp_path / "vite.config.ts"
        config_file.write_text("export default { server: { port: 5173 } }\n", encoding="utf-8")
        checker = FakePortAvailabilityChecker(busy={5173})
        utility = FakeOsProcessUtility({5173: [dev_server_process(900006, command="vite")]}, checker=checker)
        provider = ScriptedDecisionProvider(PortConflictDecision(ConflictAction.USE_ALTERNATIVE))
        resolver = _resolver(checker, utility, provider, port_config_writer=ViteConfigPortWriter())

        result = resolver.resolve(5173, "vite", tmp_path)

        assert result.port == 5174
        assert "port: 5174" in config_file.read_text(encoding="utf-8")


class TestForeign:
    def test_foreign_occupant_is_reclaimed_and_port_verified(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [foreign_process(900101)]}, checker=checker)
        provider = ScriptedDecisionProvider()

        result = _resolver(checker, utility, provider).resolve(3000, "react")

        assert result.port == 3000
        assert result.outcome is ResolutionOutcome.RECLAIMED
        assert checker.is_available(result.port)
        assert provider.asked == []
        assert utility.signalled_pids == [900101]
        assert ResolverState.FOREIGN in result.trail

    def test_every_foreign_listener_on_the_port_is_reclaimed(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility(
            {3000: [foreign_process(900103), foreign_process(900104)]}, checker=checker
        )

        result = _resolver(checker, utility).resolve(3000, "react")

        assert result.port == 3000
        assert result.outcome is ResolutionOutcome.RECLAIMED
        assert sorted(set(utility.signalled_pids)) == [900103, 900104]
        assert utility.alive == set()

    def test_survivor_falls_back_to_alternative_with_warning(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [foreign_process(900102)]}, checker=checker, survivors={900102})

        result = _resolver(checker, utility).resolve(3000, "react")

        assert result.port == 3001
        assert result.outcome is ResolutionOutcome.FALLBACK_ALTERNATIVE
        assert [sig for _pid, sig, _group in utility.signals] == [ProcessSignal.TERMINATE, ProcessSignal.KILL]
        assert any("still in use" in w for w in result.warnings)
        assert ResolverState.STILL_BUSY in result.trail

    def test_missing_os_utility_takes_foreign_path_without_raising(self):
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility(
            checker=checker, find_error=DependencyMissingError("lsof missing", tool="lsof")
        )

        result = _resolver(checker, utility).resolve(3000, "react")

        assert result.occupant is None
        assert ResolverState.FOREIGN in result.trail
        assert result.port == 3001
        assert result.warnings

    def test_classifier_failure_degrades_to_foreign(self):
        class BrokenClassifier(ProcessClassifier):
            def classify(self, info):
                raise RuntimeError("boom")

        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [dev_server_process(900103)]}, checker=checker)
        provider = ScriptedDecisionProvider()
        resolver = _resolver(checker, utility, provider, classifier=BrokenClassifier(PATTERNS))

        result = resolver.resolve(3000, "react")

        assert provider.asked == []
        assert result.outcome is ResolutionOutcome.RECLAIMED
        assert 900103 in utility.signalled_pids

    def test_own_process_is_never_signalled(self):
        me = foreign_process(os.getpid())
        checker = FakePortAvailabilityChecker(busy={3000})
        utility = FakeOsProcessUtility({3000: [me]}, checker=checker)

        result = _resolver(checker, utility).resolve(3000, "react")

        assert utility.signals == []
        assert result.port == 3001
        assert any("protected" in w for w in result.warnings)

    def test_exhausted_alternatives_raise_port_unavailable(self):
        class AlwaysBusy(FakePortAvailabilityChecker):
            def is_available(self, port, timeout=None):
                self.calls.append(port)
                return False

        checker = AlwaysBusy()
        utility = FakeOsProcessUtility(checker=checker)
        resolver = _resolver(checker, utility)
        resolver.finder = AlternativePortFinder(checker, alternatives=ALTERNATIVES, scan_range=3)

        with pytest.raises(PortUnavailableError):
            resolver.resolve(3000, "react")
