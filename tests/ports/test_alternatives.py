from __future__ import annotations

import pytest

from forkery.core.exceptions import PortUnavailableError
from forkery.core.ports import AlternativePortFinder
from helpers.fakes import FakePortAvailabilityChecker
from helpers.io_utils import write_project_config


class TestCandidates:
    def test_framework_table_is_used_in_order(self):
        finder = AlternativePortFinder(FakePortAvailabilityChecker(), alternatives={"vite": [5174, 5175]})
        assert finder.candidates_for(5173, "vite") == [5174, 5175]

    def test_desired_port_is_never_a_candidate(self):
        finder = AlternativePortFinder(FakePortAvailabilityChecker(), alternatives={"next": [3000, 3001]})
        assert finder.candidates_for(3000, "next") == [3001]

    def test_unknown_framework_gets_generic_neighbours(self):
        finder = AlternativePortFinder(FakePortAvailabilityChecker(), alternatives={}, generic_count=3)
        assert finder.candidates_for(9000, "astro") == [9001, 9002, 9003]


class TestFindAlternative:
    def test_returns_first_free_table_entry(self):
        checker = FakePortAvailabilityChecker(busy={5173, 5174})
        finder = AlternativePortFinder(checker, alternatives={"vite": [5174, 5175, 5176]})
        assert finder.find_alternative(5173, "vite") == 5175

    def test_scans_upward_when_table_is_exhausted(self):
        checker = FakePortAvailabilityChecker(busy={3000, 3001, 3002})
        finder = AlternativePortFinder(checker, alternatives={"next": [3001, 3002]}, scan_range=10)
        assert finder.find_alternative(3000, "next") == 3003

    def test_excluded_ports_are_skipped(self):
        checker = FakePortAvailabilityChecker()
        finder = AlternativePortFinder(checker, alternatives={"next": [3001, 3002]})
        assert finder.find_alternative(3000, "next", exclude=[3001]) == 3002

    def test_raises_when_nothing_is_free(self):
        class NothingFree(FakePortAvailabilityChecker):
            def is_available(self, port, timeout=None):
                return False

        finder = AlternativePortFinder(NothingFree(), alternatives={}, generic_count=2, scan_range=2)
        with pytest.raises(PortUnavailableError) as excinfo:
            finder.find_alternative(3000, "generic")
        assert excinfo.value.context["port"] == 3000


def test_from_config_reads_project_overrides(isolated_project_env):
    write_project_config(
        isolated_project_env,
        "ports",
        {"ports": {"alternatives": {"vite": [6000, 6001]}, "fallback_scan_range": 7}},
    )
    finder = AlternativePortFinder.from_config(FakePortAvailabilityChecker(), isolated_project_env)

    assert finder.candidates_for(5173, "vite") == [6000, 6001]
    assert finder.candidates_for(3000, "next") == [3001, 3002, 3003, 3004, 3005]
    assert finder.scan_range == 7
