from __future__ import annotations

import json
import logging
from pathlib import Path

from forkery.core.audit import AUDIT_LOGGER_NAME, audit_event, configure_stdlib_logging
from forkery.core.audit.jsonl import append_jsonl
from helpers.io_utils import write_project_config


def _enable_jsonl(root: Path, enabled: bool = True) -> Path:
    path = root / "audit" / "events.jsonl"
    write_project_config(root, "logging", {"logging": {"audit": {"enabled": enabled, "jsonl_path": "audit/events.jsonl"}}})
    return path


def test_events_append_in_order(isolated_project_env: Path) -> None:
    path = _enable_jsonl(isolated_project_env)

    audit_event("signal.send", repo_root=isolated_project_env, pid=900701, signal="terminate", port=3000)
    audit_event("signal.send", repo_root=isolated_project_env, pid=900702, signal="kill", port=3000)

    events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [e["pid"] for e in events] == [900701, 900702]
    assert all(e["event"] == "signal.send" for e in events)
    assert all("ts" in e and "actor_pid" in e for e in events)


def test_disabled_audit_writes_nothing(isolated_project_env: Path, caplog) -> None:
    path = _enable_jsonl(isolated_project_env, enabled=False)

    with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
        audit_event("signal.send", repo_root=isolated_project_env, pid=900703, signal="kill")

    assert not path.exists()
    assert not [r for r in caplog.records if r.name == AUDIT_LOGGER_NAME]


def test_logger_only_without_jsonl_path(isolated_project_env: Path, caplog) -> None:
    with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER_NAME):
        audit_event("signal.send", repo_root=isolated_project_env, pid=900704, signal="interrupt", reason="stop dev server")

    messages = [r.getMessage() for r in caplog.records if r.name == AUDIT_LOGGER_NAME]
    assert messages == ["signal.send pid=900704 signal=interrupt reason=stop dev server"]


def test_unwritable_jsonl_does_not_raise(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    append_jsonl(path=blocker / "events.jsonl", payload={"event": "signal.send", "path": tmp_path})


def test_jsonl_payload_is_made_json_safe(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    append_jsonl(path=path, payload={"event": "x", "where": tmp_path, "pids": (1, 2)})
    event = json.loads(path.read_text(encoding="utf-8"))
    assert event["where"] == str(tmp_path)
    assert event["pids"] == [1, 2]


def test_stdlib_logging_writes_to_file(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "forkery.log"
    configure_stdlib_logging(log_path=log_file, level="INFO")

    logging.getLogger("forkery.test").info("hello from forkery")
    logging.getLogger("forkery.test").debug("too chatty")

    text = log_file.read_text(encoding="utf-8")
    assert "hello from forkery" in text
    assert "too chatty" not in text
