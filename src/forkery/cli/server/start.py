"""
forkery server start command.

SUMMARY: Start a dev server on a conflict-free port

Resolves the requested port (asking, reusing an alternative or reclaiming
it according to the conflict policy), spawns ``<package manager> run
<script>`` and streams its output until the server exits or Ctrl+C stops it.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from forkery.cli import (
    OutputFormatter,
    add_framework_arg,
    add_port_arg,
    add_standard_flags,
    get_repo_root,
    setup_logging,
)
from forkery.core.config.domains import PortsConfig
from forkery.core.config.domains.ports import CONFLICT_POLICIES
from forkery.core.dev_server import Framework, Orchestrator, ProjectConfig
from forkery.core.ports.decisions import decision_provider_for_policy

SUMMARY = "Start a dev server on a conflict-free port"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    add_framework_arg(parser)
    add_port_arg(parser, positional=False, required=False)
    parser.add_argument("--script", default="dev", help="package.json script to run (default: dev)")
    parser.add_argument(
        "--package-manager",
        default="npm",
        help="Package manager executable (npm, yarn, pnpm or an absolute path)",
    )
    parser.add_argument(
        "--workspace",
        type=str,
        help="Project directory to run in (default: current directory)",
    )
    parser.add_argument(
        "--no-capture",
        action="store_true",
        help="Let the child write to this terminal; readiness is detected by polling the port",
    )
    parser.add_argument(
        "--policy",
        choices=list(CONFLICT_POLICIES),
        help="Port conflict policy (default: ports.conflict_policy)",
    )
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Extra environment variable for the dev server (repeatable)",
    )
    add_standard_flags(parser)


def _parse_env(pairs: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--env expects KEY=VALUE, got {pair!r}")
        env[key.strip()] = value
    return env


def _wire_events(orchestrator: Orchestrator, formatter: OutputFormatter) -> None:
    if formatter.json_mode:
        orchestrator.on("output", lambda line, stream: formatter.event("output", stream=stream, line=line))
        orchestrator.on("ready", lambda port: formatter.event("ready", port=port))
        orchestrator.on("exit", lambda code: formatter.event("exit", code=code))
        orchestrator.on("error", lambda err: formatter.event("error", **err.to_json_error()))
        return

    def _print_output(line: str, stream: str) -> None:
        print(line, file=sys.stderr if stream == "stderr" else sys.stdout, flush=True)

    orchestrator.on("output", _print_output)
    orchestrator.on("ready", lambda port: print(f"✓ Ready on http://localhost:{port}", flush=True))
    orchestrator.on("error", lambda err: print(f"Error: {err}", file=sys.stderr, flush=True))


def main(args: argparse.Namespace) -> int:
    """Start the dev server and block until it exits or is interrupted."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    repo_root = get_repo_root(args)
    setup_logging(args, repo_root)

    ports = PortsConfig(repo_root=repo_root)
    framework = Framework.parse(args.framework)
    port = args.port or ports.default_port_for(framework.value)
    workspace = Path(args.workspace).resolve() if args.workspace else Path.cwd()
    policy = args.policy or ports.conflict_policy
    interactive = sys.stdin.isatty() and not formatter.json_mode

    config = ProjectConfig(
        framework=framework,
        desired_port=port,
        workspace_path=workspace,
        script=args.script,
        package_manager=args.package_manager,
        env=_parse_env(args.env),
        capture_output=not args.no_capture,
    )

    orchestrator = Orchestrator.from_config(
        decision_provider_for_policy(policy, interactive=interactive),
        repo_root=repo_root,
    )
    _wire_events(orchestrator, formatter)

    with orchestrator:
        handle = orchestrator.start(config)
        for warning in handle.warnings:
            formatter.warning(warning)
        if formatter.json_mode:
            formatter.event(
                "started",
                pid=handle.pid,
                port=handle.bound_port,
                resolution=handle.resolution.to_dict() if handle.resolution else None,
            )
        elif handle.resolution is not None and handle.resolution.changed_port:
            formatter.text(f"Port {port} is busy; using {handle.bound_port}")

        interrupted = False
        try:
            while not handle.wait_for_exit(0.5):
                pass
        except KeyboardInterrupt:
            interrupted = True
            result = orchestrator.stop(handle)
            if formatter.json_mode:
                formatter.event("stopped", **result.to_dict())
            else:
                for w in result.warnings:
                    formatter.warning(str(w))
                formatter.text(f"Stopped dev server on port {result.port}")

    if interrupted:
        return 0
    return 0 if handle.exit_code == 0 else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    register_args(parser)
    cli_args = parser.parse_args()
    sys.exit(main(cli_args))
