from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import default_config_path, load_config
from .errors import AmbariManagerError, ValidationError
from .playbook import PlaybookLoader, parse_variables
from .runner import ExecutionContext, PlaybookRunner
from .types import PlaybookRun, RemoteResult, Task, TaskResult, TaskState


class Ansi:
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    RESET = "\033[0m"


def colorize(text: str, color: Optional[str]) -> str:
    if not color:
        return text
    if not sys.stdout.isatty() or os.environ.get("NO_COLOR"):
        return text
    return f"{color}{text}{Ansi.RESET}"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run an Ambari playbook against the active cluster")
    parser.add_argument("playbook", type=Path, help="Path to a playbook YAML file")
    parser.add_argument(
        "--vars",
        default="",
        help='Input values as space separated KEY=VALUE pairs, e.g. "BuildNumber=12 Version=2.7"',
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the ambari-manager config file (default: ~/.ambari-manager/config.toml)",
    )
    parser.add_argument("--registry", help="Registry entry to use instead of the configured default")
    parser.add_argument(
        "--max-parallel",
        type=int,
        default=None,
        help="Upper bound on concurrent SSH sessions per task (0 = one per host)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate and resolve hosts without executing")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s %(name)s - %(message)s",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        variables = parse_variables(args.vars)
        playbook = PlaybookLoader().load(args.playbook, variables)
    except ValidationError as exc:
        print(colorize(f"Playbook validation failed: {exc}", Ansi.RED), file=sys.stderr)
        return 1
    print(colorize(f"[Executing playbook: {playbook.name}, file: {args.playbook}]", Ansi.BLUE))

    try:
        cfg = load_config(args.config or default_config_path())
        context = ExecutionContext.from_config(cfg, registry=args.registry, max_parallel=args.max_parallel)
    except AmbariManagerError as exc:
        print(colorize(f"Configuration error: {exc}", Ansi.RED), file=sys.stderr)
        return 1

    runner = PlaybookRunner(playbook, context, dry_run=args.dry_run, progress_callback=print_progress)
    try:
        run = runner.run()
    except Exception as exc:  # noqa: BLE001
        if logging.getLogger().isEnabledFor(logging.DEBUG):
            raise
        print(colorize(f"Execution failed: {exc}", Ansi.RED), file=sys.stderr)
        return 1

    for result in run.results:
        if result.state is TaskState.PENDING:
            continue
        for line in format_task_result(result):
            print(line)

    print(render_summary(run))
    if run.aborted:
        if run.error is not None:
            print(colorize(f"Execution failed: {run.error}", Ansi.RED), file=sys.stderr)
        return 1
    return 0


def print_progress(task: Task) -> None:
    print(colorize(f"{task.type}::{task.label} running...", Ansi.YELLOW), flush=True)


def format_task_result(result: TaskResult) -> list[str]:
    task = result.task
    if result.state is TaskState.ABORTED:
        status, color = "aborted", Ansi.RED
    else:
        status, color = "ok", Ansi.GREEN
    lines = [colorize(f"{task.type}::{task.label} {status} - {result.details}", color)]
    for host in sorted(result.remote_results):
        lines.append(format_remote_result(result.remote_results[host]))
    return lines


def format_remote_result(result: RemoteResult) -> str:
    if result.failed:
        return colorize(f"  {result.host} failed - {result.error}", Ansi.RED)
    rc = "?" if result.exit_status is None else str(result.exit_status)
    color = Ansi.GREEN if result.exit_status in (None, 0) else Ansi.YELLOW
    return colorize(f"  {result.host} (done: {str(result.done).lower()}, rc={rc})", color)


def render_summary(run: PlaybookRun) -> str:
    completed = sum(1 for r in run.results if r.state is TaskState.COMPLETED)
    aborted = sum(1 for r in run.results if r.state is TaskState.ABORTED)
    hosts = set()
    for result in run.results:
        hosts.update(result.remote_results)
    parts = [
        f"Tasks: {len(run.results)}",
        f"Completed: {completed}",
        f"Aborted: {aborted}",
        f"Hosts: {len(hosts)}",
    ]
    text = " | ".join(parts)
    return colorize(text, Ansi.RED if run.aborted else Ansi.GREEN)


if __name__ == "__main__":
    raise SystemExit(main())
