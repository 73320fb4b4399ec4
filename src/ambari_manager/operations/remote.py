from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .base import Operation, OperationResult
from ..errors import LocalIOError, TransportError
from ..filters import HostFilter
from ..types import RemoteResult, Targeting, Task, TaskType

if TYPE_CHECKING:
    from ..runner import ExecutionContext

logger = logging.getLogger(__name__)


def _target_hosts(hosts: Optional[frozenset[str]], context: "ExecutionContext") -> frozenset[str]:
    # Agent-only tasks skip filtering, so the remote executor targets every host.
    if hosts is None:
        return HostFilter(context.topology).resolve(Targeting())
    return hosts


def _raise_on_failures(action: str, results: dict[str, RemoteResult]) -> None:
    failed = sorted(host for host, result in results.items() if result.failed)
    if failed:
        reasons = "; ".join(results[host].error or "" for host in failed)
        raise TransportError(f"{action} failed on {len(failed)} host(s): {reasons}", failed, results)


class RemoteCommandOperation(Operation):
    """Run a shell command on every targeted agent host over SSH."""

    task_type = TaskType.REMOTE_COMMAND

    def __init__(self, task: Task):
        super().__init__(task)
        self.command = self.require_command()

    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:
        targets = _target_hosts(hosts, context)
        logger.info("Execute remote command: %s", self.command)
        results = context.remote.run(self.command, targets, server=self.task.targeting.ambari_server)
        _raise_on_failures("remote command", results)
        nonzero = sorted(host for host, result in results.items() if result.exit_status not in (None, 0))
        detail = f"ran on {len(results)} host(s)"
        if nonzero:
            detail += f", non-zero exit on {', '.join(nonzero)}"
        return OperationResult(details=detail, remote_results=results)


class UploadOperation(Operation):
    """Copy a local file to every targeted host over SFTP."""

    task_type = TaskType.UPLOAD

    def __init__(self, task: Task):
        super().__init__(task)
        self.source = self.require_parameter("source")
        self.target = self.require_parameter("target")

    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:
        if not Path(self.source).expanduser().is_file():
            raise LocalIOError(f"upload source {self.source} does not exist")
        targets = _target_hosts(hosts, context)
        logger.info("Execute upload file command - source: %s, target: %s", self.source, self.target)
        results = context.remote.upload(str(Path(self.source).expanduser()), self.target, targets)
        _raise_on_failures("upload", results)
        return OperationResult(details=f"uploaded to {len(results)} host(s)", remote_results=results)
