from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .base import Operation, OperationResult
from ..types import Task, TaskType

if TYPE_CHECKING:
    from ..runner import ExecutionContext

logger = logging.getLogger(__name__)


class LocalCommandOperation(Operation):
    task_type = TaskType.LOCAL_COMMAND

    def __init__(self, task: Task):
        super().__init__(task)
        self.command = self.require_command()

    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:  # noqa: ARG002
        logger.info("Execute local command: %s", self.command)
        result = context.local.run(self.command)
        if result.stdout.strip():
            logger.info("%s", result.stdout.rstrip())
        if result.stderr.strip():
            logger.info("%s", result.stderr.rstrip())
        return OperationResult(details=f"ran (rc={result.returncode})")


class DownloadOperation(Operation):
    task_type = TaskType.DOWNLOAD

    def __init__(self, task: Task):
        super().__init__(task)
        self.url = self.require_parameter("url")
        self.file = self.require_parameter("file")

    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:  # noqa: ARG002
        logger.info("Execute download file command - url: %s, location: %s", self.url, self.file)
        target = context.local.download(self.url, self.file)
        return OperationResult(details=f"downloaded to {target}")
