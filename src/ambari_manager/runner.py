from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from .ambari import AmbariClient
from .config import AmbariManagerConfig
from .errors import AmbariManagerError, TransportError, ValidationError
from .executors import LocalExecutor
from .filters import HostFilter, Topology
from .operations import OPERATION_REGISTRY, Operation
from .remote import RemoteExecutor
from .types import Playbook, PlaybookRun, Task, TaskResult, TaskState, TaskType

logger = logging.getLogger(__name__)


class ControlPlane(Protocol):
    def send_lifecycle_command(
        self, command: str, *, services: Optional[str] = None, components: Optional[str] = None
    ) -> Any: ...

    def update_config(self, config_type: str, config_key: str, config_value: str) -> Any: ...


@dataclass
class ExecutionContext:
    """Collaborators a playbook run talks to; built once per run."""

    topology: Topology
    control_plane: ControlPlane
    remote: RemoteExecutor
    local: LocalExecutor

    @classmethod
    def from_config(
        cls,
        config: AmbariManagerConfig,
        *,
        registry: Optional[str] = None,
        max_parallel: Optional[int] = None,
    ) -> "ExecutionContext":
        entry = config.active_registry(registry)
        profile = config.connection_profile(entry) if entry.connection_profile else None
        client = AmbariClient(entry)
        remote = RemoteExecutor(
            profile,
            max_parallel=config.max_parallel if max_parallel is None else max_parallel,
        )
        return cls(topology=client, control_plane=client, remote=remote, local=LocalExecutor())


class PlaybookRunner:
    """Runs playbook tasks in order and stops at the first failure.

    Nothing is rolled back: tasks completed before the failure stay applied
    and tasks after it stay ``PENDING`` in the returned ``PlaybookRun``.
    """

    def __init__(
        self,
        playbook: Playbook,
        context: ExecutionContext,
        *,
        dry_run: bool = False,
        progress_callback: Optional[Callable[[Task], None]] = None,
    ):
        self.playbook = playbook
        self.context = context
        self.dry_run = dry_run
        self.progress_callback = progress_callback
        self.host_filter = HostFilter(context.topology)

    def validate(self) -> list[Operation]:
        """Check every task type, then build every typed operation."""

        task_types: list[TaskType] = []
        for index, task in enumerate(self.playbook.tasks, start=1):
            task_type = TaskType.parse(task.type)
            if task_type is None:
                label = f"task '{task.name}'" if task.name else f"task {index}"
                if not task.type:
                    raise ValidationError(f"Type field for {label} is required!")
                raise ValidationError(
                    f"Unknown type '{task.type}' for {label} "
                    f"(expected one of {', '.join(t.value for t in TaskType)})"
                )
            task_types.append(task_type)
        return [
            OPERATION_REGISTRY[task_type](task)
            for task_type, task in zip(task_types, self.playbook.tasks)
        ]

    def run(self) -> PlaybookRun:
        run = PlaybookRun(self.playbook, results=[TaskResult(task=task) for task in self.playbook.tasks])
        logger.info("Executing playbook: %s", self.playbook.name or "<unnamed>")
        try:
            operations = self.validate()
        except ValidationError as exc:
            logger.error("playbook validation failed: %s", exc)
            run.error = exc
            return run

        for result, operation in zip(run.results, operations):
            if not self._run_task(result, operation):
                run.error = result.error
                break
        return run

    def _run_task(self, result: TaskResult, operation: Operation) -> bool:
        task = result.task
        result.state = TaskState.RUNNING
        if self.progress_callback:
            self.progress_callback(task)
        logger.debug("task=%s type=%s", task.label, task.type)
        try:
            hosts = None if task.targeting.ambari_agent else self.host_filter.resolve(task.targeting)
            result.hosts = hosts
            if self.dry_run:
                result.details = "dry-run"
            else:
                outcome = operation.apply(hosts, self.context)
                result.details = outcome.details
                result.remote_results = outcome.remote_results
        except AmbariManagerError as exc:
            logger.error("task '%s' (%s) failed: %s", task.label, task.type, exc)
            result.state = TaskState.ABORTED
            result.details = str(exc)
            result.error = exc
            if isinstance(exc, TransportError):
                result.remote_results = exc.results
            return False
        result.state = TaskState.COMPLETED
        logger.debug("task=%s completed: %s", task.label, result.details)
        return True
