from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ..errors import ValidationError
from ..types import RemoteResult, Task, TaskType

if TYPE_CHECKING:
    from ..runner import ExecutionContext


@dataclass
class OperationResult:
    details: str
    remote_results: dict[str, RemoteResult] = field(default_factory=dict)


class Operation(ABC):
    """One task type; validates its required fields on construction."""

    task_type: TaskType

    def __init__(self, task: Task):
        self.task = task

    @abstractmethod
    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:
        """Run the task against ``hosts`` (``None`` for agent-only tasks)."""

    def require_command(self) -> str:
        if not self.task.command:
            raise ValidationError(
                f"'command' field is required for '{self.task_type.value}' task '{self.task.label}'"
            )
        return self.task.command

    def require_parameter(self, name: str) -> str:
        value = self.task.parameters.get(name)
        if value is None or value == "":
            raise ValidationError(
                f"'{name}' parameter is required for '{self.task_type.value}' task '{self.task.label}'"
            )
        return value
