from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .base import Operation, OperationResult
from ..errors import ValidationError
from ..types import Task, TaskType

if TYPE_CHECKING:
    from ..runner import ExecutionContext

logger = logging.getLogger(__name__)


class AmbariCommandOperation(Operation):
    """Send START/STOP/RESTART for components, or for services when no component is given."""

    task_type = TaskType.AMBARI_COMMAND

    def __init__(self, task: Task):
        super().__init__(task)
        self.command = self.require_command()
        targeting = task.targeting
        if not targeting.components and not targeting.services:
            raise ValidationError(
                f"'components' or 'services' is required for '{self.task_type.value}' task '{task.label}'"
            )
        self.components = targeting.components
        # A component filter always wins over a service filter.
        self.services = None if targeting.components else targeting.services

    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:  # noqa: ARG002
        if self.components:
            logger.info("Execute ambari command %s on components: %s", self.command, self.components)
            context.control_plane.send_lifecycle_command(self.command, components=self.components)
            return OperationResult(details=f"{self.command} components {self.components}")
        logger.info("Execute ambari command %s on services: %s", self.command, self.services)
        context.control_plane.send_lifecycle_command(self.command, services=self.services)
        return OperationResult(details=f"{self.command} services {self.services}")


class ConfigOperation(Operation):
    task_type = TaskType.CONFIG

    def __init__(self, task: Task):
        super().__init__(task)
        self.config_type = self.require_parameter("config_type")
        self.config_key = self.require_parameter("config_key")
        self.config_value = self.require_parameter("config_value")

    def apply(self, hosts: Optional[frozenset[str]], context: "ExecutionContext") -> OperationResult:  # noqa: ARG002
        logger.info(
            "Execute config update - type: %s, key: %s, value: %s",
            self.config_type,
            self.config_key,
            self.config_value,
        )
        tag = context.control_plane.update_config(self.config_type, self.config_key, self.config_value)
        detail = f"{self.config_type}/{self.config_key} updated"
        if tag:
            detail += f" (tag {tag})"
        return OperationResult(details=detail)
