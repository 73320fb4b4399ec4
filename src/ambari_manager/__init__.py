"""Ambari playbook execution engine."""

from .playbook import PlaybookLoader
from .runner import ExecutionContext, PlaybookRunner

__all__ = ["PlaybookLoader", "PlaybookRunner", "ExecutionContext"]
