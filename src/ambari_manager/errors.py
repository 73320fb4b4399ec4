from __future__ import annotations

from typing import Any, Iterable, Optional


class AmbariManagerError(Exception):
    """Base class for every failure that aborts a playbook run."""


class ValidationError(AmbariManagerError, ValueError):
    """A playbook or task is malformed (missing type, missing parameter...)."""


class ConfigurationError(AmbariManagerError):
    """The registry entry or connection profile is missing or invalid."""


class TopologyError(AmbariManagerError):
    """Cluster topology could not be retrieved from Ambari."""


class ControlPlaneError(AmbariManagerError):
    """An Ambari lifecycle or configuration call failed."""


class CommandError(AmbariManagerError):
    """A local command could not be launched or exited non-zero."""


class NetworkError(AmbariManagerError):
    """A download failed on the wire."""


class LocalIOError(AmbariManagerError):
    """A local file could not be written."""


class TransportError(AmbariManagerError):
    """SSH/SFTP failed on one or more hosts."""

    def __init__(
        self,
        message: str,
        hosts: Optional[Iterable[str]] = None,
        results: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.hosts = sorted(hosts or [])
        self.results = dict(results or {})
