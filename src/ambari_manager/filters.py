from __future__ import annotations

import logging
from typing import Optional, Protocol

from .ambari import split_names
from .errors import AmbariManagerError, TopologyError
from .types import Targeting

logger = logging.getLogger(__name__)


class Topology(Protocol):
    def control_plane_host(self) -> str: ...

    def list_all_hosts(self) -> set[str]: ...

    def list_hosts(self, services: Optional[str] = None, components: Optional[str] = None) -> set[str]: ...


class HostFilter:
    """Turns a task's targeting fields into a concrete host set.

    The most specific field wins: Ambari server, then components, then
    services, then an explicit host list, and finally every cluster host.
    """

    def __init__(self, topology: Topology):
        self.topology = topology

    def resolve(self, targeting: Targeting) -> frozenset[str]:
        try:
            hosts = self._resolve(targeting)
        except AmbariManagerError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise TopologyError(f"cannot resolve hosts: {exc}") from exc
        logger.debug("resolved %s -> %s", targeting, ",".join(sorted(hosts)) or "<none>")
        return hosts

    def _resolve(self, targeting: Targeting) -> frozenset[str]:
        if targeting.ambari_server:
            return frozenset({self.topology.control_plane_host()})
        if targeting.components:
            return frozenset(self.topology.list_hosts(components=targeting.components))
        if targeting.services:
            return frozenset(self.topology.list_hosts(services=targeting.services))
        if targeting.hosts:
            return frozenset(split_names(targeting.hosts))
        return frozenset(self.topology.list_all_hosts())
