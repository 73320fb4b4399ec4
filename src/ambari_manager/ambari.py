from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional

import requests

from .errors import ConfigurationError, ControlPlaneError, TopologyError, ValidationError
from .types import RegistryEntry

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 60

# Ambari target states for the supported lifecycle commands.
LIFECYCLE_STATES = {
    "START": "STARTED",
    "STOP": "INSTALLED",
}
LIFECYCLE_COMMANDS = set(LIFECYCLE_STATES) | {"RESTART"}


def split_names(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class AmbariClient:
    """Talks to the Ambari REST API of the active registry entry."""

    def __init__(self, registry: RegistryEntry, *, session: Optional[requests.Session] = None):
        if not registry.cluster:
            raise ConfigurationError(f"registry entry '{registry.name}' has no cluster name")
        self.registry = registry
        self.session = session or requests.Session()
        self.session.auth = (registry.username, registry.password)
        self.session.headers.update({"X-Requested-By": "ambari"})

    @property
    def cluster_url(self) -> str:
        return f"{self.registry.base_url}/api/v1/clusters/{self.registry.cluster}"

    # Topology ------------------------------------------------------------
    def control_plane_host(self) -> str:
        return self.registry.hostname

    def list_all_hosts(self) -> set[str]:
        payload = self._get("/hosts", {"fields": "Hosts/host_name"}, TopologyError)
        return {item["Hosts"]["host_name"] for item in payload.get("items", [])}

    def list_hosts(self, services: Optional[str] = None, components: Optional[str] = None) -> set[str]:
        """Hosts running any of ``components``, else any component of ``services``."""

        if components:
            field, names = "HostRoles/component_name", split_names(components)
        elif services:
            field, names = "HostRoles/service_name", split_names(services)
        else:
            return self.list_all_hosts()
        hosts: set[str] = set()
        for item in self._host_components(field, names):
            hosts.add(item["HostRoles"]["host_name"])
        return hosts

    def _host_components(self, field: str, names: list[str]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for name in names:
            payload = self._get(
                "/host_components",
                {field: name, "fields": "HostRoles/host_name,HostRoles/service_name"},
                TopologyError,
            )
            items.extend(payload.get("items", []))
        return items

    # Lifecycle -----------------------------------------------------------
    def send_lifecycle_command(
        self,
        command: str,
        *,
        services: Optional[str] = None,
        components: Optional[str] = None,
    ) -> dict[str, Any]:
        action = command.strip().upper()
        if action not in LIFECYCLE_COMMANDS:
            raise ValidationError(
                f"unsupported Ambari command '{command}' (expected one of {', '.join(sorted(LIFECYCLE_COMMANDS))})"
            )
        if components:
            names = split_names(components)
            if action == "RESTART":
                return self._restart_components(names)
            body = {
                "RequestInfo": {"context": f"{action} {','.join(names)} via ambari-manager"},
                "Body": {"HostRoles": {"state": LIFECYCLE_STATES[action]}},
            }
            query = f"HostRoles/component_name.in({','.join(names)})"
            return self._send("PUT", f"/host_components?{query}", body)
        if services:
            names = split_names(services)
            if action == "RESTART":
                return self._restart_services(names)
            body = {
                "RequestInfo": {"context": f"{action} {','.join(names)} via ambari-manager"},
                "Body": {"ServiceInfo": {"state": LIFECYCLE_STATES[action]}},
            }
            query = f"ServiceInfo/service_name.in({','.join(names)})"
            return self._send("PUT", f"/services?{query}", body)
        raise ValidationError("an Ambari command requires a services or components filter")

    def _restart_components(self, names: list[str]) -> dict[str, Any]:
        grouped: dict[tuple[str, str], list[str]] = {}
        for component in names:
            items = self._host_components("HostRoles/component_name", [component])
            for item in items:
                roles = item["HostRoles"]
                key = (roles.get("service_name", ""), component)
                grouped.setdefault(key, []).append(roles["host_name"])
        filters = [
            {"service_name": service, "component_name": component, "hosts": ",".join(sorted(hosts))}
            for (service, component), hosts in grouped.items()
        ]
        return self._restart(filters, "HOST_COMPONENT", names)

    def _restart_services(self, names: list[str]) -> dict[str, Any]:
        filters = [{"service_name": name} for name in names]
        return self._restart(filters, "SERVICE", names)

    def _restart(self, filters: list[dict[str, str]], level: str, names: Iterable[str]) -> dict[str, Any]:
        if not filters:
            raise ControlPlaneError(f"nothing to restart for {', '.join(names)}")
        body = {
            "RequestInfo": {
                "command": "RESTART",
                "context": f"RESTART {','.join(names)} via ambari-manager",
                "operation_level": {"level": level, "cluster_name": self.registry.cluster},
            },
            "Requests/resource_filters": filters,
        }
        return self._send("POST", "/requests", body)

    # Configuration -------------------------------------------------------
    def update_config(self, config_type: str, config_key: str, config_value: str) -> str:
        """Set ``config_key`` in ``config_type`` and return the new config tag."""

        desired = self._get("", {"fields": "Clusters/desired_configs"}, ControlPlaneError)
        current = desired.get("Clusters", {}).get("desired_configs", {}).get(config_type)
        if not current:
            raise ControlPlaneError(f"config type '{config_type}' does not exist in cluster {self.registry.cluster}")
        payload = self._get(
            "/configurations", {"type": config_type, "tag": current["tag"]}, ControlPlaneError
        )
        items = payload.get("items")
        if not items:
            raise ControlPlaneError(f"no configuration found for {config_type} tag {current['tag']}")
        properties = dict(items[0].get("properties", {}))
        attributes = items[0].get("properties_attributes", {})
        properties[config_key] = config_value
        tag = f"version{int(time.time() * 1000)}"
        desired_config: dict[str, Any] = {"type": config_type, "tag": tag, "properties": properties}
        if attributes:
            desired_config["properties_attributes"] = attributes
        desired_config["service_config_version_note"] = f"{config_key} updated by ambari-manager"
        self._send("PUT", "", [{"Clusters": {"desired_config": [desired_config]}}])
        logger.debug("config %s/%s set, new tag %s", config_type, config_key, tag)
        return tag

    # HTTP helpers --------------------------------------------------------
    def _get(self, path: str, params: Optional[dict[str, Any]], error: type[Exception]) -> dict[str, Any]:
        url = self.cluster_url + path
        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise error(f"GET {url} failed: {exc}") from exc

    def _send(self, method: str, path: str, body: Any) -> dict[str, Any]:
        url = self.cluster_url + path
        try:
            response = self.session.request(method, url, json=body, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ControlPlaneError(f"{method} {url} failed: {exc}") from exc
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}
