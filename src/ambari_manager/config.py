from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from .errors import ConfigurationError
from .secrets import SecretResolver
from .types import ConnectionProfile, RegistryEntry

DEFAULT_CONFIG = Path.home() / ".ambari-manager" / "config.toml"
CONFIG_ENV = "AMBARI_MANAGER_CONFIG"


@dataclass
class AmbariManagerConfig:
    registry: Optional[str] = None
    max_parallel: int = 0
    registries: dict[str, RegistryEntry] = field(default_factory=dict)
    profiles: dict[str, ConnectionProfile] = field(default_factory=dict)

    def active_registry(self, name: Optional[str] = None) -> RegistryEntry:
        """Return the registry entry selected by ``name`` or the configured default."""

        selected = name or self.registry
        if not selected:
            if len(self.registries) == 1:
                return next(iter(self.registries.values()))
            raise ConfigurationError("No active Ambari registry entry is configured")
        entry = self.registries.get(selected)
        if entry is None:
            raise ConfigurationError(f"Registry entry '{selected}' is not defined")
        return entry

    def connection_profile(self, registry: RegistryEntry) -> ConnectionProfile:
        if not registry.connection_profile:
            raise ConfigurationError(
                f"No connection profile is attached to registry entry '{registry.name}'"
            )
        profile = self.profiles.get(registry.connection_profile)
        if profile is None:
            raise ConfigurationError(
                f"Connection profile '{registry.connection_profile}' is not defined"
            )
        return profile


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    return Path(override) if override else DEFAULT_CONFIG


def load_config(path: Path, *, resolver: Optional[SecretResolver] = None) -> AmbariManagerConfig:
    if not path.exists():
        return AmbariManagerConfig()
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{path}: {exc}") from None
    resolver = resolver or SecretResolver()
    defaults = data.get("defaults", {})
    registries = {
        name: _parse_registry(name, payload, resolver)
        for name, payload in data.get("registry", {}).items()
    }
    profiles = {
        name: _parse_profile(name, payload)
        for name, payload in data.get("connection_profile", {}).items()
    }
    registry = defaults.get("registry")
    return AmbariManagerConfig(
        registry=str(registry) if registry else None,
        max_parallel=_parse_int(defaults.get("max_parallel", 0), "max_parallel"),
        registries=registries,
        profiles=profiles,
    )


def _parse_registry(name: str, payload: dict[str, Any], resolver: SecretResolver) -> RegistryEntry:
    hostname = payload.get("hostname")
    if not hostname:
        raise ConfigurationError(f"registry '{name}' requires a hostname")
    protocol = str(payload.get("protocol", "http")).lower()
    if protocol not in {"http", "https"}:
        raise ConfigurationError(f"registry '{name}' protocol must be 'http' or 'https'")
    profile = payload.get("connection_profile")
    credentials = resolver.resolve(
        {"username": payload.get("username", "admin"), "password": payload.get("password", "admin")}
    )
    return RegistryEntry(
        name=name,
        hostname=str(hostname),
        port=_parse_int(payload.get("port", 8080), f"registry '{name}' port"),
        protocol=protocol,
        username=str(credentials["username"]),
        password=str(credentials["password"]),
        cluster=str(payload.get("cluster", "")),
        connection_profile=str(profile) if profile else None,
    )


def _parse_profile(name: str, payload: dict[str, Any]) -> ConnectionProfile:
    username = payload.get("username")
    if not username:
        raise ConfigurationError(f"connection profile '{name}' requires a username")
    key_path = payload.get("key_path")
    return ConnectionProfile(
        name=name,
        username=str(username),
        key_path=str(Path(str(key_path)).expanduser()) if key_path else None,
        port=_parse_int(payload.get("port", 22), f"connection profile '{name}' port"),
    )


def _parse_int(value: Any, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be an integer") from exc
