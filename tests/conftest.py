from __future__ import annotations

import threading
from typing import Optional

import pytest

from ambari_manager.ambari import split_names
from ambari_manager.errors import TopologyError, TransportError
from ambari_manager.executors import CommandResult
from ambari_manager.remote import RemoteExecutor
from ambari_manager.runner import ExecutionContext
from ambari_manager.ssh import SessionOutput
from ambari_manager.types import ConnectionProfile

PROFILE = ConnectionProfile(name="default", username="root", key_path="/keys/id_rsa", port=2222)


class FakeTopology:
    def __init__(
        self,
        components: Optional[dict[str, set[str]]] = None,
        services: Optional[dict[str, set[str]]] = None,
        all_hosts: Optional[set[str]] = None,
        server: str = "ambari.example.com",
        fail: bool = False,
    ):
        self.components = components or {}
        self.services = services or {}
        self.all_hosts = all_hosts if all_hosts is not None else {"h1", "h2", "h3"}
        self.server = server
        self.fail = fail
        self.calls: list[tuple] = []

    def control_plane_host(self) -> str:
        self.calls.append(("server",))
        return self.server

    def list_all_hosts(self) -> set[str]:
        self.calls.append(("all",))
        if self.fail:
            raise TopologyError("ambari unreachable")
        return set(self.all_hosts)

    def list_hosts(self, services=None, components=None) -> set[str]:
        self.calls.append(("hosts", services, components))
        if self.fail:
            raise TopologyError("ambari unreachable")
        if components:
            source, names = self.components, split_names(components)
        else:
            source, names = self.services, split_names(services)
        hosts: set[str] = set()
        for name in names:
            hosts |= source.get(name, set())
        return hosts


class FakeSession:
    def __init__(self, host: str, transport: "FakeTransport"):
        self.host = host
        self.transport = transport

    def run(self, command: str, timeout: float = 60) -> SessionOutput:
        if self.transport.barrier is not None:
            self.transport.barrier.wait()
        with self.transport.lock:
            self.transport.commands.append((self.host, command))
        rc = self.transport.exit_status.get(self.host, 0)
        return SessionOutput(stdout=f"{self.host}: {command}\n", stderr="", done=True, exit_status=rc)

    def put(self, source: str, target: str) -> None:
        with self.transport.lock:
            self.transport.uploads.append((self.host, source, target))

    def close(self) -> None:
        with self.transport.lock:
            self.transport.closed.append(self.host)

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FakeTransport:
    def __init__(self, fail_hosts: Optional[set[str]] = None, barrier: Optional[threading.Barrier] = None):
        self.fail_hosts = fail_hosts or set()
        self.barrier = barrier
        self.exit_status: dict[str, int] = {}
        self.lock = threading.Lock()
        self.opened: list[tuple] = []
        self.commands: list[tuple[str, str]] = []
        self.uploads: list[tuple[str, str, str]] = []
        self.closed: list[str] = []

    def open_session(self, host, user, key_path, port, timeout=60):
        with self.lock:
            self.opened.append((host, user, key_path, port, timeout))
        if host in self.fail_hosts:
            raise TransportError(f"{host}: connection refused", [host])
        return FakeSession(host, self)


class FakeControlPlane:
    def __init__(self):
        self.lifecycle: list[tuple] = []
        self.configs: list[tuple[str, str, str]] = []

    def send_lifecycle_command(self, command, *, services=None, components=None):
        self.lifecycle.append((command, services, components))
        return {}

    def update_config(self, config_type, config_key, config_value):
        self.configs.append((config_type, config_key, config_value))
        return "version1"


class FakeLocal:
    def __init__(self):
        self.commands: list[str] = []
        self.downloads: list[tuple[str, str]] = []

    def run(self, command: str) -> CommandResult:
        self.commands.append(command)
        return CommandResult(command.split(), "", "", 0)

    def download(self, url, destination):
        self.downloads.append((url, str(destination)))
        return destination


@pytest.fixture
def topology() -> FakeTopology:
    return FakeTopology(
        components={"LOGSEARCH_SERVER": {"h1", "h2"}, "DATANODE": {"h2", "h3"}},
        services={"LOGSEARCH": {"h1", "h2"}, "HDFS": {"h1", "h2", "h3"}},
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def control_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def local() -> FakeLocal:
    return FakeLocal()


@pytest.fixture
def context(topology, transport, control_plane, local) -> ExecutionContext:
    return ExecutionContext(
        topology=topology,
        control_plane=control_plane,
        remote=RemoteExecutor(PROFILE, transport=transport),
        local=local,
    )
