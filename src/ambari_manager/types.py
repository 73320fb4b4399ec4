from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TaskType(str, Enum):
    REMOTE_COMMAND = "RemoteCommand"
    LOCAL_COMMAND = "LocalCommand"
    DOWNLOAD = "Download"
    UPLOAD = "Upload"
    CONFIG = "Config"
    AMBARI_COMMAND = "AmbariCommand"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["TaskType"]:
        for member in cls:
            if member.value == value:
                return member
        return None


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Targeting:
    services: Optional[str] = None
    components: Optional[str] = None
    hosts: Optional[str] = None
    ambari_server: bool = False
    ambari_agent: bool = False


@dataclass(frozen=True)
class Task:
    name: str
    type: Optional[str]
    command: Optional[str] = None
    parameters: dict[str, str] = field(default_factory=dict)
    targeting: Targeting = field(default_factory=Targeting)

    @property
    def label(self) -> str:
        return self.name or "<unnamed>"


@dataclass(frozen=True)
class Input:
    name: str
    default: Optional[str] = None


@dataclass(frozen=True)
class Playbook:
    name: str
    description: str = ""
    tasks: tuple[Task, ...] = ()
    inputs: tuple[Input, ...] = ()


@dataclass(frozen=True)
class RegistryEntry:
    name: str
    hostname: str
    port: int = 8080
    protocol: str = "http"
    username: str = "admin"
    password: str = "admin"
    cluster: str = ""
    connection_profile: Optional[str] = None

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.hostname}:{self.port}"


@dataclass(frozen=True)
class ConnectionProfile:
    name: str
    username: str
    key_path: Optional[str] = None
    port: int = 22


@dataclass
class RemoteResult:
    host: str
    stdout: str = ""
    stderr: str = ""
    done: bool = False
    exit_status: Optional[int] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class TaskResult:
    task: Task
    state: TaskState = TaskState.PENDING
    details: str = ""
    hosts: Optional[frozenset[str]] = None
    remote_results: dict[str, RemoteResult] = field(default_factory=dict)
    error: Optional[Exception] = None


@dataclass
class PlaybookRun:
    playbook: Playbook
    results: list[TaskResult] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def state(self) -> TaskState:
        if self.error is not None:
            return TaskState.ABORTED
        if any(result.state is not TaskState.COMPLETED for result in self.results):
            return TaskState.ABORTED
        return TaskState.COMPLETED

    @property
    def aborted(self) -> bool:
        return self.state is TaskState.ABORTED
