from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from .errors import ConfigurationError, TransportError
from .ssh import DEFAULT_TIMEOUT, SSHTransport
from .types import ConnectionProfile, RemoteResult

logger = logging.getLogger(__name__)


class RemoteExecutor:
    """Fans one command (or upload) out to many hosts and joins on all of them.

    Every host gets its own unit of work; each unit returns an owned
    ``RemoteResult`` and the results are folded into the mapping after the
    barrier, in the calling thread. A transport failure on a host is recorded
    in that host's ``RemoteResult.error``; callers decide whether it aborts.
    """

    def __init__(
        self,
        profile: Optional[ConnectionProfile],
        *,
        transport: Optional[SSHTransport] = None,
        max_parallel: int = 0,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.profile = profile
        self.transport = transport or SSHTransport()
        self.max_parallel = max_parallel
        self.timeout = timeout

    def run(self, command: str, hosts: Iterable[str], *, server: bool = False) -> dict[str, RemoteResult]:
        label = "ambari-server" if server else "agent"
        return self._fan_out(hosts, lambda host: self._run_on_host(host, command, label))

    def upload(self, source: str, target: str, hosts: Iterable[str]) -> dict[str, RemoteResult]:
        return self._fan_out(hosts, lambda host: self._upload_to_host(host, source, target))

    def _fan_out(
        self, hosts: Iterable[str], unit: Callable[[str], RemoteResult]
    ) -> dict[str, RemoteResult]:
        self._require_profile()
        targets = sorted(set(hosts))
        if not targets:
            return {}
        workers = len(targets)
        if self.max_parallel > 0:
            workers = min(workers, self.max_parallel)
        logger.debug("fan-out to %d hosts with %d workers", len(targets), workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="remote") as pool:
            futures = [pool.submit(unit, host) for host in targets]
            outcomes = [future.result() for future in futures]
        return {result.host: result for result in outcomes}

    def _run_on_host(self, host: str, command: str, label: str) -> RemoteResult:
        profile = self._require_profile()
        try:
            with self.transport.open_session(
                host, profile.username, profile.key_path, profile.port, self.timeout
            ) as session:
                output = session.run(command, self.timeout)
        except TransportError as exc:
            logger.error("%s %s failed: %s", label, host, exc)
            return RemoteResult(host=host, error=str(exc))
        logger.info("%s (done: %s) - output:\n%s", host, output.done, output.stdout.rstrip())
        if output.stderr.strip():
            logger.info("%s std error:\n%s", host, output.stderr.rstrip())
        if output.exit_status not in (None, 0):
            logger.warning("%s %s exited with rc=%s", label, host, output.exit_status)
        return RemoteResult(
            host=host,
            stdout=output.stdout,
            stderr=output.stderr,
            done=output.done,
            exit_status=output.exit_status,
        )

    def _upload_to_host(self, host: str, source: str, target: str) -> RemoteResult:
        profile = self._require_profile()
        try:
            with self.transport.open_session(
                host, profile.username, profile.key_path, profile.port, self.timeout
            ) as session:
                session.put(source, target)
        except TransportError as exc:
            logger.error("upload to %s failed: %s", host, exc)
            return RemoteResult(host=host, error=str(exc))
        logger.info("%s: uploaded %s -> %s", host, source, target)
        return RemoteResult(host=host, done=True, exit_status=0)

    def _require_profile(self) -> ConnectionProfile:
        if self.profile is None:
            raise ConfigurationError("No connection profile is attached for the active ambari server entry")
        return self.profile
