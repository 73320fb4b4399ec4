from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import Optional

import paramiko

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


@dataclass
class SessionOutput:
    stdout: str
    stderr: str
    done: bool
    exit_status: Optional[int]


class SSHSession:
    """A connected paramiko client bound to one host."""

    def __init__(self, host: str, client: paramiko.SSHClient):
        self.host = host
        self.client = client

    def run(self, command: str, timeout: float = DEFAULT_TIMEOUT) -> SessionOutput:
        try:
            _, stdout, stderr = self.client.exec_command(command, timeout=timeout)
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            exit_status = stdout.channel.recv_exit_status()
        except socket.timeout as exc:
            raise TransportError(f"{self.host}: command timed out after {timeout:g}s", [self.host]) from exc
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"{self.host}: cannot run remote command: {exc}", [self.host]) from exc
        return SessionOutput(stdout=out, stderr=err, done=True, exit_status=exit_status)

    def put(self, source: str, target: str) -> None:
        try:
            sftp = self.client.open_sftp()
            try:
                sftp.put(source, target)
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"{self.host}: cannot upload {source} to {target}: {exc}", [self.host]) from exc

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SSHSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class SSHTransport:
    """Opens paramiko sessions using a connection profile's credentials."""

    KEY_CLASSES = (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey)

    def open_session(
        self,
        host: str,
        user: str,
        key_path: Optional[str],
        port: int,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> SSHSession:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            pkey = self._load_key(key_path) if key_path else None
            client.connect(
                hostname=host,
                port=port,
                username=user,
                pkey=pkey,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                allow_agent=pkey is None,
                look_for_keys=pkey is None,
            )
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise TransportError(f"{host}: cannot connect as {user}@{host}:{port}: {exc}", [host]) from exc
        logger.debug("ssh session opened %s@%s:%s", user, host, port)
        return SSHSession(host, client)

    def _load_key(self, key_path: str) -> paramiko.PKey:
        for key_cls in self.KEY_CLASSES:
            try:
                return key_cls.from_private_key_file(key_path)
            except paramiko.SSHException:
                continue
        raise paramiko.SSHException(f"unsupported private key format in {key_path}")
