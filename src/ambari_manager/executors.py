from __future__ import annotations

import contextlib
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import requests

from .errors import CommandError, LocalIOError, NetworkError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass
class CommandResult:
    command: list[str]
    stdout: str
    stderr: str
    returncode: int


class LocalExecutor:
    """Runs commands and downloads on the control host."""

    def __init__(self, *, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def run(self, command: str) -> CommandResult:
        """Run ``command`` split on whitespace; no shell quoting is applied."""

        cmd_list = command.split()
        if not cmd_list:
            raise CommandError("local command is empty")
        try:
            proc = subprocess.run(
                cmd_list,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise CommandError(f"cannot run '{command}': {exc}") from exc
        result = CommandResult(cmd_list, proc.stdout, proc.stderr, proc.returncode)
        if proc.returncode != 0:
            raise CommandError(f"'{command}' exited with rc={proc.returncode}: {_first_line(result)}")
        return result

    def download(self, url: str, destination: Union[str, Path]) -> Path:
        """Stream ``url`` into ``destination``; no retries, no resume."""

        target = Path(destination)
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkError(f"download of {url} failed: {exc}") from exc
        try:
            with response, target.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
        except requests.RequestException as exc:
            _discard(target)
            raise NetworkError(f"download of {url} failed: {exc}") from exc
        except OSError as exc:
            _discard(target)
            raise LocalIOError(f"cannot write {target}: {exc}") from exc
        logger.debug("downloaded %s -> %s", url, target)
        return target


def _first_line(result: CommandResult) -> str:
    for text in (result.stderr, result.stdout):
        stripped = (text or "").strip()
        if stripped:
            line = stripped.splitlines()[0]
            return (line[:157] + "...") if len(line) > 160 else line
    return "no output"


def _discard(path: Path) -> None:
    # Partial downloads must not look like complete files.
    with contextlib.suppress(OSError):
        path.unlink(missing_ok=True)
