"""Creation time lookup from the graph's git history."""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING

import structlog

from pagestamp.errors import EnvironmentUnavailable, MalformedOutput, NotFound

if TYPE_CHECKING:
    from pagestamp.protocols import DocumentStore, HistoryCommandRunner

log = structlog.get_logger()

_SECONDS_RE = re.compile(r"[0-9]+")


class GitHistoryRunner:
    """Runs ``git log`` for a single path inside the graph directory.

    Asks for the author timestamp of every commit that added the file,
    oldest first, so the first line of output is the creation time.
    """

    def __init__(self, graph_dir: str, git_binary: str = "git") -> None:
        self._graph_dir = graph_dir
        self._git_binary = git_binary

    def command(self, path: str) -> list[str]:
        return [
            self._git_binary,
            "log",
            "--diff-filter=A",
            "--reverse",
            "--format=%at",
            "--",
            path,
        ]

    async def run_history_command(self, path: str) -> str:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command(path),
                cwd=self._graph_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as exc:
            raise EnvironmentUnavailable(f"Cannot run {self._git_binary}: {exc}") from exc

        if proc.returncode != 0:
            raise EnvironmentUnavailable(
                f"{self._git_binary} exited with status {proc.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )
        return stdout.decode(errors="replace")


def parse_creation_seconds(output: str) -> int:
    """Parse history output into Unix seconds.

    The output is one timestamp per line in ascending order; the first line
    is the earliest addition.
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        raise MalformedOutput("History command produced no timestamp")
    first = lines[0]
    if not _SECONDS_RE.fullmatch(first):
        raise MalformedOutput(f"Not a second count: {first[:80]!r}")
    return int(first)


class HistoryResolver:
    """Derives a file's creation time from its revision history. No retries."""

    def __init__(self, store: DocumentStore, runner: HistoryCommandRunner) -> None:
        self._store = store
        self._runner = runner

    async def creation_time(self, file_id: int) -> int:
        path = await self._store.resolve_file_path(file_id)
        if not path:
            raise NotFound(f"No file path for file id {file_id}")

        output = await self._runner.run_history_command(path)
        seconds = parse_creation_seconds(output)
        log.debug("history_creation_time", file_id=file_id, path=path, seconds=seconds)
        return seconds * 1000
