"""Background execution of dbt commands.

``spawn_run`` returns immediately with a ``RunChannel``. One supervisor thread
owns the child process and two reader threads forward its stdout and stderr
lines. The UI drains the channel without blocking on every tick.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from queue import Empty, Queue
from typing import IO

logger = logging.getLogger(__name__)

UV_MARKER_FILES = ("uv.lock", "pyproject.toml")


class CommandKind(Enum):
    RUN = "run"
    TEST = "test"


class SelectionScope(Enum):
    SINGLE = "single"
    WITH_UPSTREAM = "upstream"
    WITH_DOWNSTREAM = "downstream"
    FULL_LINEAGE = "full"

    def format_selector(self, model_name: str) -> str:
        """Render the dbt ``--select`` expression for ``model_name``."""
        if self is SelectionScope.WITH_UPSTREAM:
            return f"+{model_name}"
        if self is SelectionScope.WITH_DOWNSTREAM:
            return f"{model_name}+"
        if self is SelectionScope.FULL_LINEAGE:
            return f"+{model_name}+"
        return model_name

    @property
    def label(self) -> str:
        return _SCOPE_LABELS[self]


_SCOPE_LABELS = {
    SelectionScope.SINGLE: "this model",
    SelectionScope.WITH_UPSTREAM: "+upstream",
    SelectionScope.WITH_DOWNSTREAM: "downstream+",
    SelectionScope.FULL_LINEAGE: "+full lineage+",
}


@dataclass(frozen=True)
class RunRequest:
    """One external invocation, consumed exactly once by ``spawn_run``."""

    command: CommandKind
    scope: SelectionScope
    model_name: str
    project_dir: Path
    use_uv: bool = False

    def program(self) -> str:
        return "uv" if self.use_uv else "dbt"

    def args(self) -> list[str]:
        args: list[str] = ["run", "dbt"] if self.use_uv else []
        args.extend(
            [
                self.command.value,
                "--select",
                self.scope.format_selector(self.model_name),
                "--project-dir",
                str(self.project_dir),
            ]
        )
        return args

    def argv(self) -> list[str]:
        return [self.program(), *self.args()]

    def display_command(self) -> str:
        return " ".join(self.argv())


@dataclass(frozen=True)
class OutputLine:
    text: str


@dataclass(frozen=True)
class RunCompleted:
    success: bool


@dataclass(frozen=True)
class SpawnError:
    message: str


@dataclass(frozen=True)
class ChannelDisconnected:
    """The producer side went away without a terminal message."""


RunMessage = OutputLine | RunCompleted | SpawnError | ChannelDisconnected


class RunChannel:
    """Multi-producer, single-consumer message channel for one run.

    Producers call ``send``; once the consumer calls ``close`` further sends
    are dropped silently. ``drain`` never blocks.
    """

    def __init__(self) -> None:
        self._queue: Queue[RunMessage] = Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, message: RunMessage) -> bool:
        if self._closed.is_set():
            return False
        self._queue.put(message)
        return True

    def close(self) -> None:
        self._closed.set()

    def drain(self) -> list[RunMessage]:
        out: list[RunMessage] = []
        while True:
            try:
                out.append(self._queue.get_nowait())
            except Empty:
                break
        return out


def detect_use_uv(project_dir: Path) -> bool:
    """Whether to invoke dbt through ``uv run``.

    True when the project carries uv markers, or when ``dbt`` is not on PATH
    but ``uv`` is.
    """
    if any((project_dir / marker).exists() for marker in UV_MARKER_FILES):
        return True
    if shutil.which("dbt") is None and shutil.which("uv") is not None:
        return True
    return False


def resolve_use_uv(project_dir: Path, wrapper: str = "auto") -> bool:
    """Apply the configured wrapper preference (``auto``, ``uv`` or ``dbt``)."""
    if wrapper == "uv":
        return True
    if wrapper == "dbt":
        return False
    return detect_use_uv(project_dir)


def _forward_lines(stream: IO[str] | None, channel: RunChannel) -> None:
    if stream is None:
        return
    try:
        for raw in stream:
            if not channel.send(OutputLine(raw.rstrip("\r\n"))):
                break
    except (OSError, ValueError):
        logger.debug("output reader stopped early", exc_info=True)
    finally:
        stream.close()


def _supervise(request: RunRequest, channel: RunChannel) -> None:
    terminal_sent = False
    try:
        try:
            proc = subprocess.Popen(
                request.argv(),
                cwd=request.project_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as exc:
            logger.warning("failed to spawn %s: %s", request.program(), exc)
            terminal_sent = True
            channel.send(
                SpawnError(
                    f"Failed to spawn: `{request.program()}`\n"
                    f"  Caused by: {exc}\n"
                    "  Hint: ensure dbt is installed and on PATH, or use a uv-managed "
                    "project (uv.lock / pyproject.toml)"
                )
            )
            return

        readers = [
            threading.Thread(
                target=_forward_lines,
                args=(stream, channel),
                name=f"lazylineage-run-{name}",
                daemon=True,
            )
            for name, stream in (("stdout", proc.stdout), ("stderr", proc.stderr))
        ]
        for reader in readers:
            reader.start()
        for reader in readers:
            reader.join()

        returncode = proc.wait()
        logger.info("%s exited with status %s", request.display_command(), returncode)
        terminal_sent = True
        channel.send(RunCompleted(success=returncode == 0))
    finally:
        if not terminal_sent:
            channel.send(ChannelDisconnected())


def spawn_run(request: RunRequest) -> RunChannel:
    """Start ``request`` in the background and return its message channel."""
    channel = RunChannel()
    logger.info("starting %s in %s", request.display_command(), request.project_dir)
    supervisor = threading.Thread(
        target=_supervise,
        args=(request, channel),
        name="lazylineage-run-supervisor",
        daemon=True,
    )
    supervisor.start()
    return channel
