"""Running commands in the background and collecting their output."""

from __future__ import annotations

import enum
import os
import queue
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

SUDO_SESSION_SECONDS = 15 * 60
_POLL_INTERVAL = 0.01


@dataclass
class ExecutionResult:
    """Exit code and output lines of a command."""

    exit_code: int | None = None
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)


class OutputKind(enum.Enum):
    """What an :class:`ExecutionOutput` message carries."""

    STDOUT = "stdout"
    STDERR = "stderr"
    FINISHED = "finished"


@dataclass(frozen=True)
class ExecutionOutput:
    """A message from a running command: a line of output or its end."""

    kind: OutputKind
    line: str = ""
    exit_code: int | None = None

    @classmethod
    def stdout(cls, line: str) -> ExecutionOutput:
        return cls(OutputKind.STDOUT, line)

    @classmethod
    def stderr(cls, line: str) -> ExecutionOutput:
        return cls(OutputKind.STDERR, line)

    @classmethod
    def finished(cls, exit_code: int | None) -> ExecutionOutput:
        return cls(OutputKind.FINISHED, exit_code=exit_code)


def _split_lines(text: str) -> list[str]:
    """Split on newlines, dropping a final empty line and trailing CRs."""
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _decode_or_none(data: bytes) -> str | None:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _read_lines(
    stream: IO[bytes],
    sink: queue.Queue[ExecutionOutput],
    make: type[ExecutionOutput] | None,
    kind: OutputKind,
) -> None:
    with stream:
        for raw in stream:
            text = _decode_or_none(raw)
            if text is None:
                continue
            if text.endswith("\n"):
                text = text[:-1]
                if text.endswith("\r"):
                    text = text[:-1]
            sink.put(ExecutionOutput(kind, text))


def _exit_code(returncode: int | None) -> int | None:
    # A negative return code means the process died from a signal: no code.
    if returncode is None or returncode < 0:
        return None
    return returncode


def _run(
    argv: list[str],
    sink: queue.Queue[ExecutionOutput],
    stop: threading.Event,
    *,
    start_error: str,
    password: str | None = None,
) -> None:
    try:
        process = subprocess.Popen(
            argv,
            stdin=subprocess.PIPE if password is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as error:
        sink.put(ExecutionOutput.stderr(f"{start_error}{error}"))
        sink.put(ExecutionOutput.finished(-1))
        return

    if password is not None and process.stdin is not None:
        try:
            with process.stdin:
                process.stdin.write(f"{password}\n".encode())
        except OSError as error:
            sink.put(ExecutionOutput.stderr(f"Failed to write password: {error}"))
            sink.put(ExecutionOutput.finished(-1))
            process.kill()
            process.wait()
            return

    readers = [
        threading.Thread(
            target=_read_lines,
            args=(process.stdout, sink, None, OutputKind.STDOUT),
            daemon=True,
        ),
        threading.Thread(
            target=_read_lines,
            args=(process.stderr, sink, None, OutputKind.STDERR),
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    while True:
        if stop.is_set():
            process.kill()
            process.wait()
            exit_code = None
            break
        returncode = process.poll()
        if returncode is not None:
            exit_code = _exit_code(returncode)
            break
        stop.wait(_POLL_INTERVAL)

    for reader in readers:
        reader.join()
    sink.put(ExecutionOutput.finished(exit_code))


class Executor:
    """Runs one command at a time and gathers its output as it arrives."""

    def __init__(self) -> None:
        self._output: queue.Queue[ExecutionOutput] | None = None
        self._stop: threading.Event | None = None
        self._result = ExecutionResult()
        self._sudo_timestamp: float | None = None

    def _start(self, argv: list[str], *, start_error: str, password: str | None = None) -> None:
        sink: queue.Queue[ExecutionOutput] = queue.Queue()
        stop = threading.Event()
        self._output = sink
        self._stop = stop
        threading.Thread(
            target=_run,
            args=(argv, sink, stop),
            kwargs={"start_error": start_error, "password": password},
            daemon=True,
        ).start()

    def _change_directory(self, args: list[str]) -> None:
        if args:
            target = Path(args[0])
        else:
            try:
                target = Path.home()
            except RuntimeError:
                raise RuntimeError("Could not determine home directory") from None

        try:
            os.chdir(target)
        except OSError as error:
            self._result.stderr.append(f"Failed to change directory: {error}")
            self._result.exit_code = 1
            return

        self._result.stdout.append(f"Changed directory to: {Path.cwd()}")
        try:
            listing = self._run_sync(["ls"])
        except OSError:
            listing = None
        if listing is not None:
            self._result.stdout.extend(listing.stdout)
            self._result.stderr.extend(listing.stderr)
        self._result.exit_code = 0

    @staticmethod
    def _run_sync(argv: list[str]) -> ExecutionResult:
        completed = subprocess.run(argv, capture_output=True, check=False)
        result = ExecutionResult(exit_code=_exit_code(completed.returncode))
        out = _decode_or_none(completed.stdout)
        if out is not None:
            result.stdout = _split_lines(out)
        err = _decode_or_none(completed.stderr)
        if err is not None:
            result.stderr = _split_lines(err)
        return result

    def execute(self, command: str) -> None:
        """Start ``command`` in the background; ``cd`` is handled in-process.

        Raises ValueError for a blank command.
        """
        self.terminate()
        self._result = ExecutionResult()

        parts = command.split()
        if not parts:
            raise ValueError("Empty command")
        program, args = parts[0], parts[1:]

        if program == "cd":
            self._change_directory(args)
            return

        if program == "sudo" and args and self.is_sudo_session_valid():
            self._sudo_timestamp = time.monotonic()

        self._start([program, *args], start_error="Error: ")

    def execute_sudo(self, command: str, password: str) -> None:
        """Run a ``sudo ...`` command, passing ``password`` on its stdin."""
        self.terminate()
        self._result = ExecutionResult()
        self._sudo_timestamp = time.monotonic()
        argv = ["sudo", "-S", *command.split()[1:]]
        self._start(argv, start_error="Failed to start command: ", password=password)

    def is_sudo_session_valid(self) -> bool:
        """Whether a sudo password was given within the last 15 minutes."""
        if self._sudo_timestamp is None:
            return False
        return time.monotonic() - self._sudo_timestamp < SUDO_SESSION_SECONDS

    def check_output(self) -> bool:
        """Collect pending output; return whether anything new arrived."""
        sink = self._output
        if sink is None:
            return False

        updated = False
        finished = False
        exit_code: int | None = None
        while True:
            try:
                message = sink.get_nowait()
            except queue.Empty:
                break
            updated = True
            if message.kind is OutputKind.STDOUT:
                self._result.stdout.append(message.line)
            elif message.kind is OutputKind.STDERR:
                self._result.stderr.append(message.line)
            else:
                exit_code = message.exit_code
                finished = True

        if finished:
            self._result.exit_code = exit_code
            self._output = None
            self._stop = None
        return updated

    def terminate(self) -> None:
        """Stop the running command, if any, and stop listening to it."""
        if self._stop is not None:
            self._stop.set()
            self._stop = None
        self._output = None

    @property
    def is_running(self) -> bool:
        """Whether a command's output is still being awaited."""
        return self._output is not None

    @property
    def result(self) -> ExecutionResult:
        """The result gathered so far."""
        return self._result

    def all_output(self) -> list[str]:
        """Standard output lines followed by standard error lines."""
        return [*self._result.stdout, *self._result.stderr]