"""Command history with navigation, persistence and backups."""

from __future__ import annotations

import json
import shutil
from collections import deque
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

DEFAULT_MAX_HISTORY = 500

_APP_DIR = ".mouse_term"


def _home() -> Path | None:
    try:
        return Path.home()
    except RuntimeError:
        return None


def default_history_path() -> Path | None:
    """Return the default history file path, or None without a home directory."""
    home = _home()
    if home is None:
        return None
    return home / _APP_DIR / "history.json"


def backup_dir() -> Path:
    """Return the directory holding history backups."""
    home = _home()
    if home is None:
        raise RuntimeError("Could not determine home directory")
    return home / _APP_DIR / "history_backups"


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def list_backups() -> list[Path]:
    """List backup files, newest first."""
    directory = backup_dir()
    if not directory.exists():
        return []
    backups = [
        path for path in directory.iterdir() if path.is_file() and path.suffix == ".json"
    ]
    with_time = [path for path in backups if _mtime(path) is not None]
    without_time = [path for path in backups if _mtime(path) is None]
    with_time.sort(key=lambda path: _mtime(path), reverse=True)
    return with_time + without_time


class History:
    """Commands entered so far, newest first."""

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        history_file: Path | None = None,
    ) -> None:
        self.commands: deque[str] = deque()
        self._max_history = max_history
        self._position: int | None = None
        self.history_file = Path(history_file) if history_file is not None else None

    @property
    def max_history(self) -> int:
        return self._max_history

    def _trim(self) -> None:
        while len(self.commands) > self._max_history:
            self.commands.pop()

    def add(self, command: str) -> None:
        """Add a command unless it is blank or repeats the newest one."""
        if not command.strip() or (self.commands and self.commands[0] == command):
            return
        self.commands.appendleft(command)
        self._trim()
        self._position = None

    def previous(self) -> str | None:
        """Move one step back in history and return that command."""
        if not self.commands:
            return None
        if self._position is None:
            position = 0
        elif self._position + 1 < len(self.commands):
            position = self._position + 1
        else:
            position = self._position
        self._position = position
        return self.commands[position]

    def next(self) -> str | None:
        """Move one step forward in history; None past the newest command."""
        if self._position is None:
            return None
        if self._position == 0:
            self._position = None
            return None
        self._position -= 1
        return self.commands[self._position]

    def reset_position(self) -> None:
        """Forget the navigation position."""
        self._position = None

    def set_max_history(self, max_history: int) -> None:
        """Change the size limit, dropping the oldest commands beyond it."""
        self._max_history = max_history
        self._trim()

    def search(self, query: str) -> list[str]:
        """Return commands containing ``query``, ignoring case."""
        needle = query.lower()
        return [command for command in self.commands if needle in command.lower()]

    def __len__(self) -> int:
        return len(self.commands)

    def __getitem__(self, index: int) -> str:
        return self.commands[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self.commands)

    def to_json(self) -> str:
        """Serialize the commands and size limit to JSON."""
        return json.dumps(
            {"commands": list(self.commands), "max_history": self._max_history},
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, text: str) -> History:
        """Build a history from JSON written by ``to_json``."""
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("history data must be a JSON object")
        try:
            commands = data["commands"]
            max_history = data["max_history"]
        except KeyError as missing:
            raise ValueError(f"missing field {missing.args[0]}") from None
        if not isinstance(commands, list) or not all(
            isinstance(command, str) for command in commands
        ):
            raise ValueError("commands must be a list of strings")
        if (
            not isinstance(max_history, int)
            or isinstance(max_history, bool)
            or max_history < 0
        ):
            raise ValueError("max_history must be a non-negative integer")
        history = cls(max_history=max_history)
        history.commands = deque(commands)
        return history

    def _target_path(self) -> Path | None:
        return self.history_file or default_history_path()

    @classmethod
    def load_default(cls) -> History:
        """Load history from the default file, if there is one."""
        history = cls()
        path = default_history_path()
        if path is None:
            return history
        history.history_file = path
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return history
        loaded = cls.from_json(contents)
        history.commands = loaded.commands
        history._max_history = loaded.max_history
        return history

    def save(self) -> None:
        """Back up the existing file, then write the history to it."""
        path = self._target_path()
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        self.create_backup()
        path.write_text(self.to_json(), encoding="utf-8")

    def create_backup(self) -> Path | None:
        """Copy the history file into the backup directory.

        Returns the backup's path, or None when there was no file to copy.
        """
        path = self._target_path()
        if path is None or not path.exists():
            return None
        directory = backup_dir()
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = directory / f"history_{timestamp}.json"
        shutil.copy(path, backup_path)
        return backup_path

    @classmethod
    def restore_from_backup(cls, backup_path: Path) -> History:
        """Load history from a backup file, to be saved at the default path."""
        contents = Path(backup_path).read_text(encoding="utf-8")
        history = cls.from_json(contents)
        history.history_file = default_history_path()
        return history