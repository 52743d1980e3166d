import json
import os

import pytest

from mouseterm.history import (
    DEFAULT_MAX_HISTORY,
    History,
    backup_dir,
    default_history_path,
    list_backups,
)


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    return tmp_path


def test_add_puts_newest_first():
    history = History()
    history.add("a")
    history.add("b")
    assert list(history) == ["b", "a"]


def test_add_ignores_blank_and_repeated_newest():
    history = History()
    history.add("   ")
    history.add("ls")
    history.add("ls")
    assert list(history) == ["ls"]


def test_add_allows_non_adjacent_duplicate():
    history = History()
    for command in ["ls", "pwd", "ls"]:
        history.add(command)
    assert list(history) == ["ls", "pwd", "ls"]


def test_max_history_drops_oldest():
    history = History(max_history=2)
    for command in ["a", "b", "c"]:
        history.add(command)
    assert list(history) == ["c", "b"]


def test_default_max_history():
    assert History().max_history == DEFAULT_MAX_HISTORY == 500


def test_navigation():
    history = History()
    for command in ["a", "b", "c"]:
        history.add(command)
    assert [history.previous() for _ in range(4)] == ["c", "b", "a", "a"]
    assert [history.next() for _ in range(4)] == ["b", "c", None, None]


def test_previous_on_empty_history():
    assert History().previous() is None
    assert History().next() is None


def test_add_and_reset_restart_navigation():
    history = History()
    history.add("a")
    history.add("b")
    history.previous()
    history.previous()
    history.add("c")
    assert history.previous() == "c"
    history.previous()
    history.reset_position()
    assert history.next() is None
    assert history.previous() == "c"


def test_set_max_history_trims():
    history = History()
    for command in ["a", "b", "c", "d"]:
        history.add(command)
    history.set_max_history(2)
    assert list(history) == ["d", "c"]
    assert history.max_history == 2


def test_search_ignores_case():
    history = History()
    for command in ["Git Status", "ls", "git log"]:
        history.add(command)
    assert history.search("GIT") == ["git log", "Git Status"]
    assert history.search("nothing") == []


def test_len_and_getitem():
    history = History()
    history.add("a")
    history.add("b")
    assert len(history) == 2
    assert history[0] == "b"
    assert history[1] == "a"
    with pytest.raises(IndexError):
        history[2]


def test_to_json_format():
    history = History()
    history.add("ls")
    assert history.to_json() == '{"commands":["ls"],"max_history":500}'


def test_json_round_trip():
    history = History(max_history=7)
    for command in ["ls", "echo é", "pwd"]:
        history.add(command)
    restored = History.from_json(history.to_json())
    assert list(restored) == list(history)
    assert restored.max_history == 7


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        '{"commands": []}',
        '{"max_history": 3}',
        '{"commands": [1], "max_history": 3}',
        '{"commands": [], "max_history": -1}',
        "[]",
    ],
)
def test_from_json_rejects_bad_data(text):
    with pytest.raises(ValueError):
        History.from_json(text)


def test_default_paths_under_home(home):
    assert default_history_path() == home / ".mouse_term" / "history.json"
    assert backup_dir() == home / ".mouse_term" / "history_backups"


def test_load_default_without_file(home):
    history = History.load_default()
    assert len(history) == 0
    assert history.history_file == default_history_path()
    assert (home / ".mouse_term").is_dir()


def test_save_and_load_round_trip(home):
    history = History.load_default()
    history.add("ls")
    history.add("pwd")
    history.save()
    loaded = History.load_default()
    assert list(loaded) == ["pwd", "ls"]
    assert json.loads(default_history_path().read_text())["commands"] == ["pwd", "ls"]


def test_save_backs_up_existing_file(home):
    history = History.load_default()
    history.add("ls")
    history.save()
    assert list_backups() == []
    history.add("pwd")
    history.save()
    backups = list_backups()
    assert len(backups) == 1
    assert backups[0].name.startswith("history_")
    assert list(History.from_json(backups[0].read_text())) == ["ls"]


def test_create_backup_without_file(home):
    assert History().create_backup() is None
    assert not backup_dir().exists()


def test_list_backups_sorted_newest_first(home):
    directory = backup_dir()
    directory.mkdir(parents=True)
    old = directory / "history_old.json"
    new = directory / "history_new.json"
    other = directory / "notes.txt"
    for path in (old, new, other):
        path.write_text("{}")
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(new, (2_000_000, 2_000_000))
    assert list_backups() == [new, old]


def test_list_backups_without_directory(home):
    assert list_backups() == []


def test_restore_from_backup(home, tmp_path):
    source = History(max_history=10)
    source.add("make")
    backup = tmp_path / "backup.json"
    backup.write_text(source.to_json())
    restored = History.restore_from_backup(backup)
    assert list(restored) == ["make"]
    assert restored.max_history == 10
    assert restored.history_file == default_history_path()


def test_save_uses_explicit_file(home, tmp_path):
    target = tmp_path / "custom" / "h.json"
    history = History(history_file=target)
    history.add("ls")
    history.save()
    assert list(History.from_json(target.read_text())) == ["ls"]
    assert not default_history_path().exists()