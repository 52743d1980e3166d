# mouseterm

This library holds the building blocks of a mouse-driven terminal:

- **`mouseterm.input`** splits a command line into tokens. Spaces and tabs
  separate tokens. Inside double quotes they do not, and a backslash takes the
  next character literally. You can edit one token at a time, and the line is
  then rebuilt from its tokens.
- **`mouseterm.history`** keeps a bounded command history, newest first, with
  500 entries by default. It supports up/down navigation and case-insensitive
  search. It is stored as JSON in `~/.mouse_term/history.json`, and
  timestamped backups go in `~/.mouse_term/history_backups/`.
- **`mouseterm.executor`** runs one command at a time in the background and
  collects its stdout and stderr line by line. `cd` is built in and lists the
  new directory afterwards. Commands can be run through `sudo` with a password
  sent on stdin, and a sudo session lasts 15 minutes.

## Installation

```
pip install .
```

To run the tests, install the test extra with `pip install .[test]` and then
run `pytest`.

## Tokenizing input

```python
from mouseterm.input import InputState, tokenize, UnmatchedQuote, InvalidTokenIndex

state = InputState()
state.set_input('echo "hello world" test')
print([t.text for t in state.tokens])   # ['echo', 'hello world', 'test']
print(state.tokens[0].range)            # (0, 4)

state.start_editing(2)
state.update_editing("done")
state.commit_edit(2)
print(state.command())                  # echo "hello world" done

try:
    tokenize('echo "unterminated')
except UnmatchedQuote:
    print("quote is not closed")

try:
    state.start_editing(10)
except InvalidTokenIndex as error:
    print(error)                        # Invalid token index: 10
```

- `commit_edit` does nothing when no edit is in progress.
- When the line is rebuilt, any token that contains whitespace is wrapped in
  double quotes.
- Both `UnmatchedQuote` and `InvalidTokenIndex` derive from `InputError`.

## Command history

```python
from mouseterm.history import History, list_backups

history = History(max_history=100, history_file="history.json")
history.add("ls -la")
history.add("git status")

history.previous()          # 'git status'
history.previous()          # 'ls -la'
history.next()              # 'git status'
history.next()              # None: back past the newest entry
history.search("GIT")       # ['git status']
len(history), history[0]    # (2, 'git status')

history.save()
restored = History.from_json(history.to_json())
```

- `add` ignores blank commands and commands that repeat the newest entry.
- `set_max_history` drops the oldest entries that no longer fit.
- `save` first copies any existing history file into the backup directory
  under the home directory, and then writes the new contents.
- `History.load_default()` reads `~/.mouse_term/history.json`. If that file
  does not exist, it returns an empty history.
- `list_backups()` returns the backup files, newest first.
- `History.restore_from_backup(path)` loads a backup. The result is set to be
  saved to the default path.
- `from_json` raises `ValueError` if the data is malformed.

## Running commands

```python
import time
from mouseterm.executor import Executor

executor = Executor()
executor.execute("ls -l")
while executor.is_running:
    executor.check_output()
    time.sleep(0.05)

print(executor.result.exit_code)
print("\n".join(executor.all_output()))
```

`is_running` and `result` are properties. `check_output()` collects any pending
output and returns whether anything new arrived.

- **Empty commands:** `execute` raises `ValueError` when the command is empty.
- **`cd`:** it runs in-process and finishes straight away, and its
  messages are in `result`.
- **Programs that cannot start:** the error is added to stderr and the exit
  code is `-1`.
- **Stopping a command:** `terminate()` kills the running command and stops
  collecting its output.
- **Commands killed by a signal:** these have an exit code of `None`.

To run a command through sudo:

```python
password = "password"
executor.execute_sudo("sudo ls /root", password)
```

`is_sudo_session_valid()` reports whether a sudo password was given in the
last 15 minutes.

## What this package does not do

This package provides the input, history and execution pieces only. It has
none of the following:

- a full-screen interface
- mouse or keyboard handling
- a file browser
- a command to start a terminal

To get a terminal, your program has to draw the screen and pass user actions
to these classes.