"""Command-line input state: tokenizing and per-token editing."""

from __future__ import annotations

from dataclasses import dataclass


class InputError(Exception):
    """Base class for errors raised while processing input."""


class InvalidTokenIndex(InputError, IndexError):
    """A token index does not refer to an existing token."""

    def __init__(self, index: int) -> None:
        super().__init__(f"Invalid token index: {index}")
        self.index = index


class UnmatchedQuote(InputError, ValueError):
    """The input contains an opening quote without a closing one."""

    def __init__(self) -> None:
        super().__init__("Unmatched quote in input")


@dataclass
class Token:
    """A token of the command line and its span in the input string."""

    text: str
    range: tuple[int, int]


def tokenize(text: str) -> list[Token]:
    """Split a command line into tokens.

    Spaces and tabs separate tokens unless inside double quotes. Quote
    characters are dropped, and a backslash takes the next character literally.
    """
    tokens: list[Token] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    start = 0

    for pos, char in enumerate(text):
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char in " \t" and not in_quotes:
            if current:
                tokens.append(Token("".join(current), (start, pos)))
                current = []
            start = pos + 1
        else:
            current.append(char)

    if in_quotes:
        raise UnmatchedQuote()

    if current:
        tokens.append(Token("".join(current), (start, len(text))))

    return tokens


def _quote(text: str) -> str:
    if any(char.isspace() for char in text):
        return f'"{text}"'
    return text


class InputState:
    """The input line, its tokens and the token currently being edited."""

    def __init__(self) -> None:
        self.raw_input = ""
        self.tokens: list[Token] = []
        self.editing: str | None = None

    def set_input(self, text: str) -> None:
        """Replace the raw input and tokenize it again."""
        self.raw_input = text
        self.tokens = []
        self.tokens = tokenize(text)

    def clear(self) -> None:
        """Empty the input and drop any edit in progress."""
        self.raw_input = ""
        self.tokens = []
        self.editing = None

    def _check_index(self, token_idx: int) -> None:
        if not 0 <= token_idx < len(self.tokens):
            raise InvalidTokenIndex(token_idx)

    def start_editing(self, token_idx: int) -> None:
        """Begin editing the token at ``token_idx``."""
        self._check_index(token_idx)
        self.editing = self.tokens[token_idx].text

    def commit_edit(self, token_idx: int) -> None:
        """Store the edited text in the token and rebuild the raw input."""
        self._check_index(token_idx)
        if self.editing is None:
            return
        self.tokens[token_idx].text = self.editing
        self.editing = None
        self.raw_input = " ".join(_quote(token.text) for token in self.tokens)

    def cancel_edit(self) -> None:
        """Abandon the edit in progress."""
        self.editing = None

    def update_editing(self, text: str) -> None:
        """Set the text of the token being edited."""
        self.editing = text

    def command(self) -> str:
        """Return the full command string."""
        return self.raw_input