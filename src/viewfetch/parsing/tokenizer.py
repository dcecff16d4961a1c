"""Quote- and bracket-aware whitespace splitting for selector strings."""

from __future__ import annotations

from viewfetch.errors import SelectorSyntaxError

QUOTES = frozenset("\"'`")
BRACKETS = {"(": ")", "[": "]", "{": "}"}


def split_selector(text: str) -> list[str]:
    """Split ``text`` on whitespace that is outside quotes and brackets.

    A backslash escapes the following character; both are kept so CSS
    escapes survive.  Empty tokens are dropped.  Unterminated quotes or
    brackets raise SelectorSyntaxError.
    """
    tokens: list[str] = []
    current: list[str] = []
    closers: list[tuple[str, int]] = []  # (expected closer, column of opener)
    i = 0

    while i < len(text):
        ch = text[i]

        if ch == "\\":
            current.append(text[i:i + 2])
            i += 2
            continue

        if ch in QUOTES:
            end = _closing_quote(text, ch, i + 1)
            if end < 0:
                raise SelectorSyntaxError(
                    f"Unterminated {ch} in selector {text!r} at column {i}"
                )
            current.append(text[i:end + 1])
            i = end + 1
            continue

        if ch in BRACKETS:
            closers.append((BRACKETS[ch], i))
        elif closers and ch == closers[-1][0]:
            closers.pop()
        elif ch.isspace() and not closers:
            if current:
                tokens.append("".join(current))
                current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    if closers:
        _, column = closers[-1]
        raise SelectorSyntaxError(
            f"Unmatched {text[column]!r} in selector {text!r} at column {column}"
        )
    if current:
        tokens.append("".join(current))
    return tokens


def _closing_quote(text: str, quote: str, start: int) -> int:
    i = start
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i
        i += 1
    return -1
