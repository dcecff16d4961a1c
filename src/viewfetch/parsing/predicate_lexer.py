"""Lexer for component property blocks like ``{num: 42, word: /^boo+$/i}``."""

import re

import ply.lex as lex

from viewfetch.errors import SelectorSyntaxError

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "0": "\0",
}

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)


def _unescape(body: str) -> str:
    def replace(m: re.Match) -> str:
        seq = m.group(1)
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        return _ESCAPES.get(seq, seq)

    return _ESCAPE_RE.sub(replace, body)


class PredicateLexer:
    """Lexer for the data-only object literal syntax of property blocks.

    The accepted language is a JSON superset: bare keys, single-quoted
    strings, trailing commas, ``/* */`` comments and ``/regex/flags``
    literals.  Nothing is ever evaluated as code.
    """

    tokens = [
        "IDENTIFIER",
        "STRING",
        "NUMBER",
        "REGEX",
        "LBRACE",
        "RBRACE",
        "LBRACKET",
        "RBRACKET",
        "COLON",
        "COMMA",
    ]

    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_COLON = r":"
    t_COMMA = r","
    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    # Function tokens are tried in definition order: comments must win over
    # regex literals since both start with "/".

    def t_COMMENT(self, t: lex.LexToken) -> None:
        r"/\*(?:.|\n)*?\*/"
        t.lexer.lineno += t.value.count("\n")

    def t_REGEX(self, t: lex.LexToken) -> lex.LexToken:
        r"/(?:[^/\\\n]|\\.)+/[A-Za-z]*"
        end = t.value.rindex("/")
        t.value = (t.value[1:end], t.value[end + 1:])
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r""""(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'"""
        t.value = _unescape(t.value[1:-1])
        return t

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?"
        text = t.value
        if any(c in text for c in ".eE"):
            t.value = float(text)
        else:
            t.value = int(text)
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[A-Za-z_$][A-Za-z0-9_$]*"
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SelectorSyntaxError(
            f"Illegal character '{t.value[0]}' at position {t.lexpos}"
        )

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
