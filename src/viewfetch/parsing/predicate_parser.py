"""Parser for component property blocks.

A component segment may carry one or more object literals::

    @Animal{type: 'dog', name: 'Fido'}{name: 'Toto'}
    @Animal{type: 'dog'},{name: 'Toto'}

The blocks are parsed as data and merged left to right with a shallow
overlay, so both examples produce ``{"type": "dog", "name": "Toto"}``.
"""

from __future__ import annotations

import re
from typing import Any

import ply.yacc as yacc

from viewfetch.errors import SelectorSyntaxError
from viewfetch.parsing.predicate_lexer import PredicateLexer

_BARE_WORDS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    # Accepted for compatibility with JS literals; meaningless here.
    "g": 0,
    "u": 0,
}


class InvalidLiteral(ValueError):
    """A value in a property block that cannot be turned into data.

    Grammar actions raise this rather than a SyntaxError, which ply would
    swallow as an error-recovery signal.
    """


def compile_regex(pattern: str, flags: str) -> re.Pattern:
    value = 0
    for flag in flags:
        if flag not in _REGEX_FLAGS:
            raise InvalidLiteral(f"Unknown regex flag {flag!r} in /{pattern}/{flags}")
        value |= _REGEX_FLAGS[flag]
    try:
        return re.compile(pattern, value)
    except re.error as e:
        raise InvalidLiteral(f"Invalid regex /{pattern}/{flags}: {e}") from e


class PredicateParser:
    """LALR parser turning property block text into a predicate dict."""

    tokens = PredicateLexer.tokens
    start = "blocks"

    def __init__(self) -> None:
        self._lexer = PredicateLexer()
        self._parser: yacc.LRParser | None = None

    def build(self, **kwargs) -> None:  # type: ignore
        self._lexer.build()
        kwargs.setdefault("debug", False)
        kwargs.setdefault("write_tables", False)
        kwargs.setdefault("errorlog", yacc.NullLogger())
        self._parser = yacc.yacc(module=self, **kwargs)

    def parse(self, text: str) -> dict[str, Any]:
        """Parse and merge every block in ``text``."""
        if self._parser is None:
            self.build()
        try:
            blocks = self._parser.parse(text, lexer=self._lexer.lexer)
        except (SelectorSyntaxError, InvalidLiteral) as e:
            raise SelectorSyntaxError(f"Failed to parse property string {text!r}: {e}") from e
        if blocks is None:
            raise SelectorSyntaxError(f"Failed to parse property string {text!r}")
        merged: dict[str, Any] = {}
        for block in blocks:
            merged.update(block)
        return merged

    # ---- Grammar rules ----

    def p_blocks_single(self, p: yacc.YaccProduction) -> None:
        """blocks : object"""
        p[0] = [p[1]]

    def p_blocks_concat(self, p: yacc.YaccProduction) -> None:
        """blocks : blocks object"""
        p[0] = p[1] + [p[2]]

    def p_blocks_comma(self, p: yacc.YaccProduction) -> None:
        """blocks : blocks COMMA object"""
        p[0] = p[1] + [p[3]]

    def p_object_empty(self, p: yacc.YaccProduction) -> None:
        """object : LBRACE RBRACE"""
        p[0] = {}

    def p_object(self, p: yacc.YaccProduction) -> None:
        """object : LBRACE members RBRACE
                  | LBRACE members COMMA RBRACE"""
        p[0] = dict(p[2])

    def p_members_single(self, p: yacc.YaccProduction) -> None:
        """members : pair"""
        p[0] = [p[1]]

    def p_members_multi(self, p: yacc.YaccProduction) -> None:
        """members : members COMMA pair"""
        p[0] = p[1] + [p[3]]

    def p_pair(self, p: yacc.YaccProduction) -> None:
        """pair : key COLON value"""
        p[0] = (p[1], p[3])

    def p_key(self, p: yacc.YaccProduction) -> None:
        """key : IDENTIFIER
               | STRING"""
        p[0] = p[1]

    def p_value_literal(self, p: yacc.YaccProduction) -> None:
        """value : STRING
                 | NUMBER
                 | object
                 | array"""
        p[0] = p[1]

    def p_value_bare_word(self, p: yacc.YaccProduction) -> None:
        """value : IDENTIFIER"""
        word = p[1]
        if word not in _BARE_WORDS:
            raise InvalidLiteral(
                f"Unexpected bare word '{word}' at position {p.lexpos(1)}"
            )
        p[0] = _BARE_WORDS[word]

    def p_value_regex(self, p: yacc.YaccProduction) -> None:
        """value : REGEX"""
        pattern, flags = p[1]
        p[0] = {"$regex": compile_regex(pattern, flags)}

    def p_array_empty(self, p: yacc.YaccProduction) -> None:
        """array : LBRACKET RBRACKET"""
        p[0] = []

    def p_array(self, p: yacc.YaccProduction) -> None:
        """array : LBRACKET elements RBRACKET
                 | LBRACKET elements COMMA RBRACKET"""
        p[0] = p[2]

    def p_elements_single(self, p: yacc.YaccProduction) -> None:
        """elements : value"""
        p[0] = [p[1]]

    def p_elements_multi(self, p: yacc.YaccProduction) -> None:
        """elements : elements COMMA value"""
        p[0] = p[1] + [p[3]]

    # ---- Error handler ----

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SelectorSyntaxError(f"unexpected '{p.value}' at position {p.lexpos}")
        raise SelectorSyntaxError("unexpected end of input")
