"""Lexer and quoting helpers for the graph filter query language."""

from __future__ import annotations

import re

import ply.lex as lex


class FilterLexer:
    """Lexer that splits a filter query into whitespace-separated tokens.

    A backslash escapes the next character (inside quotes too), an unescaped
    double quote toggles quoting, and whitespace inside quotes does not split.
    An unterminated quote runs to the end of the input. Every input string
    tokenizes; there is no error path.
    """

    tokens = ["TOKEN"]

    t_ignore = " \t\r\n\f\v"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_TOKEN(self, t: lex.LexToken) -> lex.LexToken:
        r'(?:\\[\s\S]?|"(?:\\[\s\S]?|[^"\\])*"?|[^\s"\\])+'
        # An escaped trailing space is trimmed like any other edge whitespace
        t.value = t.value.strip()
        return t

    def t_error(self, t: lex.LexToken) -> None:
        # TOKEN covers every non-whitespace character, so anything left over is
        # whitespace outside t_ignore (e.g. a non-breaking space).
        t.lexer.skip(1)

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


_shared_lexer: FilterLexer | None = None


def _lexer() -> FilterLexer:
    global _shared_lexer
    if _shared_lexer is None:
        _shared_lexer = FilterLexer()
        _shared_lexer.build()
    return _shared_lexer


def tokenize_filter_query(text: str) -> list[str]:
    """Split *text* into raw filter tokens."""
    return [tok.value for tok in _lexer().tokenize(text)]


def tokenize_with_offsets(text: str) -> list[tuple[int, str]]:
    """Like :func:`tokenize_filter_query` but paired with each token's start offset."""
    return [(tok.lexpos, tok.value) for tok in _lexer().tokenize(text)]


_BARE_VALUE_RE = re.compile(r'^[^\s"]+$')
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def quote_value(value: str) -> str:
    """Quote *value* if it contains whitespace or double quotes."""
    if _BARE_VALUE_RE.match(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def strip_quotes(value: str) -> str:
    """Inverse of :func:`quote_value` for a single (possibly quoted) value."""
    trimmed = value.strip()
    if len(trimmed) >= 2 and trimmed.startswith('"') and trimmed.endswith('"'):
        return _ESCAPE_RE.sub(r"\1", trimmed[1:-1])
    return trimmed


def append_filter_token(text: str, token: str) -> str:
    """Append *token* to the query unless it is already present.

    Used by callers that add filters programmatically, e.g. an
    "exclude this crate" context-menu entry.
    """
    tokens = tokenize_filter_query(text)
    if token in tokens:
        return text
    if not tokens:
        return token
    return " ".join(tokens + [token])


def remove_filter_token_at_index(text: str, index: int) -> str:
    """Remove the token at *index*; out-of-range indices leave *text* unchanged."""
    tokens = tokenize_filter_query(text)
    if index < 0 or index >= len(tokens):
        return text
    del tokens[index]
    return " ".join(tokens)
