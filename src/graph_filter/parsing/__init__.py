"""Parsing module for the graph filter query language."""

from graph_filter.parsing.filter_lexer import (
    FilterLexer,
    append_filter_token,
    quote_value,
    remove_filter_token_at_index,
    strip_quotes,
    tokenize_filter_query,
)
from graph_filter.parsing.filter_parser import (
    FilterParser,
    FilterParseResult,
    ParsedFilterToken,
    parse_filter_query,
)

__all__ = [
    "FilterLexer",
    "FilterParseResult",
    "FilterParser",
    "ParsedFilterToken",
    "append_filter_token",
    "parse_filter_query",
    "quote_value",
    "remove_filter_token_at_index",
    "strip_quotes",
    "tokenize_filter_query",
]
