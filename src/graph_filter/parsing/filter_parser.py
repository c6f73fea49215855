"""Parser for the graph filter query language.

A query is a flat list of tokens. Each token is either an axis filter
(``+crate:tokio``, ``-kind:request``) that adds a value to an include or
exclude set, or a control token (``colorBy:crate``, ``loners:off``) that sets
a scalar display option. Parsing never fails: unrecognised or incomplete
tokens are kept and marked invalid so the editor can render them as such.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from graph_filter.parsing.filter_lexer import strip_quotes, tokenize_filter_query

_log = logging.getLogger(__name__)

# Suggestion templates like <kind> are never real filter values
_PLACEHOLDER_RE = re.compile(r"^<.*>$")

_TRUE_VALUES = frozenset({"on", "true", "yes"})
_FALSE_VALUES = frozenset({"off", "false", "no"})

COLOR_BY_MODES = ("process", "crate")
GROUP_BY_MODES = ("process", "crate", "none")
LABEL_BY_MODES = ("process", "crate", "location")

# Lower-cased key -> axis name (the suffix of the include_/exclude_ fields)
AXIS_KEYS: dict[str, str] = {
    "node": "node_ids",
    "id": "node_ids",
    "location": "locations",
    "source": "locations",
    "crate": "crates",
    "process": "processes",
    "kind": "kinds",
    "module": "modules",
}


@dataclass(frozen=True)
class ParsedFilterToken:
    """One classified token of a filter query."""

    raw: str
    key: str | None
    value: str | None
    valid: bool


@dataclass
class FilterParseResult:
    """Predicate sets and display controls extracted from a query.

    A value may land in both the include and the exclude set of the same
    axis (``+crate:a -crate:a``); consumers decide which one wins.
    """

    tokens: list[ParsedFilterToken] = field(default_factory=list)
    include_node_ids: set[str] = field(default_factory=set)
    exclude_node_ids: set[str] = field(default_factory=set)
    include_locations: set[str] = field(default_factory=set)
    exclude_locations: set[str] = field(default_factory=set)
    include_crates: set[str] = field(default_factory=set)
    exclude_crates: set[str] = field(default_factory=set)
    include_processes: set[str] = field(default_factory=set)
    exclude_processes: set[str] = field(default_factory=set)
    include_kinds: set[str] = field(default_factory=set)
    exclude_kinds: set[str] = field(default_factory=set)
    include_modules: set[str] = field(default_factory=set)
    exclude_modules: set[str] = field(default_factory=set)
    focused_node_id: str | None = None
    show_loners: bool | None = None
    show_source: bool | None = None
    color_by: str | None = None  # process | crate
    group_by: str | None = None  # process | crate
    label_by: str | None = None  # process | crate | location

    def axis_set(self, axis: str, include: bool) -> set[str]:
        """Return the include or exclude set for *axis* (e.g. ``"crates"``)."""
        prefix = "include_" if include else "exclude_"
        return getattr(self, prefix + axis)

    @property
    def invalid_tokens(self) -> list[ParsedFilterToken]:
        return [tok for tok in self.tokens if not tok.valid]


def is_placeholder(value: str) -> bool:
    """Return True for suggestion templates such as ``<id>``."""
    return bool(_PLACEHOLDER_RE.match(value))


class FilterParser:
    """Parser turning filter query text into a :class:`FilterParseResult`."""

    def parse(self, text: str) -> FilterParseResult:
        """Parse *text*. Every token of the input appears once in ``tokens``."""
        result = FilterParseResult()
        for raw in tokenize_filter_query(text):
            result.tokens.append(self._parse_token(raw, result))
        _log.debug(
            "parsed %d filter tokens (%d invalid)",
            len(result.tokens),
            len(result.invalid_tokens),
        )
        return result

    def _parse_token(self, raw: str, result: FilterParseResult) -> ParsedFilterToken:
        colon = raw.find(":")
        if colon < 1:
            return ParsedFilterToken(raw, None, None, False)

        sign = 0
        if raw.startswith("+"):
            sign = 1
        elif raw.startswith("-"):
            sign = -1
        body = raw[1:] if sign else raw
        colon = body.find(":")
        key = body[:colon]
        if not key:
            return ParsedFilterToken(raw, None, None, False)
        value = strip_quotes(body[colon + 1:]).strip()
        if not value:
            return ParsedFilterToken(raw, key, value, False)

        valid = self._apply(key.lower(), value, sign, result)
        return ParsedFilterToken(raw, key, value, valid)

    def _apply(self, key: str, value: str, sign: int, result: FilterParseResult) -> bool:
        """Record *value* under *key* in *result*; return whether it was accepted."""
        if sign and key in AXIS_KEYS:
            if is_placeholder(value):
                return False
            result.axis_set(AXIS_KEYS[key], sign > 0).add(value)
            return True

        if key == "loners":
            flag = _parse_flag(value)
            if flag is None:
                return False
            result.show_loners = flag
            return True
        if key == "source" and not sign:
            if value not in ("on", "off"):
                return False
            result.show_source = value == "on"
            return True
        if key == "colorby":
            if value not in COLOR_BY_MODES:
                return False
            result.color_by = value
            return True
        if key == "groupby":
            if value not in GROUP_BY_MODES:
                return False
            if value != "none":
                result.group_by = value
            return True
        if key == "labelby":
            if value not in LABEL_BY_MODES:
                return False
            result.label_by = value
            return True
        if key in ("focus", "subgraph"):
            if is_placeholder(value):
                return False
            result.focused_node_id = value
            return True
        return False


def _parse_flag(value: str) -> bool | None:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


def parse_filter_query(text: str) -> FilterParseResult:
    """Parse *text* with a fresh :class:`FilterParser`."""
    return FilterParser().parse(text)
