"""Context-sensitive completion candidates for the graph filter input.

The engine looks only at the fragment being typed and the reference lookup
lists; it never validates. Accepting a suggestion still goes through the
parser, so a two-stage placeholder such as ``+kind:<kind>`` stays invalid
until it is narrowed to a concrete value.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from graph_filter.parsing.filter_lexer import quote_value, strip_quotes

T = TypeVar("T")

DEFAULT_LIMIT = 12
DEFAULT_ENTITY_LIMIT = 3


@dataclass(frozen=True)
class Suggestion:
    """A dropdown entry. ``token`` is displayed, ``apply_token`` (if set) is inserted."""

    token: str
    description: str
    apply_token: str | None = None


@dataclass(frozen=True)
class SuggestionItem:
    """A registry entry such as a crate, process, kind or module path."""

    id: str
    label: str


@dataclass(frozen=True)
class SuggestionEntity:
    """A graph entity offered for fuzzy focus and include/exclude suggestions."""

    id: str
    label: str
    search_text: str | None = None


@dataclass
class SuggestionInput:
    """Everything :func:`suggest` needs; supplied by the host on every render."""

    fragment: str = ""
    existing_tokens: Sequence[str] = ()
    node_ids: Sequence[str] = ()
    entities: Sequence[SuggestionEntity] | None = None
    locations: Sequence[str] = ()
    crates: Sequence[SuggestionItem] = ()
    processes: Sequence[SuggestionItem] = ()
    kinds: Sequence[SuggestionItem] = ()
    modules: Sequence[SuggestionItem] = ()
    limit: int = DEFAULT_LIMIT
    entity_limit: int = DEFAULT_ENTITY_LIMIT


# ---------------------------------------------------------------------------
# Static key tables
# ---------------------------------------------------------------------------

# (key, placeholder, noun) for the signed axes
AXES: tuple[tuple[str, str, str], ...] = (
    ("node", "<id>", "nodes by entity id"),
    ("location", "<src>", "source locations"),
    ("crate", "<name>", "crates"),
    ("process", "<id>", "processes"),
    ("kind", "<kind>", "kinds"),
    ("module", "<path>", "modules"),
)

SIGN_SUGGESTIONS: tuple[Suggestion, ...] = (
    Suggestion("+", "Include only filter"),
    Suggestion("-", "Exclude everything matching this filter"),
)

CONTROL_SUGGESTIONS: tuple[Suggestion, ...] = (
    Suggestion("focus:<id>", "Focus the subgraph around a node", "focus:"),
    Suggestion("loners:on", "Show unconnected nodes"),
    Suggestion("loners:off", "Hide unconnected nodes"),
    Suggestion("source:on", "Show source locations on nodes"),
    Suggestion("source:off", "Hide source locations on nodes"),
    Suggestion("colorBy:process", "Color nodes by process"),
    Suggestion("colorBy:crate", "Color nodes by crate"),
    Suggestion("groupBy:process", "Group by process subgraphs"),
    Suggestion("groupBy:crate", "Group by crate subgraphs"),
    Suggestion("labelBy:process", "Label nodes by process"),
    Suggestion("labelBy:crate", "Label nodes by crate"),
    Suggestion("labelBy:location", "Label nodes by source location"),
)

_BOOLEAN_DESCRIPTIONS = {
    "loners": {"on": "Show unconnected nodes", "off": "Hide unconnected nodes"},
    "source": {"on": "Show source locations on nodes", "off": "Hide source locations on nodes"},
}

_MODE_VALUES: dict[str, tuple[str, str, tuple[str, ...]]] = {
    # lower-cased key -> (display key, verb, values)
    "colorby": ("colorBy", "Color nodes by", ("process", "crate")),
    "groupby": ("groupBy", "Group by", ("process", "crate", "none")),
    "labelby": ("labelBy", "Label nodes by", ("process", "crate", "location")),
}


def _signed_description(sign: str) -> str:
    return "Include only matching" if sign == "+" else "Exclude matching"


def axis_key_suggestions(sign: str) -> list[Suggestion]:
    """Two-stage key placeholders (``+node:<id>`` applying ``+node:``) for *sign*."""
    desc = _signed_description(sign)
    return [
        Suggestion(f"{sign}{key}:{placeholder}", f"{desc} {noun}", f"{sign}{key}:")
        for key, placeholder, noun in AXES
    ]


# ---------------------------------------------------------------------------
# Fuzzy ranking
# ---------------------------------------------------------------------------


def fuzzy_subsequence_match(needle: str, haystack: str) -> bool:
    """Return True if the characters of *needle* appear in order in *haystack*."""
    if not needle:
        return True
    i = 0
    for ch in haystack:
        if ch == needle[i]:
            i += 1
            if i == len(needle):
                return True
    return False


def rank_match(query_lower: str, target_lower: str) -> float:
    """0 prefix, 1 substring, 2 subsequence, ``inf`` for no match."""
    if not query_lower:
        return 0
    if target_lower.startswith(query_lower):
        return 0
    if query_lower in target_lower:
        return 1
    if fuzzy_subsequence_match(query_lower, target_lower):
        return 2
    return math.inf


def sorted_matches(
    values: Iterable[T],
    query_lower: str,
    target: Callable[[T], str],
    limit: int = DEFAULT_LIMIT,
) -> list[T]:
    """Rank *values* against *query_lower*; ties keep their original order."""
    ranked = []
    for idx, value in enumerate(values):
        rank = rank_match(query_lower, target(value).lower())
        if rank != math.inf:
            ranked.append((rank, idx, value))
    ranked.sort(key=lambda row: (row[0], row[1]))
    return [value for _, _, value in ranked[:limit]]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


_KEY_ALIASES = {"id": "node", "source": "location", "subgraph": "focus"}


def _canonical_token(token: str) -> str:
    """Normalise quoting, key case and aliases so equal filters compare equal."""
    sign = token[0] if token[:1] in ("+", "-") else ""
    body = token[len(sign):]
    if ":" not in body:
        return token
    key, value = body.split(":", 1)
    key = key.lower()
    # Unsigned source is the on/off toggle, not the location alias
    if sign or key != "source":
        key = _KEY_ALIASES.get(key, key)
    return f"{sign}{key}:{strip_quotes(value)}"


class _SuggestionList:
    """Ordered, token-unique output that skips already committed filters."""

    def __init__(self, existing: Iterable[str]) -> None:
        self._existing = {_canonical_token(tok) for tok in existing}
        self._seen: set[str] = set()
        self.items: list[Suggestion] = []

    def push(self, token: str, description: str, apply_token: str | None = None) -> None:
        if token in self._seen or _canonical_token(token) in self._existing:
            return
        self._seen.add(token)
        self.items.append(Suggestion(token, description, apply_token))

    def extend(self, suggestions: Iterable[Suggestion]) -> None:
        for s in suggestions:
            self.push(s.token, s.description, s.apply_token)


def _key_match_text(s: Suggestion) -> str:
    return f"{s.token.lstrip('+-')} {s.description}"


def _entity_match_text(entity: SuggestionEntity) -> str:
    return f"{entity.id} {entity.label} {entity.search_text or ''}"


def _item_match_text(item: SuggestionItem) -> str:
    return f"{item.id} {item.label}"


def _location_value(location: str) -> str:
    # Source locations are "file:line"; always quote them so the embedded
    # colon reads as part of the value.
    quoted = quote_value(location)
    if quoted != location or ":" not in location:
        return quoted
    return '"' + location.replace("\\", "\\\\") + '"'


def suggest(inp: SuggestionInput) -> list[Suggestion]:
    """Return ranked completion candidates for ``inp.fragment``."""
    fragment = inp.fragment.strip()
    lower_fragment = fragment.lower()
    out = _SuggestionList(inp.existing_tokens)

    sign = fragment[0] if fragment[:1] in ("+", "-") else ""
    unsigned = fragment[1:] if sign else fragment
    unsigned_lower = unsigned.lower()

    if ":" not in unsigned:
        if not fragment:
            out.extend(SIGN_SUGGESTIONS)
            out.extend(CONTROL_SUGGESTIONS[: inp.limit])
        elif sign:
            out.extend(sorted_matches(axis_key_suggestions(sign), unsigned_lower, _key_match_text, inp.limit))
        else:
            if inp.entities:
                for entity in sorted_matches(inp.entities, lower_fragment, _entity_match_text, inp.entity_limit):
                    value = quote_value(entity.id)
                    out.push(f"focus:{value}", f"Focus {entity.label}")
                    out.push(f"+node:{value}", f"Include only {entity.label}")
                    out.push(f"-node:{value}", f"Exclude {entity.label}")
            keys = axis_key_suggestions("+") + axis_key_suggestions("-") + list(CONTROL_SUGGESTIONS)
            out.extend(sorted_matches(keys, lower_fragment, _key_match_text, inp.limit))
        return out.items

    colon = unsigned.index(":")
    key = unsigned[:colon].lower()
    value_lower = unsigned[colon + 1:].strip('"').lower()

    if sign and key in ("node", "id"):
        desc = _signed_description(sign)
        for node_id in sorted_matches(inp.node_ids, value_lower, str, inp.limit):
            out.push(f"{sign}node:{quote_value(node_id)}", f"{desc} node {node_id}")
        return out.items

    if sign and key in ("location", "source"):
        desc = _signed_description(sign)
        for location in sorted_matches(inp.locations, value_lower, str, inp.limit):
            out.push(f"{sign}location:{_location_value(location)}", f"{desc} location {location}")
        return out.items

    registries = {
        "crate": inp.crates,
        "process": inp.processes,
        "kind": inp.kinds,
        "module": inp.modules,
    }
    if sign and key in registries:
        desc = _signed_description(sign)
        for item in sorted_matches(registries[key], value_lower, _item_match_text, inp.limit):
            out.push(f"{sign}{key}:{quote_value(item.id)}", f"{desc} {key} {item.label}")
        return out.items

    if key == "loners" or (key == "source" and not sign):
        for mode in sorted_matches(("on", "off"), value_lower, str, inp.limit):
            out.push(f"{key}:{mode}", _BOOLEAN_DESCRIPTIONS[key][mode])
        return out.items

    if key in _MODE_VALUES:
        display_key, verb, values = _MODE_VALUES[key]
        for mode in sorted_matches(values, value_lower, str, inp.limit):
            description = "Disable grouping" if mode == "none" else f"{verb} {mode}"
            out.push(f"{display_key}:{mode}", description)
        return out.items

    if key in ("focus", "subgraph"):
        if inp.entities:
            for entity in sorted_matches(inp.entities, value_lower, _entity_match_text, inp.limit):
                out.push(f"focus:{quote_value(entity.id)}", f"Focus {entity.label}")
        else:
            for node_id in sorted_matches(inp.node_ids, value_lower, str, inp.limit):
                out.push(f"focus:{quote_value(node_id)}", f"Focus node {node_id}")
        return out.items

    # Unknown key: offer every key that could apply, still ranked
    if sign:
        fallback = axis_key_suggestions(sign)
        query = unsigned_lower
    else:
        fallback = axis_key_suggestions("+") + axis_key_suggestions("-") + list(CONTROL_SUGGESTIONS)
        query = lower_fragment
    out.extend(sorted_matches(fallback, query, _key_match_text, inp.limit))
    return out.items
