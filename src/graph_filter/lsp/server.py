"""Graph filter language server: diagnostics, completion and hover via pygls."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from graph_filter.config import FilterConfig, load_config
from graph_filter.logging import setup_logging
from graph_filter.parsing.filter_lexer import tokenize_filter_query, tokenize_with_offsets
from graph_filter.parsing.filter_parser import (
    AXIS_KEYS,
    COLOR_BY_MODES,
    GROUP_BY_MODES,
    LABEL_BY_MODES,
    FilterParser,
    ParsedFilterToken,
    is_placeholder,
)
from graph_filter.registry import FilterRegistries, RegistryError, load_registries
from graph_filter.suggestions import suggest

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEY_DOCS: dict[str, str] = {
    "node": "Signed axis: `+node:<id>` includes only, `-node:<id>` excludes entity ids",
    "id": "Alias of `node`",
    "location": "Signed axis: include/exclude source locations (`file:line`)",
    "source": "`source:on|off` toggles source display; `+source:`/`-source:` alias `location`",
    "crate": "Signed axis: include/exclude crates",
    "process": "Signed axis: include/exclude processes",
    "kind": "Signed axis: include/exclude entity kinds",
    "module": "Signed axis: include/exclude module paths",
    "loners": "Show (`on`/`true`/`yes`) or hide (`off`/`false`/`no`) unconnected nodes",
    "colorby": "Node coloring: " + " | ".join(COLOR_BY_MODES),
    "groupby": "Subgraph grouping: " + " | ".join(GROUP_BY_MODES),
    "labelby": "Node labels: " + " | ".join(LABEL_BY_MODES),
    "focus": "Focus the subgraph around one node id",
    "subgraph": "Alias of `focus`",
}

# Re-opens the completion list after a two-stage key like `+kind:`
_TRIGGER_SUGGEST = types.Command(title="Suggest", command="editor.action.triggerSuggest")

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def offset_to_position(source: str, offset: int) -> types.Position:
    """Convert a string offset into an LSP ``Position(line, character)``."""
    line = source.count("\n", 0, offset)
    last_nl = source.rfind("\n", 0, offset)
    character = offset if last_nl == -1 else offset - last_nl - 1
    return types.Position(line=line, character=character)


def describe_problem(token: ParsedFilterToken) -> str:
    """Explain why *token* is invalid."""
    if token.key is None:
        return f"'{token.raw}' is not a key:value filter"
    key = token.key.lower()
    if not token.value:
        return f"Missing value for '{token.key}'"
    signed = token.raw[:1] in ("+", "-")
    if key in AXIS_KEYS and (signed or key != "source"):
        if not signed:
            return f"'{token.key}' needs a + (include) or - (exclude) sign"
        if is_placeholder(token.value):
            return f"Replace the placeholder {token.value} with a value"
    if key in ("focus", "subgraph") and is_placeholder(token.value):
        return f"Replace the placeholder {token.value} with a node id"
    if key in KEY_DOCS:
        return f"Invalid value '{token.value}' for '{token.key}'"
    return f"Unknown filter key '{token.key}'"


def token_diagnostics(source: str) -> list[types.Diagnostic]:
    """One warning per invalid token in *source*."""
    parsed = FilterParser().parse(source).tokens
    diagnostics = []
    for (offset, raw), token in zip(tokenize_with_offsets(source), parsed):
        if token.valid:
            continue
        diagnostics.append(
            types.Diagnostic(
                range=types.Range(
                    start=offset_to_position(source, offset),
                    end=offset_to_position(source, offset + len(raw)),
                ),
                severity=types.DiagnosticSeverity.Warning,
                source="graph-filter",
                message=describe_problem(token),
            )
        )
    return diagnostics


def fragment_at(line_text: str, character: int) -> str:
    """Return the partially typed token ending at *character*."""
    prefix = line_text[:character]
    if not prefix or prefix[-1].isspace():
        return ""
    tokens = tokenize_filter_query(prefix)
    return tokens[-1] if tokens else ""


def completion_items(
    source: str,
    line_text: str,
    position: types.Position,
    registries: FilterRegistries,
    config: FilterConfig | None = None,
) -> list[types.CompletionItem]:
    """Completion items for the fragment under the cursor, in ranked order."""
    fragment = fragment_at(line_text, position.character)
    existing = tokenize_filter_query(source)
    if fragment and fragment in existing:
        existing.remove(fragment)
    inp = registries.suggestion_input(fragment, existing_tokens=existing)
    if config is not None:
        inp.limit = config.suggestions.limit
        inp.entity_limit = config.suggestions.entity_limit

    start = types.Position(line=position.line, character=position.character - len(fragment))
    edit_range = types.Range(start=start, end=position)
    items = []
    for rank, s in enumerate(suggest(inp)):
        new_text = s.apply_token or s.token
        two_stage = new_text in ("+", "-") or new_text.endswith(":")
        items.append(
            types.CompletionItem(
                label=s.token,
                kind=types.CompletionItemKind.Keyword if two_stage else types.CompletionItemKind.Value,
                detail=s.description,
                sort_text=f"{rank:04d}",
                filter_text=fragment or s.token,
                text_edit=types.TextEdit(range=edit_range, new_text=new_text),
                command=_TRIGGER_SUGGEST if two_stage else None,
            )
        )
    return items


def hover_text(line_text: str, character: int) -> str | None:
    """Markdown help for the filter key of the token under *character*."""
    for offset, raw in tokenize_with_offsets(line_text):
        if offset <= character < offset + len(raw):
            body = raw.lstrip("+-")
            if ":" not in body:
                return None
            key = body.split(":", 1)[0]
            doc = KEY_DOCS.get(key.lower())
            return f"**{key}**: {doc}" if doc else None
    return None


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("graph-filter-language-server", "0.1.0")
_registries = FilterRegistries()
_config = FilterConfig()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    _validate_document(params.text_document.uri)


def _validate_document(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    diagnostics = token_diagnostics(doc.source)
    _log.debug("%s: %d invalid filter tokens", uri, len(diagnostics))
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[":", "+", "-"]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    line_text = doc.lines[params.position.line] if params.position.line < len(doc.lines) else ""
    line_text = line_text.rstrip("\r\n")
    items = completion_items(doc.source, line_text, params.position, _registries, _config)
    # Fuzzy ranking depends on the whole fragment, so the client must re-ask
    return types.CompletionList(is_incomplete=True, items=items)


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    content = hover_text(doc.lines[params.position.line], params.position.character)
    if content is None:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=content,
        )
    )


def main(argv: list[str] | None = None) -> int:
    global _registries, _config
    arg_parser = argparse.ArgumentParser(description="Graph filter language server (stdio)")
    arg_parser.add_argument("-r", "--registry", type=Path, help="Registry YAML/JSON file")
    arg_parser.add_argument("--config", type=Path, help="Configuration file")
    args = arg_parser.parse_args(argv)

    _config = load_config(args.config)
    # stdout carries JSON-RPC; only log to a file
    if _config.logging.file:
        setup_logging(_config.logging)

    registry_path = args.registry
    if registry_path is None and _config.registry_file:
        registry_path = Path(_config.registry_file).expanduser()
    if registry_path is not None:
        try:
            _registries = load_registries(registry_path)
        except RegistryError as e:
            _log.error("%s", e)
            return 1

    server.start_io()
    return 0


if __name__ == "__main__":
    sys.exit(main())
