"""graph-filter - query language and chip editor for concurrency graph filters."""

from graph_filter.editor import (
    ApplySuggestion,
    BackspaceFromDraftStart,
    BlurInput,
    ClearAll,
    CloseSuggestions,
    EditChip,
    EditorAction,
    EditorState,
    FocusInput,
    MoveSuggestion,
    OpenSuggestions,
    RemoveChip,
    SelectChip,
    SetDraft,
    SetSuggestionIndex,
    SyncFromText,
    editor_state_from_text,
    reduce_editor,
    serialize_editor_state,
)
from graph_filter.parsing import (
    FilterParser,
    FilterParseResult,
    ParsedFilterToken,
    append_filter_token,
    parse_filter_query,
    quote_value,
    remove_filter_token_at_index,
    strip_quotes,
    tokenize_filter_query,
)
from graph_filter.registry import FilterRegistries, RegistryError, load_registries
from graph_filter.session import FilterInputSession
from graph_filter.suggestions import (
    Suggestion,
    SuggestionEntity,
    SuggestionInput,
    SuggestionItem,
    suggest,
)

__all__ = [
    # Query language
    "tokenize_filter_query",
    "quote_value",
    "strip_quotes",
    "append_filter_token",
    "remove_filter_token_at_index",
    "FilterParser",
    "FilterParseResult",
    "ParsedFilterToken",
    "parse_filter_query",
    # Suggestions
    "Suggestion",
    "SuggestionEntity",
    "SuggestionInput",
    "SuggestionItem",
    "suggest",
    # Editor
    "EditorState",
    "EditorAction",
    "SyncFromText",
    "FocusInput",
    "BlurInput",
    "SetDraft",
    "ClearAll",
    "RemoveChip",
    "EditChip",
    "SelectChip",
    "BackspaceFromDraftStart",
    "ApplySuggestion",
    "MoveSuggestion",
    "OpenSuggestions",
    "CloseSuggestions",
    "SetSuggestionIndex",
    "editor_state_from_text",
    "reduce_editor",
    "serialize_editor_state",
    # Host glue
    "FilterInputSession",
    "FilterRegistries",
    "RegistryError",
    "load_registries",
]

__version__ = "0.1.0"
