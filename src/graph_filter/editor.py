"""Chip editor state machine for the graph filter input.

The editor keeps the committed tokens (chips), the draft being typed, an
insertion cursor and the suggestion panel state. :func:`reduce_editor` is a
pure function over a closed set of actions; a transition that changes nothing
returns the very same state object so callers can skip re-rendering with an
identity check.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Union

from graph_filter.parsing.filter_lexer import tokenize_filter_query


@dataclass(frozen=True)
class EditorState:
    """Snapshot of the filter input.

    ``editing_index`` is set while the draft temporarily replaces one chip.
    ``selection`` is the index of the highlighted chip, if any.
    """

    ast: tuple[str, ...] = ()
    insertion_point: int = 0
    editing_index: int | None = None
    draft: str = ""
    selection: int | None = None
    suggestions_open: bool = False
    suggestion_index: int = 0
    focused: bool = False


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncFromText:
    """Rebuild from upstream text that changed for an external reason."""

    text: str


@dataclass(frozen=True)
class FocusInput:
    pass


@dataclass(frozen=True)
class BlurInput:
    pass


@dataclass(frozen=True)
class SetDraft:
    draft: str


@dataclass(frozen=True)
class ClearAll:
    pass


@dataclass(frozen=True)
class RemoveChip:
    index: int


@dataclass(frozen=True)
class EditChip:
    """Move a committed chip back into the draft for editing."""

    index: int


@dataclass(frozen=True)
class SelectChip:
    index: int | None


@dataclass(frozen=True)
class BackspaceFromDraftStart:
    pass


@dataclass(frozen=True)
class ApplySuggestion:
    token: str


@dataclass(frozen=True)
class MoveSuggestion:
    delta: int
    total: int


@dataclass(frozen=True)
class OpenSuggestions:
    pass


@dataclass(frozen=True)
class CloseSuggestions:
    pass


@dataclass(frozen=True)
class SetSuggestionIndex:
    index: int


EditorAction = Union[
    SyncFromText,
    FocusInput,
    BlurInput,
    SetDraft,
    ClearAll,
    RemoveChip,
    EditChip,
    SelectChip,
    BackspaceFromDraftStart,
    ApplySuggestion,
    MoveSuggestion,
    OpenSuggestions,
    CloseSuggestions,
    SetSuggestionIndex,
]


# ---------------------------------------------------------------------------
# Construction and serialization
# ---------------------------------------------------------------------------


def editor_state_from_text(text: str, focused: bool = False) -> EditorState:
    """Build a fresh state with every token of *text* committed."""
    ast = tuple(tokenize_filter_query(text))
    return EditorState(ast=ast, insertion_point=len(ast), focused=focused)


def serialize_editor_state(state: EditorState) -> str:
    """Return the query text the host should display for *state*."""
    tokens = list(state.ast)
    # The draft may hold several tokens; each is spliced in separately
    draft = tokenize_filter_query(state.draft)
    if state.editing_index is not None and 0 <= state.editing_index < len(tokens):
        tokens[state.editing_index:state.editing_index + 1] = draft
    elif draft:
        index = _clamp(state.insertion_point, 0, len(tokens))
        tokens[index:index] = draft
    return " ".join(tok for tok in tokens if tok)


def suggestion_panel_open(state: EditorState, suggestion_count: int) -> bool:
    """Whether the dropdown is visible; the reducer cannot know the count."""
    return state.suggestions_open and suggestion_count > 0


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _update(state: EditorState, **changes) -> EditorState:
    """Apply *changes*, returning *state* itself if nothing differs."""
    if all(getattr(state, name) == value for name, value in changes.items()):
        return state
    next_state = replace(state, **changes)
    ast_len = len(next_state.ast)
    fixes = {}
    if not 0 <= next_state.insertion_point <= ast_len:
        fixes["insertion_point"] = _clamp(next_state.insertion_point, 0, ast_len)
    if next_state.editing_index is not None and not 0 <= next_state.editing_index < ast_len:
        fixes["editing_index"] = None
    if next_state.selection is not None and not 0 <= next_state.selection < ast_len:
        fixes["selection"] = None
    return replace(next_state, **fixes) if fixes else next_state


def _without(ast: tuple[str, ...], index: int) -> tuple[str, ...]:
    return ast[:index] + ast[index + 1:]


def reduce_editor(state: EditorState, action: EditorAction) -> EditorState:
    """Return the state after *action*; unchanged transitions return *state*."""
    if isinstance(action, SyncFromText):
        return editor_state_from_text(action.text, focused=state.focused)

    if isinstance(action, FocusInput):
        # Focusing always starts a new trailing fragment rather than resuming
        # an edit of the last chip.
        return _update(
            state,
            editing_index=None,
            selection=None,
            insertion_point=len(state.ast),
            suggestions_open=True,
            suggestion_index=0,
            focused=True,
        )

    if isinstance(action, BlurInput):
        return _update(
            state,
            editing_index=None,
            selection=None,
            suggestions_open=False,
            focused=False,
        )

    if isinstance(action, SetDraft):
        return _update(state, draft=action.draft, suggestions_open=True, suggestion_index=0)

    if isinstance(action, ClearAll):
        return _update(
            state,
            ast=(),
            insertion_point=0,
            editing_index=None,
            selection=None,
            draft="",
            suggestions_open=True,
            suggestion_index=0,
        )

    if isinstance(action, RemoveChip):
        index = action.index
        if not 0 <= index < len(state.ast):
            return state
        insertion_point = state.insertion_point - 1 if state.insertion_point > index else state.insertion_point
        editing_index = state.editing_index
        draft = state.draft
        if editing_index == index:
            editing_index = None
            draft = ""
        elif editing_index is not None and editing_index > index:
            editing_index -= 1
        selection = state.selection
        if selection == index:
            selection = None
        elif selection is not None and selection > index:
            selection -= 1
        return _update(
            state,
            ast=_without(state.ast, index),
            insertion_point=insertion_point,
            editing_index=editing_index,
            selection=selection,
            draft=draft,
        )

    if isinstance(action, EditChip):
        index = action.index
        if not 0 <= index < len(state.ast):
            return state
        return _update(
            state,
            editing_index=index,
            insertion_point=index,
            selection=None,
            draft=state.ast[index],
            suggestions_open=True,
            suggestion_index=0,
            focused=True,
        )

    if isinstance(action, SelectChip):
        index = action.index
        if index is not None and not 0 <= index < len(state.ast):
            index = None
        return _update(state, selection=index)

    if isinstance(action, BackspaceFromDraftStart):
        if state.draft:
            return state
        if state.editing_index is not None:
            index = state.editing_index
            insertion_point = state.insertion_point - 1 if state.insertion_point > index else state.insertion_point
            return _update(
                state,
                ast=_without(state.ast, index),
                insertion_point=insertion_point,
                editing_index=None,
                selection=None,
            )
        if state.insertion_point <= 0:
            return state
        index = state.insertion_point - 1
        return _update(
            state,
            ast=_without(state.ast, index),
            insertion_point=index,
            selection=None,
        )

    if isinstance(action, ApplySuggestion):
        token = action.token.strip()
        if not token:
            return state
        if state.editing_index is not None:
            index = state.editing_index
            ast = state.ast[:index] + (token,) + state.ast[index + 1:]
        else:
            index = _clamp(state.insertion_point, 0, len(state.ast))
            ast = state.ast[:index] + (token,) + state.ast[index:]
        return _update(
            state,
            ast=ast,
            insertion_point=index + 1,
            editing_index=None,
            draft="",
            suggestions_open=True,
            suggestion_index=0,
        )

    if isinstance(action, MoveSuggestion):
        if action.total <= 0:
            return state
        index = (state.suggestion_index + action.delta + action.total) % action.total
        return _update(state, suggestion_index=index)

    if isinstance(action, OpenSuggestions):
        return _update(state, suggestions_open=True)

    if isinstance(action, CloseSuggestions):
        return _update(state, suggestions_open=False)

    if isinstance(action, SetSuggestionIndex):
        return _update(state, suggestion_index=max(0, action.index))

    raise TypeError(f"Unknown editor action: {action!r}")
