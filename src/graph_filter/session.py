"""Framework-free host for the filter chip editor.

:class:`FilterInputSession` owns one :class:`~graph_filter.editor.EditorState`
and sits between a text-input widget and the parent that holds the
authoritative query text. It dispatches actions through the reducer,
propagates the serialized text upward only when it actually changed, and
suppresses the echo of its own emissions so an external round trip never
resets the cursor or the draft.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from graph_filter.editor import (
    ApplySuggestion,
    BackspaceFromDraftStart,
    CloseSuggestions,
    EditorAction,
    EditorState,
    MoveSuggestion,
    OpenSuggestions,
    RemoveChip,
    SetDraft,
    SetSuggestionIndex,
    SyncFromText,
    editor_state_from_text,
    reduce_editor,
    serialize_editor_state,
    suggestion_panel_open,
)
from graph_filter.parsing.filter_parser import ParsedFilterToken, parse_filter_query
from graph_filter.registry import FilterRegistries
from graph_filter.suggestions import DEFAULT_ENTITY_LIMIT, DEFAULT_LIMIT, Suggestion, suggest

_log = logging.getLogger(__name__)


class FilterInputSession:
    """Editor state plus the host-side glue of a filter input widget."""

    def __init__(
        self,
        text: str = "",
        registries: FilterRegistries | None = None,
        on_change: Callable[[str], None] | None = None,
        limit: int = DEFAULT_LIMIT,
        entity_limit: int = DEFAULT_ENTITY_LIMIT,
    ) -> None:
        self.state: EditorState = editor_state_from_text(text)
        self.upstream_text = text
        self.registries = registries or FilterRegistries()
        self.limit = limit
        self.entity_limit = entity_limit
        self._on_change = on_change
        self._pending_outbound: str | None = None

    @property
    def text(self) -> str:
        """The serialized form of the current editor state."""
        return serialize_editor_state(self.state)

    # -- state transitions --------------------------------------------------

    def dispatch(self, action: EditorAction, emit: bool = True) -> bool:
        """Run *action* through the reducer. Returns False if nothing changed."""
        prev = self.state
        next_state = reduce_editor(prev, action)
        if next_state is prev:
            return False
        self.state = next_state
        if not emit:
            return True
        next_text = serialize_editor_state(next_state)
        if next_text == self.upstream_text:
            return True
        _log.debug("emitting filter text %r", next_text)
        self._pending_outbound = next_text
        self.upstream_text = next_text
        if self._on_change is not None:
            self._on_change(next_text)
        return True

    def receive_upstream(self, text: str) -> bool:
        """Accept new text from the parent. Returns True if the state was rebuilt."""
        if text == self._pending_outbound:
            # Echo of our own last emission
            self._pending_outbound = None
            self.upstream_text = text
            return False
        self.upstream_text = text
        if text == self.text:
            return False
        _log.debug("rebuilding editor from external text %r", text)
        self.state = reduce_editor(self.state, SyncFromText(text))
        return True

    # -- suggestions --------------------------------------------------------

    def suggestions(self) -> list[Suggestion]:
        """Candidates for the current draft, excluding already committed chips."""
        existing = [
            tok for i, tok in enumerate(self.state.ast) if i != self.state.editing_index
        ]
        inp = self.registries.suggestion_input(
            self.state.draft.strip(),
            existing_tokens=existing,
            limit=self.limit,
            entity_limit=self.entity_limit,
        )
        return suggest(inp)

    def active_suggestion_index(self, count: int | None = None) -> int:
        if count is None:
            count = len(self.suggestions())
        if count == 0:
            return 0
        return min(self.state.suggestion_index, count - 1)

    def panel_open(self) -> bool:
        return suggestion_panel_open(self.state, len(self.suggestions()))

    def clamp_suggestion_index(self) -> None:
        """Reset the selected suggestion once the candidate list shrinks past it."""
        count = len(self.suggestions())
        if self.state.suggestion_index >= count and self.state.suggestion_index != 0:
            self.dispatch(SetSuggestionIndex(0), emit=False)

    def accept(self, suggestion: Suggestion | str) -> bool:
        """Apply a suggestion; key stages (``+``, ``kind:``) become the new draft."""
        if isinstance(suggestion, Suggestion):
            token = suggestion.apply_token or suggestion.token
        else:
            token = suggestion
        if token in ("+", "-") or token.endswith(":"):
            return self.dispatch(SetDraft(token))
        return self.dispatch(ApplySuggestion(token))

    # -- rendering helpers --------------------------------------------------

    def chips(self) -> list[ParsedFilterToken]:
        """One parsed token per committed chip, for valid/invalid styling."""
        chips = []
        for raw in self.state.ast:
            parsed = parse_filter_query(raw).tokens
            chips.append(parsed[0] if parsed else ParsedFilterToken(raw, None, None, False))
        return chips

    # -- keyboard -----------------------------------------------------------

    def handle_key(self, key: str, shift: bool = False) -> bool:
        """Handle a key press in the draft input. Returns True if consumed."""
        state = self.state
        if key == "Backspace" and not state.draft and (
            state.insertion_point > 0 or state.editing_index is not None
        ):
            self.dispatch(BackspaceFromDraftStart())
            return True
        if key == "Delete" and not state.draft and state.selection is not None:
            self.dispatch(RemoveChip(state.selection))
            return True

        candidates = self.suggestions()
        total = len(candidates)
        if key == "Tab":
            if not state.suggestions_open or total == 0:
                self.dispatch(OpenSuggestions(), emit=False)
                return True
            if shift:
                self.dispatch(MoveSuggestion(-1, total), emit=False)
                return True
            self.accept(candidates[self.active_suggestion_index(total)])
            return True

        if not state.suggestions_open or total == 0:
            return False
        if key == "ArrowDown":
            self.dispatch(MoveSuggestion(1, total), emit=False)
            return True
        if key == "ArrowUp":
            self.dispatch(MoveSuggestion(-1, total), emit=False)
            return True
        if key == "Escape":
            self.dispatch(CloseSuggestions(), emit=False)
            return True
        if key == "Enter":
            self.accept(candidates[self.active_suggestion_index(total)])
            return True
        return False
