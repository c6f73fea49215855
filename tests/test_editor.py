"""Tests for the chip editor reducer."""

import pytest

from graph_filter.editor import (
    ApplySuggestion,
    BackspaceFromDraftStart,
    BlurInput,
    ClearAll,
    CloseSuggestions,
    EditChip,
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
    suggestion_panel_open,
)


def run(state, *actions):
    for action in actions:
        state = reduce_editor(state, action)
    return state


class TestConstruction:
    """Tests for editor_state_from_text / serialize_editor_state."""

    @pytest.mark.parametrize(
        "tokens",
        [[], ["a"], ["colorBy:crate", "groupBy:process"], ['+crate:"my crate"', "-kind:request"]],
    )
    def test_from_text_commits_every_token(self, tokens):
        state = editor_state_from_text(" ".join(tokens))

        assert state.ast == tuple(tokens)
        assert state.draft == ""
        assert state.insertion_point == len(tokens)
        assert state.editing_index is None
        assert state.focused is False

    def test_serialize_normalizes_spacing(self):
        assert serialize_editor_state(editor_state_from_text("  a   b ")) == "a b"

    def test_serialize_draft_at_insertion_point(self):
        state = EditorState(ast=("a", "c"), insertion_point=1, draft=" b ")
        assert serialize_editor_state(state) == "a b c"

    def test_serialize_draft_replaces_edited_chip(self):
        state = EditorState(ast=("a", "b", "c"), insertion_point=1, editing_index=1, draft="x")
        assert serialize_editor_state(state) == "a x c"

    def test_serialize_empty_edit_drops_chip(self):
        state = EditorState(ast=("a", "b"), insertion_point=1, editing_index=1, draft="")
        assert serialize_editor_state(state) == "a"

    def test_serialize_collapses_whitespace_inside_draft(self):
        state = run(editor_state_from_text("colorBy:crate"), FocusInput(), SetDraft("+crate:a   -kind:b"))
        text = serialize_editor_state(state)

        assert text == "colorBy:crate +crate:a -kind:b"
        assert "  " not in text

    def test_serialize_keeps_quoted_whitespace_in_draft(self):
        state = EditorState(ast=("a", "c"), insertion_point=1, editing_index=1, draft='+crate:"my   crate"  x')
        assert serialize_editor_state(state) == 'a +crate:"my   crate" x'

    def test_panel_open_needs_candidates(self):
        state = EditorState(suggestions_open=True)
        assert suggestion_panel_open(state, 3) is True
        assert suggestion_panel_open(state, 0) is False
        assert suggestion_panel_open(EditorState(), 3) is False


class TestFocus:
    """Tests for focus/blur/sync."""

    def test_focus_starts_trailing_fragment(self):
        state = EditorState(ast=("a", "b"), insertion_point=0, editing_index=0, selection=1, suggestion_index=4)
        out = reduce_editor(state, FocusInput())

        assert out.insertion_point == 2
        assert out.editing_index is None
        assert out.selection is None
        assert out.suggestions_open is True
        assert out.suggestion_index == 0
        assert out.focused is True

    def test_focus_twice_is_noop(self):
        state = reduce_editor(editor_state_from_text("a"), FocusInput())
        assert reduce_editor(state, FocusInput()) is state

    def test_blur(self):
        state = run(editor_state_from_text("a b"), FocusInput(), EditChip(0), BlurInput())

        assert state.focused is False
        assert state.suggestions_open is False
        assert state.editing_index is None

    def test_sync_preserves_only_focus(self):
        state = run(editor_state_from_text("a"), FocusInput(), SetDraft("+k"))
        out = reduce_editor(state, SyncFromText("x y"))

        assert out == EditorState(ast=("x", "y"), insertion_point=2, focused=True)


class TestDraft:
    def test_set_draft_reopens_panel(self):
        state = EditorState(suggestions_open=False, suggestion_index=3)
        out = reduce_editor(state, SetDraft("-k"))

        assert out.draft == "-k"
        assert out.suggestions_open is True
        assert out.suggestion_index == 0

    def test_set_same_draft_is_noop(self):
        state = reduce_editor(EditorState(), SetDraft("x"))
        assert reduce_editor(state, SetDraft("x")) is state

    def test_clear_all(self):
        state = run(editor_state_from_text("a b"), EditChip(1), ClearAll())

        assert state.ast == ()
        assert state.insertion_point == 0
        assert state.editing_index is None
        assert state.draft == ""
        assert state.suggestions_open is True


class TestChips:
    """Tests for chip removal, editing and selection."""

    def test_remove_chip_shifts_cursor(self):
        state = editor_state_from_text("a b c")
        out = reduce_editor(state, RemoveChip(0))

        assert out.ast == ("b", "c")
        assert out.insertion_point == 2

    def test_remove_chip_after_cursor_keeps_cursor(self):
        state = EditorState(ast=("a", "b", "c"), insertion_point=1)
        assert reduce_editor(state, RemoveChip(2)).insertion_point == 1

    def test_remove_edited_chip_clears_draft(self):
        state = run(editor_state_from_text("a b c"), EditChip(1), SetDraft("bb"))
        out = reduce_editor(state, RemoveChip(1))

        assert out.ast == ("a", "c")
        assert out.editing_index is None
        assert out.draft == ""

    def test_remove_chip_before_edited_chip(self):
        state = run(editor_state_from_text("a b c"), EditChip(2), SetDraft("cc"))
        out = reduce_editor(state, RemoveChip(0))

        assert out.editing_index == 1
        assert out.draft == "cc"
        assert serialize_editor_state(out) == "b cc"

    @pytest.mark.parametrize("index", [-1, 3])
    def test_remove_out_of_range_is_noop(self, index):
        state = editor_state_from_text("a b c")
        assert reduce_editor(state, RemoveChip(index)) is state

    def test_edit_chip_moves_it_into_draft(self):
        state = reduce_editor(editor_state_from_text("a b c"), EditChip(1))

        assert state.editing_index == 1
        assert state.insertion_point == 1
        assert state.draft == "b"
        assert serialize_editor_state(state) == "a b c"

    def test_select_chip(self):
        state = reduce_editor(editor_state_from_text("a b"), SelectChip(1))
        assert state.selection == 1
        assert reduce_editor(state, SelectChip(5)).selection is None
        assert reduce_editor(state, SelectChip(None)).selection is None

    def test_remove_selected_chip_clears_selection(self):
        state = run(editor_state_from_text("a b c"), SelectChip(2))
        assert reduce_editor(state, RemoveChip(2)).selection is None
        assert reduce_editor(state, RemoveChip(0)).selection == 1


class TestBackspace:
    """Tests for backspace at the start of an empty draft."""

    def test_focus_then_backspace_removes_last_chip(self):
        state = run(editor_state_from_text("colorBy:crate groupBy:process"), FocusInput(), BackspaceFromDraftStart())

        assert state.ast == ("colorBy:crate",)
        assert state.draft == ""
        assert state.insertion_point == 1
        assert serialize_editor_state(state) == "colorBy:crate"

    def test_backspace_with_draft_is_noop(self):
        state = reduce_editor(editor_state_from_text("a"), SetDraft("x"))
        assert reduce_editor(state, BackspaceFromDraftStart()) is state

    def test_backspace_at_start_is_noop(self):
        state = EditorState(ast=("a",), insertion_point=0)
        assert reduce_editor(state, BackspaceFromDraftStart()) is state

    def test_backspace_while_editing_deletes_edited_chip(self):
        state = run(editor_state_from_text("a b c"), EditChip(1), SetDraft(""), BackspaceFromDraftStart())

        assert state.ast == ("a", "c")
        assert state.editing_index is None
        assert state.insertion_point == 1


class TestApplySuggestion:
    """Tests for committing a suggestion."""

    def test_apply_appends_at_cursor(self):
        state = run(editor_state_from_text("a"), FocusInput(), SetDraft("-k"), ApplySuggestion("-kind:request"))

        assert state.ast == ("a", "-kind:request")
        assert state.insertion_point == 2
        assert state.draft == ""
        assert state.suggestions_open is True

    def test_apply_splices_mid_list(self):
        state = EditorState(ast=("a", "c"), insertion_point=1)
        out = reduce_editor(state, ApplySuggestion("b"))

        assert out.ast == ("a", "b", "c")
        assert out.insertion_point == 2

    def test_apply_overwrites_edited_chip(self):
        state = run(editor_state_from_text("a b c"), EditChip(1), ApplySuggestion("  x  "))

        assert state.ast == ("a", "x", "c")
        assert state.insertion_point == 2
        assert state.editing_index is None

    @pytest.mark.parametrize("token", ["", "   "])
    def test_apply_blank_is_noop(self, token):
        state = editor_state_from_text("a")
        assert reduce_editor(state, ApplySuggestion(token)) is state

    def test_placeholder_is_committed_literally(self):
        state = reduce_editor(EditorState(), ApplySuggestion("+kind:<kind>"))
        assert state.ast == ("+kind:<kind>",)


class TestSuggestionIndex:
    def test_move_wraps_backwards(self):
        assert reduce_editor(EditorState(), MoveSuggestion(-1, 5)).suggestion_index == 4

    def test_move_wraps_forwards(self):
        state = EditorState(suggestion_index=4)
        assert reduce_editor(state, MoveSuggestion(1, 5)).suggestion_index == 0

    @pytest.mark.parametrize("total", [0, -2])
    def test_move_without_candidates_is_noop(self, total):
        state = EditorState(suggestion_index=2)
        assert reduce_editor(state, MoveSuggestion(1, total)) is state

    def test_set_index_clamps_low(self):
        assert reduce_editor(EditorState(suggestion_index=3), SetSuggestionIndex(-4)).suggestion_index == 0

    def test_set_index_has_no_upper_clamp(self):
        assert reduce_editor(EditorState(), SetSuggestionIndex(99)).suggestion_index == 99

    def test_open_close(self):
        state = EditorState()
        opened = reduce_editor(state, OpenSuggestions())
        assert opened.suggestions_open is True
        assert reduce_editor(opened, OpenSuggestions()) is opened
        assert reduce_editor(opened, CloseSuggestions()) == state


def test_unknown_action():
    with pytest.raises(TypeError):
        reduce_editor(EditorState(), "Tab")
