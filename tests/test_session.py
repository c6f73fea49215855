"""Tests for FilterInputSession: propagation, echo suppression and keyboard handling."""

import pytest

from graph_filter.editor import EditChip, FocusInput, SelectChip, SetDraft, SetSuggestionIndex
from graph_filter.registry import FilterRegistries
from graph_filter.session import FilterInputSession
from graph_filter.suggestions import SuggestionItem


@pytest.fixture
def registries():
    return FilterRegistries(
        node_ids=("1/alpha", "1/beta"),
        kinds=(SuggestionItem("request", "Request"), SuggestionItem("response", "Response")),
        crates=(SuggestionItem("moire-core", "moire-core"),),
    )


@pytest.fixture
def emitted():
    return []


def make_session(text="", registries=None, emitted=None):
    on_change = emitted.append if emitted is not None else None
    return FilterInputSession(text, registries=registries, on_change=on_change)


class TestPropagation:
    """Tests for upward propagation of the serialized text."""

    def test_emit_only_when_text_changes(self, emitted):
        session = make_session("a", emitted=emitted)

        assert session.dispatch(FocusInput()) is True
        assert emitted == []

        session.dispatch(SetDraft("-k"))
        assert emitted == ["a -k"]

    def test_noop_dispatch_returns_false(self, emitted):
        session = make_session("a", emitted=emitted)
        session.dispatch(FocusInput())

        assert session.dispatch(FocusInput()) is False
        assert emitted == []

    def test_emit_false_suppresses_callback(self, emitted):
        session = make_session("a", emitted=emitted)
        session.dispatch(SetDraft("b"), emit=False)
        assert emitted == []
        assert session.text == "a b"

    def test_reentrant_echo_does_not_rebuild(self):
        """A parent that writes the value straight back must not reset the draft."""
        session = make_session("a")
        rebuilt = []
        session._on_change = lambda text: rebuilt.append(session.receive_upstream(text))

        session.dispatch(FocusInput())
        session.dispatch(SetDraft("-k"))

        assert rebuilt == [False]
        assert session.state.draft == "-k"
        assert session.state.focused is True

    def test_delayed_echo_is_ignored(self, emitted):
        session = make_session("", emitted=emitted)
        session.dispatch(SetDraft("+crate:"))

        assert session.receive_upstream("+crate:") is False
        assert session.state.draft == "+crate:"
        assert session.state.ast == ()

    def test_external_change_rebuilds_and_keeps_focus(self):
        session = make_session("a")
        session.dispatch(FocusInput())
        session.dispatch(SetDraft("x"))

        assert session.receive_upstream("colorBy:crate") is True
        assert session.state.ast == ("colorBy:crate",)
        assert session.state.draft == ""
        assert session.state.focused is True

    def test_matching_external_text_is_not_rebuilt(self):
        session = make_session("a  b")
        assert session.receive_upstream("a b") is False
        assert session.upstream_text == "a b"


class TestSuggestions:
    def test_existing_chips_are_excluded(self, registries):
        session = make_session("-kind:request", registries)
        session.dispatch(SetDraft("-kind:"))

        assert [s.token for s in session.suggestions()] == ["-kind:response"]

    def test_edited_chip_is_not_excluded(self, registries):
        session = make_session("-kind:request", registries)
        session.dispatch(EditChip(0))

        assert "-kind:request" in [s.token for s in session.suggestions()]

    def test_active_index_is_bounded_by_count(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))
        session.dispatch(SetSuggestionIndex(5), emit=False)

        assert session.active_suggestion_index() == 1

    def test_clamp_resets_out_of_range_index(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))
        session.dispatch(SetSuggestionIndex(5), emit=False)

        session.clamp_suggestion_index()
        assert session.state.suggestion_index == 0

    def test_panel_hidden_without_candidates(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("+kind:zzz"))

        assert session.state.suggestions_open is True
        assert session.panel_open() is False

    def test_chips_report_validity(self):
        session = make_session("+kind:<kind> loners:off")
        assert [chip.valid for chip in session.chips()] == [False, True]


class TestAccept:
    def test_key_stage_becomes_draft(self, registries, emitted):
        session = make_session("", registries, emitted)
        session.accept("+")

        assert session.state.draft == "+"
        assert session.state.ast == ()

    def test_concrete_token_is_committed(self, registries):
        session = make_session("", registries)
        session.accept("loners:off")

        assert session.state.ast == ("loners:off",)
        assert session.state.draft == ""


class TestKeyboard:
    """Tests for handle_key."""

    def test_tab_two_stage_flow(self, registries, emitted):
        session = make_session("colorBy:crate", registries, emitted)
        session.dispatch(FocusInput())
        session.dispatch(SetDraft("-k"))

        assert session.handle_key("Tab") is True
        assert session.state.draft == "-kind:"
        assert session.state.suggestions_open is True

        assert session.handle_key("Tab") is True
        assert session.state.ast == ("colorBy:crate", "-kind:request")
        assert session.state.draft == ""
        assert all(chip.valid for chip in session.chips())
        assert emitted[-1] == "colorBy:crate -kind:request"

    def test_tab_opens_closed_panel(self, registries):
        session = make_session("", registries)

        assert session.handle_key("Tab") is True
        assert session.state.suggestions_open is True
        assert session.state.ast == ()

    def test_shift_tab_moves_up(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))

        session.handle_key("Tab", shift=True)
        assert session.state.suggestion_index == 1

    def test_arrows_then_enter(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))

        assert session.handle_key("ArrowDown") is True
        assert session.state.suggestion_index == 1
        assert session.handle_key("Enter") is True
        assert session.state.ast == ("-kind:response",)

    def test_arrow_up_wraps(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))

        session.handle_key("ArrowUp")
        assert session.state.suggestion_index == 1

    def test_escape_closes_then_keys_pass_through(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))

        assert session.handle_key("Escape") is True
        assert session.state.suggestions_open is False
        assert session.handle_key("ArrowDown") is False
        assert session.handle_key("Enter") is False

    def test_backspace_removes_previous_chip(self, emitted):
        session = make_session("colorBy:crate groupBy:process", emitted=emitted)
        session.dispatch(FocusInput())

        assert session.handle_key("Backspace") is True
        assert session.state.ast == ("colorBy:crate",)
        assert emitted == ["colorBy:crate"]

    def test_backspace_at_start_passes_through(self):
        session = make_session("")
        assert session.handle_key("Backspace") is False

    def test_backspace_with_draft_passes_through(self):
        session = make_session("a")
        session.dispatch(SetDraft("xy"))
        assert session.handle_key("Backspace") is False
        assert session.state.ast == ("a",)

    def test_delete_removes_selected_chip(self, emitted):
        session = make_session("a b c", emitted=emitted)
        session.dispatch(SelectChip(1))

        assert session.handle_key("Delete") is True
        assert session.state.ast == ("a", "c")
        assert session.state.selection is None
        assert emitted == ["a c"]

    def test_unhandled_key(self, registries):
        session = make_session("", registries)
        session.dispatch(SetDraft("-kind:"))
        assert session.handle_key("x") is False
