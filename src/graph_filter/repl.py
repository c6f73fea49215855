"""Command line and interactive REPL for graph filter queries."""

from __future__ import annotations

import argparse
import readline
import sys
from pathlib import Path

from graph_filter.config import FilterConfig, load_config
from graph_filter.editor import ApplySuggestion, BackspaceFromDraftStart, ClearAll, FocusInput, SetDraft
from graph_filter.logging import setup_logging
from graph_filter.parsing.filter_lexer import tokenize_filter_query
from graph_filter.parsing.filter_parser import FilterParseResult, parse_filter_query
from graph_filter.registry import FilterRegistries, RegistryError, load_registries
from graph_filter.session import FilterInputSession
from graph_filter.suggestions import Suggestion, suggest

_AXES = ("node_ids", "locations", "crates", "processes", "kinds", "modules")
_SCALARS = ("focused_node_id", "show_loners", "show_source", "color_by", "group_by", "label_by")


def format_parse_result(result: FilterParseResult) -> list[str]:
    """Render a parse result as display lines."""
    if not result.tokens:
        return ["(empty filter)"]
    lines = []
    for tok in result.tokens:
        mark = "ok " if tok.valid else "ERR"
        lines.append(f"  [{mark}] {tok.raw}")
    for axis in _AXES:
        for include in (True, False):
            values = result.axis_set(axis, include)
            if values:
                prefix = "include" if include else "exclude"
                lines.append(f"{prefix} {axis}: {', '.join(sorted(values))}")
    for name in _SCALARS:
        value = getattr(result, name)
        if value is not None:
            if isinstance(value, bool):
                value = "on" if value else "off"
            lines.append(f"{name}: {value}")
    return lines


def format_suggestions(suggestions: list[Suggestion], active: int | None = None) -> list[str]:
    """Render suggestions as ``token - description`` lines."""
    if not suggestions:
        return ["(no suggestions)"]
    width = max(len(s.token) for s in suggestions)
    lines = []
    for i, s in enumerate(suggestions):
        marker = ">" if i == active else " "
        lines.append(f"{marker} {s.token.ljust(width)} - {s.description}")
    return lines


def print_lines(lines: list[str]) -> None:
    for line in lines:
        print(line)


def _load_registries(path: Path | None) -> FilterRegistries:
    if path is None:
        return FilterRegistries()
    return load_registries(path)


def make_completer(session: FilterInputSession):
    """Build a readline completer backed by the suggestion engine.

    A pending draft (e.g. ``+kind:`` left by a previous line) is prepended to
    the word being completed and stripped from the candidates again. Prefix
    matches are preferred; when none exist every fuzzy candidate is offered so
    readline can still cycle through them.
    """
    matches: list[str] = []

    def completer(text: str, state: int) -> str | None:
        nonlocal matches
        if state == 0:
            draft = session.state.draft.strip()
            inp = session.registries.suggestion_input(
                draft + text,
                existing_tokens=session.state.ast,
                limit=session.limit,
                entity_limit=session.entity_limit,
            )
            candidates = [s.apply_token or s.token for s in suggest(inp)]
            if draft:
                candidates = [c[len(draft):] for c in candidates if c.startswith(draft)]
            prefixed = [c for c in candidates if c.startswith(text)]
            matches = prefixed or candidates
        return matches[state] if state < len(matches) else None

    return completer


def enter_line(session: FilterInputSession, line: str) -> None:
    """Commit the tokens of *line*, continuing any pending draft.

    A trailing key stage (``+``, ``kind:``) stays in the draft so the next
    line, or TAB, can complete its value.
    """
    tokens = tokenize_filter_query(line)
    if not tokens:
        return
    draft = session.state.draft.strip()
    key_stage = draft in ("+", "-") or draft.endswith(":")
    if key_stage and not tokens[0].startswith(("+", "-")):
        tokens[0] = draft + tokens[0]
    # Only the last token may stay behind as a draft; earlier ones are
    # committed as typed, even when incomplete
    for token in tokens[:-1]:
        session.dispatch(ApplySuggestion(token))
    session.accept(tokens[-1])


def undo_last(session: FilterInputSession) -> None:
    """Drop the pending draft, or the last token if there is none."""
    if session.state.draft:
        session.dispatch(SetDraft(""))
    else:
        session.dispatch(BackspaceFromDraftStart())


def run_repl(registries: FilterRegistries, config: FilterConfig, initial: str = "") -> int:
    """Run the interactive filter editor."""
    print("graph-filter REPL - type filter tokens, TAB completes")
    print("Type 'help' for commands, 'exit' to quit.\n")

    session = FilterInputSession(
        initial,
        registries=registries,
        limit=config.suggestions.limit,
        entity_limit=config.suggestions.entity_limit,
    )
    session.dispatch(FocusInput(), emit=False)

    history_file = Path.home() / ".graph_filter_history"
    try:
        readline.read_history_file(history_file)
    except (FileNotFoundError, OSError):
        pass
    readline.set_completer_delims(" \t\n")
    readline.set_completer(make_completer(session))
    readline.parse_and_bind("tab: complete")

    try:
        while True:
            try:
                line = input(f"filter [{session.text}]> ").strip()
            except EOFError:
                print()
                break

            if not line:
                continue
            command = line.lower()
            if command in ("exit", "quit"):
                break
            if command == "help":
                print_help()
                continue
            if command == "clear":
                session.dispatch(ClearAll())
            elif command == "undo":
                undo_last(session)
            elif command == "suggest":
                print_lines(format_suggestions(session.suggestions()))
                continue
            elif command != "show":
                enter_line(session, line)
            print_lines(format_parse_result(parse_filter_query(session.text)))
            print()
    finally:
        try:
            readline.set_history_length(1000)
            readline.write_history_file(history_file)
        except OSError:
            pass

    print(session.text)
    return 0


def print_help() -> None:
    """Print help information."""
    print("""
graph-filter - graph filter query language

TOKENS:
  +node:<id> / -node:<id>          Include only / exclude nodes by entity id
  +location:<src> / -location:..   Include only / exclude source locations
  +crate:<name> / -crate:<name>    Include only / exclude crates
  +process:<id> / -process:<id>    Include only / exclude processes
  +kind:<kind> / -kind:<kind>      Include only / exclude kinds
  +module:<path> / -module:<path>  Include only / exclude module paths
  focus:<id>                       Focus the subgraph around a node
  loners:on|off                    Show or hide unconnected nodes
  source:on|off                    Show or hide source locations
  colorBy:process|crate            Node coloring
  groupBy:process|crate|none       Subgraph grouping
  labelBy:process|crate|location   Node labels

  Values containing spaces or quotes must be double-quoted: +crate:"my crate"

COMMANDS:
  show       Print the current filter
  suggest    List suggestions for an empty draft
  undo       Drop the pending draft, or else the last token
  clear      Remove every token
  help       Show this help
  exit       Quit and print the final filter text
""")


_QUERY_OPTIONS = {"-c": "--command", "--command": "--command", "-s": "--suggest", "--suggest": "--suggest"}


def _attach_query_values(argv: list[str]) -> list[str]:
    """Fold the value after ``-c``/``-s`` into the option (``--suggest=-crate:``).

    Filter tokens such as ``-crate:x`` start with a dash and would otherwise
    be read as options.
    """
    out = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in _QUERY_OPTIONS and i + 1 < len(argv):
            out.append(f"{_QUERY_OPTIONS[arg]}={argv[i + 1]}")
            i += 2
            continue
        out.append(arg)
        i += 1
    return out


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Parse, complete and edit graph filter queries"
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Parse a filter query, print the result and exit",
    )
    arg_parser.add_argument(
        "-s", "--suggest",
        type=str,
        metavar="FRAGMENT",
        help="Print suggestions for a partially typed token and exit",
    )
    arg_parser.add_argument(
        "-r", "--registry",
        type=Path,
        help="YAML/JSON file with node ids, locations, crates, processes, kinds and modules",
    )
    arg_parser.add_argument(
        "--config",
        type=Path,
        help="Configuration file (default: ./graph-filter.yaml)",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    if argv is None:
        argv = sys.argv[1:]
    args = arg_parser.parse_args(_attach_query_values(argv))
    config = load_config(args.config)
    setup_logging(config.logging, verbose=args.verbose)

    registry_path = args.registry
    if registry_path is None and config.registry_file:
        registry_path = Path(config.registry_file).expanduser()
    try:
        registries = _load_registries(registry_path)
    except RegistryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command is not None:
        print_lines(format_parse_result(parse_filter_query(args.command)))
        return 0

    if args.suggest is not None:
        inp = registries.suggestion_input(
            args.suggest,
            limit=config.suggestions.limit,
            entity_limit=config.suggestions.entity_limit,
        )
        print_lines(format_suggestions(suggest(inp)))
        return 0

    return run_repl(registries, config)


if __name__ == "__main__":
    sys.exit(main())
