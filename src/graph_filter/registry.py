"""Reference lookup lists that feed the suggestion engine.

A registry file summarises a snapshot: the node ids, source locations and the
crate/process/kind/module registries a host would otherwise hand over on every
render. The file is YAML (JSON parses as YAML too)::

    node_ids: ["1/alpha", "2/worker-loop"]
    locations: ["src/main.rs:12"]
    crates: ["moire-core", {id: moire-web, label: "moire web"}]
    processes: [{id: "1", label: "web(1234)"}]
    kinds: [{id: request, label: Request}]
    modules: ["moire_core::server"]
    entities:
      - {id: "1/alpha", label: "sleepy forever", search_text: "future web"}
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from graph_filter.suggestions import SuggestionEntity, SuggestionInput, SuggestionItem

_log = logging.getLogger(__name__)


class RegistryError(ValueError):
    """A registry file could not be read or has the wrong shape."""


@dataclass
class FilterRegistries:
    """Read-only lookup lists for one snapshot."""

    node_ids: tuple[str, ...] = ()
    locations: tuple[str, ...] = ()
    crates: tuple[SuggestionItem, ...] = ()
    processes: tuple[SuggestionItem, ...] = ()
    kinds: tuple[SuggestionItem, ...] = ()
    modules: tuple[SuggestionItem, ...] = ()
    entities: tuple[SuggestionEntity, ...] | None = None

    def suggestion_input(
        self,
        fragment: str,
        existing_tokens: Sequence[str] = (),
        limit: int | None = None,
        entity_limit: int | None = None,
    ) -> SuggestionInput:
        """Bundle the registries with a fragment for :func:`suggest`."""
        inp = SuggestionInput(
            fragment=fragment,
            existing_tokens=tuple(existing_tokens),
            node_ids=self.node_ids,
            entities=self.entities,
            locations=self.locations,
            crates=self.crates,
            processes=self.processes,
            kinds=self.kinds,
            modules=self.modules,
        )
        if limit is not None:
            inp.limit = limit
        if entity_limit is not None:
            inp.entity_limit = entity_limit
        return inp


def _strings(name: str, raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise RegistryError(f"'{name}' must be a list, got {type(raw).__name__}")
    return tuple(str(v) for v in raw)


def _item(name: str, raw: Any) -> SuggestionItem:
    if isinstance(raw, (str, int)):
        return SuggestionItem(id=str(raw), label=str(raw))
    if isinstance(raw, dict) and "id" in raw:
        item_id = str(raw["id"])
        return SuggestionItem(id=item_id, label=str(raw.get("label") or item_id))
    raise RegistryError(f"Invalid entry in '{name}': {raw!r}")


def _items(name: str, raw: Any) -> tuple[SuggestionItem, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise RegistryError(f"'{name}' must be a list, got {type(raw).__name__}")
    return tuple(_item(name, v) for v in raw)


def _entities(raw: Any) -> tuple[SuggestionEntity, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise RegistryError(f"'entities' must be a list, got {type(raw).__name__}")
    out = []
    for entry in raw:
        if isinstance(entry, str):
            out.append(SuggestionEntity(id=entry, label=entry))
        elif isinstance(entry, dict) and "id" in entry:
            entity_id = str(entry["id"])
            search_text = entry.get("search_text")
            out.append(
                SuggestionEntity(
                    id=entity_id,
                    label=str(entry.get("label") or entity_id),
                    search_text=str(search_text) if search_text is not None else None,
                )
            )
        else:
            raise RegistryError(f"Invalid entry in 'entities': {entry!r}")
    return tuple(out)


def registries_from_dict(data: dict[str, Any]) -> FilterRegistries:
    """Convert a raw mapping into :class:`FilterRegistries`."""
    return FilterRegistries(
        node_ids=_strings("node_ids", data.get("node_ids")),
        locations=_strings("locations", data.get("locations")),
        crates=_items("crates", data.get("crates")),
        processes=_items("processes", data.get("processes")),
        kinds=_items("kinds", data.get("kinds")),
        modules=_items("modules", data.get("modules")),
        entities=_entities(data.get("entities")),
    )


def load_registries(path: Path) -> FilterRegistries:
    """Load registries from a YAML or JSON file.

    Raises:
        RegistryError: if the file is missing, unparsable or malformed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise RegistryError(f"Cannot read registry file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise RegistryError(f"Invalid registry file {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RegistryError(f"Registry file {path} must contain a mapping")
    registries = registries_from_dict(data)
    _log.debug(
        "loaded registries from %s: %d nodes, %d locations, %d crates, %d processes, %d kinds, %d modules",
        path,
        len(registries.node_ids),
        len(registries.locations),
        len(registries.crates),
        len(registries.processes),
        len(registries.kinds),
        len(registries.modules),
    )
    return registries
