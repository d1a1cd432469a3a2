"""Manifest loader and graph builder.

Reads a dbt ``manifest.json``, validates the parts of its shape the rule
catalog relies on, and folds the global ``parent_map`` / ``child_map`` edge
lists into per-node ``parent_ids`` / ``child_ids`` sets.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MalformedManifest(ValueError):
    """Raised when a manifest is unreadable or structurally invalid."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Column:
    """Column metadata carried through from the manifest."""

    name: str
    description: str = ""


@dataclass
class Node:
    """A single manifest node (model, source, seed, test, ...)."""

    unique_id: str
    name: str
    resource_type: str
    fqn: tuple[str, ...]
    refs: list[list[str]] = field(default_factory=list)
    sources: list[list[str]] = field(default_factory=list)
    columns: dict[str, Column] = field(default_factory=dict)
    # Derived from the manifest edge maps by build_graph().
    parent_ids: set[str] = field(default_factory=set)
    child_ids: set[str] = field(default_factory=set)


@dataclass
class Graph:
    """All nodes of a manifest keyed by unique id."""

    nodes: dict[str, Node] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, unique_id: object) -> bool:
        return unique_id in self.nodes

    def iter_nodes(self) -> Iterator[Node]:
        """Yield nodes sorted by name, then unique id."""
        yield from sorted(self.nodes.values(), key=lambda n: (n.name, n.unique_id))


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def build_graph(
    raw_nodes: Mapping[str, Node],
    parent_edges: Mapping[str, Sequence[str]],
    child_edges: Mapping[str, Sequence[str]],
) -> Graph:
    """Return a graph of copies of *raw_nodes* with parent and child id sets.

    The input nodes are not modified.  A node missing from an edge map gets
    an empty set.  Edge targets are not checked against *raw_nodes*;
    dangling ids are kept as-is.
    """
    nodes: dict[str, Node] = {}
    for unique_id, node in raw_nodes.items():
        nodes[unique_id] = replace(
            node,
            parent_ids=set(parent_edges.get(unique_id, ())),
            child_ids=set(child_edges.get(unique_id, ())),
        )
    return Graph(nodes=nodes)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_ref(ref: object, context: str) -> list[str]:
    """Normalize a ref entry to a list of path segments.

    dbt < 1.5 writes refs as ``["package", "name"]`` lists; later versions
    write ``{"name": ..., "package": ..., "version": ...}`` objects.
    """
    if isinstance(ref, list):
        return [str(part) for part in ref]
    if isinstance(ref, dict):
        name = ref.get("name")
        if not isinstance(name, str):
            msg = f"{context}: ref object must have a string 'name'"
            raise MalformedManifest(msg)
        package = ref.get("package")
        return [str(package), name] if package else [name]
    msg = f"{context}: ref must be a list or an object, got {type(ref).__name__}"
    raise MalformedManifest(msg)


def _parse_paths(data: Mapping[str, Any], key: str, context: str) -> list[list[str]]:
    raw = data.get(key) or []
    if not isinstance(raw, list):
        msg = f"{context}: '{key}' must be a list"
        raise MalformedManifest(msg)
    return [_parse_ref(item, f"{context} {key}[{idx}]") for idx, item in enumerate(raw)]


def _parse_columns(data: Mapping[str, Any], context: str) -> dict[str, Column]:
    raw = data.get("columns") or {}
    if not isinstance(raw, dict):
        msg = f"{context}: 'columns' must be a mapping"
        raise MalformedManifest(msg)

    columns: dict[str, Column] = {}
    for key, col in raw.items():
        if not isinstance(col, dict):
            msg = f"{context}: column '{key}' must be a mapping"
            raise MalformedManifest(msg)
        columns[key] = Column(
            name=str(col.get("name", key)),
            description=str(col.get("description") or ""),
        )
    return columns


def parse_node(unique_id: str, data: object) -> Node:
    """Convert one decoded manifest entry into a :class:`Node`.

    Raises :class:`MalformedManifest` when ``name``, ``resource_type`` or
    ``fqn`` is missing or has the wrong type.
    """
    context = f"Node '{unique_id}'"
    if not isinstance(data, dict):
        msg = f"{context}: entry must be a mapping"
        raise MalformedManifest(msg)

    name = data.get("name")
    resource_type = data.get("resource_type")
    fqn = data.get("fqn")

    if not isinstance(name, str):
        msg = f"{context}: missing required string field 'name'"
        raise MalformedManifest(msg)
    if not isinstance(resource_type, str):
        msg = f"{context}: missing required string field 'resource_type'"
        raise MalformedManifest(msg)
    if not isinstance(fqn, list):
        msg = f"{context}: missing required list field 'fqn'"
        raise MalformedManifest(msg)

    return Node(
        unique_id=unique_id,
        name=name,
        resource_type=resource_type,
        fqn=tuple(str(part) for part in fqn),
        refs=_parse_paths(data, "refs", context),
        sources=_parse_paths(data, "sources", context),
        columns=_parse_columns(data, context),
    )


def _edge_map(data: Mapping[str, Any], key: str) -> dict[str, list[str]]:
    raw = data.get(key) or {}
    if not isinstance(raw, dict):
        msg = f"manifest: '{key}' must be a mapping"
        raise MalformedManifest(msg)

    edges: dict[str, list[str]] = {}
    for unique_id, targets in raw.items():
        if not isinstance(targets, list):
            msg = f"manifest: {key}['{unique_id}'] must be a list"
            raise MalformedManifest(msg)
        edges[unique_id] = [str(t) for t in targets]
    return edges


def parse_manifest(data: object) -> Graph:
    """Validate a decoded manifest and build its :class:`Graph`.

    Entries of the top-level ``sources`` mapping (where dbt keeps source
    definitions) are merged into ``nodes`` so source-level rules see them.
    """
    if not isinstance(data, dict):
        msg = "manifest must be a JSON object"
        raise MalformedManifest(msg)

    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, dict):
        msg = "manifest: missing required 'nodes' mapping"
        raise MalformedManifest(msg)

    raw_sources = data.get("sources") or {}
    if not isinstance(raw_sources, dict):
        msg = "manifest: 'sources' must be a mapping"
        raise MalformedManifest(msg)

    nodes: dict[str, Node] = {}
    for unique_id, entry in (*raw_nodes.items(), *raw_sources.items()):
        nodes[unique_id] = parse_node(unique_id, entry)

    return build_graph(nodes, _edge_map(data, "parent_map"), _edge_map(data, "child_map"))


def load_manifest(path: Path) -> Graph:
    """Read a ``manifest.json`` file and return its graph."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Cannot read manifest {path}: {exc}"
        raise MalformedManifest(msg) from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in {path}: {exc}"
        raise MalformedManifest(msg) from exc

    graph = parse_manifest(data)
    logger.debug("Loaded %d nodes from %s", len(graph), path)
    return graph
