"""Rule engine: evaluate selected catalog rules against every graph node."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from evaldbt.manifest import Graph, Node
    from evaldbt.rules import NodeTest

logger = logging.getLogger(__name__)

# Rule description -> names of violating nodes.
Report = dict[str, list[str]]


def _evaluate(nodes: Iterable[Node], rules: Sequence[NodeTest]) -> Report:
    report: Report = {}
    for node in nodes:
        for rule in rules:
            if rule.is_invalid(node):
                report.setdefault(rule.description, []).append(node.name)
    return report


def check(graph: Graph, rules: Sequence[NodeTest]) -> Report:
    """Evaluate *rules* against every node of *graph*.

    Nodes are visited in :meth:`Graph.iter_nodes` order and rules in the
    order given, so each bucket lists names sorted by node name.  A rule
    listed twice reports its violators twice.
    """
    report = _evaluate(graph.iter_nodes(), rules)
    logger.debug(
        "Evaluated %d rules over %d nodes: %d buckets",
        len(rules),
        len(graph),
        len(report),
    )
    return report


def merge_reports(reports: Iterable[Report]) -> Report:
    """Concatenate per-rule violation lists in the order *reports* are given."""
    merged: Report = {}
    for report in reports:
        for description, names in report.items():
            merged.setdefault(description, []).extend(names)
    return merged


def check_parallel(graph: Graph, rules: Sequence[NodeTest], *, workers: int = 4) -> Report:
    """Sharded variant of :func:`check` producing the same report.

    Nodes are split into *workers* contiguous shards of the stable node
    order; shard reports are merged in shard order.
    """
    if workers < 1:
        msg = f"workers must be >= 1, got {workers}"
        raise ValueError(msg)

    nodes = list(graph.iter_nodes())
    if workers == 1 or len(nodes) <= 1:
        return check(graph, rules)

    size = -(-len(nodes) // workers)
    shards = [nodes[i : i + size] for i in range(0, len(nodes), size)]
    with ThreadPoolExecutor(max_workers=len(shards)) as pool:
        partials = list(pool.map(lambda shard: _evaluate(shard, rules), shards))
    return merge_reports(partials)
