"""Rule catalog: per-node structural smell predicates for dbt manifests."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from evaldbt.manifest import Node


class UnknownRule(ValueError):
    """Raised when a rule identifier does not name a catalog entry."""


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class NodeTest(enum.Enum):
    """Closed catalog of node-level rules, valued by their CLI identifier."""

    DIRECT_JOIN_SOURCE = "direct-join-source"
    MARTS_OR_INTERMEDIATE_ON_SOURCE = "marts-or-intermediate-on-source"
    HARD_CODED_REFERENCES = "hard-coded-references"
    MODEL_FAN_OUT = "model-fan-out"
    MULTIPLE_SOURCES_JOINED = "multiple-sources-joined"
    NO_PARENTS = "no-parents"
    STAGING_ON_DOWNSTREAM = "staging-on-downstream"
    SOURCE_FAN_OUT = "source-fan-out"
    STAGING_ON_STAGING = "staging-on-staging"
    UNUSED_SOURCES = "unused-sources"
    NAMING_CONVENTIONS = "naming-conventions"
    BAD_DIRECTORY = "bad-directory"

    @property
    def description(self) -> str:
        """Fixed report heading for this rule."""
        return _DESCRIPTIONS[self]

    def is_invalid(self, node: Node) -> bool:
        """Return True if *node* violates this rule."""
        return _PREDICATES[self](node)


DEFAULT_RULES: tuple[NodeTest, ...] = (
    NodeTest.DIRECT_JOIN_SOURCE,
    NodeTest.HARD_CODED_REFERENCES,
    NodeTest.MARTS_OR_INTERMEDIATE_ON_SOURCE,
    NodeTest.MODEL_FAN_OUT,
    NodeTest.SOURCE_FAN_OUT,
    NodeTest.MULTIPLE_SOURCES_JOINED,
    NodeTest.NO_PARENTS,
    NodeTest.STAGING_ON_STAGING,
    NodeTest.STAGING_ON_DOWNSTREAM,
    NodeTest.UNUSED_SOURCES,
)

_DESCRIPTIONS: dict[NodeTest, str] = {
    NodeTest.DIRECT_JOIN_SOURCE: "Found models with a reference to both a model and a source",
    NodeTest.MARTS_OR_INTERMEDIATE_ON_SOURCE: (
        "Found marts or intermediates with a reference to a source"
    ),
    NodeTest.HARD_CODED_REFERENCES: "Found models with hardcoded references",
    NodeTest.MODEL_FAN_OUT: "Found models with more than 3 leaf children",
    NodeTest.MULTIPLE_SOURCES_JOINED: "Found models with references to more than one source",
    NodeTest.NO_PARENTS: "Found models with 0 direct parents",
    NodeTest.STAGING_ON_DOWNSTREAM: "Found staging models with references to downstream models",
    NodeTest.SOURCE_FAN_OUT: "Found sources with multiple children",
    NodeTest.STAGING_ON_STAGING: "Found staging models with references to other staging models",
    NodeTest.UNUSED_SOURCES: "Found unused sources",
    NodeTest.NAMING_CONVENTIONS: "Found models with bad naming conventions",
    NodeTest.BAD_DIRECTORY: "Found models not in the appropriate directory",
}

MODEL_FAN_OUT_THRESHOLD = 3


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _is_model(node: Node) -> bool:
    return node.resource_type == "model"


def _is_staging(node: Node) -> bool:
    return _is_model(node) and node.name.startswith("stg_")


def _is_intermediate(node: Node) -> bool:
    return _is_model(node) and node.name.startswith("int_")


def _direct_join_source(node: Node) -> bool:
    return _is_model(node) and bool(node.sources) and bool(node.refs)


def _marts_or_intermediate_on_source(node: Node) -> bool:
    return (
        _is_model(node)
        and bool(node.sources)
        and ("marts" in node.fqn or "intermediate" in node.fqn)
    )


def _no_upstream(node: Node) -> bool:
    return _is_model(node) and not node.refs and not node.sources


def _model_fan_out(node: Node) -> bool:
    return _is_model(node) and len(node.child_ids) > MODEL_FAN_OUT_THRESHOLD


def _multiple_sources_joined(node: Node) -> bool:
    return _is_model(node) and len(node.sources) > 1


def _staging_on_downstream(node: Node) -> bool:
    return _is_staging(node) and bool(node.refs)


def _source_fan_out(node: Node) -> bool:
    if node.resource_type != "source":
        return False
    model_children = sum(1 for child in node.child_ids if child.startswith("model"))
    return model_children > 1


def _staging_on_staging(node: Node) -> bool:
    if not _is_staging(node):
        return False
    staging_parents = sum(1 for parent in node.parent_ids if parent.startswith("stg_"))
    return staging_parents > 1


def _unused_sources(node: Node) -> bool:
    # Needs a whole-graph pass; never flags at node level.
    return False


def _naming_conventions(node: Node) -> bool:
    return (_is_intermediate(node) and "intermediate" in node.fqn) or (
        _is_staging(node) and "staging" in node.fqn
    )


def _bad_directory(node: Node) -> bool:
    return (_is_staging(node) and "staging" not in node.fqn) or (
        _is_intermediate(node) and "intermediate" not in node.fqn
    )


_PREDICATES: dict[NodeTest, Callable[[Node], bool]] = {
    NodeTest.DIRECT_JOIN_SOURCE: _direct_join_source,
    NodeTest.MARTS_OR_INTERMEDIATE_ON_SOURCE: _marts_or_intermediate_on_source,
    NodeTest.HARD_CODED_REFERENCES: _no_upstream,
    NodeTest.MODEL_FAN_OUT: _model_fan_out,
    NodeTest.MULTIPLE_SOURCES_JOINED: _multiple_sources_joined,
    NodeTest.NO_PARENTS: _no_upstream,
    NodeTest.STAGING_ON_DOWNSTREAM: _staging_on_downstream,
    NodeTest.SOURCE_FAN_OUT: _source_fan_out,
    NodeTest.STAGING_ON_STAGING: _staging_on_staging,
    NodeTest.UNUSED_SOURCES: _unused_sources,
    NodeTest.NAMING_CONVENTIONS: _naming_conventions,
    NodeTest.BAD_DIRECTORY: _bad_directory,
}


# ---------------------------------------------------------------------------
# Rule selection
# ---------------------------------------------------------------------------


def _normalize(identifier: str) -> str:
    return "".join(ch for ch in identifier.lower() if ch.isalnum())


_BY_KEY: dict[str, NodeTest] = {_normalize(test.value): test for test in NodeTest}


def parse_rule(identifier: str) -> NodeTest:
    """Resolve a rule identifier, ignoring case, dashes, and underscores.

    ``direct-join-source``, ``DIRECT_JOIN_SOURCE`` and ``DirectJoinSource``
    all resolve to :attr:`NodeTest.DIRECT_JOIN_SOURCE`.
    """
    test = _BY_KEY.get(_normalize(identifier))
    if test is None:
        valid = [t.value for t in NodeTest]
        msg = f"unknown rule '{identifier}', must be one of {valid}"
        raise UnknownRule(msg)
    return test


def parse_rules(identifiers: Iterable[str]) -> list[NodeTest]:
    """Resolve a rule selection, keeping order and duplicates.

    An empty selection yields :data:`DEFAULT_RULES`.
    """
    selected = [parse_rule(identifier) for identifier in identifiers]
    return selected or list(DEFAULT_RULES)
