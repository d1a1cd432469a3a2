"""Check orchestrator: select rules, load the manifest, evaluate, format results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from evaldbt.engine import check
from evaldbt.manifest import MalformedManifest, load_manifest
from evaldbt.rules import UnknownRule, parse_rules

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from evaldbt.engine import Report
    from evaldbt.rules import NodeTest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CheckError(Exception):
    """Raised when a check cannot run (bad manifest or rule selection)."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class CheckResult:
    """Result of a check run."""

    report: Report = field(default_factory=dict)
    rules: list[NodeTest] = field(default_factory=list)
    nodes_checked: int = 0
    elapsed_ms: float = 0.0

    @property
    def rules_evaluated(self) -> int:
        return len(self.rules)

    @property
    def violation_count(self) -> int:
        return sum(len(names) for names in self.report.values())


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run_check(manifest_path: Path, *, rules: Iterable[str] | None = None) -> CheckResult:
    """Evaluate the selected rules against the manifest at *manifest_path*.

    Parameters
    ----------
    manifest_path:
        Path to a dbt ``manifest.json``.
    rules:
        Rule identifiers to evaluate.  When *None* or empty the default
        selection is used.

    Raises
    ------
    CheckError
        When a rule identifier is unknown or the manifest is malformed.
    """
    start = time.monotonic()

    # Rule selection is validated before touching the manifest.
    try:
        selected = parse_rules(rules or ())
    except UnknownRule as exc:
        msg = f"Invalid rule selection: {exc}"
        raise CheckError(msg) from exc

    try:
        graph = load_manifest(manifest_path)
    except MalformedManifest as exc:
        msg = f"Invalid manifest: {exc}"
        raise CheckError(msg) from exc

    report = check(graph, selected)
    elapsed = (time.monotonic() - start) * 1000
    logger.debug("Checked %s in %.1f ms", manifest_path, elapsed)

    return CheckResult(
        report=report,
        rules=selected,
        nodes_checked=len(graph),
        elapsed_ms=elapsed,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _rule_ids(result: CheckResult) -> dict[str, str]:
    """Map report descriptions back to rule identifiers."""
    return {rule.description: rule.value for rule in result.rules}


def format_rich(result: CheckResult) -> str:
    """Format a CheckResult as human-readable text.

    Example output with violations::

        Rules: 10 selected
        Nodes: 42 checked

        x staging-on-downstream
          Found staging models with references to downstream models
          stg_orders
          stg_payments

        2 violations found (10 rules evaluated, 0.0s)
    """
    lines: list[str] = []

    lines.append(f"Rules: {result.rules_evaluated} selected")
    lines.append(f"Nodes: {result.nodes_checked} checked")
    lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"
    ids = _rule_ids(result)

    if result.report:
        for description, names in result.report.items():
            lines.append(f"\u2717 {ids.get(description, description)}")
            lines.append(f"  {description}")
            lines.extend(f"  {name}" for name in names)
            lines.append("")

        lines.append(
            f"{result.violation_count} violations found "
            f"({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
    else:
        lines.append(
            f"\u2713 No violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )

    return "\n".join(lines)


def format_json(result: CheckResult) -> str:
    """Format a CheckResult as JSON with ``report`` and ``summary`` objects."""
    output: dict[str, object] = {
        "report": result.report,
        "summary": {
            "rules": [rule.value for rule in result.rules],
            "rules_evaluated": result.rules_evaluated,
            "nodes_checked": result.nodes_checked,
            "violations_count": result.violation_count,
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(result: CheckResult) -> str:
    """Format a CheckResult as one ``rule-id:node_name`` line per violation.

    Returns empty string when there are no violations.
    """
    ids = _rule_ids(result)
    lines = [
        f"{ids.get(description, description)}:{name}"
        for description, names in result.report.items()
        for name in names
    ]
    return "\n".join(lines)
