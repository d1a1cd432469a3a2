"""Shared test fixtures for evaldbt."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from pathlib import Path


def model_entry(
    name: str,
    *,
    fqn: list[str] | None = None,
    refs: list[list[str]] | None = None,
    sources: list[list[str]] | None = None,
    resource_type: str = "model",
) -> dict[str, Any]:
    """Build a raw manifest node entry."""
    entry: dict[str, Any] = {
        "name": name,
        "resource_type": resource_type,
        "fqn": fqn if fqn is not None else ["jaffle_shop", name],
        "columns": {},
    }
    if refs is not None:
        entry["refs"] = refs
    if sources is not None:
        entry["sources"] = sources
    return entry


@pytest.fixture()
def manifest_data() -> dict[str, Any]:
    """A small jaffle_shop-style manifest.

    - stg_orders: staging model on a source (clean)
    - stg_payments: staging model that refs another model
    - orders: mart joining a model and a source directly
    - orphan: model with no upstream at all
    """
    return {
        "nodes": {
            "model.jaffle_shop.stg_orders": model_entry(
                "stg_orders",
                fqn=["jaffle_shop", "staging", "stg_orders"],
                sources=[["raw", "orders"]],
            ),
            "model.jaffle_shop.stg_payments": model_entry(
                "stg_payments",
                fqn=["jaffle_shop", "staging", "stg_payments"],
                refs=[["stg_orders"]],
            ),
            "model.jaffle_shop.orders": model_entry(
                "orders",
                fqn=["jaffle_shop", "marts", "orders"],
                refs=[["stg_orders"]],
                sources=[["raw", "customers"]],
            ),
            "model.jaffle_shop.orphan": model_entry("orphan"),
        },
        "sources": {
            "source.jaffle_shop.raw.orders": model_entry(
                "orders",
                fqn=["jaffle_shop", "raw", "orders"],
                resource_type="source",
            ),
        },
        "parent_map": {
            "model.jaffle_shop.stg_orders": ["source.jaffle_shop.raw.orders"],
            "model.jaffle_shop.stg_payments": ["model.jaffle_shop.stg_orders"],
            "model.jaffle_shop.orders": ["model.jaffle_shop.stg_orders"],
        },
        "child_map": {
            "source.jaffle_shop.raw.orders": [
                "model.jaffle_shop.stg_orders",
                "model.jaffle_shop.orders",
            ],
            "model.jaffle_shop.stg_orders": [
                "model.jaffle_shop.stg_payments",
                "model.jaffle_shop.orders",
            ],
        },
    }


@pytest.fixture()
def manifest_path(tmp_path: Path, manifest_data: dict[str, Any]) -> Path:
    """Write :func:`manifest_data` to ``target/manifest.json``."""
    target = tmp_path / "target"
    target.mkdir()
    path = target / "manifest.json"
    path.write_text(json.dumps(manifest_data), encoding="utf-8")
    return path
