"""evaldbt: structural smell checks for dbt project manifests."""

from __future__ import annotations

__version__ = "0.1.0"
