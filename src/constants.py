"""Project-wide constants."""

from __future__ import annotations

DB_SCHEMA = "ledger"
