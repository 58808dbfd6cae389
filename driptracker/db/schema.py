"""DuckDB schema and storage keys for DRIP Tracker.

All state lives in one key-value table. Values are JSON documents;
the key namespace is fixed and listed below.

"""

from __future__ import annotations

# ── Key-value store ──

CREATE_KV_STORE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key          VARCHAR PRIMARY KEY,
    value        VARCHAR NOT NULL,
    updated_at   TIMESTAMP DEFAULT current_timestamp
);
"""

# All DDL statements in creation order
ALL_TABLES: list[str] = [
    CREATE_KV_STORE,
]

# ── Storage keys ──

HOLDINGS_KEY = "drip_holdings"
DIVIDENDS_KEY = "drip_dividends"
SCENARIOS_KEY = "drip_scenarios"
CURRENT_SCENARIO_KEY = "drip_current_scenario"
LAST_BACKUP_KEY = "drip_last_backup"
VERSION_KEY = "drip_app_version"
PRE_MIGRATION_BACKUP_KEY = "drip_pre_migration_backup"

# Keys written before versioned storage existed
LEGACY_HOLDINGS_KEY = "holdings"
LEGACY_DIVIDENDS_KEY = "dividends"
LEGACY_SCENARIOS_KEY = "scenarios"
LEGACY_CURRENT_SCENARIO_KEY = "currentScenario"

LEGACY_KEYS: tuple[str, ...] = (
    LEGACY_HOLDINGS_KEY,
    LEGACY_DIVIDENDS_KEY,
    LEGACY_SCENARIOS_KEY,
    LEGACY_CURRENT_SCENARIO_KEY,
)
