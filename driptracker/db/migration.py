"""Schema-version migration with pre-migration backup and rollback.

Runs once at startup, before anything else reads the store::

    CURRENT ──────────────────────────────────────────────► (no action)
    NEEDS_MIGRATION → BACKING_UP → MIGRATING → DONE
                          │            │
                          ▼            ▼
                        FAILED    ROLLING_BACK → FAILED

A migration never starts without a backup record written first. If a
migration step fails, every collection and the version marker are
restored from that backup. A failed restore is the one unrecoverable
outcome and is reported with ``recovered=False``.

"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from driptracker.db.portfolio_store import StorageError
from driptracker.db.schema import (
    CURRENT_SCENARIO_KEY,
    DIVIDENDS_KEY,
    HOLDINGS_KEY,
    LEGACY_CURRENT_SCENARIO_KEY,
    LEGACY_DIVIDENDS_KEY,
    LEGACY_HOLDINGS_KEY,
    LEGACY_KEYS,
    LEGACY_SCENARIOS_KEY,
    PRE_MIGRATION_BACKUP_KEY,
    SCENARIOS_KEY,
    VERSION_KEY,
)

if TYPE_CHECKING:
    from driptracker.db.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)

CURRENT_VERSION = "1.0.0"

# Version assumed for unversioned stores that still hold legacy data
BASE_VERSION = "0.0.0"

MigrationStep = Callable[["PortfolioStore"], None]


class MigrationState(Enum):
    """States of the startup migration."""

    CURRENT = "current"
    NEEDS_MIGRATION = "needs_migration"
    BACKING_UP = "backing_up"
    MIGRATING = "migrating"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"
    DONE = "done"


@dataclass
class MigrationResult:
    """Outcome of a migration run.

    Attributes:
        state: Terminal state (CURRENT, DONE or FAILED).
        message: Human-readable outcome.
        from_version: Version found in the store.
        to_version: Version the store should be at.
        recovered: False only when a rollback itself failed and the
            stored data may be inconsistent.
        history: Every state visited, in order.

    """

    state: MigrationState
    message: str
    from_version: str | None = None
    to_version: str = CURRENT_VERSION
    recovered: bool = True
    history: list[MigrationState] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state in (MigrationState.CURRENT, MigrationState.DONE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "success": self.success,
            "message": self.message,
            "fromVersion": self.from_version,
            "toVersion": self.to_version,
            "recovered": self.recovered,
        }


def compare_versions(v1: str, v2: str) -> int:
    """Compare dotted version strings numerically.

    Missing components count as 0, so ``"1.0"`` equals ``"1.0.0"``.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2.

    Raises:
        ValueError: If a component is not an integer.

    """
    parts1 = [int(p) for p in v1.split(".")]
    parts2 = [int(p) for p in v2.split(".")]
    for i in range(max(len(parts1), len(parts2))):
        a = parts1[i] if i < len(parts1) else 0
        b = parts2[i] if i < len(parts2) else 0
        if a < b:
            return -1
        if a > b:
            return 1
    return 0


def migrate_to_v1(store: PortfolioStore) -> None:
    """Copy unprefixed legacy keys into the ``drip_*`` key namespace."""
    store.put(HOLDINGS_KEY, store.load(LEGACY_HOLDINGS_KEY, []))
    store.put(DIVIDENDS_KEY, store.load(LEGACY_DIVIDENDS_KEY, []))
    store.put(SCENARIOS_KEY, store.load(LEGACY_SCENARIOS_KEY, {}))
    store.put(
        CURRENT_SCENARIO_KEY, store.load(LEGACY_CURRENT_SCENARIO_KEY, "neutral")
    )
    logger.info("Data migrated to v1.0.0")


# Ordered (target version, step) pairs
MIGRATIONS: list[tuple[str, MigrationStep]] = [
    ("1.0.0", migrate_to_v1),
]


class MigrationManager:
    """Bring a store up to ``current_version``.

    Args:
        store: Store to migrate.
        migrations: Ordered (target version, step) pairs. Defaults to
            the registered ``MIGRATIONS``.
        current_version: Version the store should end at.

    """

    def __init__(
        self,
        store: PortfolioStore,
        migrations: list[tuple[str, MigrationStep]] | None = None,
        current_version: str = CURRENT_VERSION,
    ) -> None:
        self.store = store
        self.migrations = MIGRATIONS if migrations is None else migrations
        self.current_version = current_version
        self.state: MigrationState | None = None
        self.history: list[MigrationState] = []

    def _transition(self, state: MigrationState) -> None:
        logger.debug("Migration state: %s", state.value)
        self.state = state
        self.history.append(state)

    def _result(self, message: str, **kwargs: Any) -> MigrationResult:
        return MigrationResult(
            state=self.history[-1],
            message=message,
            to_version=self.current_version,
            history=list(self.history),
            **kwargs,
        )

    def stored_version(self) -> str | None:
        """Version recorded in the store, or None if unversioned."""
        version = self.store.load(VERSION_KEY, None)
        return None if version is None else str(version)

    def _effective_version(self) -> str | None:
        stored = self.stored_version()
        if stored is not None:
            return stored
        if any(self.store.has(key) for key in LEGACY_KEYS):
            return BASE_VERSION
        return None

    def is_migration_needed(self) -> bool:
        version = self._effective_version()
        return version is not None and version != self.current_version

    def run(self) -> MigrationResult:
        """Run the migration state machine to a terminal state.

        Returns:
            The migration outcome. Never raises for migration or
            storage failures.

        """
        self.history = []
        version = self._effective_version()

        if version is None or version == self.current_version:
            self._transition(MigrationState.CURRENT)
            return self._result("No migration needed", from_version=version)

        self._transition(MigrationState.NEEDS_MIGRATION)
        logger.info(
            "Data migration needed: v%s -> v%s", version, self.current_version
        )

        self._transition(MigrationState.BACKING_UP)
        try:
            self._create_backup(version)
        except StorageError:
            logger.exception("Failed to create pre-migration backup")
            self._transition(MigrationState.FAILED)
            return self._result(
                "Failed to create backup before migration, aborting for safety",
                from_version=version,
            )

        self._transition(MigrationState.MIGRATING)
        try:
            self._apply_steps(version)
            self.store.put(VERSION_KEY, self.current_version)
        except Exception as exc:  # noqa: BLE001 — any failed step must trigger rollback
            logger.exception("Data migration error")
            return self._rollback(version, exc)

        self._transition(MigrationState.DONE)
        return self._result(
            f"Successfully migrated data from v{version} to v{self.current_version}",
            from_version=version,
        )

    def _create_backup(self, version: str) -> None:
        backup = {
            "holdings": self.store.load(HOLDINGS_KEY, []),
            "dividends": self.store.load(DIVIDENDS_KEY, []),
            "scenarios": self.store.load(SCENARIOS_KEY, {}),
            "currentScenario": self.store.load(CURRENT_SCENARIO_KEY, "neutral"),
            "exportDate": datetime.now(tz=UTC).isoformat(),
            "version": version,
            "backupType": "pre-migration",
        }
        self.store.put(PRE_MIGRATION_BACKUP_KEY, backup)

    def _apply_steps(self, version: str) -> None:
        for target, step in self.migrations:
            if compare_versions(version, target) < 0:
                logger.info("Applying migration to v%s", target)
                step(self.store)

    def _rollback(self, version: str, error: Exception) -> MigrationResult:
        self._transition(MigrationState.ROLLING_BACK)
        try:
            self._restore_backup()
        except Exception:  # noqa: BLE001 — report, never crash startup
            logger.exception("Failed to restore from backup")
            self._transition(MigrationState.FAILED)
            return self._result(
                "Migration failed and backup restoration also failed. "
                "Data may be in an inconsistent state.",
                from_version=version,
                recovered=False,
            )

        self._transition(MigrationState.FAILED)
        return self._result(
            f"Migration failed, but data was restored from backup: {error}",
            from_version=version,
        )

    def _restore_backup(self) -> None:
        backup = self.store.load(PRE_MIGRATION_BACKUP_KEY, None)
        if not isinstance(backup, dict):
            msg = "No pre-migration backup found"
            raise StorageError(msg)

        self.store.put(HOLDINGS_KEY, backup["holdings"])
        self.store.put(DIVIDENDS_KEY, backup["dividends"])
        self.store.put(SCENARIOS_KEY, backup["scenarios"])
        self.store.put(CURRENT_SCENARIO_KEY, backup["currentScenario"])
        self.store.put(VERSION_KEY, backup["version"])


def perform_safe_migration(store: PortfolioStore) -> MigrationResult:
    """Run the registered migrations against *store*."""
    result = MigrationManager(store).run()
    if result.success:
        logger.info(result.message)
    elif result.recovered:
        logger.error(result.message)
    else:
        logger.critical(result.message)
    return result
