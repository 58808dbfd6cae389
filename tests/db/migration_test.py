"""Tests for the schema-version migration."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from driptracker.db.migration import (
    CURRENT_VERSION,
    MigrationManager,
    MigrationState,
    compare_versions,
    perform_safe_migration,
)
from driptracker.db.portfolio_store import StorageError
from driptracker.db.schema import (
    CURRENT_SCENARIO_KEY,
    DIVIDENDS_KEY,
    HOLDINGS_KEY,
    PRE_MIGRATION_BACKUP_KEY,
    SCENARIOS_KEY,
    VERSION_KEY,
)

LEGACY_HOLDINGS = [{"id": 1, "ticker": "MSTY", "shares": 1428.57}]
LEGACY_DIVIDENDS = [{"id": 1, "holdingId": 1, "amount": 2.02}]
LEGACY_SCENARIOS = {"neutral": {"annualDividend": 27.0, "shareGrowth": 5.0}}


@pytest.fixture
def legacy_store(store):
    store.save("holdings", LEGACY_HOLDINGS)
    store.save("dividends", LEGACY_DIVIDENDS)
    store.save("scenarios", LEGACY_SCENARIOS)
    store.save("currentScenario", "bullish")
    return store


def _failing_step(store):
    store.put(HOLDINGS_KEY, [])
    msg = "step exploded"
    raise RuntimeError(msg)


class TestCompareVersions:
    """Tests for dotted version comparison."""

    @pytest.mark.parametrize(
        ("v1", "v2", "expected"),
        [
            ("1.0.0", "1.0.0", 0),
            ("0.9.9", "1.0.0", -1),
            ("1.10.0", "1.9.0", 1),
            ("1.0", "1.0.0", 0),
            ("2", "1.9.9", 1),
        ],
    )
    def test_ordering(self, v1, v2, expected):
        assert compare_versions(v1, v2) == expected

    def test_non_numeric_raises(self):
        with pytest.raises(ValueError):
            compare_versions("1.x", "1.0")


class TestNoMigration:
    """Stores that are already current are left alone."""

    def test_fresh_store_is_current(self, store):
        result = MigrationManager(store).run()
        assert result.state is MigrationState.CURRENT
        assert result.success
        assert result.message == "No migration needed"
        assert list(store.keys()) == []

    def test_current_version_performs_zero_writes(self, store):
        store.save(VERSION_KEY, CURRENT_VERSION)
        store.save(HOLDINGS_KEY, LEGACY_HOLDINGS)

        with patch.object(store, "put", wraps=store.put) as put:
            result = MigrationManager(store).run()

        put.assert_not_called()
        assert result.state is MigrationState.CURRENT
        assert result.message == "No migration needed"
        assert not store.has(PRE_MIGRATION_BACKUP_KEY)

    def test_second_run_is_noop(self, legacy_store):
        first = perform_safe_migration(legacy_store)
        second = perform_safe_migration(legacy_store)
        assert first.state is MigrationState.DONE
        assert second.state is MigrationState.CURRENT

    def test_is_migration_needed(self, legacy_store):
        assert MigrationManager(legacy_store).is_migration_needed()
        legacy_store.save(VERSION_KEY, CURRENT_VERSION)
        assert not MigrationManager(legacy_store).is_migration_needed()


class TestLegacyMigration:
    """Unversioned legacy data is moved to the current keys."""

    def test_migrates_legacy_keys(self, legacy_store):
        result = MigrationManager(legacy_store).run()

        assert result.state is MigrationState.DONE
        assert result.from_version == "0.0.0"
        assert "v0.0.0 to v1.0.0" in result.message
        assert legacy_store.load(HOLDINGS_KEY) == LEGACY_HOLDINGS
        assert legacy_store.load(DIVIDENDS_KEY) == LEGACY_DIVIDENDS
        assert legacy_store.load(SCENARIOS_KEY) == LEGACY_SCENARIOS
        assert legacy_store.load(CURRENT_SCENARIO_KEY) == "bullish"
        assert legacy_store.load(VERSION_KEY) == CURRENT_VERSION

    def test_state_sequence(self, legacy_store):
        result = MigrationManager(legacy_store).run()
        assert result.history == [
            MigrationState.NEEDS_MIGRATION,
            MigrationState.BACKING_UP,
            MigrationState.MIGRATING,
            MigrationState.DONE,
        ]

    def test_backup_written_first(self, legacy_store):
        legacy_store.save(HOLDINGS_KEY, [{"id": 7}])
        legacy_store.save(VERSION_KEY, "0.9.0")

        MigrationManager(legacy_store).run()

        backup = legacy_store.load(PRE_MIGRATION_BACKUP_KEY)
        assert backup["backupType"] == "pre-migration"
        assert backup["version"] == "0.9.0"
        assert backup["holdings"] == [{"id": 7}]
        assert "exportDate" in backup

    def test_only_newer_steps_run(self, store):
        store.save(VERSION_KEY, "1.0.0")
        step_v1 = MagicMock()
        step_v2 = MagicMock()
        manager = MigrationManager(
            store,
            migrations=[("1.0.0", step_v1), ("1.1.0", step_v2)],
            current_version="1.1.0",
        )

        result = manager.run()

        assert result.state is MigrationState.DONE
        step_v1.assert_not_called()
        step_v2.assert_called_once_with(store)
        assert store.load(VERSION_KEY) == "1.1.0"


class TestBackupFailure:
    """A failed backup aborts before any migration step."""

    def test_aborts_for_safety(self, legacy_store):
        step = MagicMock()
        real_put = legacy_store.put

        def put(key, value):
            if key == PRE_MIGRATION_BACKUP_KEY:
                msg = "quota exceeded"
                raise StorageError(msg)
            real_put(key, value)

        with patch.object(legacy_store, "put", side_effect=put):
            result = MigrationManager(legacy_store, migrations=[("1.0.0", step)]).run()

        step.assert_not_called()
        assert result.state is MigrationState.FAILED
        assert "aborting for safety" in result.message
        assert MigrationState.MIGRATING not in result.history
        assert not legacy_store.has(VERSION_KEY)


class TestRollback:
    """A failed step restores the pre-migration state."""

    def test_restores_from_backup(self, store):
        store.save(HOLDINGS_KEY, LEGACY_HOLDINGS)
        store.save(VERSION_KEY, "0.9.0")

        result = MigrationManager(store, migrations=[("1.0.0", _failing_step)]).run()

        assert result.state is MigrationState.FAILED
        assert result.recovered is True
        assert "restored from backup" in result.message
        assert MigrationState.ROLLING_BACK in result.history
        assert store.load(HOLDINGS_KEY) == LEGACY_HOLDINGS
        assert store.load(VERSION_KEY) == "0.9.0"

    def test_failed_restore_is_unrecoverable(self, store):
        store.save(HOLDINGS_KEY, LEGACY_HOLDINGS)
        store.save(VERSION_KEY, "0.9.0")
        real_put = store.put

        def put(key, value):
            # Allow only the backup write
            if key != PRE_MIGRATION_BACKUP_KEY:
                msg = "storage unavailable"
                raise StorageError(msg)
            real_put(key, value)

        with patch.object(store, "put", side_effect=put):
            result = MigrationManager(
                store, migrations=[("1.0.0", _failing_step)]
            ).run()

        assert result.state is MigrationState.FAILED
        assert result.recovered is False
        assert "inconsistent" in result.message
        assert result.history[-2:] == [
            MigrationState.ROLLING_BACK,
            MigrationState.FAILED,
        ]

    def test_result_to_dict(self, store):
        store.save(VERSION_KEY, "0.9.0")
        result = MigrationManager(store, migrations=[("1.0.0", _failing_step)]).run()
        payload = result.to_dict()
        assert payload["state"] == "failed"
        assert payload["success"] is False
        assert payload["recovered"] is True
        assert payload["fromVersion"] == "0.9.0"
