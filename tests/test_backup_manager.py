"""Tests for backup snapshots."""

import pytest

from release_guard.core import BackupManager
from release_guard.exceptions import BackupNotFoundError, SnapshotError
from release_guard.models import DeploymentAttempt, UnitRecord
from release_guard.runtime.base import RuntimeOperationError
from release_guard.utils.file_utils import read_json, write_json_durable

from .conftest import DESCRIPTOR, UNITS


@pytest.fixture
def manager(runtime, ledger, paths):
    return BackupManager(runtime, ledger, paths)


def attempt(attempt_id="100", tag="42"):
    return DeploymentAttempt(id=attempt_id, target_tag=tag, units=list(UNITS))


class TestSnapshot:

    @pytest.mark.asyncio
    async def test_records_descriptor_inventory_and_tag(self, manager, deployed_41, paths):
        backup = await manager.snapshot(attempt())

        assert backup.attempt_id == "100"
        assert backup.id.startswith("100-")
        assert backup.previous_tag == "41"
        assert backup.deployment_descriptor == DESCRIPTOR
        assert backup.unit_inventory == tuple(UnitRecord(u, f"{u}:41") for u in UNITS)

        stored = read_json(paths.get_backup_path("100", backup.id))
        assert stored["previous_tag"] == "41"
        assert [u["name"] for u in stored["unit_inventory"]] == UNITS

    @pytest.mark.asyncio
    async def test_first_deploy_has_no_previous_tag(self, manager):
        backup = await manager.snapshot(attempt())

        assert backup.previous_tag is None

    @pytest.mark.asyncio
    async def test_unreadable_descriptor(self, manager, runtime):
        runtime.fail["read_descriptor"] = RuntimeOperationError("permission denied")

        with pytest.raises(SnapshotError) as exc_info:
            await manager.snapshot(attempt())

        assert isinstance(exc_info.value.__cause__, RuntimeOperationError)

    @pytest.mark.asyncio
    async def test_inventory_query_failure(self, manager, runtime, paths):
        runtime.fail["list_units"] = RuntimeOperationError("daemon not reachable")

        with pytest.raises(SnapshotError):
            await manager.snapshot(attempt())

        assert manager.list_backups() == []

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(self, manager, runtime):
        await manager.snapshot(attempt())

        assert set(runtime.call_names()) == {"read_descriptor", "list_units"}

    @pytest.mark.asyncio
    async def test_existing_record_is_never_overwritten(self, tmp_path):
        path = tmp_path / "backup.json"
        await write_json_durable(path, {"id": "a"}, exclusive=True)

        with pytest.raises(FileExistsError):
            await write_json_durable(path, {"id": "b"}, exclusive=True)

        assert read_json(path) == {"id": "a"}


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_by_id(self, manager, deployed_41):
        backup = await manager.snapshot(attempt())

        assert await manager.load(backup.id) == backup
        assert await manager.load(backup.id, "100") == backup

    @pytest.mark.asyncio
    async def test_missing_backup(self, manager):
        with pytest.raises(BackupNotFoundError):
            await manager.load("nope")

    @pytest.mark.asyncio
    async def test_corrupt_backup(self, manager, paths):
        path = paths.get_backup_path("100", "100-x")
        path.parent.mkdir(parents=True)
        path.write_text("{}")

        with pytest.raises(BackupNotFoundError):
            await manager.load("100-x")

    @pytest.mark.asyncio
    async def test_list_per_attempt(self, manager):
        await manager.snapshot(attempt("1"))
        await manager.snapshot(attempt("2"))

        assert len(manager.list_backups()) == 2
        assert [p.parent.name for p in manager.list_backups("2")] == ["2"]
