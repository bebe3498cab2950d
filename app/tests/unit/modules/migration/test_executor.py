"""Unit tests for MigrationExecutor against local backends."""

import asyncio

import pytest
import pytest_asyncio
from factories.providers import make_documents

from infrastructure.configuration.features.migration import MigrationSettings
from modules.migration import (
    MigrationExecutor,
    MigrationOptions,
    MigrationPlanner,
    StepKind,
)
from modules.providers import LocalBackend
from modules.providers.models import FileMetadata


@pytest.fixture
def plan():
    return MigrationPlanner().create_plan("local", "local")


@pytest_asyncio.fixture
async def source():
    backend = LocalBackend()
    await backend.auth.sign_up("ada@example.com", "correct-horse", name="Ada")
    await backend.auth.sign_up("grace@example.com", "correct-horse", name="Grace")
    await backend.database.batch_create("projects", make_documents(5))
    await backend.database.batch_create("tasks", make_documents(2, prefix="task"))
    metadata = FileMetadata(content_type="text/plain", metadata={"v": "1"})
    await backend.storage.upload("docs/a.txt", b"alpha", metadata)
    await backend.storage.upload("docs/b.bin", b"beta")
    await backend.storage.upload("tmp/c.txt", b"gamma")
    return backend


@pytest.fixture
def target():
    return LocalBackend()


@pytest.mark.unit
class TestMigrationOptions:
    def test_rejects_non_positive_sizes(self):
        with pytest.raises(ValueError):
            MigrationOptions(batch_size=0)
        with pytest.raises(ValueError):
            MigrationOptions(user_page_size=-1)

    def test_from_settings(self):
        settings = MigrationSettings(MIGRATION_BATCH_SIZE=7, MIGRATION_CONCURRENT=False)

        options = MigrationOptions.from_settings(settings, dry_run=True)

        assert options.batch_size == 7
        assert options.concurrent is False
        assert options.user_page_size == 100
        assert options.dry_run is True


@pytest.mark.unit
class TestExecute:
    @pytest.mark.asyncio
    async def test_full_migration(self, plan, source, target):
        result = await MigrationExecutor().execute(
            plan, source, target, MigrationOptions(user_page_size=1)
        )

        assert result.success
        assert result.migrated == {"users": 2, "data": 7, "files": 3}
        assert result.plan_id == plan.id
        assert await target.database.count("projects") == 5
        assert await target.database.count("tasks") == 2
        assert await target.storage.download("docs/a.txt") == b"alpha"
        copied = await target.storage.get_metadata("docs/a.txt")
        assert copied.content_type == "text/plain"
        assert copied.metadata == {"v": "1"}
        users = (await target.auth.list_users()).users
        assert sorted(u.email for u in users) == ["ada@example.com", "grace@example.com"]

    @pytest.mark.asyncio
    async def test_sequential_run_matches_concurrent(self, plan, source, target):
        result = await MigrationExecutor().execute(
            plan, source, target, MigrationOptions(concurrent=False)
        )

        assert result.migrated == {"users": 2, "data": 7, "files": 3}

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, plan, source, target):
        result = await MigrationExecutor().execute(
            plan, source, target, MigrationOptions(dry_run=True)
        )

        assert result.success
        assert result.dry_run
        assert result.migrated == {"users": 2, "data": 7, "files": 3}
        assert await target.database.list_collections() == []
        assert (await target.storage.list()).files == []
        assert (await target.auth.list_users()).users == []

    @pytest.mark.asyncio
    async def test_selected_steps_and_scope(self, plan, source, target):
        options = MigrationOptions(
            include_users=False, collections=["tasks"], file_prefix="docs/"
        )

        result = await MigrationExecutor().execute(plan, source, target, options)

        assert set(result.outcomes) == {StepKind.DATA, StepKind.FILES}
        assert result.migrated == {"data": 2, "files": 2}
        assert await target.database.list_collections() == ["tasks"]

    @pytest.mark.asyncio
    async def test_writes_are_capped_by_target_batch_size(self, plan, source):
        target = LocalBackend(max_batch_size=2)
        batches = []
        original = target.database.batch_create

        async def recording_batch_create(collection, items):
            batches.append((collection, len(items)))
            return await original(collection, items)

        target.database.batch_create = recording_batch_create

        await MigrationExecutor().execute(
            plan,
            source,
            target,
            MigrationOptions(include_users=False, include_files=False, batch_size=100),
        )

        assert batches == [("projects", 2), ("projects", 2), ("projects", 1), ("tasks", 2)]

    @pytest.mark.asyncio
    async def test_conflicts_are_collected_not_raised(self, plan, source, target):
        await target.database.create("tasks", {"rank": 0}, "task-0000")
        await target.auth.sign_up("ada@example.com", "another-pass")

        result = await MigrationExecutor().execute(plan, source, target)

        assert not result.success
        steps = sorted(e.step for e in result.errors)
        assert steps == ["data", "users"]
        data_error = next(e for e in result.errors if e.step == "data")
        assert data_error.item == "tasks"
        assert result.migrated == {"users": 1, "data": 5, "files": 3}
        assert result.to_dict()["success"] is False

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, plan, source, target):
        cancel = asyncio.Event()
        cancel.set()

        result = await MigrationExecutor().execute(
            plan, source, target, cancel_event=cancel
        )

        assert result.cancelled
        assert not result.success
        assert all("cancelled before completion" in str(e) for e in result.errors)
        assert result.migrated == {"users": 0, "data": 0, "files": 0}

    @pytest.mark.asyncio
    async def test_cancelled_between_batches_reports_partial_progress(self, plan, source):
        target = LocalBackend(max_batch_size=2)
        cancel = asyncio.Event()
        batches = []
        original = target.database.batch_create

        async def cancelling_batch_create(collection, items):
            created = await original(collection, items)
            batches.append((collection, len(items)))
            cancel.set()
            return created

        target.database.batch_create = cancelling_batch_create

        result = await MigrationExecutor().execute(
            plan,
            source,
            target,
            MigrationOptions(concurrent=False),
            cancel_event=cancel,
        )

        assert result.cancelled
        assert not result.success
        assert batches == [("projects", 2)]
        assert result.migrated == {"users": 2, "data": 2, "files": 0}
        assert [(e.step, e.item) for e in result.errors] == [
            ("data", "projects"),
            ("files", None),
        ]
        assert all(e.message == "cancelled before completion" for e in result.errors)
        assert await target.database.list_collections() == ["projects"]
        assert await target.database.count("projects") == 2
        assert (await target.storage.list()).files == []

    @pytest.mark.asyncio
    async def test_unexpected_failure_aborts_only_its_step(self, plan, source, target):
        async def broken():
            raise RuntimeError("listing unavailable")

        source.database.list_collections = broken

        result = await MigrationExecutor().execute(plan, source, target)

        assert [str(e) for e in result.errors] == ["data: aborted: listing unavailable"]
        assert result.migrated["users"] == 2
        assert result.migrated["files"] == 3

    @pytest.mark.asyncio
    async def test_backends_must_match_plan(self, source, target):
        plan = MigrationPlanner().create_plan("local", "firebase")

        with pytest.raises(ValueError, match="local -> firebase"):
            await MigrationExecutor().execute(plan, source, target)

    @pytest.mark.asyncio
    async def test_result_serializes(self, plan, source, target):
        result = await MigrationExecutor().execute(
            plan, source, target, MigrationOptions(dry_run=True)
        )

        data = result.to_dict()

        assert data["plan_id"] == plan.id
        assert data["errors"] == []
        assert data["rollback_plan"] == plan.rollback_plan
        assert result.started_at <= result.finished_at
