"""Migration execution against live backends.

Each sub-task (users, data, files) pages through the source and writes to
the target, collecting ``MigrationStepError``s instead of raising. Writes
are batched no larger than the target database's ``max_batch_size`` and
the cancel event is checked between batches. Nothing is compensated
automatically; a failed or cancelled run leaves the target as it is.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from infrastructure.logging import bind_operation_context, get_module_logger
from infrastructure.resilience.errors import BackendError
from modules.migration.errors import MigrationStepError
from modules.migration.models import (
    MigrationOptions,
    MigrationPlan,
    MigrationResult,
    StepKind,
    StepOutcome,
)
from modules.providers.contracts import BackendProvider
from modules.providers.models import FileMetadata, QueryOptions

logger = get_module_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MigrationExecutor:
    """Runs a migration plan between two backend instances.

    Example:
        executor = MigrationExecutor()
        result = await executor.execute(plan, source, target, MigrationOptions(dry_run=True))
        if not result.success:
            print(result.rollback_plan)
    """

    async def execute(
        self,
        plan: MigrationPlan,
        source: BackendProvider,
        target: BackendProvider,
        options: Optional[MigrationOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> MigrationResult:
        """Execute the requested sub-tasks of a plan.

        Raises:
            ValueError: If the backends do not match the plan
        """
        options = options or MigrationOptions()
        cancel_event = cancel_event or asyncio.Event()
        if source.kind != plan.from_backend or target.kind != plan.to_backend:
            raise ValueError(
                f"Plan migrates {plan.from_backend} -> {plan.to_backend}, "
                f"got {source.kind} -> {target.kind}"
            )

        runners: Dict[StepKind, Callable[[StepOutcome], Awaitable[None]]] = {}
        if options.include_users:
            runners[StepKind.USERS] = lambda o: self._migrate_users(
                source, target, options, cancel_event, o
            )
        if options.include_data:
            runners[StepKind.DATA] = lambda o: self._migrate_data(
                source, target, options, cancel_event, o
            )
        if options.include_files:
            runners[StepKind.FILES] = lambda o: self._migrate_files(
                source, target, options, cancel_event, o
            )

        outcomes = {kind: StepOutcome(step=kind) for kind in runners}
        started_at = _utcnow()
        with bind_operation_context(operation="migration.execute", plan_id=plan.id):
            logger.info(
                "migration_started",
                from_backend=plan.from_backend,
                to_backend=plan.to_backend,
                steps=[kind.value for kind in runners],
                dry_run=options.dry_run,
            )
            if options.concurrent:
                await asyncio.gather(
                    *(self._guarded(kind, run, outcomes[kind]) for kind, run in runners.items())
                )
            else:
                for kind, run in runners.items():
                    await self._guarded(kind, run, outcomes[kind])

            result = MigrationResult(
                plan_id=plan.id,
                dry_run=options.dry_run,
                outcomes=outcomes,
                rollback_plan=plan.rollback_plan,
                started_at=started_at,
                finished_at=_utcnow(),
            )
            log = logger.info if result.success else logger.warning
            log(
                "migration_finished",
                success=result.success,
                cancelled=result.cancelled,
                migrated=result.migrated,
                error_count=len(result.errors),
            )
        return result

    @staticmethod
    async def _guarded(
        kind: StepKind,
        run: Callable[[StepOutcome], Awaitable[None]],
        outcome: StepOutcome,
    ) -> None:
        # A sub-task failure is recorded, never propagated to sibling sub-tasks
        try:
            await run(outcome)
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("migration_step_failed", step=kind.value)
            outcome.errors.append(
                MigrationStepError(kind.value, f"aborted: {e}", cause=e)
            )

    @staticmethod
    def _check_cancelled(
        cancel_event: asyncio.Event, outcome: StepOutcome, item: Optional[str] = None
    ) -> bool:
        if not cancel_event.is_set():
            return False
        outcome.cancelled = True
        outcome.errors.append(
            MigrationStepError(outcome.step.value, "cancelled before completion", item=item)
        )
        logger.warning("migration_step_cancelled", step=outcome.step.value, count=outcome.count)
        return True

    async def _migrate_users(
        self,
        source: BackendProvider,
        target: BackendProvider,
        options: MigrationOptions,
        cancel_event: asyncio.Event,
        outcome: StepOutcome,
    ) -> None:
        page_token: Optional[str] = None
        while True:
            if self._check_cancelled(cancel_event, outcome):
                return
            page = await source.auth.list_users(
                page_size=options.user_page_size, page_token=page_token
            )
            for user in page.users:
                if options.dry_run:
                    outcome.count += 1
                    continue
                try:
                    await target.auth.import_user(user)
                    outcome.count += 1
                except BackendError as e:
                    outcome.errors.append(
                        MigrationStepError("users", str(e), item=user.id, cause=e)
                    )
            page_token = page.next_page_token
            if not page_token:
                return

    async def _migrate_data(
        self,
        source: BackendProvider,
        target: BackendProvider,
        options: MigrationOptions,
        cancel_event: asyncio.Event,
        outcome: StepOutcome,
    ) -> None:
        collections = options.collections
        if collections is None:
            collections = await source.database.list_collections()
        write_size = max(1, min(options.batch_size, target.database.max_batch_size))

        for collection in collections:
            cursor: Optional[str] = None
            while True:
                if self._check_cancelled(cancel_event, outcome, item=collection):
                    return
                page = await source.database.query(
                    collection, QueryOptions(limit=write_size, cursor=cursor)
                )
                await self._write_documents(collection, page.items, target, options, outcome)
                cursor = page.next_cursor
                if not cursor or not page.items:
                    break
            logger.debug("migration_collection_copied", collection=collection)

    @staticmethod
    async def _write_documents(
        collection: str,
        documents: List[dict],
        target: BackendProvider,
        options: MigrationOptions,
        outcome: StepOutcome,
    ) -> None:
        if not documents:
            return
        if options.dry_run:
            outcome.count += len(documents)
            return
        try:
            await target.database.batch_create(collection, documents)
            outcome.count += len(documents)
        except BackendError as e:
            ids = ", ".join(str(doc.get("id")) for doc in documents[:5])
            outcome.errors.append(
                MigrationStepError(
                    "data",
                    f"batch of {len(documents)} failed ({ids}...): {e}",
                    item=collection,
                    cause=e,
                )
            )

    async def _migrate_files(
        self,
        source: BackendProvider,
        target: BackendProvider,
        options: MigrationOptions,
        cancel_event: asyncio.Event,
        outcome: StepOutcome,
    ) -> None:
        page_token: Optional[str] = None
        while True:
            if self._check_cancelled(cancel_event, outcome):
                return
            listing = await source.storage.list(
                prefix=options.file_prefix,
                max_results=options.batch_size,
                page_token=page_token,
            )
            for info in listing.files:
                if options.dry_run:
                    outcome.count += 1
                    continue
                try:
                    data = await source.storage.download(info.path)
                    await target.storage.upload(
                        info.path,
                        data,
                        FileMetadata(
                            content_type=info.content_type, metadata=dict(info.metadata)
                        ),
                    )
                    outcome.count += 1
                except BackendError as e:
                    outcome.errors.append(
                        MigrationStepError("files", str(e), item=info.path, cause=e)
                    )
            page_token = listing.next_page_token
            if not page_token:
                return
