"""Migration errors."""

from typing import Optional


class MigrationStepError(Exception):
    """A failure inside one migration sub-task.

    Collected into ``MigrationResult.errors`` rather than raised to the
    caller, so one bad record never aborts the rest of the migration.

    Attributes:
        step: Sub-task that failed (``users``, ``data`` or ``files``)
        item: Identifier of the record, collection or path involved
    """

    def __init__(
        self,
        step: str,
        message: str,
        item: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.step = step
        self.message = message
        self.item = item
        self.cause = cause
        super().__init__(str(self))

    def __str__(self) -> str:
        where = f" [{self.item}]" if self.item else ""
        return f"{self.step}{where}: {self.message}"
