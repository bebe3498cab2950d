"""Migration plan and execution models.

A ``MigrationPlan`` is frozen once created; executing it produces a
separate ``MigrationResult`` and never writes back into the plan.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from modules.advisor.effort import EffortLevel
from modules.migration.errors import MigrationStepError


class StepKind(str, Enum):
    USERS = "users"
    DATA = "data"
    FILES = "files"
    FUNCTIONS = "functions"
    CONFIGURATION = "configuration"


class MigrationStep(BaseModel):
    """One ordered step of a plan.

    Attributes:
        automated: Whether the step can run unattended
        estimated_hours: (low, high) duration estimate
        dependencies: Names of steps that must complete first
        validation: How to verify the step succeeded
    """

    model_config = ConfigDict(frozen=True)

    kind: StepKind
    name: str
    description: str
    automated: bool
    estimated_time: str
    estimated_hours: Tuple[float, float]
    dependencies: Tuple[str, ...] = ()
    validation: str


class MigrationPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    from_backend: str
    to_backend: str
    effort: EffortLevel
    estimated_time: str
    steps: Tuple[MigrationStep, ...]
    risks: Tuple[str, ...] = ()
    rollback_plan: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def step(self, kind: StepKind) -> Optional[MigrationStep]:
        return next((s for s in self.steps if s.kind == kind), None)


@dataclass
class MigrationOptions:
    """What to migrate and how.

    Attributes:
        collections: Collections to copy; every source collection when None
        file_prefix: Only files under this prefix are copied
        batch_size: Records read per source page; writes are further capped
            by the target's ``max_batch_size``
        concurrent: Run the users, data and files sub-tasks concurrently
    """

    include_users: bool = True
    include_data: bool = True
    include_files: bool = True
    dry_run: bool = False
    collections: Optional[List[str]] = None
    file_prefix: str = ""
    batch_size: int = 100
    user_page_size: int = 100
    concurrent: bool = True

    def __post_init__(self) -> None:
        if self.batch_size <= 0 or self.user_page_size <= 0:
            raise ValueError("batch_size and user_page_size must be positive")

    @classmethod
    def from_settings(cls, settings, **overrides) -> "MigrationOptions":
        values = {
            "batch_size": settings.batch_size,
            "user_page_size": settings.user_page_size,
            "concurrent": settings.concurrent,
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class StepOutcome:
    """Progress of one sub-task."""

    step: StepKind
    count: int = 0
    errors: List[MigrationStepError] = field(default_factory=list)
    cancelled: bool = False


@dataclass
class MigrationResult:
    """Outcome of one execution of a plan.

    ``success`` is True only when no sub-task recorded an error. There is no
    automatic compensation: on failure, ``rollback_plan`` is the recipe an
    operator follows.
    """

    plan_id: str
    dry_run: bool
    outcomes: Dict[StepKind, StepOutcome]
    rollback_plan: str
    started_at: datetime
    finished_at: datetime

    @property
    def errors(self) -> List[MigrationStepError]:
        return [error for outcome in self.outcomes.values() for error in outcome.errors]

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def cancelled(self) -> bool:
        return any(outcome.cancelled for outcome in self.outcomes.values())

    @property
    def migrated(self) -> Dict[str, int]:
        return {kind.value: outcome.count for kind, outcome in self.outcomes.items()}

    def to_dict(self) -> Dict[str, object]:
        return {
            "plan_id": self.plan_id,
            "success": self.success,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "migrated": self.migrated,
            "errors": [str(e) for e in self.errors],
            "rollback_plan": self.rollback_plan,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
        }
