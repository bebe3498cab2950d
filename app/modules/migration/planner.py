"""Migration planning.

Plans are pure data derived from the (from, to) backend pair. The effort
classification comes from the same matrix the advisor uses.
"""

from typing import Callable, List, Tuple

import structlog

from modules.advisor.effort import EffortLevel, migration_effort
from modules.migration.models import MigrationPlan, MigrationStep, StepKind

logger = structlog.get_logger()

LOCAL_BACKEND = "local"
DOCUMENT_BACKENDS = frozenset({"firebase"})
IAAS_BACKENDS = frozenset({"aws"})

USERS_STEP = "Migrate user accounts"
DATA_STEP = "Migrate database"
FILES_STEP = "Migrate file storage"
FUNCTIONS_STEP = "Migrate serverless functions"
CONFIGURATION_STEP = "Update configuration"

ROLLBACK_PLAN = "\n".join(
    [
        "1. Keep the source backend active and serving traffic during the migration",
        "2. Test the target thoroughly before switching traffic",
        "3. Keep backups of all source data until the migration is signed off",
        "4. Have DNS or routing ready to switch back to the source",
        "5. Record every configuration change made on the target",
        "6. Keep migration logs and results for troubleshooting",
    ]
)


def format_hours(low: float, high: float) -> str:
    if high < 1:
        return f"{int(round(high * 60))} minutes"
    if high <= 8:
        return f"{low:g}-{high:g} hours"
    if high <= 24:
        return "up to 1 day"
    if high <= 48:
        return "up to 2 days"
    return "up to 1 week" if high <= 168 else "more than 1 week"


def _step(
    kind: StepKind,
    name: str,
    description: str,
    automated: bool,
    hours: Tuple[float, float],
    validation: str,
    dependencies: Tuple[str, ...] = (),
) -> MigrationStep:
    return MigrationStep(
        kind=kind,
        name=name,
        description=description,
        automated=automated,
        estimated_time=format_hours(*hours),
        estimated_hours=hours,
        dependencies=dependencies,
        validation=validation,
    )


class MigrationPlanner:
    """Builds immutable migration plans.

    Args:
        effort: Maps (from, to) to an effort level
    """

    def __init__(self, effort: Callable[[str, str], EffortLevel] = migration_effort):
        self._effort = effort

    @staticmethod
    def requires_function_migration(from_backend: str, to_backend: str) -> bool:
        return LOCAL_BACKEND not in (from_backend, to_backend)

    @staticmethod
    def can_automate_users(from_backend: str, to_backend: str) -> bool:
        # IaaS user pools export password hashes the document backends cannot import
        return not (from_backend in IAAS_BACKENDS and to_backend in DOCUMENT_BACKENDS)

    def _steps(self, from_backend: str, to_backend: str) -> List[MigrationStep]:
        steps = [
            _step(
                StepKind.USERS,
                USERS_STEP,
                "Export accounts from the source and import them into the target",
                self.can_automate_users(from_backend, to_backend),
                (2, 4),
                "Verify every account can sign in on the target",
            ),
            _step(
                StepKind.DATA,
                DATA_STEP,
                "Copy every collection from the source database to the target",
                True,
                (1, 8),
                "Compare document counts per collection and spot-check content",
                dependencies=(USERS_STEP,),
            ),
            _step(
                StepKind.FILES,
                FILES_STEP,
                "Transfer all stored files to the target storage",
                True,
                (2, 24),
                "Compare file counts, sizes and checksums",
            ),
        ]
        if self.requires_function_migration(from_backend, to_backend):
            steps.append(
                _step(
                    StepKind.FUNCTIONS,
                    FUNCTIONS_STEP,
                    "Adapt and redeploy functions for the target runtime",
                    False,
                    (4, 16),
                    "Invoke every function endpoint on the target",
                    dependencies=(DATA_STEP,),
                )
            )
        steps.append(
            _step(
                StepKind.CONFIGURATION,
                CONFIGURATION_STEP,
                "Point environment variables and endpoints at the target",
                True,
                (0.5, 0.5),
                "Verify every service connects to the target",
                dependencies=(DATA_STEP, FILES_STEP),
            )
        )
        return steps

    def _risks(self, from_backend: str, to_backend: str, effort: EffortLevel) -> List[str]:
        risks: List[str] = []
        if from_backend in IAAS_BACKENDS and to_backend in DOCUMENT_BACKENDS:
            risks.append("Complex queries may need redesign for a document database")
            risks.append("Functions need adapting to the target runtime")
        if from_backend in DOCUMENT_BACKENDS and to_backend in IAAS_BACKENDS:
            risks.append("Realtime features need a WebSocket implementation")
            risks.append("Offline sync needs custom implementation")
        if from_backend != to_backend:
            risks.append("Password hashes may not transfer; affected users must reset passwords")
        if effort == EffortLevel.HIGH:
            risks.append("Significant code changes required")
            risks.append("Extended testing period recommended")
        return risks

    def create_plan(self, from_backend: str, to_backend: str) -> MigrationPlan:
        effort = self._effort(from_backend, to_backend)
        steps = self._steps(from_backend, to_backend)
        low = sum(step.estimated_hours[0] for step in steps)
        high = sum(step.estimated_hours[1] for step in steps)
        plan = MigrationPlan(
            from_backend=from_backend,
            to_backend=to_backend,
            effort=effort,
            estimated_time=format_hours(low, high),
            steps=tuple(steps),
            risks=tuple(self._risks(from_backend, to_backend, effort)),
            rollback_plan=ROLLBACK_PLAN,
        )
        logger.info(
            "migration_plan_created",
            plan_id=plan.id,
            from_backend=from_backend,
            to_backend=to_backend,
            effort=effort.value,
            step_count=len(steps),
        )
        return plan
