"""Static migration effort matrix shared by the advisor and the planner."""

from enum import Enum
from typing import Dict, Tuple


class EffortLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


EFFORT_MATRIX: Dict[Tuple[str, str], EffortLevel] = {
    ("local", "firebase"): EffortLevel.MEDIUM,
    ("local", "aws"): EffortLevel.HIGH,
    ("firebase", "local"): EffortLevel.LOW,
    ("firebase", "aws"): EffortLevel.MEDIUM,
    ("aws", "local"): EffortLevel.MEDIUM,
    ("aws", "firebase"): EffortLevel.HIGH,
}


def migration_effort(from_backend: str, to_backend: str) -> EffortLevel:
    """Effort of moving between two backend kinds; unknown pairs are high."""
    if from_backend == to_backend:
        return EffortLevel.LOW
    return EFFORT_MATRIX.get((from_backend, to_backend), EffortLevel.HIGH)
