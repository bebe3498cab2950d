# modules/advisor/__init__.py
"""Provider advisor module.

Scores backend capability profiles against project requirements.

Usage:
    from modules.advisor import ProviderAdvisor, ProjectRequirements, YAMLProfileLoader

    advisor = ProviderAdvisor(YAMLProfileLoader().load_all())
    ranking = advisor.recommend(ProjectRequirements(expected_users=500))
"""

from modules.advisor.effort import EFFORT_MATRIX, EffortLevel, migration_effort
from modules.advisor.loader import DEFAULT_PROFILES_DIR, ProfileLoader, YAMLProfileLoader
from modules.advisor.models import (
    Alternative,
    Budget,
    CapabilityProfile,
    CostEstimate,
    FeatureRequirements,
    ProjectRequirements,
    Recommendation,
)
from modules.advisor.service import ProviderAdvisor, compare_profiles, estimate_cost

__all__ = [
    "Alternative",
    "Budget",
    "CapabilityProfile",
    "CostEstimate",
    "DEFAULT_PROFILES_DIR",
    "EFFORT_MATRIX",
    "EffortLevel",
    "FeatureRequirements",
    "ProfileLoader",
    "ProjectRequirements",
    "ProviderAdvisor",
    "Recommendation",
    "YAMLProfileLoader",
    "compare_profiles",
    "estimate_cost",
]
