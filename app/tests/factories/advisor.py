"""Factory functions for advisor test data."""

from typing import Any, Dict

from modules.advisor.models import CapabilityProfile, ProjectRequirements


def make_profile_data(kind: str = "synthetic", **overrides: Any) -> Dict[str, Any]:
    """Create raw capability profile data, as it would appear in YAML.

    The defaults describe a free web backend with every feature, so tests
    can switch individual capabilities off through ``overrides``.
    """
    data: Dict[str, Any] = {
        "kind": kind,
        "name": f"{kind.title()} Backend",
        "project_types": ["web"],
        "scale": {"min_users": 0, "max_users": 10000, "bonus": 10},
        "features": {
            "auth": {"methods": ["email/password"]},
            "database": {"model": "document", "offline": True, "search": True},
            "storage": {"max_file_size": "1GB"},
            "realtime": {"protocol": "websocket"},
            "functions": {"runtimes": ["python3"]},
            "notifications": {"email": True},
            "analytics": True,
            "machine_learning": True,
        },
        "pricing": {"model": "free"},
        "compliance": [],
        "regions": ["local"],
        "best_for": [],
        "not_recommended_for": [],
    }
    data.update(overrides)
    return data


def make_profile(kind: str = "synthetic", **overrides: Any) -> CapabilityProfile:
    return CapabilityProfile.model_validate(make_profile_data(kind, **overrides))


def make_requirements(**overrides: Any) -> ProjectRequirements:
    """Create project requirements; ``expected_users`` defaults to 500."""
    values: Dict[str, Any] = {"expected_users": 500}
    values.update(overrides)
    return ProjectRequirements.model_validate(values)
