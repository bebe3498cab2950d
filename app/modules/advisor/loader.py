"""Capability profile loading.

Profiles are validated into frozen pydantic models once, at startup, so the
advisor itself stays a pure function of (requirements, profiles).
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from modules.advisor.models import CapabilityProfile

logger = structlog.get_logger()

DEFAULT_PROFILES_DIR = Path(__file__).parent / "profiles"


class ProfileLoader(ABC):
    """Source of capability profiles keyed by backend kind."""

    @abstractmethod
    def load_all(self) -> Dict[str, CapabilityProfile]:
        """Load every available profile.

        Raises:
            ValueError: If a profile is malformed
        """


class YAMLProfileLoader(ProfileLoader):
    """Loads ``<kind>.yml`` files from a directory.

    Attributes:
        profiles_dir: Directory containing the YAML profiles
    """

    def __init__(self, profiles_dir: Optional[Path] = None):
        self.profiles_dir = Path(profiles_dir or DEFAULT_PROFILES_DIR)
        if not self.profiles_dir.exists():
            raise ValueError(f"Profiles directory not found: {self.profiles_dir}")

    def load_file(self, path: Path) -> CapabilityProfile:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("profile_yaml_parse_error", file=str(path), error=str(e))
            raise ValueError(f"Failed to parse {path}: {e}") from e
        try:
            return CapabilityProfile.model_validate(data)
        except ValidationError as e:
            logger.error("profile_validation_error", file=str(path), error=str(e))
            raise ValueError(f"Invalid capability profile {path}: {e}") from e

    def load_all(self) -> Dict[str, CapabilityProfile]:
        profiles: Dict[str, CapabilityProfile] = {}
        for path in sorted(self.profiles_dir.glob("*.yml")):
            profile = self.load_file(path)
            if profile.kind in profiles:
                raise ValueError(f"Duplicate capability profile for {profile.kind}: {path}")
            profiles[profile.kind] = profile

        if not profiles:
            raise ValueError(f"No capability profiles found in {self.profiles_dir}")

        logger.info(
            "capability_profiles_loaded",
            profiles_dir=str(self.profiles_dir),
            kinds=sorted(profiles),
        )
        return profiles
