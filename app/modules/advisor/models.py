"""Advisor models.

Capability profiles are immutable records loaded once from YAML.
Requirements come from the caller; recommendations are derived and never
persisted.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

EffortLabel = Literal["low", "medium", "high"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Capability profile
# ---------------------------------------------------------------------------


class AuthCapabilities(_Frozen):
    methods: List[str] = Field(default_factory=list)
    mfa: bool = False
    custom_domains: bool = False


class DatabaseCapabilities(_Frozen):
    model: str = Field(..., description="document, relational or hybrid")
    transactions: bool = False
    offline: bool = False
    search: bool = False
    realtime: bool = False
    backups: bool = False


class StorageCapabilities(_Frozen):
    max_file_size: Optional[str] = None
    cdn: bool = False
    encryption: bool = False


class RealtimeCapabilities(_Frozen):
    protocol: Optional[str] = None
    max_connections: Optional[int] = None
    presence: bool = False


class FunctionCapabilities(_Frozen):
    runtimes: List[str] = Field(default_factory=list)
    max_execution_seconds: int = 0
    scheduling: bool = False


class NotificationCapabilities(_Frozen):
    email: bool = False
    sms: bool = False
    push: bool = False


class FeatureSet(_Frozen):
    auth: AuthCapabilities
    database: DatabaseCapabilities
    storage: StorageCapabilities
    realtime: RealtimeCapabilities
    functions: FunctionCapabilities
    notifications: Optional[NotificationCapabilities] = None
    analytics: bool = False
    machine_learning: bool = False


class FreeTier(_Frozen):
    users: int = 0
    storage_gb: float = 0.0
    function_invocations: int = 0


class UnitCosts(_Frozen):
    per_user: Optional[float] = None
    per_gb: Optional[float] = None
    per_request: Optional[float] = None
    per_million_invocations: Optional[float] = None
    notifications_monthly: Optional[float] = None


class Pricing(_Frozen):
    model: Literal["free", "pay-as-you-go", "tiered"]
    currency: str = "USD"
    free_tier: FreeTier = Field(default_factory=FreeTier)
    costs: UnitCosts = Field(default_factory=UnitCosts)


class ScaleTier(_Frozen):
    """Expected-user bracket the backend is best suited for."""

    min_users: int = 0
    max_users: Optional[int] = None
    bonus: int = Field(default=0, ge=0, le=20)

    def contains(self, users: int) -> bool:
        if users < self.min_users:
            return False
        return self.max_users is None or users <= self.max_users


class CapabilityProfile(_Frozen):
    """Static description of one backend kind."""

    kind: str
    name: str
    description: str = ""
    project_types: List[str] = Field(default_factory=list)
    scale: ScaleTier = Field(default_factory=ScaleTier)
    features: FeatureSet
    pricing: Pricing
    compliance: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)
    best_for: List[str] = Field(default_factory=list)
    not_recommended_for: List[str] = Field(default_factory=list)
    support_level: str = "community"

    def supports(self, feature: str) -> bool:
        """Whether the profile covers a requirement feature flag."""
        features = self.features
        checks = {
            "authentication": bool(features.auth.methods),
            "realtime": features.realtime.protocol == "websocket",
            "file_storage": features.storage.max_file_size is not None,
            "serverless": bool(features.functions.runtimes),
            "notifications": features.notifications is not None,
            "analytics": features.analytics,
            "search": features.database.search,
            "ml": features.machine_learning,
            "offline": features.database.offline,
        }
        return checks.get(feature, False)


# ---------------------------------------------------------------------------
# Requirements and recommendations
# ---------------------------------------------------------------------------


class FeatureRequirements(BaseModel):
    authentication: bool = False
    realtime: bool = False
    file_storage: bool = False
    serverless: bool = False
    notifications: bool = False
    analytics: bool = False
    search: bool = False
    ml: bool = False
    offline: bool = False

    def required(self) -> List[str]:
        return [name for name, needed in self.model_dump().items() if needed]


class Budget(BaseModel):
    monthly: float = Field(..., ge=0)
    currency: str = "USD"


class ProjectRequirements(BaseModel):
    """What the caller needs from a backend.

    Attributes:
        expected_users: Monthly active users
        expected_traffic: Monthly requests
        data_volume_gb: Stored data volume
        existing_backend: Current backend kind, when migrating
    """

    project_type: Literal["web", "mobile", "desktop", "api", "hybrid"] = "web"
    expected_users: int = Field(..., ge=0)
    expected_traffic: int = Field(default=100_000, ge=0)
    data_volume_gb: float = Field(default=10.0, ge=0)
    features: FeatureRequirements = Field(default_factory=FeatureRequirements)
    compliance: List[str] = Field(default_factory=list)
    budget: Optional[Budget] = None
    preferred_regions: List[str] = Field(default_factory=list)
    existing_backend: Optional[str] = None


class CostEstimate(BaseModel):
    monthly: float
    yearly: float
    currency: str = "USD"
    breakdown: Dict[str, float] = Field(default_factory=dict)


class Alternative(BaseModel):
    backend: str
    reason: str


class Recommendation(BaseModel):
    backend: str
    score: int = Field(..., ge=0, le=100)
    reasoning: List[str] = Field(default_factory=list)
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    estimated_cost: CostEstimate
    migration_effort: Optional[EffortLabel] = None
    alternatives: List[Alternative] = Field(default_factory=list)
