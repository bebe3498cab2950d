"""Capability-based backend recommendations.

``ProviderAdvisor`` scores every capability profile against a project's
requirements. It performs no I/O: profiles are injected (usually from
``YAMLProfileLoader``), which keeps it testable with synthetic profiles.

Scoring, starting from 50 and clamped to [0, 100]:

    +10   project type is one the profile targets
    +N    expected users fall in the profile's scale tier (N <= 20)
    +5    per required feature supported, -10 per feature missing
    +10   per required certification held, -20 per certification missing
    +10   estimated cost within budget, -20 above double the budget
    +5    at least one preferred region offered
"""

from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from modules.advisor.effort import migration_effort
from modules.advisor.models import (
    Alternative,
    CapabilityProfile,
    CostEstimate,
    ProjectRequirements,
    Recommendation,
)

logger = structlog.get_logger()

BASE_SCORE = 50
PROJECT_TYPE_BONUS = 10
FEATURE_SUPPORTED = 5
FEATURE_MISSING = -10
COMPLIANCE_HELD = 10
COMPLIANCE_MISSING = -20
WITHIN_BUDGET = 10
OVER_DOUBLE_BUDGET = -20
REGION_BONUS = 5
MAX_ALTERNATIVES = 2


def clamp_score(score: int) -> int:
    return max(0, min(100, score))


def estimate_cost(
    requirements: ProjectRequirements, profile: CapabilityProfile
) -> CostEstimate:
    """Apply per-unit pricing minus the free tier, per cost category."""
    pricing = profile.pricing
    if pricing.model == "free":
        return CostEstimate(monthly=0.0, yearly=0.0, currency=pricing.currency)

    costs = pricing.costs
    free = pricing.free_tier
    breakdown: Dict[str, float] = {}

    if costs.per_user is not None:
        billable_users = max(0, requirements.expected_users - free.users)
        breakdown["auth"] = billable_users * costs.per_user

    if costs.per_gb is not None:
        billable_gb = max(0.0, requirements.data_volume_gb - free.storage_gb)
        breakdown["storage"] = billable_gb * costs.per_gb

    billable_requests = max(0, requirements.expected_traffic - free.function_invocations)
    if costs.per_million_invocations is not None:
        breakdown["functions"] = billable_requests / 1_000_000 * costs.per_million_invocations
    elif costs.per_request is not None:
        breakdown["functions"] = billable_requests * costs.per_request

    if requirements.features.notifications and costs.notifications_monthly is not None:
        breakdown["notifications"] = costs.notifications_monthly

    monthly = sum(breakdown.values())
    return CostEstimate(
        monthly=round(monthly, 2),
        yearly=round(monthly * 12, 2),
        currency=pricing.currency,
        breakdown={category: round(value, 2) for category, value in breakdown.items()},
    )


def _matches(label: str, requirements: ProjectRequirements) -> bool:
    text = label.lower()
    if requirements.project_type in text:
        return True
    if "large" in text and requirements.expected_users > 100_000:
        return True
    if "small" in text and requirements.expected_users < 10_000:
        return True
    return any(feature.replace("_", " ") in text for feature in requirements.features.required())


class ProviderAdvisor:
    """Ranks backends for a set of project requirements.

    Args:
        profiles: Capability profiles keyed by backend kind
    """

    def __init__(self, profiles: Dict[str, CapabilityProfile]):
        if not profiles:
            raise ValueError("ProviderAdvisor requires at least one capability profile")
        self.profiles = dict(profiles)

    def score(
        self,
        requirements: ProjectRequirements,
        profile: CapabilityProfile,
        cost: Optional[CostEstimate] = None,
    ) -> Tuple[int, List[str]]:
        """Score one profile; returns the clamped score and its reasons."""
        score = BASE_SCORE
        reasons: List[str] = []

        if requirements.project_type in profile.project_types:
            score += PROJECT_TYPE_BONUS
            reasons.append(f"Targets {requirements.project_type} projects")

        if profile.scale.contains(requirements.expected_users):
            score += profile.scale.bonus
            if profile.scale.bonus:
                reasons.append(
                    f"{requirements.expected_users} expected users is within its scale sweet spot"
                )

        for feature in requirements.features.required():
            if profile.supports(feature):
                score += FEATURE_SUPPORTED
                reasons.append(f"Supports required feature: {feature}")
            else:
                score += FEATURE_MISSING
                reasons.append(f"Missing required feature: {feature}")

        for certification in requirements.compliance:
            if certification in profile.compliance:
                score += COMPLIANCE_HELD
                reasons.append(f"Certified for {certification}")
            else:
                score += COMPLIANCE_MISSING
                reasons.append(f"Not certified for {certification}")

        if requirements.budget is not None:
            cost = cost or estimate_cost(requirements, profile)
            if cost.monthly <= requirements.budget.monthly:
                score += WITHIN_BUDGET
                reasons.append("Estimated cost is within budget")
            elif cost.monthly > requirements.budget.monthly * 2:
                score += OVER_DOUBLE_BUDGET
                reasons.append("Estimated cost is more than double the budget")

        if any(region in profile.regions for region in requirements.preferred_regions):
            score += REGION_BONUS
            reasons.append("Available in a preferred region")

        return clamp_score(score), reasons

    def _pros_and_cons(
        self, requirements: ProjectRequirements, profile: CapabilityProfile
    ) -> Tuple[List[str], List[str]]:
        pros = [label for label in profile.best_for if _matches(label, requirements)]
        cons = [label for label in profile.not_recommended_for if _matches(label, requirements)]

        free_users = profile.pricing.free_tier.users
        if profile.pricing.model == "free":
            pros.append("No usage costs")
        elif free_users and requirements.expected_users <= free_users:
            pros.append(f"Free tier covers up to {free_users} users")
        if profile.features.database.offline and requirements.features.offline:
            pros.append("Offline data access")
        max_users = profile.scale.max_users
        if max_users is not None and requirements.expected_users > max_users:
            cons.append(f"Not designed for more than {max_users} users")
        return pros, cons

    def recommend(self, requirements: ProjectRequirements) -> List[Recommendation]:
        """Score every profile and return recommendations, best first."""
        recommendations: List[Recommendation] = []
        for kind, profile in self.profiles.items():
            cost = estimate_cost(requirements, profile)
            score, reasons = self.score(requirements, profile, cost)
            pros, cons = self._pros_and_cons(requirements, profile)
            effort = None
            if requirements.existing_backend:
                effort = migration_effort(requirements.existing_backend, kind).value
            recommendations.append(
                Recommendation(
                    backend=kind,
                    score=score,
                    reasoning=reasons,
                    pros=pros,
                    cons=cons,
                    estimated_cost=cost,
                    migration_effort=effort,
                )
            )

        # Stable sort keeps profile order for ties
        recommendations.sort(key=lambda r: r.score, reverse=True)
        for recommendation in recommendations:
            recommendation.alternatives = self._alternatives(recommendation, recommendations)

        logger.info(
            "advisor_recommendations_computed",
            ranking=[(r.backend, r.score) for r in recommendations],
        )
        return recommendations

    @staticmethod
    def _alternatives(
        recommendation: Recommendation, ranked: Iterable[Recommendation]
    ) -> List[Alternative]:
        others = [r for r in ranked if r.backend != recommendation.backend][:MAX_ALTERNATIVES]
        alternatives = []
        for other in others:
            if other.estimated_cost.monthly < recommendation.estimated_cost.monthly * 0.5:
                reason = "More cost-effective option"
            elif other.score > recommendation.score - 10:
                reason = "Similar capabilities"
            else:
                reason = "Alternative approach"
            alternatives.append(Alternative(backend=other.backend, reason=reason))
        return alternatives


def compare_profiles(
    profiles: Dict[str, CapabilityProfile], kinds: Optional[Iterable[str]] = None
) -> Dict[str, Dict[str, object]]:
    """Side-by-side summary of selected profiles; unknown kinds are skipped."""
    selected = list(kinds) if kinds is not None else sorted(profiles)
    comparison: Dict[str, Dict[str, object]] = {}
    for kind in selected:
        profile = profiles.get(kind)
        if profile is None:
            continue
        comparison[kind] = {
            "name": profile.name,
            "pricing": profile.pricing.model,
            "best_for": list(profile.best_for[:3]),
            "compliance": list(profile.compliance),
            "support": profile.support_level,
        }
    return comparison
