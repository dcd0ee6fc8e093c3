"""Fold module results into one verdict.

Every fold here is commutative (max, sum, weighted average) so the order in
which modules complete never changes the verdict. Ranking ties break on the
risk factor code and merged sources are emitted sorted.
"""

from collections.abc import Iterable

from .config import OrchestrationSettings, RiskThresholds
from .models import ModuleResult, RecommendedAction, RiskFactor, RiskLevel

NO_RISK_EXPLANATION = "No significant risk factors detected."

_LEVEL_ACTIONS = {
    RiskLevel.CRITICAL: RecommendedAction.BLOCK,
    RiskLevel.HIGH: RecommendedAction.REVIEW,
    RiskLevel.MEDIUM: RecommendedAction.CHALLENGE,
    RiskLevel.LOW: RecommendedAction.APPROVE,
}


def aggregate_score(results: Iterable[ModuleResult], settings: OrchestrationSettings) -> float:
    """Confidence-weighted average of successful module scores with critical boost."""
    successful = [r for r in results if r.success]
    if not successful:
        return 0.0

    total_confidence = sum(r.confidence for r in successful)
    if total_confidence == 0:
        return 0.0

    weighted = sum(r.score * r.confidence for r in successful) / total_confidence

    # A near-certain critical finding must not be averaged away by quiet modules
    max_score = max(r.score for r in successful)
    if max_score > settings.critical_boost_threshold:
        weighted = max(weighted, max_score * settings.critical_boost_factor)

    return min(max(weighted, 0.0), 1.0)


def classify_risk_level(score: float, thresholds: RiskThresholds) -> RiskLevel:
    if score >= thresholds.critical:
        return RiskLevel.CRITICAL
    if score >= thresholds.high:
        return RiskLevel.HIGH
    if score >= thresholds.medium:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def recommend_action(
    level: RiskLevel,
    factors: Iterable[RiskFactor],
    critical_codes: frozenset[str],
) -> RecommendedAction:
    """Critical-factor codes force BLOCK regardless of the numeric level."""
    if any(f.code in critical_codes for f in factors):
        return RecommendedAction.BLOCK
    return _LEVEL_ACTIONS[level]


def rank_risk_factors(factors: Iterable[RiskFactor], limit: int) -> list[RiskFactor]:
    """Group by code: first description, max weight, summed contribution, merged sources."""
    groups: dict[str, list[RiskFactor]] = {}
    for factor in factors:
        groups.setdefault(factor.code, []).append(factor)

    merged: list[RiskFactor] = []
    for code, group in groups.items():
        sources = sorted({f.source for f in group if f.source})
        merged.append(
            RiskFactor(
                code=code,
                description=group[0].description,
                weight=max(f.weight for f in group),
                contribution=sum(f.contribution for f in group),
                source=", ".join(sources),
                details=group[0].details if len(group) == 1 else {"occurrences": len(group)},
            )
        )

    merged.sort(key=lambda f: (-f.contribution, f.code))
    return merged[:limit]


def build_explanation(
    score: float,
    ranked_factors: list[RiskFactor],
    results: Iterable[ModuleResult],
    top_n: int,
) -> str:
    top = ranked_factors[:top_n]
    if not top:
        return NO_RISK_EXPLANATION

    descriptions = "; ".join(f.description for f in top)
    modules = ", ".join(r.module.value for r in results if r.success)
    return (
        f"Risk score: {score:.0%}. Key factors: {descriptions}. "
        f"Analysis performed by: {modules}."
    )
