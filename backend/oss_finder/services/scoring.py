"""Eight-component repository health scoring.

GitHub returns two incompatible shapes: flat REST search items and nested
GraphQL search nodes. Each has its own scorer; the formulas that do not depend
on the shape live here as plain functions shared by both.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from ..schemas import ComponentScore, HealthBreakdown, HealthReport

# component -> (weight in percent, unit)
COMPONENTS: Dict[str, tuple] = {
    "commit_frequency": (20, "days"),
    "issue_response_time": (15, "ratio"),
    "pr_merge_rate": (15, "%"),
    "contributor_diversity": (10, "count"),
    "documentation_quality": (15, "score"),
    "dependency_freshness": (10, "days"),
    "community_growth": (10, "stars/day"),
    "breaking_change_frequency": (5, "stability"),
}


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days elapsed since an ISO 8601 timestamp (floored)."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - parsed).days


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def recency_score(days: Optional[int]) -> float:
    """Linear decay from 100 (today) to 0 at 300 days; unknown dates score 0."""
    if days is None:
        return 0.0
    return clamp(100 - days / 3)


def pr_merge_rate_score(days_since_push: Optional[int]) -> int:
    if days_since_push is None:
        return 30
    if days_since_push < 7:
        return 95
    if days_since_push < 30:
        return 85
    if days_since_push < 90:
        return 65
    if days_since_push < 180:
        return 45
    return 30


def issue_ratio(open_issues: int, stars: int) -> float:
    total_estimate = open_issues + stars / 10
    return open_issues / max(total_estimate, 1)


def stars_per_day(stars: int, age_days: int) -> float:
    return stars / max(age_days, 1)


def stability_score(age_days: int) -> int:
    if age_days > 365:
        return 100
    if age_days > 180:
        return 90
    return 80


def age_in_days(created_at: Optional[str], now: Optional[datetime] = None) -> int:
    days = days_since(created_at, now)
    return max(1, days if days is not None else 1)


def combine(breakdown: HealthBreakdown) -> int:
    """Weighted sum of all components, clamped and rounded half up."""
    total = sum(c.score * c.weight / 100 for c in breakdown.components())
    return int(math.floor(clamp(total) + 0.5))


def _component(name: str, score: float, value: float) -> ComponentScore:
    weight, unit = COMPONENTS[name]
    return ComponentScore(score=clamp(score), value=value, unit=unit, weight=weight)


def _documentation(
    description: Optional[str], topic_count: int, has_license: bool, has_extra: bool
) -> tuple:
    score = 0
    signals = 0
    if description and len(description) > 20:
        score += 35
        signals += 1
    if topic_count > 0:
        score += 30
        signals += topic_count
    if has_license:
        score += 25
        signals += 1
    if has_extra:
        score += 10
        signals += 1
    return score, signals


def _shared_components(
    pushed_at: Optional[str],
    updated_at: Optional[str],
    created_at: Optional[str],
    stars: int,
    open_issues: int,
    now: Optional[datetime],
) -> Dict[str, ComponentScore]:
    days_push = days_since(pushed_at, now)
    days_update = days_since(updated_at, now)
    age = age_in_days(created_at, now)
    ratio = issue_ratio(open_issues, stars)
    growth = stars_per_day(stars, age)
    merge_rate = pr_merge_rate_score(days_push)
    return {
        "commit_frequency": _component(
            "commit_frequency", recency_score(days_push), days_push if days_push is not None else 0
        ),
        "issue_response_time": _component("issue_response_time", 100 - ratio * 100, round(ratio, 2)),
        "pr_merge_rate": _component("pr_merge_rate", merge_rate, merge_rate),
        "dependency_freshness": _component(
            "dependency_freshness",
            recency_score(days_update),
            days_update if days_update is not None else 0,
        ),
        "community_growth": _component("community_growth", min(100, growth * 20), round(growth, 2)),
        "breaking_change_frequency": _component("breaking_change_frequency", stability_score(age), age),
    }


def score_rest_repo(repo: Mapping[str, Any], now: Optional[datetime] = None) -> HealthReport:
    """Score a flat REST search item.

    Contributor diversity uses the forks/stars ratio because REST search items
    carry no contributor count.
    """
    stars = repo.get("stargazers_count") or 0
    forks = repo.get("forks_count") or 0
    components = _shared_components(
        repo.get("pushed_at"),
        repo.get("updated_at"),
        repo.get("created_at"),
        stars,
        repo.get("open_issues_count") or 0,
        now,
    )
    components["contributor_diversity"] = _component(
        "contributor_diversity", min(100, forks / max(stars / 50, 1) * 100), forks
    )
    doc_score, doc_signals = _documentation(
        repo.get("description"),
        len(repo.get("topics") or []),
        bool(repo.get("license")),
        bool(repo.get("homepage")),
    )
    components["documentation_quality"] = _component("documentation_quality", doc_score, doc_signals)

    breakdown = HealthBreakdown(**components)
    return HealthReport(score=combine(breakdown), breakdown=breakdown)


def _total(node: Mapping[str, Any], field: str) -> int:
    return ((node.get(field) or {}).get("totalCount")) or 0


def score_graph_repo(node: Mapping[str, Any], now: Optional[datetime] = None) -> HealthReport:
    """Score a GraphQL search node using its real contributor count."""
    stars = node.get("stargazerCount") or 0
    components = _shared_components(
        node.get("pushedAt"),
        node.get("updatedAt"),
        node.get("createdAt"),
        stars,
        _total(node, "issues"),
        now,
    )
    contributors = _total(node, "mentionableUsers")
    components["contributor_diversity"] = _component(
        "contributor_diversity", min(100, math.log10(max(contributors, 1)) * 30), contributors
    )
    topic_edges = (node.get("repositoryTopics") or {}).get("edges") or []
    readme = (node.get("object") or {}).get("text") or ""
    doc_score, doc_signals = _documentation(
        node.get("description"),
        len(topic_edges),
        bool(node.get("licenseInfo")),
        len(readme) > 500,
    )
    components["documentation_quality"] = _component("documentation_quality", doc_score, doc_signals)

    breakdown = HealthBreakdown(**components)
    return HealthReport(score=combine(breakdown), breakdown=breakdown)
