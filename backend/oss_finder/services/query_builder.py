from datetime import date, timedelta
from typing import List, Optional

from ..schemas import SearchFilters


def _range_token(field: str, low: Optional[int], high: Optional[int]) -> Optional[str]:
    if low is not None and high is not None:
        return f"{field}:{low}..{high}"
    if low is not None:
        return f"{field}:>{low}"
    if high is not None:
        return f"{field}:<{high}"
    return None


def build_query_string(filters: SearchFilters, today: Optional[date] = None) -> str:
    """Serialize filters into GitHub's repository search grammar.

    Shared by the natural-language and manual search paths. Boolean feature
    flags only ever render positive ``has:`` tokens.
    """
    today = today or date.today()
    parts: List[str] = []

    languages = filters.languages or []
    if len(languages) == 1:
        parts.append(f"language:{languages[0]}")
    elif languages:
        parts.append("(" + " OR ".join(f"language:{lang}" for lang in languages) + ")")

    for topic in filters.topics or []:
        parts.append(f"topic:{topic}")

    for token in (
        _range_token("stars", filters.min_stars, filters.max_stars),
        _range_token("forks", filters.min_forks, filters.max_forks),
    ):
        if token:
            parts.append(token)

    if filters.last_commit_days is not None:
        cutoff = today - timedelta(days=filters.last_commit_days)
        parts.append(f"pushed:>{cutoff.isoformat()}")
    if filters.created_after is not None:
        parts.append(f"created:>={filters.created_after.isoformat()}")
    if filters.pushed_after is not None:
        parts.append(f"pushed:>={filters.pushed_after.isoformat()}")

    if filters.license:
        parts.append(f"license:{filters.license}")

    if filters.has_wiki:
        parts.append("has:wiki")
    if filters.has_issues:
        parts.append("has:issues")
    if filters.has_projects:
        parts.append("has:projects")

    parts.append("is:public")
    if filters.archived is not True:
        parts.append("archived:false")

    return " ".join(parts)


def merge_query(text: Optional[str], filters: SearchFilters, today: Optional[date] = None) -> str:
    """Prefix free keywords from the manual search box to the filter tokens."""
    built = build_query_string(filters, today=today)
    keywords = " ".join((text or "").split())
    return f"{keywords} {built}" if keywords else built
