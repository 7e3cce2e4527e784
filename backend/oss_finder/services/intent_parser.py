import json
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from openai import OpenAIError

from ..config import Settings
from ..errors import TranslationError
from ..schemas import MAX_LAST_COMMIT_DAYS, ParsedQuery, SearchFilters
from .llm_client import LLMClient
from .query_builder import build_query_string

FALLBACK_CONFIDENCE = 0.6
DEFAULT_REMOTE_CONFIDENCE = 0.8

# keyword -> canonical GitHub language name; order decides output order
LANGUAGE_KEYWORDS = {
    "typescript": "TypeScript",
    "javascript": "JavaScript",
    "python": "Python",
    "go": "Go",
    "rust": "Rust",
    "java": "Java",
    "cpp": "C++",
    "c++": "C++",
    "csharp": "C#",
    "c#": "C#",
    "ruby": "Ruby",
    "php": "PHP",
}

TOPIC_KEYWORDS = {
    "framework": "framework",
    "cli": "cli",
    "web": "web",
    "api": "api",
    "testing": "testing",
    "ui": "ui",
    "machine learning": "machine-learning",
    "ml": "machine-learning",
    "data science": "data-science",
    "database": "database",
    "auth": "authentication",
    "microservice": "microservices",
}

SORT_KEYS = {"stars", "forks", "updated", "help-wanted-issues"}
SORT_ORDERS = {"asc", "desc"}

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def _system_prompt(today: date) -> str:
    return (
        "You translate requests for open-source projects into GitHub repository search parameters.\n"
        "Return ONLY one JSON object, no markdown, no code blocks.\n\n"
        "Supported fields:\n"
        "- languages: array of programming languages, e.g. [\"TypeScript\", \"JavaScript\"]\n"
        "- minStars, maxStars: star count range\n"
        "- minForks, maxForks: fork count range\n"
        "- lastCommitDays: days since last commit (7, 30, 90, 180, 365)\n"
        "- topics: array of topic tags, e.g. [\"web\", \"cli\"]\n"
        "- license: SPDX id such as MIT, Apache-2.0, GPL-3.0\n"
        "- hasWiki, hasIssues, hasProjects: booleans\n"
        "- archived: boolean, include archived repositories\n"
        "- sortBy: \"stars\" | \"forks\" | \"updated\" | \"help-wanted-issues\"\n"
        "- order: \"asc\" | \"desc\"\n"
        "- createdAfter, pushedAfter: YYYY-MM-DD dates\n"
        "- graphqlQuery: ready-to-use GitHub search query string\n"
        "- confidence: number between 0 and 1 describing how clear the request was\n"
        "- interpretation: one sentence restating the request\n\n"
        "Keyword interpretation:\n"
        "- \"popular\" -> minStars 1000\n"
        "- \"active\" / \"recent\" -> lastCommitDays 30\n"
        "- \"well-maintained\" / \"updated\" -> lastCommitDays 90\n"
        "- \"trending\" -> sortBy stars, lastCommitDays 180\n"
        "- \"production-ready\" / \"enterprise\" -> minStars 500, lastCommitDays 90\n"
        "- \"beginner-friendly\" -> topics [\"good-first-issue\"], hasIssues true\n"
        "- \"lightweight\" -> minForks 0, maxForks 100\n"
        "- \"documented\" -> hasWiki true\n"
        f"- \"this year\" -> createdAfter {today.year}-01-01\n\n"
        "GitHub search syntax:\n"
        "- several languages: (language:TypeScript OR language:JavaScript)\n"
        "- ranges: stars:100..1000, stars:>500, forks:<100\n"
        "- dates: pushed:>YYYY-MM-DD, created:>=YYYY-MM-DD\n"
        "- topics: topic:web topic:framework (all must match)\n"
        "- license:MIT, has:wiki, has:issues\n"
        "- always append: is:public archived:false (unless archived repositories are wanted)\n"
        f"Today is {today.isoformat()}."
    )


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    match = _FENCE_RE.search(cleaned)
    if match:
        cleaned = match.group(1).strip()
    return cleaned


def _count(value: Any, minimum: int, maximum: Optional[int] = None) -> Optional[int]:
    # bool is an int subclass but never a count
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    if value < minimum:
        return None
    if maximum is not None and value > maximum:
        return None
    return int(value)


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items or None


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_REMOTE_CONFIDENCE
    if not 0 <= value <= 1:
        return DEFAULT_REMOTE_CONFIDENCE
    return float(value)


def _iso_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def validate_filters(payload: Dict[str, Any]) -> SearchFilters:
    """Copy each well-formed field of an untrusted model payload.

    Invalid fields are omitted one by one; a bad field never rejects the
    whole payload.
    """
    fields: Dict[str, Any] = {}

    for key, name in (("languages", "languages"), ("topics", "topics")):
        items = _string_list(payload.get(key))
        if items:
            fields[name] = items

    for key, name in (
        ("minStars", "min_stars"),
        ("maxStars", "max_stars"),
        ("minForks", "min_forks"),
        ("maxForks", "max_forks"),
    ):
        number = _count(payload.get(key), minimum=0)
        if number is not None:
            fields[name] = number

    days = _count(payload.get("lastCommitDays"), minimum=1, maximum=MAX_LAST_COMMIT_DAYS)
    if days is not None:
        fields["last_commit_days"] = days

    license_id = payload.get("license")
    if isinstance(license_id, str) and license_id.strip():
        fields["license"] = license_id.strip()

    for key, name in (
        ("hasWiki", "has_wiki"),
        ("hasIssues", "has_issues"),
        ("hasProjects", "has_projects"),
        ("archived", "archived"),
    ):
        if isinstance(payload.get(key), bool):
            fields[name] = payload[key]

    if payload.get("sortBy") in SORT_KEYS:
        fields["sort_by"] = payload["sortBy"]
    if payload.get("order") in SORT_ORDERS:
        fields["order"] = payload["order"]

    for key, name in (("createdAfter", "created_after"), ("pushedAfter", "pushed_after")):
        parsed_date = _iso_date(payload.get(key))
        if parsed_date is not None:
            fields[name] = parsed_date

    return SearchFilters(**fields)


def heuristic_parse(user_query: str, today: Optional[date] = None) -> ParsedQuery:
    lowered = user_query.lower()

    languages: List[str] = []
    for keyword, canonical in LANGUAGE_KEYWORDS.items():
        if keyword in lowered and canonical not in languages:
            languages.append(canonical)

    if "recent" in lowered or "active" in lowered:
        last_commit_days: Optional[int] = 30
    elif "maintained" in lowered or "updated" in lowered:
        last_commit_days = 90
    else:
        last_commit_days = None

    sort_by = None
    if "popular" in lowered or "trending" in lowered:
        min_stars = 1000
        sort_by = "stars"
    elif "production" in lowered or "enterprise" in lowered:
        min_stars = 500
    else:
        min_stars = 100

    topics: List[str] = []
    for keyword, topic in TOPIC_KEYWORDS.items():
        if keyword in lowered and topic not in topics:
            topics.append(topic)

    license_id = None
    if "mit" in lowered:
        license_id = "MIT"
    if "apache" in lowered:
        license_id = "Apache-2.0"

    has_wiki = True if ("documented" in lowered or "documentation" in lowered) else None

    filters = SearchFilters(
        languages=languages or None,
        min_stars=min_stars,
        last_commit_days=last_commit_days,
        topics=topics or None,
        license=license_id,
        has_wiki=has_wiki,
        archived=False,
        sort_by=sort_by,
    )
    return ParsedQuery(
        filters=filters,
        query=build_query_string(filters, today=today),
        confidence=FALLBACK_CONFIDENCE,
        source="fallback",
    )


def render_interpretation(parsed: ParsedQuery, original_text: str = "") -> str:
    """One-line, human readable summary of the derived filters."""
    filters = parsed.filters
    parts: List[str] = []
    if filters.languages:
        parts.append(f"{'/'.join(filters.languages)} projects")
    if filters.topics:
        parts.append(f"related to {', '.join(filters.topics)}")
    if filters.min_stars:
        parts.append(f"with {filters.min_stars:,}+ stars")
    if filters.last_commit_days:
        if filters.last_commit_days <= 30:
            timeframe = "recently"
        elif filters.last_commit_days <= 90:
            timeframe = "in the last 3 months"
        else:
            timeframe = "this year"
        parts.append(f"updated {timeframe}")
    if filters.license:
        parts.append(f"with {filters.license} license")
    if parts:
        return " ".join(parts)
    return original_text.strip() or "all repositories"


@dataclass
class TranslationResult:
    parsed: Optional[ParsedQuery] = None
    error: Optional[TranslationError] = None


class IntentParser:
    def __init__(self, settings: Optional[Settings] = None, llm: Optional[LLMClient] = None):
        self.llm = llm if llm is not None else LLMClient(settings)

    async def _translate_remote(self, user_query: str) -> TranslationResult:
        if not self.llm.configured:
            return TranslationResult(error=TranslationError("LLM client not configured"))

        today = date.today()
        try:
            content = await self.llm.chat(_system_prompt(today), f"User request: {user_query}")
        except (OpenAIError, httpx.HTTPError) as exc:
            return TranslationResult(
                error=TranslationError(f"LLM request failed: {type(exc).__name__}: {exc}")
            )
        logger.debug(f"[translate] raw model output:\n{content}")

        try:
            payload = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as exc:
            return TranslationResult(error=TranslationError(f"Model returned invalid JSON: {exc}"))
        if not isinstance(payload, dict):
            return TranslationResult(
                error=TranslationError(f"Model returned {type(payload).__name__}, expected an object")
            )

        filters = validate_filters(payload)
        query = payload.get("graphqlQuery")
        if not isinstance(query, str) or not query.strip():
            query = build_query_string(filters, today=today)

        confidence = _confidence(payload.get("confidence"))
        interpretation = payload.get("interpretation")
        return TranslationResult(
            parsed=ParsedQuery(
                filters=filters,
                query=" ".join(query.split()),
                confidence=confidence,
                source="remote",
                interpretation=interpretation if isinstance(interpretation, str) else None,
            )
        )

    async def parse(self, user_query: str) -> ParsedQuery:
        result = await self._translate_remote(user_query)
        if result.parsed is not None:
            logger.info(
                f"[translate] model query={result.parsed.query!r} confidence={result.parsed.confidence:.2f}"
            )
            return result.parsed

        if self.llm.configured:
            logger.warning(f"[translate] falling back to heuristics: {result.error}")
        parsed = heuristic_parse(user_query)
        logger.info(f"[translate] heuristic query={parsed.query!r}")
        return parsed
