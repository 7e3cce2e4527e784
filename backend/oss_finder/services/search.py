import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..config import Settings, get_settings
from ..datasources.base import DataSource, GraphRepo, RestRepo
from ..datasources.github_adapter import GitHubAdapter
from ..errors import GitHubError
from ..schemas import HealthReport, ParsedQuery, Project, ProjectStats, SearchFilters
from .cache import CacheSweeper, CacheTTL, InMemoryCache, generate_cache_key
from .intent_parser import IntentParser
from .query_builder import merge_query
from .scoring import days_since, score_graph_repo, score_rest_repo

NO_DESCRIPTION = "No description available"
UNKNOWN = "Unknown"


def project_from_rest(repo: RestRepo, report: HealthReport, contributors: int, now: datetime) -> Project:
    full_name = repo.get("full_name") or ""
    return Project(
        id=full_name,
        name=repo.get("name") or full_name.split("/")[-1],
        full_name=full_name,
        description=repo.get("description") or NO_DESCRIPTION,
        url=repo.get("html_url") or f"https://github.com/{full_name}",
        health_score=report.score,
        health_breakdown=report.breakdown,
        stats=ProjectStats(
            stars=repo.get("stargazers_count") or 0,
            forks=repo.get("forks_count") or 0,
            watchers=repo.get("watchers_count") or 0,
            open_issues=repo.get("open_issues_count") or 0,
            last_commit=repo.get("pushed_at"),
            last_commit_days_ago=days_since(repo.get("pushed_at"), now) or 0,
            contributors=contributors,
            license=(repo.get("license") or {}).get("spdx_id") or UNKNOWN,
        ),
        topics=list(repo.get("topics") or []),
        language=repo.get("language") or UNKNOWN,
        created_at=repo.get("created_at"),
        updated_at=repo.get("updated_at"),
    )


def _topic_names(edges: List[Dict[str, Any]]) -> List[str]:
    names = []
    for edge in edges:
        name = (((edge or {}).get("node") or {}).get("topic") or {}).get("name")
        if isinstance(name, str) and name:
            names.append(name)
    return names


def project_from_graph(node: GraphRepo, report: HealthReport, now: datetime) -> Project:
    full_name = node.get("nameWithOwner") or ""
    topic_edges = (node.get("repositoryTopics") or {}).get("edges") or []
    return Project(
        id=full_name,
        name=node.get("name") or full_name.split("/")[-1],
        full_name=full_name,
        description=node.get("description") or NO_DESCRIPTION,
        url=node.get("url") or f"https://github.com/{full_name}",
        health_score=report.score,
        health_breakdown=report.breakdown,
        stats=ProjectStats(
            stars=node.get("stargazerCount") or 0,
            forks=node.get("forkCount") or 0,
            watchers=(node.get("watchers") or {}).get("totalCount") or 0,
            open_issues=(node.get("issues") or {}).get("totalCount") or 0,
            last_commit=node.get("pushedAt"),
            last_commit_days_ago=days_since(node.get("pushedAt"), now) or 0,
            contributors=(node.get("mentionableUsers") or {}).get("totalCount") or 0,
            license=(node.get("licenseInfo") or {}).get("name") or UNKNOWN,
        ),
        topics=_topic_names(topic_edges),
        language=(node.get("primaryLanguage") or {}).get("name") or UNKNOWN,
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
    )


def rank(projects: List[Project]) -> List[Project]:
    return sorted(projects, key=lambda p: p.health_score, reverse=True)


class SearchService:
    """Runs filter and natural-language searches and ranks results by health."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[InMemoryCache] = None,
        github: Optional[DataSource] = None,
        intent_parser: Optional[IntentParser] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else InMemoryCache()
        self.github = github if github is not None else GitHubAdapter(self.settings)
        self.intent_parser = intent_parser or IntentParser(self.settings)
        self.sweeper = CacheSweeper(self.cache, self.settings.cache_sweep_interval_seconds)

    def start(self):
        self.sweeper.start()

    async def stop(self):
        await self.sweeper.stop()

    async def aclose(self):
        await self.stop()
        await self.github.aclose()

    async def translate(self, text: str, use_cache: bool = True) -> ParsedQuery:
        key = generate_cache_key("parsed-query", {"text": text.strip()})
        cached = self.cache.get(key) if use_cache else None
        if cached is not None:
            logger.debug(f"[search] parsed query cache hit: {text!r}")
            return cached
        parsed = await self.intent_parser.parse(text)
        # a fallback caused by a model failure is retried on the next request
        if parsed.source == "remote" or not self.intent_parser.llm.configured:
            self.cache.set(key, parsed, CacheTTL.PARSED_QUERY)
        return parsed

    async def search_by_filters(
        self, filters: SearchFilters, text: Optional[str] = None, use_cache: bool = True
    ) -> List[Project]:
        query = merge_query(text, filters)
        key = generate_cache_key("search", {"query": query, **filters.model_dump(mode="json", exclude_none=True)})
        cached = self.cache.get(key) if use_cache else None
        if cached is not None:
            logger.debug("[search] returning cached filter search results")
            return list(cached)

        repos = await self.github.search_repositories(
            query,
            per_page=self.settings.search_page_size,
            sort=filters.sort_by or "stars",
            order=filters.order or "desc",
        )
        logger.info(f"[search] REST search returned {len(repos)} repositories")
        if not repos:
            logger.warning(f"[search] no repositories found for query: {query}")
            return []

        now = datetime.now(timezone.utc)
        projects = await asyncio.gather(
            *(self._rest_project(repo, now) for repo in repos[: self.settings.max_results])
        )
        ranked = rank(list(projects))
        self.cache.set(key, ranked, CacheTTL.SEARCH_RESULTS)
        return list(ranked)

    async def search_by_natural_language(self, text: str, use_cache: bool = True) -> List[Project]:
        parsed = await self.translate(text, use_cache=use_cache)
        logger.info(f"[search] natural query {text!r} -> {parsed.query!r} ({parsed.confidence:.0%})")
        return await self.search_by_query(parsed.query, use_cache=use_cache)

    async def search_by_query(self, query: str, use_cache: bool = True) -> List[Project]:
        """Run a ready-made search string through the GraphQL search API."""
        key = generate_cache_key("graphql-search", {"query": query})
        cached = self.cache.get(key) if use_cache else None
        if cached is not None:
            logger.debug("[search] returning cached GraphQL search results")
            return list(cached)

        nodes = await self.github.search_graphql(query, first=self.settings.graphql_page_size)
        logger.info(f"[search] GraphQL search returned {len(nodes)} repositories")
        if not nodes:
            logger.warning(f"[search] no repositories found for GraphQL query: {query}")
            return []

        now = datetime.now(timezone.utc)
        ranked = rank([project_from_graph(node, score_graph_repo(node, now), now) for node in nodes])
        self.cache.set(key, ranked, CacheTTL.SEARCH_RESULTS)
        return list(ranked)

    async def get_project(self, full_name: str, use_cache: bool = True) -> Optional[Project]:
        key = generate_cache_key("project", {"full_name": full_name.lower()})
        cached = self.cache.get(key) if use_cache else None
        if cached is not None:
            return cached

        repo = await self.github.get_repository(full_name)
        if repo is None:
            return None
        project = await self._rest_project(repo, datetime.now(timezone.utc))
        self.cache.set(key, project, CacheTTL.PROJECT_DETAILS)
        return project

    async def _rest_project(self, repo: RestRepo, now: datetime) -> Project:
        contributors = await self._contributor_count(repo.get("full_name") or "")
        return project_from_rest(repo, score_rest_repo(repo, now), contributors, now)

    async def _contributor_count(self, full_name: str) -> int:
        key = generate_cache_key("contributors", {"repo": full_name.lower()})
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            count = await self.github.get_contributor_count(full_name)
        except (GitHubError, httpx.HTTPError, ValueError) as exc:
            logger.warning(f"[search] failed to fetch contributors for {full_name}: {exc}")
            return 0
        self.cache.set(key, count, CacheTTL.HEALTH_SCORE)
        return count
