"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from oss_finder.config import Settings
from oss_finder.datasources.base import GraphRepo, RestRepo
from oss_finder.errors import GitHubAPIError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def iso_days_ago(days: float, now: datetime = NOW) -> str:
    return (now - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%SZ")


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGitHub:
    """In-memory stand-in for GitHubAdapter that records every call."""

    def __init__(
        self,
        repos: list[RestRepo] | None = None,
        nodes: list[GraphRepo] | None = None,
        contributors: int = 7,
        failing: tuple[str, ...] = (),
        error: Exception | None = None,
    ) -> None:
        self.repos = repos or []
        self.nodes = nodes or []
        self.contributors = contributors
        self.failing = set(failing)
        self.error = error
        self.has_token = True
        self.rest_calls: list[dict[str, Any]] = []
        self.graphql_calls: list[str] = []
        self.contributor_calls: list[str] = []
        self.closed = False

    async def search_repositories(self, query, per_page=30, sort=None, order="desc"):
        self.rest_calls.append({"query": query, "per_page": per_page, "sort": sort, "order": order})
        if self.error:
            raise self.error
        return list(self.repos)

    async def search_graphql(self, query, first=20):
        self.graphql_calls.append(query)
        if self.error:
            raise self.error
        return list(self.nodes)

    async def get_repository(self, full_name):
        for repo in self.repos:
            if repo["full_name"] == full_name:
                return repo
        return None

    async def get_contributor_count(self, full_name):
        self.contributor_calls.append(full_name)
        if full_name in self.failing:
            raise GitHubAPIError(f"GitHub 502: contributors for {full_name} unavailable")
        return self.contributors

    async def aclose(self):
        self.closed = True


class UnconfiguredLLM:
    configured = False

    async def chat(self, system_prompt, user_prompt, model=None):  # pragma: no cover
        raise AssertionError("unconfigured LLM must never be called")


def make_rest_repo(full_name: str = "acme/widget", **overrides: Any) -> RestRepo:
    repo = {
        "full_name": full_name,
        "name": full_name.split("/")[-1],
        "html_url": f"https://github.com/{full_name}",
        "description": "A well maintained widget toolkit for everyone",
        "language": "Python",
        "stargazers_count": 1000,
        "forks_count": 100,
        "watchers_count": 1000,
        "open_issues_count": 10,
        "topics": ["widgets", "toolkit"],
        "created_at": iso_days_ago(1000),
        "updated_at": iso_days_ago(0),
        "pushed_at": iso_days_ago(0),
        "license": {"spdx_id": "MIT"},
        "homepage": "https://widget.example.org",
    }
    repo.update(overrides)
    return RestRepo(repo)


def make_graph_node(full_name: str = "acme/gadget", **overrides: Any) -> GraphRepo:
    node = {
        "id": "R_1",
        "name": full_name.split("/")[-1],
        "nameWithOwner": full_name,
        "description": "Gadgets for every occasion and every platform",
        "url": f"https://github.com/{full_name}",
        "stargazerCount": 1000,
        "forkCount": 50,
        "watchers": {"totalCount": 40},
        "issues": {"totalCount": 10},
        "pullRequests": {"totalCount": 3},
        "primaryLanguage": {"name": "Rust"},
        "repositoryTopics": {"edges": [{"node": {"topic": {"name": "cli"}}}]},
        "licenseInfo": {"name": "MIT License"},
        "createdAt": iso_days_ago(1000),
        "updatedAt": iso_days_ago(0),
        "pushedAt": iso_days_ago(0),
        "object": {"text": "x" * 600},
        "hasWikiEnabled": True,
        "mentionableUsers": {"totalCount": 1000},
    }
    node.update(overrides)
    return GraphRepo(node)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        OPENAI_API_KEY=None,
        GITHUB_TOKEN="test-token",
        GITHUB_BASE_URL="https://api.github.com",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fakes():
    """Expose the fake collaborators and record builders to test modules."""

    class _Fakes:
        GitHub = FakeGitHub
        LLM = UnconfiguredLLM
        Clock = FakeClock
        rest_repo = staticmethod(make_rest_repo)
        graph_node = staticmethod(make_graph_node)
        days_ago = staticmethod(iso_days_ago)
        now = NOW

    return _Fakes
