from typing import List, Optional, Protocol


class RestRepo(dict):
    """Flat repository object as returned by GitHub REST search."""

    full_name: str
    name: str
    html_url: str
    description: Optional[str]
    language: Optional[str]
    stargazers_count: int
    forks_count: int
    watchers_count: int
    open_issues_count: int
    topics: List[str]
    created_at: str
    updated_at: str
    pushed_at: Optional[str]
    license: Optional[dict]
    homepage: Optional[str]


class GraphRepo(dict):
    """Nested repository node as returned by the GraphQL search connection."""

    id: str
    name: str
    nameWithOwner: str
    description: Optional[str]
    url: str
    stargazerCount: int
    forkCount: int
    watchers: dict
    issues: dict
    primaryLanguage: Optional[dict]
    repositoryTopics: dict
    licenseInfo: Optional[dict]
    createdAt: str
    updatedAt: str
    pushedAt: Optional[str]
    object: Optional[dict]
    hasWikiEnabled: bool
    mentionableUsers: dict


class DataSource(Protocol):
    has_token: bool

    async def search_repositories(
        self, query: str, per_page: int = 30, sort: Optional[str] = None, order: str = "desc"
    ) -> List[RestRepo]:
        ...

    async def search_graphql(self, query: str, first: int = 20) -> List[GraphRepo]:
        ...

    async def get_repository(self, full_name: str) -> Optional[RestRepo]:
        ...

    async def get_contributor_count(self, full_name: str) -> int:
        ...

    async def aclose(self) -> None:
        ...
