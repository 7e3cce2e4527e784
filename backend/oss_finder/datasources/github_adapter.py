from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..config import Settings, get_settings
from ..errors import GitHubAPIError, GitHubAuthError, GitHubRateLimitError
from .base import DataSource, GraphRepo, RestRepo

SEARCH_REPOSITORIES_QUERY = """
query SearchRepositories($searchQuery: String!, $first: Int!) {
  search(query: $searchQuery, type: REPOSITORY, first: $first) {
    repositoryCount
    edges {
      node {
        ... on Repository {
          id
          name
          nameWithOwner
          description
          url
          stargazerCount
          forkCount
          watchers { totalCount }
          issues(states: OPEN) { totalCount }
          pullRequests(states: OPEN) { totalCount }
          primaryLanguage { name }
          repositoryTopics(first: 10) {
            edges { node { topic { name } } }
          }
          licenseInfo { name }
          createdAt
          updatedAt
          pushedAt
          defaultBranchRef {
            target {
              ... on Commit {
                history(first: 100) {
                  totalCount
                  edges { node { committedDate author { user { login } } } }
                }
              }
            }
          }
          object(expression: "HEAD:README.md") {
            ... on Blob { text }
          }
          hasWikiEnabled
          mentionableUsers(first: 100) { totalCount }
        }
      }
    }
  }
}
"""


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.text


def _is_rate_limited(resp: httpx.Response, detail: str) -> bool:
    if resp.status_code == 429:
        return True
    if resp.status_code != 403:
        return False
    return resp.headers.get("X-RateLimit-Remaining") == "0" or "rate limit" in detail.lower()


def _to_rest_repo(item: Dict[str, Any]) -> RestRepo:
    return RestRepo(
        {
            "full_name": item.get("full_name"),
            "name": item.get("name"),
            "html_url": item.get("html_url"),
            "description": item.get("description"),
            "language": item.get("language"),
            "stargazers_count": item.get("stargazers_count", 0),
            "forks_count": item.get("forks_count", 0),
            "watchers_count": item.get("watchers_count", 0),
            "open_issues_count": item.get("open_issues_count", 0),
            "topics": item.get("topics") or [],
            "created_at": item.get("created_at"),
            "updated_at": item.get("updated_at"),
            "pushed_at": item.get("pushed_at"),
            "license": item.get("license"),
            "homepage": item.get("homepage"),
        }
    )


class GitHubAdapter(DataSource):
    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings or get_settings()
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "OSS-Health-Finder",
        }
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        self.headers = headers
        if client is not None:
            self.client = client
            return
        client_kwargs: Dict[str, Any] = {
            "base_url": str(self.settings.github_base_url),
            "timeout": 20,
        }
        if self.settings.github_proxy:
            # http(s):// and socks5:// proxy URLs are both accepted by httpx
            client_kwargs["proxy"] = self.settings.github_proxy
        self.client = httpx.AsyncClient(**client_kwargs)

    @property
    def has_token(self) -> bool:
        return bool(self.settings.github_token)

    def _raise_for_status(self, resp: httpx.Response):
        if resp.is_success:
            return
        detail = _error_detail(resp)
        if _is_rate_limited(resp, detail):
            raise GitHubRateLimitError.from_token_state(self.has_token, detail)
        if resp.status_code in (401, 403):
            raise GitHubAuthError.from_token_state(self.has_token, detail)
        raise GitHubAPIError(f"GitHub {resp.status_code}: {detail}")

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, headers=self.headers, **kwargs)
        except httpx.RequestError as exc:
            raise GitHubAPIError(f"GitHub request error: {type(exc).__name__} {exc!r}") from exc

    async def search_repositories(
        self, query: str, per_page: int = 30, sort: Optional[str] = None, order: str = "desc"
    ) -> List[RestRepo]:
        params: Dict[str, Any] = {"q": query, "per_page": per_page}
        if sort and sort != "best":
            params["sort"] = sort
            params["order"] = order
        logger.info(f"[github] REST search q={query!r} sort={sort} order={order}")
        resp = await self._request("GET", "/search/repositories", params=params)
        self._raise_for_status(resp)
        items = resp.json().get("items") or []
        return [_to_rest_repo(item) for item in items]

    async def search_graphql(self, query: str, first: int = 20) -> List[GraphRepo]:
        if not self.has_token:
            logger.warning(
                "[github] no GITHUB_TOKEN configured; the GraphQL API is strictly limited without one"
            )
        logger.info(f"[github] GraphQL search q={query!r} first={first}")
        resp = await self._request(
            "POST",
            "/graphql",
            json={"query": SEARCH_REPOSITORIES_QUERY, "variables": {"searchQuery": query, "first": first}},
        )
        self._raise_for_status(resp)
        body = resp.json()

        errors = body.get("errors") or []
        for error in errors:
            message = str(error.get("message", ""))
            if error.get("type") == "RATE_LIMITED" or "rate limit" in message.lower():
                raise GitHubRateLimitError.from_token_state(self.has_token, message)
            if error.get("type") in ("FORBIDDEN", "UNAUTHORIZED"):
                raise GitHubAuthError.from_token_state(self.has_token, message)

        search = (body.get("data") or {}).get("search")
        if search is None:
            messages = "; ".join(str(e.get("message", e)) for e in errors) or "empty response"
            raise GitHubAPIError(f"GitHub GraphQL error: {messages}")
        if errors:
            logger.warning(f"[github] GraphQL returned partial errors: {errors}")

        edges = search.get("edges") or []
        # non-repository search hits come back as empty nodes
        return [GraphRepo(edge["node"]) for edge in edges if edge and edge.get("node")]

    async def get_repository(self, full_name: str) -> Optional[RestRepo]:
        resp = await self._request("GET", f"/repos/{full_name}")
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp)
        return _to_rest_repo(resp.json())

    async def get_contributor_count(self, full_name: str) -> int:
        """Count contributors with a single one-per-page request.

        With pagination the last page number equals the contributor count;
        without it the body holds every contributor.
        """
        resp = await self._request("GET", f"/repos/{full_name}/contributors", params={"per_page": 1})
        if resp.status_code == 204:  # empty repository
            return 0
        self._raise_for_status(resp)
        if resp.headers.get("Link"):
            last_url = resp.links.get("last", {}).get("url")
            if not last_url:
                return 1
            page = httpx.URL(last_url).params.get("page")
            return int(page) if page and page.isdigit() else 1
        contributors = resp.json()
        return len(contributors) if isinstance(contributors, list) else 0

    async def aclose(self) -> None:
        await self.client.aclose()
