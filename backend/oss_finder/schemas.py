from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SortKey = Literal["stars", "forks", "updated", "help-wanted-issues"]
SortOrder = Literal["asc", "desc"]

# one century keeps the pushed:> cutoff inside the date range
MAX_LAST_COMMIT_DAYS = 36500


class SearchFilters(BaseModel):
    """Independently settable search constraints; ``None`` means unset."""

    model_config = ConfigDict(populate_by_name=True)

    languages: Optional[List[str]] = None  # OR
    min_stars: Optional[int] = Field(default=None, ge=0, alias="minStars")
    max_stars: Optional[int] = Field(default=None, ge=0, alias="maxStars")
    min_forks: Optional[int] = Field(default=None, ge=0, alias="minForks")
    max_forks: Optional[int] = Field(default=None, ge=0, alias="maxForks")
    last_commit_days: Optional[int] = Field(
        default=None, gt=0, le=MAX_LAST_COMMIT_DAYS, alias="lastCommitDays"
    )
    topics: Optional[List[str]] = None  # AND
    license: Optional[str] = None
    has_wiki: Optional[bool] = Field(default=None, alias="hasWiki")
    has_issues: Optional[bool] = Field(default=None, alias="hasIssues")
    has_projects: Optional[bool] = Field(default=None, alias="hasProjects")
    archived: Optional[bool] = None
    sort_by: Optional[SortKey] = Field(default=None, alias="sortBy")
    order: Optional[SortOrder] = None
    created_after: Optional[date] = Field(default=None, alias="createdAfter")
    pushed_after: Optional[date] = Field(default=None, alias="pushedAfter")

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ParsedQuery(BaseModel):
    filters: SearchFilters
    query: str
    confidence: float = Field(ge=0, le=1)
    source: Literal["remote", "fallback"] = "fallback"
    interpretation: Optional[str] = None


class ComponentScore(BaseModel):
    score: float = Field(ge=0, le=100)
    value: float
    unit: str
    weight: int


class HealthBreakdown(BaseModel):
    commit_frequency: ComponentScore
    issue_response_time: ComponentScore
    pr_merge_rate: ComponentScore
    contributor_diversity: ComponentScore
    documentation_quality: ComponentScore
    dependency_freshness: ComponentScore
    community_growth: ComponentScore
    breaking_change_frequency: ComponentScore

    def components(self) -> List[ComponentScore]:
        return [getattr(self, name) for name in type(self).model_fields]


class HealthReport(BaseModel):
    score: int = Field(ge=0, le=100)
    breakdown: HealthBreakdown


class ProjectStats(BaseModel):
    stars: int
    forks: int
    watchers: int
    open_issues: int
    last_commit: Optional[str]
    last_commit_days_ago: int
    contributors: int
    license: str


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    full_name: str
    description: str
    url: str
    health_score: int = Field(ge=0, le=100)
    health_breakdown: HealthBreakdown
    stats: ProjectStats
    topics: List[str]
    language: str
    created_at: Optional[str]
    updated_at: Optional[str]


class FilterSearchRequest(BaseModel):
    filters: SearchFilters = Field(default_factory=SearchFilters)
    query: Optional[str] = None  # free keywords placed in front of the filters
    use_cache: bool = True


class NaturalSearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)
    use_cache: bool = True


class TranslateRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)


class TranslateResponse(BaseModel):
    parsed: ParsedQuery
    interpretation: str


class SearchResponse(BaseModel):
    query: str
    parsed: Optional[ParsedQuery] = None
    results: List[Project]
