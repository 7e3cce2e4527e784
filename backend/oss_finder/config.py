from functools import lru_cache
from typing import Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_api_base: Optional[HttpUrl] = Field(
        default=None, alias="OPENAI_API_BASE"
    )  # for self-hosted proxies
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    github_token: Optional[str] = Field(default=None, alias="GITHUB_TOKEN")
    github_base_url: HttpUrl = Field(
        default="https://api.github.com", alias="GITHUB_BASE_URL"
    )
    github_proxy: Optional[str] = Field(default=None, alias="GITHUB_PROXY")
    search_page_size: int = Field(default=30, ge=1, le=100, alias="SEARCH_PAGE_SIZE")
    max_results: int = Field(default=20, ge=1, le=100, alias="MAX_RESULTS")
    graphql_page_size: int = Field(default=20, ge=1, le=100, alias="GRAPHQL_PAGE_SIZE")
    cache_sweep_interval_seconds: float = Field(
        default=300, gt=0, alias="CACHE_SWEEP_INTERVAL_SECONDS"
    )
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # ignore unrelated env vars to avoid validation errors


@lru_cache
def get_settings() -> Settings:
    return Settings()
