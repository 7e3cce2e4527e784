from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .config import get_settings
from .errors import GitHubAuthError, GitHubError, GitHubRateLimitError
from .schemas import (
    FilterSearchRequest,
    NaturalSearchRequest,
    Project,
    SearchResponse,
    TranslateRequest,
    TranslateResponse,
)
from .services.intent_parser import render_interpretation
from .services.query_builder import merge_query
from .services.search import SearchService

settings = get_settings()
search_service = SearchService(settings)


@asynccontextmanager
async def lifespan(_: FastAPI):
    search_service.start()
    try:
        yield
    finally:
        await search_service.aclose()


app = FastAPI(title="OSS Health Finder", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def github_http_error(exc: GitHubError) -> HTTPException:
    if isinstance(exc, GitHubAuthError):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, GitHubRateLimitError):
        return HTTPException(status_code=429, detail=str(exc))
    return HTTPException(status_code=502, detail=f"GitHub API error: {exc}")


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": {"size": search_service.cache.stats()["size"]},
    }


@app.post("/translate", response_model=TranslateResponse)
async def translate(body: TranslateRequest):
    parsed = await search_service.translate(body.query)
    return TranslateResponse(parsed=parsed, interpretation=render_interpretation(parsed, body.query))


@app.post("/search", response_model=SearchResponse)
async def search(body: FilterSearchRequest):
    try:
        results = await search_service.search_by_filters(body.filters, body.query, use_cache=body.use_cache)
    except GitHubError as exc:
        logger.error(f"[api] filter search failed: {exc}")
        raise github_http_error(exc)
    return SearchResponse(query=merge_query(body.query, body.filters), results=results)


@app.post("/search/natural", response_model=SearchResponse)
async def search_natural(body: NaturalSearchRequest):
    parsed = await search_service.translate(body.query, use_cache=body.use_cache)
    try:
        results = await search_service.search_by_query(parsed.query, use_cache=body.use_cache)
    except GitHubError as exc:
        logger.error(f"[api] natural search failed: {exc}")
        raise github_http_error(exc)
    return SearchResponse(query=parsed.query, parsed=parsed, results=results)


@app.get("/projects/{owner}/{repo}", response_model=Project)
async def project_detail(owner: str, repo: str):
    try:
        project = await search_service.get_project(f"{owner}/{repo}")
    except GitHubError as exc:
        raise github_http_error(exc)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Repository {owner}/{repo} not found")
    return project


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8020)
