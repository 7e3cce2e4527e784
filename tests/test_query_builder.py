"""Tests for GitHub search query composition."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from oss_finder.schemas import SearchFilters
from oss_finder.services.query_builder import build_query_string, merge_query

TODAY = date(2026, 10, 19)


class TestBuildQueryString:
    def test_empty_filters_render_only_defaults(self) -> None:
        assert build_query_string(SearchFilters(), today=TODAY) == "is:public archived:false"

    def test_is_deterministic(self) -> None:
        filters = SearchFilters(
            languages=["Go", "Rust"], topics=["cli"], min_stars=10, last_commit_days=30, license="MIT"
        )
        assert build_query_string(filters, today=TODAY) == build_query_string(filters, today=TODAY)

    def test_single_language_has_no_parentheses(self) -> None:
        query = build_query_string(SearchFilters(languages=["Python"]), today=TODAY)
        assert query == "language:Python is:public archived:false"

    def test_multiple_languages_join_with_or(self) -> None:
        query = build_query_string(SearchFilters(languages=["TypeScript", "JavaScript"]), today=TODAY)
        assert query.startswith("(language:TypeScript OR language:JavaScript) ")

    def test_each_topic_is_its_own_token(self) -> None:
        query = build_query_string(SearchFilters(topics=["web", "framework"]), today=TODAY)
        assert "topic:web topic:framework" in query

    def test_star_and_fork_ranges(self) -> None:
        assert "stars:100..1000" in build_query_string(
            SearchFilters(min_stars=100, max_stars=1000), today=TODAY
        )
        assert "stars:>500" in build_query_string(SearchFilters(min_stars=500), today=TODAY)
        assert "stars:<50" in build_query_string(SearchFilters(max_stars=50), today=TODAY)
        assert "forks:0..100" in build_query_string(SearchFilters(min_forks=0, max_forks=100), today=TODAY)
        assert "forks:<100" in build_query_string(SearchFilters(max_forks=100), today=TODAY)

    def test_recency_becomes_absolute_pushed_date(self) -> None:
        query = build_query_string(SearchFilters(last_commit_days=30), today=TODAY)
        assert "pushed:>2026-09-19" in query

    def test_date_lower_bounds(self) -> None:
        filters = SearchFilters(created_after=date(2026, 1, 1), pushed_after=date(2026, 6, 1))
        query = build_query_string(filters, today=TODAY)
        assert "created:>=2026-01-01" in query
        assert "pushed:>=2026-06-01" in query

    def test_only_true_flags_render(self) -> None:
        query = build_query_string(
            SearchFilters(has_wiki=True, has_issues=False, has_projects=True), today=TODAY
        )
        assert "has:wiki" in query
        assert "has:projects" in query
        assert "issues" not in query
        assert "NOT" not in query

    def test_archived_true_drops_archived_token(self) -> None:
        assert build_query_string(SearchFilters(archived=True), today=TODAY) == "is:public"
        assert build_query_string(SearchFilters(archived=False), today=TODAY).endswith("archived:false")

    def test_full_composition_order(self) -> None:
        filters = SearchFilters(
            languages=["Rust"],
            topics=["cli"],
            min_stars=500,
            last_commit_days=90,
            license="Apache-2.0",
            has_issues=True,
            sort_by="stars",
            order="desc",
        )
        assert build_query_string(filters, today=TODAY) == (
            "language:Rust topic:cli stars:>500 pushed:>2026-07-21 "
            "license:Apache-2.0 has:issues is:public archived:false"
        )

    def test_camel_case_aliases_are_accepted(self) -> None:
        filters = SearchFilters.model_validate({"minStars": 10, "lastCommitDays": 7, "hasWiki": True})
        query = build_query_string(filters, today=TODAY)
        assert "stars:>10" in query
        assert "pushed:>2026-10-12" in query
        assert "has:wiki" in query


class TestMergeQuery:
    def test_keywords_go_in_front(self) -> None:
        query = merge_query("  vector   database ", SearchFilters(languages=["Go"]), today=TODAY)
        assert query == "vector database language:Go is:public archived:false"

    def test_blank_keywords_are_ignored(self) -> None:
        assert merge_query("   ", SearchFilters(), today=TODAY) == "is:public archived:false"
        assert merge_query(None, SearchFilters(), today=TODAY) == "is:public archived:false"


class TestRecencyBounds:
    def test_century_cutoff_renders(self) -> None:
        query = build_query_string(SearchFilters(last_commit_days=36500), today=TODAY)
        assert "pushed:>1926-11-13" in query

    def test_out_of_range_day_count_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SearchFilters(last_commit_days=1_000_000)
