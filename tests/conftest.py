"""Pytest configuration and shared fixtures."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from redirect_canonical.models.config import ResolverConfig, RewriteConfig, SiteConfig
from redirect_canonical.models.content import Author, ContentSnapshot, Post, Term
from redirect_canonical.resolver.resolver import CanonicalResolver
from redirect_canonical.services.content_store import InMemoryContentStore
from redirect_canonical.services.links import LinkBuilder

PRETTY_STRUCTURE = "/%year%/%monthnum%/%day%/%postname%/"


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def site_config() -> SiteConfig:
    """Create a test site configuration."""
    return SiteConfig(home_url="http://example.com")


@pytest.fixture
def rewrite_config() -> RewriteConfig:
    """Create a day-and-name permalink configuration."""
    return RewriteConfig(permalink_structure=PRETTY_STRUCTURE)


@pytest.fixture
def plain_rewrite_config() -> RewriteConfig:
    """Create a configuration without pretty permalinks."""
    return RewriteConfig(permalink_structure="")


@pytest.fixture
def resolver_config(site_config: SiteConfig, rewrite_config: RewriteConfig) -> ResolverConfig:
    return ResolverConfig(site=site_config, rewrite=rewrite_config)


@pytest.fixture
def temp_config_file(tmp_path: Path, resolver_config: ResolverConfig) -> Path:
    """Write the resolver config to a temporary JSON file."""
    path = tmp_path / "redirect-canonical.json"
    resolver_config.save(path)
    return path


# ============================================================================
# Content Fixtures
# ============================================================================


@pytest.fixture
def snapshot() -> ContentSnapshot:
    """A small blog: two posts, two pages, an attachment, a draft and a revision."""
    return ContentSnapshot(
        posts=[
            Post(
                id=42, slug="hello-world", title="Hello World", author=1,
                date=datetime(2024, 1, 15, 9, 30), categories=[1], tags=[5],
            ),
            Post(
                id=43, slug="multi-page", title="Multi Page", author=1,
                date=datetime(2024, 2, 3),
                content="one<!--nextpage-->two<!--nextpage-->three",
                categories=[2],
            ),
            Post(id=7, post_type="page", slug="about", title="About"),
            Post(id=8, post_type="page", slug="team", title="Team", parent=7),
            Post(id=50, post_type="attachment", status="inherit", slug="photo", parent=42),
            Post(id=60, slug="secret-draft", status="draft", author=1),
            Post(id=61, post_type="revision", status="inherit", slug="42-revision-v1", parent=42),
        ],
        authors=[
            Author(id=1, login="admin", nicename="admin", display_name="Admin"),
            Author(id=2, login="ghost", nicename="ghost"),
        ],
        terms=[
            Term(term_id=1, taxonomy="category", slug="news", name="News"),
            Term(term_id=2, taxonomy="category", slug="world", name="World", parent=1),
            Term(term_id=5, taxonomy="post_tag", slug="python", name="Python"),
        ],
        preview_nonces={42: "nonce-42"},
    )


@pytest.fixture
def links(site_config: SiteConfig, rewrite_config: RewriteConfig) -> LinkBuilder:
    return LinkBuilder(site_config, rewrite_config)


@pytest.fixture
def store(snapshot: ContentSnapshot, links: LinkBuilder) -> InMemoryContentStore:
    return InMemoryContentStore(snapshot, links)


@pytest.fixture
def resolver(resolver_config: ResolverConfig, store: InMemoryContentStore) -> CanonicalResolver:
    return CanonicalResolver(resolver_config, store)


@pytest.fixture
def temp_content_file(tmp_path: Path, snapshot: ContentSnapshot) -> Path:
    path = tmp_path / "content.json"
    path.write_text(snapshot.model_dump_json(indent=2))
    return path


# ============================================================================
# Scenario Fixtures
# ============================================================================


@pytest.fixture
def scenario_data() -> dict:
    return {
        "scenarios": [
            {
                "name": "post by id",
                "url": "http://example.com/?p=42",
                "query": {"kind": "post", "queried_object_id": 42, "query_vars": {"p": "42"}},
                "expected_location": "http://example.com/2024/01/15/hello-world/",
            },
            {
                "name": "canonical root",
                "url": "http://example.com/",
                "query": {"kind": "home"},
                "expect_no_redirect": True,
            },
        ]
    }


@pytest.fixture
def temp_scenario_file(tmp_path: Path, scenario_data: dict) -> Path:
    path = tmp_path / "scenarios.json"
    path.write_text(json.dumps(scenario_data))
    return path
