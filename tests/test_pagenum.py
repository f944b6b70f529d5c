"""Tests for the page-number link filter."""

import pytest

from redirect_canonical.models.config import RewriteConfig, SiteConfig
from redirect_canonical.pagenum import get_pagenum_from_path, get_pagenum_link


@pytest.fixture
def site() -> SiteConfig:
    return SiteConfig(home_url="http://example.com")


@pytest.fixture
def rewrite() -> RewriteConfig:
    return RewriteConfig(permalink_structure="/%postname%/")


class TestPagenumFromPath:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/category/news/page/3/", "3"),
            ("/category/news/page/12", "12"),
            ("/foo/page2", "page2"),
            ("/foo/bar/", ""),
            ("", ""),
        ],
    )
    def test_trailing_number(self, path, expected):
        assert get_pagenum_from_path(path) == expected


class TestPagenumLink:
    def test_replaces_existing_page_suffix(self, site, rewrite):
        link = get_pagenum_link(
            "http://example.com/category/news/page/2/page/3/",
            3,
            request_uri="/category/news/page/2/",
            site=site,
            rewrite=rewrite,
            host_version="5.2",
        )
        assert link == "http://example.com/category/news/page/3/"

    def test_first_page_drops_suffix(self, site, rewrite):
        link = get_pagenum_link(
            "http://example.com/category/news/page/2/",
            1,
            request_uri="/category/news/page/2/",
            site=site,
            rewrite=rewrite,
            host_version="5.2",
        )
        assert link == "http://example.com/category/news/"

    def test_old_hosts_take_number_from_link(self, site, rewrite):
        link = get_pagenum_link(
            "http://example.com/category/news/page/2/page/3/",
            1,
            request_uri="/category/news/page/2/",
            site=site,
            rewrite=rewrite,
            host_version="5.1.1",
        )
        assert link == "http://example.com/category/news/page/3/"

    def test_old_hosts_ignore_number_matching_request(self, site, rewrite):
        link = get_pagenum_link(
            "http://example.com/category/news/page/2/",
            1,
            request_uri="/category/news/page/2/",
            site=site,
            rewrite=rewrite,
            host_version="5.1",
        )
        assert link == "http://example.com/category/news/"

    def test_query_string_is_kept_and_paged_dropped(self, site, rewrite):
        link = get_pagenum_link(
            "http://example.com/?s=x&paged=3",
            3,
            request_uri="/?s=x&paged=2",
            site=site,
            rewrite=rewrite,
            host_version="5.2",
        )
        assert link == "http://example.com/page/3/?s=x"

    def test_home_in_subdirectory(self, rewrite):
        site = SiteConfig(home_url="http://example.com/blog")
        link = get_pagenum_link(
            "",
            2,
            request_uri="/blog/tag/python/",
            site=site,
            rewrite=rewrite,
            host_version="5.2",
        )
        assert link == "http://example.com/blog/tag/python/page/2/"

    def test_index_permalinks(self, site):
        rewrite = RewriteConfig(permalink_structure="/index.php/%postname%/")
        link = get_pagenum_link(
            "",
            2,
            request_uri="/index.php/tag/python/",
            site=site,
            rewrite=rewrite,
            host_version="5.2",
        )
        assert link == "http://example.com/index.php/tag/python/page/2/"

    def test_plain_permalinks_are_untouched(self, site):
        link = "http://example.com/?paged=2"
        assert get_pagenum_link(link, 2, request_uri="/", site=site, rewrite=RewriteConfig()) == link

    def test_admin_is_untouched(self, site, rewrite):
        link = "http://example.com/wp-admin/edit.php?paged=2"
        assert get_pagenum_link(link, 2, request_uri="/wp-admin/edit.php", site=site, rewrite=rewrite, is_admin=True) == link
