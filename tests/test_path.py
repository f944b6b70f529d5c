"""Tests for path segment operations."""

import pytest

from redirect_canonical.models.config import RewriteConfig
from redirect_canonical.resolver import path as paths


@pytest.fixture
def rewrite() -> RewriteConfig:
    return RewriteConfig(permalink_structure="/%postname%/")


class TestSegments:
    def test_split_and_join(self):
        assert paths.split_segments("/a//b/") == ["a", "b"]
        assert paths.join_segments(["a", "b"]) == "/a/b/"
        assert paths.join_segments(["a"], trailing=False) == "/a"
        assert paths.join_segments([]) == "/"

    def test_basename(self):
        assert paths.basename("/wp-rss2.php") == "wp-rss2.php"
        assert paths.basename("/dir/wp-register.php/") == "wp-register.php"
        assert paths.basename("/") == ""


class TestStripPagingAndFeed:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/category/news/page/2/", "/category/news/"),
            ("/category/news/page2", "/category/news/"),
            ("/feed/", "/"),
            ("/hello/feed/atom/", "/hello/"),
            ("/hello/comments/feed/", "/hello/"),
            ("/hello/comment-page-3/", "/hello/"),
            ("/hello/comment-page-3/feed/", "/hello/"),
        ],
    )
    def test_suffixes(self, rewrite, path, expected):
        assert paths.strip_paging_and_feed(path, rewrite) == expected

    def test_untouched_without_suffix(self, rewrite):
        assert paths.strip_paging_and_feed("/hello", rewrite) == "/hello"

    def test_page_segment_without_number_is_kept(self, rewrite):
        assert paths.strip_paging_and_feed("/page/", rewrite) == "/page/"


class TestCleanup:
    def test_strip_trailing_segment(self):
        assert paths.strip_trailing_segment("/a/b/7/", "7") == "/a/b"
        assert paths.strip_trailing_segment("/a/b/", "7") == "/a/b"
        assert paths.strip_trailing_segment("/7/", "7") == ""

    def test_strip_trailing_index(self):
        assert paths.strip_trailing_index("/index.php", "index.php") == "/"
        assert paths.strip_trailing_index("/blog/index.php//", "index.php") == "/blog/"
        assert paths.strip_trailing_index("/index.php/hello/", "index.php") == "/index.php/hello/"

    def test_strip_inner_index(self):
        assert paths.strip_inner_index("/index.php/hello/", "index.php") == "/hello/"

    def test_strip_trailing_nbsp(self):
        assert paths.strip_trailing_nbsp("/hello/%C2%A0%c2%a0") == "/hello/"

    def test_collapse_slashes(self):
        assert paths.collapse_slashes("//a///b/") == "/a/b/"


class TestPunctuation:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("/hello!", "/hello"),
            ("/hello%21", "/hello"),
            ("/hello%2e%2E", "/hello"),
            ("/hello%E2%80%9D", "/hello"),
            ("/hello )", "/hello"),
            ("/hello", "/hello"),
            ("5.", "5"),
        ],
    )
    def test_trim_trailing_punctuation(self, text, expected):
        assert paths.trim_trailing_punctuation(text) == expected

    def test_trim_path_punctuation_keeps_slash(self):
        assert paths.trim_path_punctuation("/hello!/") == "/hello/"
        assert paths.trim_path_punctuation("/hello/") == "/hello/"
        assert paths.trim_path_punctuation("/") == "/"
