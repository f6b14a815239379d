"""Tests for the package URL parser."""

import pytest

from npmcdn.request_parser import (
    PackageRequest,
    RequestParser,
    create_package_url,
    parse_package_url,
)


class TestRequestParserUnscoped:
    """Tests for unscoped package URLs."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = RequestParser()

    def test_parse_name_version_and_file(self):
        """Test parsing a fully pinned URL."""
        result = self.parser.parse("/history@1.12.5/umd/History.min.js")
        assert result == PackageRequest(
            package_name="history",
            version="1.12.5",
            filename="/umd/History.min.js",
            search="",
        )

    def test_parse_without_filename(self):
        """Test that a missing file part yields an empty filename."""
        result = self.parser.parse("/history@1.12.5")
        assert result.package_name == "history"
        assert result.version == "1.12.5"
        assert result.filename == ""

    def test_missing_version_defaults_to_latest(self):
        """Test that a URL without a version asks for the latest tag."""
        result = self.parser.parse("/history/umd/History.min.js")
        assert result.package_name == "history"
        assert result.version == "latest"
        assert result.filename == "/umd/History.min.js"

    def test_empty_version_defaults_to_latest(self):
        """Test that a dangling @ is treated as no version."""
        result = self.parser.parse("/history@/index.js")
        assert result.version == "latest"

    def test_trailing_slash_is_preserved(self):
        """Test that directory-style filenames keep their trailing slash."""
        result = self.parser.parse("/react@16.0.0/lib/")
        assert result.filename == "/lib/"

    def test_range_and_tag_tokens_are_kept_verbatim(self):
        """Test that non-exact version tokens are passed through."""
        assert self.parser.parse("/history@^1/index.js").version == "^1"
        assert self.parser.parse("/history@next").version == "next"
        assert self.parser.parse("/history@%3E%3D1.0.0%20%3C2").version == ">=1.0.0 <2"

    def test_query_string_is_carried(self):
        """Test that the query string is kept for redirects."""
        result = self.parser.parse("/history@1.12.5", "main=browser")
        assert result.search == "?main=browser"
        assert self.parser.parse("/history@1.12.5?a=1&b=2").search == "?a=1&b=2"

    def test_dot_segments_are_not_interpreted(self):
        """Test that .. segments are left for the file resolver."""
        result = self.parser.parse("/history@1.0.0/../../etc/passwd")
        assert result.filename == "/../../etc/passwd"


class TestRequestParserScoped:
    """Tests for scoped package URLs."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = RequestParser()

    def test_parse_scoped_package(self):
        """Test that the scope @ is not taken for the version separator."""
        result = self.parser.parse("/@babel/core")
        assert result.package_name == "@babel/core"
        assert result.version == "latest"
        assert result.filename == ""

    def test_parse_scoped_package_with_version_and_file(self):
        """Test parsing a pinned scoped package URL."""
        result = self.parser.parse("/@babel/core@7.23.0/lib/index.js")
        assert result.package_name == "@babel/core"
        assert result.version == "7.23.0"
        assert result.filename == "/lib/index.js"

    def test_scoped_package_with_range(self):
        """Test that the last @ separates the version in scoped names."""
        result = self.parser.parse("/@types/node@^18/index.d.ts")
        assert result.package_name == "@types/node"
        assert result.version == "^18"
        assert result.filename == "/index.d.ts"


class TestRequestParserInvalid:
    """Tests for URLs that are not package URLs."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = RequestParser()

    @pytest.mark.parametrize("path", [
        "/",
        "",
        "/@1.0.0",
        "/@babel",
        "/@/core",
        "/@babel/",
        "/@babel/@7.0.0",
        "/foo@1.0.0%2F..%2F..",
        "/..@1.0.0",
        "/%2E%2E@1.0.0/index.js",
        "/foo@..",
        "/@babel/..@7.0.0",
    ])
    def test_invalid_urls(self, path):
        """Test that malformed paths produce the invalid signal."""
        assert self.parser.parse(path) is None

    def test_module_level_helper(self):
        """Test the module-level convenience function."""
        assert parse_package_url("/") is None
        assert parse_package_url("/react").package_name == "react"


class TestCreatePackageUrl:
    """Tests for building package URLs."""

    def test_create_full_url(self):
        """Test building a URL with every part."""
        url = create_package_url("history", "1.12.5", "/umd/History.min.js", "?main=browser")
        assert url == "/history@1.12.5/umd/History.min.js?main=browser"

    def test_create_without_optional_parts(self):
        """Test building a bare package URL."""
        assert create_package_url("react") == "/react"
        assert create_package_url("react", "16.0.0") == "/react@16.0.0"

    @pytest.mark.parametrize("url", [
        "/history@1.12.5/umd/History.min.js",
        "/@babel/core@7.23.0/lib/index.js",
        "/react@16.0.0/lib/",
        "/react@16.0.0",
    ])
    def test_parse_then_create_is_lossless(self, url):
        """Test that parsed fields rebuild the same URL."""
        parsed = parse_package_url(url)
        rebuilt = create_package_url(parsed.package_name, parsed.version, parsed.filename)
        assert rebuilt == url
