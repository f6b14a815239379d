"""Tests for require()-style file resolution."""

import asyncio
import errno
import os
from unittest.mock import patch

import pytest

from npmcdn import file_resolver
from npmcdn.file_resolver import is_directory, resolve_file, safe_join

from registry_stub import write_files


def _resolve(path, use_index):
    return asyncio.run(resolve_file(str(path), use_index))


class TestResolveFile:
    """Tests for extension and index resolution."""

    def test_literal_path_wins(self, tmp_path):
        """Test that an exact match is returned as-is."""
        write_files(tmp_path, {"lib/foo": "x", "lib/foo.js": "y"})
        assert _resolve(tmp_path / "lib" / "foo", False) == str(tmp_path / "lib" / "foo")

    def test_js_extension(self, tmp_path):
        """Test that .js is appended when the literal path is missing."""
        write_files(tmp_path, {"lib/foo.js": "y"})
        assert _resolve(tmp_path / "lib" / "foo", False) == str(tmp_path / "lib" / "foo.js")

    def test_js_preferred_over_json(self, tmp_path):
        """Test the extension priority order."""
        write_files(tmp_path, {"lib/foo.js": "y", "lib/foo.json": "{}"})
        assert _resolve(tmp_path / "lib" / "foo", False) == str(tmp_path / "lib" / "foo.js")

    def test_json_extension(self, tmp_path):
        """Test that .json is tried last."""
        write_files(tmp_path, {"lib/foo.json": "{}"})
        assert _resolve(tmp_path / "lib" / "foo", False) == str(tmp_path / "lib" / "foo.json")

    def test_missing_file(self, tmp_path):
        """Test that nothing matching yields None."""
        assert _resolve(tmp_path / "nope", True) is None

    def test_directory_without_index_fallback(self, tmp_path):
        """Test that directories do not satisfy resolution on their own."""
        write_files(tmp_path, {"lib/index.js": "x"})
        assert _resolve(tmp_path / "lib", False) is None

    def test_directory_index_js(self, tmp_path):
        """Test index fallback for directories."""
        write_files(tmp_path, {"lib/index.js": "x"})
        assert _resolve(tmp_path / "lib", True) == str(tmp_path / "lib" / "index.js")

    def test_directory_index_json(self, tmp_path):
        """Test index fallback finds index.json."""
        write_files(tmp_path, {"lib/index.json": "{}"})
        assert _resolve(tmp_path / "lib", True) == str(tmp_path / "lib" / "index.json")

    def test_sibling_file_beats_directory_index(self, tmp_path):
        """Test that lib.js is preferred over lib/index.js."""
        write_files(tmp_path, {"lib.js": "a", "lib/index.js": "b"})
        assert _resolve(tmp_path / "lib", True) == str(tmp_path / "lib.js")

    def test_index_fallback_does_not_recurse_twice(self, tmp_path):
        """Test that an index directory is not itself index-resolved."""
        write_files(tmp_path, {"lib/index/index.js": "x"})
        assert _resolve(tmp_path / "lib", True) is None

    def test_path_below_a_file_is_not_found(self, tmp_path):
        """Test that ENOTDIR counts as absent."""
        write_files(tmp_path, {"lib.js": "x"})
        assert _resolve(tmp_path / "lib.js" / "foo", False) is None

    def test_io_error_short_circuits(self, tmp_path):
        """Test that real I/O errors propagate instead of reading as missing."""
        write_files(tmp_path, {"lib/foo.json": "{}"})
        calls = []

        def _failing_stat(path):
            calls.append(path)
            raise OSError(errno.EACCES, "Permission denied", path)

        with patch.object(file_resolver.os, "stat", _failing_stat):
            with pytest.raises(OSError) as excinfo:
                _resolve(tmp_path / "lib" / "foo", False)

        assert excinfo.value.errno == errno.EACCES
        assert len(calls) == 1


class TestSafeJoin:
    """Tests for the constrained path join."""

    def test_joins_relative_paths(self, tmp_path):
        """Test normal joins."""
        assert safe_join(str(tmp_path), "/lib/foo.js") == os.path.join(str(tmp_path), "lib", "foo.js")

    def test_base_itself(self, tmp_path):
        """Test that the root of the package is allowed."""
        assert safe_join(str(tmp_path), "/") == str(tmp_path)

    def test_rejects_escape(self, tmp_path):
        """Test that .. cannot leave the base directory."""
        assert safe_join(str(tmp_path / "pkg"), "/../secret") is None
        assert safe_join(str(tmp_path / "pkg"), "/lib/../../pkg-other/x") is None

    def test_inner_dot_segments_are_allowed(self, tmp_path):
        """Test that .. staying inside the base is fine."""
        base = str(tmp_path / "pkg")
        assert safe_join(base, "/lib/../index.js") == os.path.join(base, "index.js")


class TestIsDirectory:
    """Tests for the directory check."""

    def test_is_directory(self, tmp_path):
        """Test directory detection."""
        write_files(tmp_path, {"lib/a.js": "x"})
        assert asyncio.run(is_directory(str(tmp_path / "lib"))) is True
        assert asyncio.run(is_directory(str(tmp_path / "lib" / "a.js"))) is False
        assert asyncio.run(is_directory(str(tmp_path / "missing"))) is False
