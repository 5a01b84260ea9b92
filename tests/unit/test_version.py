"""Unit tests for lenient platform version parsing."""

import pytest

from astarte_operator.common.models.version import (
    Version,
    normalize_snapshot,
    normalized_version,
)
from astarte_operator.utils.errors import InvalidVersionError


class TestParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.1.0", (1, 1, 0, "")),
            ("v1.2.3", (1, 2, 3, "")),
            ("1.1", (1, 1, 0, "")),
            ("2", (2, 0, 0, "")),
            ("1.0.0-rc.1", (1, 0, 0, "rc.1")),
            ("1.0.0-beta.2+build.7", (1, 0, 0, "beta.2")),
        ],
    )
    def test_lenient_forms(self, raw, expected):
        version = Version.from_str(raw)
        assert (version.major, version.minor, version.micro, version.prerelease) == expected

    @pytest.mark.parametrize("raw", ["snapshot", "", "1.x", "latest", "1.0.0-", None])
    def test_rejects_garbage(self, raw):
        with pytest.raises(InvalidVersionError):
            Version.from_str(raw)
        assert not Version.is_valid(raw)


class TestOrdering:
    def test_release_sorts_after_its_prereleases(self):
        assert Version.from_str("1.0.0-rc.1") < Version.from_str("1.0.0")
        assert Version.from_str("1.0.0-alpha") < Version.from_str("1.0.0-beta")
        assert Version.from_str("1.0.0-rc.2") < Version.from_str("1.0.0-rc.10")

    def test_equality_ignores_spelling(self):
        assert Version.from_str("v1.1") == Version.from_str("1.1.0")
        assert hash(Version.from_str("v1.1")) == hash(Version.from_str("1.1.0"))

    def test_is_before(self):
        assert Version.from_str("0.11.4").is_before("1.0.0")
        assert not Version.from_str("1.0.0").is_before("1.0.0")
        assert Version.from_str("1.0.0-rc.1").is_before("1.0.0")

    def test_strip_prerelease(self):
        stripped = Version.from_str("1.0.0-rc.1+build.3").strip_prerelease()
        assert str(stripped) == "1.0.0"
        assert not stripped.is_before("1.0.0")


class TestSnapshots:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.1-snapshot", "1.1.0"),
            ("1.1.0-snapshot", "1.1.0"),
            ("1.1.0", "1.1.0"),
        ],
    )
    def test_normalize_snapshot(self, raw, expected):
        assert normalize_snapshot(raw) == expected

    def test_normalized_version_parses_snapshot_markers(self):
        assert normalized_version("1.1-snapshot") == Version.from_str("1.1.0")
