"""Tests for version parsing and comparison."""

import pytest

from remote_config.core.errors import InvalidVersionFormatError
from remote_config.core.rules.models import VersionOperator
from remote_config.core.rules.versions import (
    compare_versions,
    is_valid_version,
    parse_version,
)


class TestParseVersion:
    """Tests for parse_version."""

    def test_parses_three_components(self):
        assert parse_version("2.10.3") == (2, 10, 3)

    @pytest.mark.parametrize("bad", ["2.0", "2.0.0.1", "v2.0.0", "2.0.x", "", "2.0.0\n", " 2.0.0"])
    def test_rejects_malformed(self, bad):
        """Should reject anything that is not MAJOR.MINOR.PATCH."""
        with pytest.raises(InvalidVersionFormatError):
            parse_version(bad)

    def test_rejects_non_string(self):
        assert is_valid_version(200) is False
        assert is_valid_version(None) is False


class TestCompareVersions:
    """Tests for compare_versions."""

    def test_greater_or_equal(self):
        """greater_or_equal 3.5.0 matches 3.5.0 and 4.0.0 but not 3.4.9."""
        op = VersionOperator.GREATER_OR_EQUAL
        assert compare_versions("3.5.0", op, "3.5.0") is True
        assert compare_versions("4.0.0", op, "3.5.0") is True
        assert compare_versions("3.4.9", op, "3.5.0") is False

    def test_numeric_not_lexicographic(self):
        """1.10.0 is newer than 1.9.0."""
        assert compare_versions("1.10.0", VersionOperator.GREATER_THAN, "1.9.0") is True
        assert compare_versions("1.10.0", VersionOperator.LESS_THAN, "1.9.0") is False

    def test_equality_operators(self):
        assert compare_versions("1.0.0", VersionOperator.EQUAL, "1.0.0") is True
        assert compare_versions("1.0.0", VersionOperator.NOT_EQUAL, "1.0.1") is True
        assert compare_versions("1.0.0", VersionOperator.LESS_OR_EQUAL, "1.0.0") is True

    def test_accepts_operator_value(self):
        """The operator may be given by its string value."""
        assert compare_versions("2.0.0", "less_than", "2.0.1") is True

    def test_malformed_target_raises(self):
        with pytest.raises(InvalidVersionFormatError):
            compare_versions("beta", VersionOperator.EQUAL, "1.0.0")
