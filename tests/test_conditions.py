"""Tests for condition matching."""

from datetime import datetime, timedelta, timezone

from remote_config.core.rules.conditions import (
    conditions_summary,
    matches,
)
from remote_config.core.rules.models import (
    DateWindow,
    EvaluationContext,
    OverrideRule,
    VersionCondition,
    VersionOperator,
)

FEB_7 = datetime(2026, 2, 7, 12, 0, 0)
WINDOW = DateWindow(datetime(2026, 2, 1), datetime(2026, 2, 14, 23, 59, 59))


def rule(**conditions) -> OverrideRule:
    return OverrideRule(priority=1, override_value=300, **conditions)


class TestPlatformCondition:
    """Tests for the platform condition."""

    def test_matches_same_platform(self):
        assert matches(rule(platform="iOS"), EvaluationContext(platform="iOS")) is True

    def test_is_case_sensitive(self):
        assert matches(rule(platform="iOS"), EvaluationContext(platform="ios")) is False

    def test_missing_context_value_does_not_match(self):
        """A declared condition needs the attribute in the request."""
        assert matches(rule(platform="iOS"), EvaluationContext()) is False


class TestVersionCondition:
    """Tests for the version condition."""

    def test_compares_numerically(self):
        r = rule(version=VersionCondition(VersionOperator.GREATER_OR_EQUAL, "3.5.0"))
        assert matches(r, EvaluationContext(version="3.5.0")) is True
        assert matches(r, EvaluationContext(version="4.0.0")) is True
        assert matches(r, EvaluationContext(version="3.4.9")) is False

    def test_unparseable_client_version_does_not_match(self):
        """Should treat a malformed client version as a non-match, not an error."""
        r = rule(version=VersionCondition(VersionOperator.NOT_EQUAL, "1.0.0"))
        assert matches(r, EvaluationContext(version="1.0")) is False

    def test_missing_version_does_not_match(self):
        r = rule(version=VersionCondition(VersionOperator.LESS_THAN, "9.0.0"))
        assert matches(r, EvaluationContext()) is False


class TestCountryCondition:
    """Tests for the country condition."""

    def test_matches_case_insensitively(self):
        """Client-supplied country codes are compared in upper case."""
        assert matches(rule(country="DE"), EvaluationContext(country="de")) is True

    def test_different_country(self):
        assert matches(rule(country="DE"), EvaluationContext(country="US")) is False


class TestSegmentCondition:
    def test_exact_match(self):
        assert matches(rule(segment="whales"), EvaluationContext(segment="whales")) is True
        assert matches(rule(segment="whales"), EvaluationContext(segment="minnows")) is False
        assert matches(rule(segment="whales"), EvaluationContext()) is False


class TestTimeConditions:
    """Tests for active_after and active_between."""

    def test_window_includes_both_boundaries(self):
        """Instants on the window edges match; one second outside does not."""
        r = rule(active_between=WINDOW)
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 1, 0, 0, 0))) is True
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 14, 23, 59, 59))) is True
        assert matches(r, EvaluationContext.at(datetime(2026, 1, 31, 23, 59, 59))) is False
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 15, 0, 0, 0))) is False

    def test_active_after_has_no_expiry(self):
        """active_after matches at the instant and at every later one."""
        r = rule(active_after=datetime(2026, 2, 10))
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 10))) is True
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 20))) is True
        assert matches(r, EvaluationContext.at(datetime(2036, 2, 20))) is True
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 9, 23, 59, 59))) is False

    def test_aware_instants_are_normalised(self):
        """An aware instant is compared in UTC."""
        r = rule(active_after=datetime(2026, 2, 10))
        berlin = timezone(timedelta(hours=1))
        # 00:30 in Berlin is still the previous day in UTC
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 10, 0, 30, tzinfo=berlin))) is False
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 10, 1, 0, tzinfo=berlin))) is True

    def test_active_after_inside_window(self):
        """Both time conditions must hold: after Feb 10 and within Feb 1-14."""
        r = rule(active_after=datetime(2026, 2, 10), active_between=WINDOW)
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 5))) is False
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 12))) is True
        assert matches(r, EvaluationContext.at(datetime(2026, 2, 15))) is False


class TestMatches:
    """Tests for combining conditions."""

    def test_rule_without_conditions_always_matches(self):
        assert matches(rule(), EvaluationContext()) is True

    def test_all_conditions_must_hold(self):
        """platform=iOS and country=DE must not match iOS in the US."""
        r = rule(platform="iOS", country="DE")
        assert matches(r, EvaluationContext(platform="iOS", country="DE")) is True
        assert matches(r, EvaluationContext(platform="iOS", country="US")) is False

    def test_disabled_rule_never_matches(self):
        r = OverrideRule(priority=1, override_value=300, enabled=False)
        assert matches(r, EvaluationContext()) is False

    def test_time_and_attributes_combined(self):
        r = rule(country="DE", active_between=WINDOW)
        assert matches(r, EvaluationContext.at(FEB_7, country="DE")) is True
        assert matches(r, EvaluationContext.at(FEB_7 + timedelta(days=30), country="DE")) is False


class TestConditionsSummary:
    def test_describes_declared_and_absent_conditions(self):
        r = rule(
            platform="Android",
            version=VersionCondition(VersionOperator.GREATER_THAN, "1.2.0"),
        )
        summary = conditions_summary(r)
        assert summary["platform"] == "Android"
        assert summary["version"] == "> 1.2.0"
        assert summary["country"] == "any"
        assert summary["active_after"] == "never"
