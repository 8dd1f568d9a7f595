"""Tests for keyword coverage of qualification criteria."""

import re

import pytest

from leadbot import coverage
from leadbot.models import BusinessProfile, CriterionSpec, Role
from leadbot.transcript import Transcript


def _transcript(*user_messages):
    t = Transcript()
    for message in user_messages:
        t.add(Role.USER, message)
    return t


def test_empty_transcript_covers_nothing(real_estate_profile):
    report = coverage.analyze(Transcript(), coverage.build_criteria(real_estate_profile))
    assert report.count == 0
    assert report.total == 4
    assert set(report.missing) == {"budget", "timeline", "location", "propertyType"}


def test_mentions_anywhere_count(real_estate_profile):
    criteria = coverage.build_criteria(real_estate_profile)
    t = _transcript("I want a 2BHK apartment", "my budget is 50 lakhs")

    report = coverage.analyze(t, criteria)
    assert report.covered["propertyType"] is True
    assert report.covered["budget"] is True
    assert report.covered["timeline"] is False


def test_coverage_is_monotonic(real_estate_profile):
    criteria = coverage.build_criteria(real_estate_profile)
    t = _transcript("budget around 1 crore")
    before = coverage.analyze(t, criteria)
    t.add(Role.USER, "ok")
    after = coverage.analyze(t, criteria)

    assert before.covered["budget"] and after.covered["budget"]
    assert after.count >= before.count


def test_analysis_is_deterministic(real_estate_profile):
    criteria = coverage.build_criteria(real_estate_profile)
    t = _transcript("Looking for a villa in Pune next month")
    assert coverage.analyze(t, criteria) == coverage.analyze(t, criteria)


def test_one_word_messages_cover_nothing(real_estate_profile):
    criteria = coverage.build_criteria(real_estate_profile)
    t = _transcript("ok", "yes", "hmm", "sure", "maybe")
    assert coverage.analyze(t, criteria).count == 0


def test_keywords_and_pattern_from_profile():
    profile = BusinessProfile.model_validate({
        "qualificationCriteria": {
            "teamSize": {"description": "Team size", "keywords": ["employees", "people"]},
            "stack": {"description": "Tech stack", "pattern": r"python|java"},
        }
    })
    criteria = coverage.build_criteria(profile)
    report = coverage.analyze(_transcript("We are 20 people using Python"), criteria)
    assert report.covered == {"teamSize": True, "stack": True}


def test_unknown_criterion_falls_back_to_its_name():
    criterion = coverage.make_criterion("decisionMaker", "Who signs off")
    assert re.search(criterion.pattern, "the decision maker is my wife")


def test_invalid_pattern_raises():
    with pytest.raises(re.error):
        coverage.make_criterion("broken", CriterionSpec(description="x", pattern="(unclosed"))
