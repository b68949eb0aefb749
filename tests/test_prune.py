"""Tests for pixel_health/prune.py"""

import copy

import pytest

from pixel_health.prune import is_recommendation_column, prune_recommendation_columns


@pytest.fixture
def rows():
    return [
        {
            "event_name": "Purchase",
            "email_coverage_percentage": 92.5,
            "email_recommendation_or_issue": "Recommendation: HASH_EMAIL",
        },
        {
            "event_name": "Lead",
            "phone_recommendation_or_issue": "",
            "Phone Recommendation Or Issue": "x",
        },
    ]


class TestIsRecommendationColumn:
    @pytest.mark.parametrize("name", [
        "email_recommendation_or_issue",
        "Phone Recommendation Or Issue",
        "EXTERNAL_ID_RECOMMENDATION_OR_ISSUE",
        "recommendation_or_issue",
    ])
    def test_matches(self, name):
        assert is_recommendation_column(name)

    @pytest.mark.parametrize("name", [
        "email_coverage_percentage",
        "recommendation_or_issue_count",
        "event_name",
        "issue",
    ])
    def test_rejects(self, name):
        assert not is_recommendation_column(name)


class TestPrune:
    def test_removes_columns_found_in_any_row(self, rows):
        pruned = prune_recommendation_columns(rows)
        assert pruned == [
            {"event_name": "Purchase", "email_coverage_percentage": 92.5},
            {"event_name": "Lead"},
        ]

    def test_does_not_mutate_input(self, rows):
        before = copy.deepcopy(rows)
        pruned = prune_recommendation_columns(rows)
        assert rows == before
        assert all(p is not r for p, r in zip(pruned, rows))

    def test_idempotent(self, rows):
        once = prune_recommendation_columns(rows)
        assert prune_recommendation_columns(once) == once

    def test_empty(self):
        assert prune_recommendation_columns([]) == []

    def test_nothing_to_prune(self):
        data = [{"event_name": "Lead", "browser_hits": 3}]
        assert prune_recommendation_columns(data) == data
