"""Tests for pixel_health/finalize.py"""

import pytest

from conftest import capture, har
from pixel_health.finalize import finalize, finalize_record, truncate_score
from pixel_health.models import CANONICAL_COLUMNS, NA, EventAccumulator, EventRecord
from pixel_health.pipeline import merge_documents
from pixel_health.sources import SourceType


class TestTruncateScore:
    @pytest.mark.parametrize("value,expected", [
        (0.755, "0.75"),
        (0.759, "0.75"),
        (0.29, "0.29"),
        (1, "1.00"),
        (0.5, "0.50"),
        ("0.8123", "0.81"),
    ])
    def test_truncates(self, value, expected):
        assert truncate_score(value) == expected

    @pytest.mark.parametrize("value", [NA, "high", True, None, [0.5], float("nan")])
    def test_non_numeric_is_sentinel(self, value):
        assert truncate_score(value) == NA

    @pytest.mark.parametrize("value", [1e30, "1e40"])
    def test_too_large_to_quantize_is_sentinel(self, value):
        assert truncate_score(value) == NA

    def test_huge_score_does_not_break_merge(self):
        doc = har(capture({"payload": {"data": {"event_name": "Purchase", "compositeScore": 1e30}}}))
        row = merge_documents({SourceType.SETUP_QUALITY: doc}).records[0]
        assert row["compositeScore"] == NA


class TestFinalizeRecord:
    def test_unset_fields_become_sentinel(self):
        row = finalize_record(EventRecord("Lead"))
        assert list(row) == list(CANONICAL_COLUMNS)
        assert row["event_name"] == "Lead"
        assert all(row[c] == NA for c in CANONICAL_COLUMNS if c != "event_name")

    def test_browser_only_has_no_diff(self):
        record = EventRecord("Lead")
        record.set_hits("WEB_ONLY", 100)
        row = finalize_record(record)
        assert row["browser_hits"] == 100
        assert row["server_hits"] == NA
        assert row["server_vs_browser_diff_pct"] == NA

    def test_composite_score_truncated(self):
        record = EventRecord("Purchase", composite_score=0.755)
        assert finalize_record(record)["compositeScore"] == "0.75"

    def test_explicit_sentinel_kept(self):
        record = EventRecord("Purchase", composite_score=NA, emq_rating=NA)
        row = finalize_record(record)
        assert row["compositeScore"] == NA
        assert row["emqRating"] == NA

    def test_boolean_and_zero_values_preserved(self):
        record = EventRecord("Purchase", has_dedupe_issue=False)
        record.key_stats["fbp"].overlap = 0
        row = finalize_record(record)
        assert row["hasDedupeIssue"] is False
        assert row["fbp_overlap"] == 0

    def test_dynamic_columns_follow_canonical(self):
        record = EventRecord("Purchase")
        record.dynamic["email_coverage_percentage"] = 92.5
        record.dynamic["email_recommendation_or_issue"] = ""
        row = finalize_record(record)
        assert list(row)[len(CANONICAL_COLUMNS):] == [
            "email_coverage_percentage",
            "email_recommendation_or_issue",
        ]
        assert row["email_recommendation_or_issue"] == ""


class TestFinalize:
    def test_order_and_count(self):
        acc = EventAccumulator()
        for name in ("ViewContent", "Purchase", "Lead"):
            acc.record_for(name)
        rows = finalize(acc)
        assert [r["event_name"] for r in rows] == ["ViewContent", "Purchase", "Lead"]

    def test_empty(self):
        assert finalize(EventAccumulator()) == []

    def test_does_not_mutate_accumulator(self):
        acc = EventAccumulator()
        acc.record_for("Purchase").composite_score = 0.755
        finalize(acc)
        assert acc.get("Purchase").composite_score == 0.755
