"""Per-source field mappers.

Each mapper takes the accumulator built so far plus one decoded HAR document
and returns a new accumulator (the input is left untouched) together with a
SourceReport describing which entries were applied or skipped and why:

    setup_quality                      compositeScore, emqRating, per-identifier columns
    new_har_event_count                browser_hits, server_hits, server_vs_browser_diff_pct
    additional_attributed_conversions  ARC (%), hasDedupeIssue
    deduplication                      <key>_serverCoverage / _browserCoverage / _overlap
"""

import logging
from typing import Any, Callable, Iterable

from pixel_health.models import DEDUPE_KEYS, NA, SERVER_ONLY, WEB_ONLY, EventAccumulator, KeyStats
from pixel_health.payload import capture_body, capture_url, dig, har_entries, parse_body, query_param
from pixel_health.report import EntryResult, SkipReason, SourceReport
from pixel_health.sources import SourceType

logger = logging.getLogger(__name__)

Mapper = Callable[[EventAccumulator, Any], tuple[EventAccumulator, SourceReport]]

# Locations of the dedupe key statistics inside a deduplication payload,
# tried in order; the first one present wins.
DEDUPE_STATS_PATHS = (
    ("dedupeKeyStats",),
    ("data", "dedupe", "dedupeKeyStats"),
    ("dataWithBreakDown", "breakdownData", "overall", "dedupe", "dedupeKeyStats"),
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _or_na(value: Any) -> Any:
    return NA if value is None else value


def _name(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _at(seq: Any, index: int) -> Any:
    if isinstance(seq, (list, tuple)) and len(seq) > index:
        return seq[index]
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _event_name(capture: Any, *candidates: Any) -> str | None:
    """First non-empty candidate, else the event_name query parameter of the request URL."""
    for candidate in candidates:
        name = _name(candidate)
        if name:
            return name
    return query_param(capture_url(capture), "event_name")


def _run(
    source: SourceType,
    accumulator: EventAccumulator,
    document: Any,
    apply: Callable[[EventAccumulator, Any], Iterable[EntryResult]],
) -> tuple[EventAccumulator, SourceReport]:
    acc = accumulator.copy()
    report = SourceReport(source.value)
    for capture in har_entries(document):
        for result in apply(acc, capture):
            if not result.ok:
                logger.debug("%s: skipped entry (%s) %s", source.value, result.reason.value, result.detail)
            report.add(result)
    logger.info(
        "%s: %d applied, %d skipped", source.value, report.applied_count, report.skipped_count
    )
    return acc, report


def _decode(capture: Any) -> Any:
    return parse_body(capture_body(capture))


# ---------------------------------------------------------------------------
# setup_quality
# ---------------------------------------------------------------------------


def recommendation_or_issue(
    feedback: dict, identifier: str, recommendations: list, rule_based: list
) -> str:
    """Issues on the feedback entry win; otherwise matching recommendations; else ''."""
    issues = [i for i in _as_list(feedback.get("issues")) if isinstance(i, dict)]
    if issues:
        return ", ".join(
            f"{_or_na(i.get('issueCategory'))} (score: {_or_na(i.get('potentialScoreIncrease'))})"
            for i in issues
        )

    matches = [
        ("Recommendation", rec) for rec in recommendations
        if isinstance(rec, dict) and rec.get("identifier") == identifier
    ]
    matches += [
        ("Rule Recommendation", rec) for rec in rule_based
        if isinstance(rec, dict) and rec.get("identifier") == identifier
    ]
    return ", ".join(f"{prefix}: {_or_na(rec.get('category'))}" for prefix, rec in matches)


def _apply_setup_quality(acc: EventAccumulator, capture: Any) -> Iterable[EntryResult]:
    body = _decode(capture)
    if body is None:
        return [EntryResult.skipped(SkipReason.INVALID_BODY)]
    data = dig(body, "payload", "data")
    if not isinstance(data, dict):
        return [EntryResult.skipped(SkipReason.NO_PAYLOAD)]

    event_name = _event_name(capture, data.get("event_name"))
    if not event_name:
        return [EntryResult.skipped(SkipReason.MISSING_EVENT_NAME, capture_url(capture))]

    record = acc.record_for(event_name)
    record.composite_score = _or_na(data.get("compositeScore"))
    record.emq_rating = dig(data, "emqRating", "rating") or NA

    recommendations = _as_list(data.get("recommendations"))
    rule_based = _as_list(dig(data, "ruleBasedRecommendations", "recommendations"))
    for feedback in _as_list(data.get("matchKeyFeedback")):
        if not isinstance(feedback, dict):
            continue
        identifier = _name(feedback.get("identifier"))
        if not identifier:
            continue
        record.dynamic[f"{identifier}_coverage_percentage"] = _or_na(
            dig(feedback, "coverage", "percentage")
        )
        record.dynamic[f"{identifier}_recommendation_or_issue"] = recommendation_or_issue(
            feedback, identifier, recommendations, rule_based
        )
    return [EntryResult.applied(event_name)]


def map_setup_quality(accumulator: EventAccumulator, document: Any):
    return _run(SourceType.SETUP_QUALITY, accumulator, document, _apply_setup_quality)


# ---------------------------------------------------------------------------
# new_har_event_count
# ---------------------------------------------------------------------------


def _apply_event_count(acc: EventAccumulator, capture: Any) -> Iterable[EntryResult]:
    body = _decode(capture)
    if body is None:
        return [EntryResult.skipped(SkipReason.INVALID_BODY)]
    items = dig(body, "payload", "data")
    if not isinstance(items, list):
        return [EntryResult.skipped(SkipReason.NO_PAYLOAD)]

    results = []
    for item in items:
        keys = dig(item, "keys")
        event_name = _name(_at(keys, 0))
        method = _at(keys, 1)
        count = _at(_at(dig(item, "timeline"), 0), 1)
        if not event_name:
            results.append(EntryResult.skipped(SkipReason.MISSING_EVENT_NAME))
            continue
        if not method or count is None:
            results.append(EntryResult.skipped(SkipReason.MISSING_FIELDS, event_name))
            continue
        # Checked before record_for so an unknown method never adds a row.
        if method not in (WEB_ONLY, SERVER_ONLY):
            results.append(EntryResult.skipped(SkipReason.UNKNOWN_METHOD, f"{event_name}/{method}"))
            continue
        acc.record_for(event_name).set_hits(method, count)
        results.append(EntryResult.applied(event_name))
    return results


def map_event_count(accumulator: EventAccumulator, document: Any):
    return _run(SourceType.EVENT_COUNT, accumulator, document, _apply_event_count)


# ---------------------------------------------------------------------------
# additional_attributed_conversions
# ---------------------------------------------------------------------------


def _apply_additional_conversions(acc: EventAccumulator, capture: Any) -> Iterable[EntryResult]:
    body = _decode(capture)
    if body is None:
        return [EntryResult.skipped(SkipReason.INVALID_BODY)]
    items = dig(body, "payload", "data")
    if not isinstance(items, list):
        return [EntryResult.skipped(SkipReason.NO_PAYLOAD)]

    results = []
    for item in items:
        event_name = _name(dig(item, "eventName"))
        if not event_name:
            results.append(EntryResult.skipped(SkipReason.MISSING_EVENT_NAME))
            continue
        record = acc.record_for(event_name)
        conversions = item.get("additionalConversions")
        record.arc_pct = round(conversions * 100, 2) if _is_number(conversions) else NA
        dedupe_issue = item.get("hasDedupeIssue")
        if isinstance(dedupe_issue, bool):
            record.has_dedupe_issue = dedupe_issue
        results.append(EntryResult.applied(event_name))
    return results


def map_additional_conversions(accumulator: EventAccumulator, document: Any):
    return _run(
        SourceType.ADDITIONAL_CONVERSIONS, accumulator, document, _apply_additional_conversions
    )


# ---------------------------------------------------------------------------
# deduplication
# ---------------------------------------------------------------------------


def find_dedupe_key_stats(payload: Any) -> Any:
    """Dedupe key statistics from the first path in DEDUPE_STATS_PATHS that exists."""
    for path in DEDUPE_STATS_PATHS:
        stats = dig(payload, *path)
        if stats is not None:
            return stats
    return None


def stat_for_key(stats: Any, key: str) -> dict | None:
    """Entry for one dedupe key from either a tagged list or a mapping keyed by name."""
    if isinstance(stats, list):
        for entry in stats:
            if isinstance(entry, dict) and entry.get("dedupeKey") == key:
                return entry
        return None
    if isinstance(stats, dict):
        entry = stats.get(key)
        return entry if isinstance(entry, dict) else None
    return None


def _apply_key_stat(target: KeyStats, stat: dict | None):
    if stat is not None:
        target.server_coverage = _or_na(stat.get("serverCoverage"))
        target.browser_coverage = _or_na(stat.get("browserCoverage"))
        if stat.get("overlap") is not None:
            target.overlap = stat["overlap"]
            return
    # A real overlap from an earlier capture is kept.
    if target.overlap is None:
        target.overlap = NA


def _apply_deduplication(acc: EventAccumulator, capture: Any) -> Iterable[EntryResult]:
    body = _decode(capture)
    if not isinstance(body, dict):
        return [EntryResult.skipped(SkipReason.INVALID_BODY)]
    payload = body.get("payload")
    if not isinstance(payload, dict):
        payload = {}

    event_name = _event_name(capture, payload.get("eventName"), payload.get("event_name"))
    if not event_name:
        return [EntryResult.skipped(SkipReason.MISSING_EVENT_NAME, capture_url(capture))]

    stats = find_dedupe_key_stats(payload)
    record = acc.record_for(event_name)
    for key in DEDUPE_KEYS:
        _apply_key_stat(record.key_stats[key], stat_for_key(stats, key))
    return [EntryResult.applied(event_name)]


def map_deduplication(accumulator: EventAccumulator, document: Any):
    return _run(SourceType.DEDUPLICATION, accumulator, document, _apply_deduplication)


MAPPERS: dict[SourceType, Mapper] = {
    SourceType.SETUP_QUALITY: map_setup_quality,
    SourceType.EVENT_COUNT: map_event_count,
    SourceType.ADDITIONAL_CONVERSIONS: map_additional_conversions,
    SourceType.DEDUPLICATION: map_deduplication,
}
