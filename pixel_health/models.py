"""Event records and the shared accumulator the four source mappers write into."""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

NA = "N/A"

DEDUPE_KEYS = ("event_id", "external_id", "fbp")

# Output column -> EventRecord attribute, for the fixed per-event fields.
_FIELD_COLUMNS = (
    ("event_name", "event_name"),
    ("compositeScore", "composite_score"),
    ("emqRating", "emq_rating"),
    ("browser_hits", "browser_hits"),
    ("server_hits", "server_hits"),
    ("server_vs_browser_diff_pct", "server_vs_browser_diff_pct"),
    ("ARC (%)", "arc_pct"),
    ("hasDedupeIssue", "has_dedupe_issue"),
)

# Column suffix -> KeyStats attribute, repeated for every dedupe key.
_KEY_STAT_COLUMNS = (
    ("serverCoverage", "server_coverage"),
    ("browserCoverage", "browser_coverage"),
    ("overlap", "overlap"),
)

CANONICAL_COLUMNS = tuple(column for column, _ in _FIELD_COLUMNS) + tuple(
    f"{key}_{suffix}" for key in DEDUPE_KEYS for suffix, _ in _KEY_STAT_COLUMNS
)

WEB_ONLY = "WEB_ONLY"
SERVER_ONLY = "SERVER_ONLY"

DIFF_THRESHOLD_PCT = 25

INDICATOR_UP = " \U0001F4C8"
INDICATOR_DOWN = " \U0001F4C9"
INDICATOR_OK = " \u2705"


class DiffClass(Enum):
    ABOVE = "above"
    BELOW = "below"
    ACCEPTABLE = "acceptable"


_INDICATORS = {
    DiffClass.ABOVE: INDICATOR_UP,
    DiffClass.BELOW: INDICATOR_DOWN,
    DiffClass.ACCEPTABLE: INDICATOR_OK,
}


def _as_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings; bools and everything else give None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def compute_diff_pct(browser_hits: Any, server_hits: Any) -> float | None:
    """Percent difference of server over browser hits, rounded to 2 places.

    Returns None when either side is non-numeric or browser_hits <= 0.
    """
    browser = _as_number(browser_hits)
    server = _as_number(server_hits)
    if browser is None or server is None or browser <= 0:
        return None
    return round(((server - browser) / browser) * 100, 2)


def classify_diff(diff_pct: float) -> DiffClass:
    """|diff| strictly above the threshold is flagged; exactly 25 is acceptable."""
    if abs(diff_pct) > DIFF_THRESHOLD_PCT:
        return DiffClass.ABOVE if diff_pct > 0 else DiffClass.BELOW
    return DiffClass.ACCEPTABLE


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_diff_pct(diff_pct: float) -> str:
    """'-20%' plus the indicator for its class, e.g. '-20% ✅'."""
    return f"{_format_number(diff_pct)}%{_INDICATORS[classify_diff(diff_pct)]}"


@dataclass
class KeyStats:
    """Coverage and overlap for one dedupe key. None means never set."""

    server_coverage: Any = None
    browser_coverage: Any = None
    overlap: Any = None


@dataclass
class EventRecord:
    """Partially populated metrics for one event name.

    Fixed canonical fields are typed attributes; identifier columns discovered
    at parse time (``email_coverage_percentage`` etc.) live in ``dynamic``.
    """

    event_name: str
    composite_score: Any = None
    emq_rating: Any = None
    browser_hits: Any = None
    server_hits: Any = None
    server_vs_browser_diff_pct: str | None = None
    arc_pct: Any = None
    has_dedupe_issue: bool | None = None
    key_stats: dict[str, KeyStats] = field(
        default_factory=lambda: {key: KeyStats() for key in DEDUPE_KEYS}
    )
    dynamic: dict[str, Any] = field(default_factory=dict)

    def set_hits(self, connection_method: str, count: Any) -> bool:
        """Store a hit count for WEB_ONLY / SERVER_ONLY and refresh the derived diff.

        Returns False for any other connection method.
        """
        if connection_method == WEB_ONLY:
            self.browser_hits = count
        elif connection_method == SERVER_ONLY:
            self.server_hits = count
        else:
            return False
        self._refresh_diff()
        return True

    def _refresh_diff(self):
        if self.browser_hits is None or self.server_hits is None:
            return
        diff_pct = compute_diff_pct(self.browser_hits, self.server_hits)
        if diff_pct is None:
            self.server_vs_browser_diff_pct = None
        else:
            self.server_vs_browser_diff_pct = format_diff_pct(diff_pct)

    def canonical_values(self) -> dict[str, Any]:
        """Raw (unfinalized) values keyed by canonical column name."""
        values = {column: getattr(self, attr) for column, attr in _FIELD_COLUMNS}
        for key in DEDUPE_KEYS:
            stats = self.key_stats[key]
            for suffix, attr in _KEY_STAT_COLUMNS:
                values[f"{key}_{suffix}"] = getattr(stats, attr)
        return values


class EventAccumulator:
    """Insertion-ordered map of event name -> EventRecord. At most one record per name."""

    def __init__(self, records: dict[str, EventRecord] | None = None):
        self._records: dict[str, EventRecord] = dict(records) if records else {}

    def record_for(self, event_name: str) -> EventRecord:
        """Return the record for event_name, creating it on first sight."""
        record = self.get(event_name)
        if record is None:
            record = EventRecord(event_name=event_name)
            self._records[event_name] = record
        return record

    def get(self, event_name: str) -> EventRecord | None:
        return self._records.get(event_name)

    def copy(self) -> "EventAccumulator":
        return EventAccumulator(copy.deepcopy(self._records))

    def names(self) -> list[str]:
        return list(self._records)

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, event_name: str) -> bool:
        return event_name in self._records
