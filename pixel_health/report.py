"""Per-entry outcomes and per-source summaries of a mapper run."""

from dataclasses import dataclass, field
from enum import Enum


class SkipReason(Enum):
    INVALID_BODY = "invalid_body"
    NO_PAYLOAD = "no_payload"
    MISSING_EVENT_NAME = "missing_event_name"
    MISSING_FIELDS = "missing_fields"
    UNKNOWN_METHOD = "unknown_method"


@dataclass(frozen=True)
class EntryResult:
    events: tuple[str, ...] = ()
    reason: SkipReason | None = None
    detail: str = ""

    @classmethod
    def applied(cls, *events: str) -> "EntryResult":
        return cls(events=tuple(events))

    @classmethod
    def skipped(cls, reason: SkipReason, detail: str = "") -> "EntryResult":
        return cls(reason=reason, detail=detail)

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass
class SourceReport:
    """Outcome of one mapper over one source document."""

    source: str
    results: list[EntryResult] = field(default_factory=list)

    def add(self, result: EntryResult):
        self.results.append(result)

    @property
    def applied_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def skipped_count(self) -> int:
        return len(self.results) - self.applied_count

    @property
    def skip_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self.results:
            if not r.ok:
                counts[r.reason.value] = counts.get(r.reason.value, 0) + 1
        return counts

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "applied": self.applied_count,
            "skipped": self.skipped_count,
            "skip_reasons": self.skip_counts,
        }
