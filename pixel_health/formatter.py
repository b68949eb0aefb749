"""Output formatters — JSON and CSV for the metrics table, text or JSON for skip reports."""

import csv
import io
import json
from typing import Any, Callable

from pixel_health.models import NA
from pixel_health.report import SourceReport


def columns(rows: list[dict[str, Any]]) -> list[str]:
    """Union of column names across rows, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for column in row:
            seen.setdefault(column)
    return list(seen)


def format_json(rows: list[dict[str, Any]], indent: int | None = 2) -> str:
    return json.dumps(rows, indent=indent, ensure_ascii=False)


def format_csv(rows: list[dict[str, Any]]) -> str:
    """CSV with a header row; cells a row lacks are written as N/A."""
    if not rows:
        return ""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns(rows), restval=NA, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def format_report(reports: list[SourceReport]) -> str:
    """Human-readable per-source applied/skipped summary."""
    lines = []
    for report in reports:
        lines.append(
            f"{report.source}: {report.applied_count} applied, {report.skipped_count} skipped"
        )
        for reason, count in sorted(report.skip_counts.items()):
            lines.append(f"  {reason:20s} {count}")
    return "\n".join(lines)


def format_report_json(reports: list[SourceReport], indent: int | None = 2) -> str:
    return json.dumps([report.to_dict() for report in reports], indent=indent)


def get_formatter(output_format: str = "json", indent: int | None = 2) -> Callable[[list[dict[str, Any]]], str]:
    """Factory that returns the right table formatter."""
    if output_format == "csv":
        return format_csv
    if output_format == "json":
        return lambda rows: format_json(rows, indent=indent)
    raise ValueError(f"Unknown output format: {output_format}")
