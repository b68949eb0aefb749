"""Fold the four source documents into one finished metrics table."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from pixel_health.config import Config
from pixel_health.finalize import finalize
from pixel_health.mappers import MAPPERS
from pixel_health.models import DEDUPE_KEYS, EventAccumulator
from pixel_health.prune import prune_recommendation_columns
from pixel_health.report import SourceReport
from pixel_health.sources import SourceType, read_documents

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    records: list[dict[str, Any]] = field(default_factory=list)
    reports: list[SourceReport] = field(default_factory=list)


def merge_documents(documents: Mapping[SourceType, Any]) -> PipelineResult:
    """Run every mapper, in SourceType order, over an empty accumulator and finalize.

    A source missing from ``documents`` contributes nothing.
    """
    acc = EventAccumulator()
    reports = []
    for source in SourceType:
        if source not in documents:
            continue
        merged, report = MAPPERS[source](acc, documents[source])
        new_events = [name for name in merged.names() if name not in acc]
        if new_events:
            logger.debug("%s added %d event(s): %s", source.value, len(new_events), ", ".join(new_events))
        acc = merged
        reports.append(report)

    records = finalize(acc)
    logger.info("Merged %d event(s) from %d source(s)", len(records), len(reports))
    return PipelineResult(records=records, reports=reports)


def log_overlap(records: list[dict[str, Any]]):
    """DEBUG dump of the per-event overlap columns."""
    for row in records:
        logger.debug(
            "overlap %s: %s",
            row.get("event_name"),
            " | ".join(f"{key}: {row.get(f'{key}_overlap')}" for key in DEDUPE_KEYS),
        )


async def build_metrics(paths: list[str], config: Config | None = None) -> PipelineResult:
    """Read, validate and merge a batch of four HAR exports.

    Raises:
        BatchError: wrong file count, missing source type, or a file that is not JSON.
    """
    config = config or Config()
    documents = await read_documents(paths, config.source_patterns)
    result = merge_documents(documents)
    log_overlap(result.records)
    if config.prune_recommendations:
        result.records = prune_recommendation_columns(result.records)
    return result


def build_metrics_sync(paths: list[str], config: Config | None = None) -> PipelineResult:
    return asyncio.run(build_metrics(paths, config))
