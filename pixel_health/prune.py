"""Drop the per-identifier recommendation/issue text columns from a finished table."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

_SUFFIX = "recommendation or issue"


def is_recommendation_column(name: str) -> bool:
    """Case-insensitive, underscores treated as spaces: 'email_recommendation_or_issue' -> True."""
    return name.lower().replace("_", " ").endswith(_SUFFIX)


def prune_recommendation_columns(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return new rows without any recommendation/issue column. Input rows are not modified."""
    doomed = {column for row in rows for column in row if is_recommendation_column(column)}
    if doomed:
        logger.debug("Removing recommendation columns: %s", sorted(doomed))
    return [{k: v for k, v in row.items() if k not in doomed} for row in rows]
