"""Turn accumulated partial records into complete rows with every canonical column."""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

from pixel_health.models import CANONICAL_COLUMNS, NA, EventAccumulator, EventRecord

_TWO_PLACES = Decimal("0.01")


def truncate_score(value: Any) -> str:
    """Truncate (not round) a numeric score to two decimals: 0.755 -> '0.75'.

    Works on the decimal text of the value so 0.29 stays '0.29'. Non-numeric
    input, including booleans and the sentinel itself, gives NA.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return NA
    try:
        number = Decimal(str(value).strip())
        if not number.is_finite():
            return NA
        # quantize signals InvalidOperation past 28 significant digits
        return str(number.quantize(_TWO_PLACES, rounding=ROUND_DOWN))
    except InvalidOperation:
        return NA


def finalize_record(record: EventRecord) -> dict[str, Any]:
    """Canonical columns in fixed order (unset -> NA), then dynamic columns verbatim."""
    values = record.canonical_values()
    row: dict[str, Any] = {}
    for column in CANONICAL_COLUMNS:
        row[column] = NA if values[column] is None else values[column]
    if record.composite_score is not None:
        row["compositeScore"] = truncate_score(record.composite_score)
    for column, value in record.dynamic.items():
        if column not in row:
            row[column] = value
    return row


def finalize(accumulator: EventAccumulator) -> list[dict[str, Any]]:
    """One row per event, in order of first appearance across the sources."""
    return [finalize_record(record) for record in accumulator]
