"""Input batch handling: classify the four HAR exports, validate, read and decode them."""

import asyncio
import json
import logging
import os
from enum import Enum
from typing import Any, Mapping

import aiofiles

logger = logging.getLogger(__name__)

REQUIRED_FILE_COUNT = 4


class SourceType(Enum):
    """The four exports, in the order they are merged."""

    SETUP_QUALITY = "setup_quality"
    EVENT_COUNT = "new_har_event_count"
    ADDITIONAL_CONVERSIONS = "additional_attributed_conversions"
    DEDUPLICATION = "deduplication"


DEFAULT_PATTERNS: dict[SourceType, str] = {source: source.value for source in SourceType}


class BatchError(Exception):
    """A batch-fatal problem; no records are produced."""


class FileCountError(BatchError):
    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"Please supply exactly {REQUIRED_FILE_COUNT} HAR files (got {count})."
        )


class MissingSourcesError(BatchError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required files: {', '.join(missing)}")


class InvalidDocumentError(BatchError):
    def __init__(self, filename: str, reason: str = ""):
        self.filename = filename
        message = f"Invalid JSON in {filename}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


def classify(
    filename: str, patterns: Mapping[SourceType, str] | None = None
) -> SourceType | None:
    """First source type whose substring occurs in the file's base name."""
    patterns = patterns or DEFAULT_PATTERNS
    base = os.path.basename(filename)
    for source in SourceType:
        pattern = patterns.get(source, source.value)
        if pattern and pattern in base:
            return source
    return None


def check_batch(
    paths: list[str], patterns: Mapping[SourceType, str] | None = None
) -> dict[SourceType, str]:
    """Validate the batch by name only and map each source type to its path.

    Raises:
        FileCountError: not exactly four files.
        MissingSourcesError: one or more source types matched no file.
    """
    if len(paths) != REQUIRED_FILE_COUNT:
        raise FileCountError(len(paths))

    patterns = patterns or DEFAULT_PATTERNS
    assigned: dict[SourceType, str] = {}
    for path in paths:
        source = classify(path, patterns)
        if source is None:
            logger.warning("Unrecognized file name: %s", path)
        elif source in assigned:
            logger.warning("Duplicate %s file ignored: %s", source.value, path)
        else:
            assigned[source] = path

    missing = [
        patterns.get(source, source.value) for source in SourceType if source not in assigned
    ]
    if missing:
        raise MissingSourcesError(missing)
    return assigned


async def _read_text(path: str) -> str:
    try:
        async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
            return await f.read()
    except UnicodeDecodeError as exc:
        raise InvalidDocumentError(os.path.basename(path), str(exc)) from exc


def decode_document(filename: str, text: str) -> Any:
    """Decode a whole HAR file; failure is fatal for the batch."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidDocumentError(os.path.basename(filename), str(exc)) from exc


async def read_documents(
    paths: list[str], patterns: Mapping[SourceType, str] | None = None
) -> dict[SourceType, Any]:
    """Validate names, read every file concurrently, then decode each as JSON.

    All four reads must finish before anything is decoded; if any read fails
    or the task is cancelled, nothing is returned.
    """
    assigned = check_batch(paths, patterns)
    sources = list(assigned)
    texts = await asyncio.gather(*(_read_text(assigned[s]) for s in sources))

    documents = {}
    for source, text in zip(sources, texts):
        documents[source] = decode_document(assigned[source], text)
        logger.info("Loaded %s from %s", source.value, assigned[source])
    return documents
