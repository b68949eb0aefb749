"""Configuration loading from an optional YAML file, env vars and CLI args."""

import logging
import os
from dataclasses import dataclass, field

import yaml

from pixel_health.sources import DEFAULT_PATTERNS, SourceType

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "csv")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    output_format: str = "json"
    prune_recommendations: bool = False
    log_level: str = "INFO"
    json_indent: int = 2
    source_patterns: dict[SourceType, str] = field(
        default_factory=lambda: dict(DEFAULT_PATTERNS)
    )

    def __post_init__(self):
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unknown output format {self.output_format!r} (expected one of {', '.join(OUTPUT_FORMATS)})"
            )


def load_yaml_config(path: str | None) -> dict:
    """Load a YAML config file. Returns empty dict if no path, a missing file or bad YAML."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError:
        logger.warning("Invalid YAML in %s, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


def _section(yaml_data: dict, name: str) -> dict:
    section = yaml_data.get(name) or {}
    if not isinstance(section, dict):
        logger.warning("Ignoring config section %r: expected a mapping, got %r", name, section)
        return {}
    return section


def _source_patterns(yaml_sources: dict) -> dict[SourceType, str]:
    patterns = dict(DEFAULT_PATTERNS)
    by_name = {source.value: source for source in SourceType}
    for name, pattern in (yaml_sources or {}).items():
        source = by_name.get(name)
        if source is None:
            logger.warning("Ignoring unknown source %r in config", name)
            continue
        patterns[source] = str(pattern)
    return patterns


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    yaml_data = yaml_data or {}
    output = _section(yaml_data, "output")
    logging_section = _section(yaml_data, "logging")

    output_format = str(output.get("format", Config.output_format))
    prune = _parse_bool(output.get("prune_recommendations", Config.prune_recommendations))
    log_level = str(logging_section.get("level", Config.log_level))
    try:
        json_indent = int(output.get("indent", Config.json_indent))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid output.indent in config: {output.get('indent')!r}") from exc

    output_format = os.environ.get("PIXEL_HEALTH_OUTPUT_FORMAT", output_format)
    if "PIXEL_HEALTH_PRUNE" in os.environ:
        prune = _parse_bool(os.environ["PIXEL_HEALTH_PRUNE"])
    log_level = os.environ.get("PIXEL_HEALTH_LOG_LEVEL", log_level)

    if cli_args is not None:
        if getattr(cli_args, "output", None):
            output_format = cli_args.output
        if getattr(cli_args, "prune", False):
            prune = True
        if getattr(cli_args, "debug", False):
            log_level = "DEBUG"

    return Config(
        output_format=output_format.lower(),
        prune_recommendations=prune,
        log_level=log_level.upper(),
        json_indent=json_indent,
        source_patterns=_source_patterns(_section(yaml_data, "sources")),
    )
