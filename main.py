"""pixel-capi-health — merge four Events Manager HAR exports into one per-event metrics table."""

import logging
import os
import sys
from argparse import ArgumentParser

from pixel_health.config import OUTPUT_FORMATS, load_config, load_yaml_config
from pixel_health.formatter import format_report, format_report_json, get_formatter
from pixel_health.pipeline import build_metrics_sync
from pixel_health.sources import BatchError


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="pixel-health",
        description="Merge setup_quality, new_har_event_count, additional_attributed_conversions "
        "and deduplication HAR exports into one metrics table.",
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="The four HAR files, in any order",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--output",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format (default: json)",
    )
    parser.add_argument(
        "--prune",
        action="store_true",
        help="Drop the *_recommendation_or_issue columns",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print per-source applied/skipped counts to stderr",
    )
    parser.add_argument(
        "--summary-json",
        action="store_true",
        help="Like --summary, but as JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging, including per-event overlap values",
    )
    return parser


def run(args) -> int:
    try:
        config = load_config(args, load_yaml_config(args.config))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [PIXEL-HEALTH] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    for path in args.files:
        if not os.path.isfile(path):
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1

    try:
        result = build_metrics_sync(args.files, config)
    except BatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.summary_json:
        print(format_report_json(result.reports), file=sys.stderr)
    elif args.summary:
        print(format_report(result.reports), file=sys.stderr)

    formatter = get_formatter(config.output_format, indent=config.json_indent)
    print(formatter(result.records))
    return 0


def main():
    parser = build_parser()
    args = parser.parse_args()
    sys.exit(run(args))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)
