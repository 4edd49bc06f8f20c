#!/usr/bin/env python3
"""
Fast Search - Command Line Interface

Parses the search flags into SearchCriteria, runs the search and prints every match
as it is found. Exits with status 1 on configuration errors and 0 otherwise,
whether or not anything matched.
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, TextIO

from .config.parser import ConfigurationError, build_criteria, load_config
from .models.config import LoggingConfig
from .models.search_criteria import AccessRight, SearchCriteria
from .models.search_results import MatchEvent, MatchType
from .tools.search_engine import FastSearch


logger = logging.getLogger(__name__)

TIME_FORMAT = '%Y%m%d%H%M%S'

EPILOG = """
Examples:
  fast-search --dirs /var/log --file_suffixes .log --file_content_words ERROR,FATAL
    (Finds .log files and prints every line mentioning ERROR or FATAL)

  fast-search --dirs ~/photos,~/backup --file_prefixes img_ --file_size_range [0,1048576]
    (Finds img_* files of at most 1 MiB)

  fast-search --dirs . --file_modified_time_range [20240101000000,20241231235959] --file_access read,write
    (Finds files modified in 2024 that are readable and writable)
"""

CONSTRAINT_FLAGS = [
    'file_prefixes', 'file_suffixes', 'file_names', 'file_size_range',
    'file_modified_time_range', 'file_access', 'file_content_words'
]


def split_list(value: str, flag: str) -> List[str]:
    """Split a comma-delimited flag value, dropping empty items."""
    items = [item for item in value.split(',') if item]
    if not items:
        raise ConfigurationError(f"--{flag} is empty: {value}")
    return items


def parse_range(value: str, flag: str) -> Tuple[str, str]:
    """Split a ``[min,max]`` flag value into its two bounds."""
    bounds = value.replace('[', '').replace(']', '').split(',')
    if len(bounds) != 2:
        raise ConfigurationError(f"--{flag} is invalid: {value}")
    return bounds[0].strip(), bounds[1].strip()


def parse_size_range(value: str) -> Tuple[int, int]:
    low, high = parse_range(value, 'file_size_range')
    try:
        min_bytes, max_bytes = int(low), int(high)
    except ValueError:
        raise ConfigurationError(f"--file_size_range is invalid: {value}")
    if min_bytes < 0 or max_bytes < 0 or min_bytes > max_bytes:
        raise ConfigurationError(f"--file_size_range is invalid: {value}")
    return min_bytes, max_bytes


def parse_timestamp(value: str) -> int:
    """
    Parse a ``yyyyMMddHHmmss`` local time into epoch milliseconds.

    Raises:
        ConfigurationError: If the value does not match the format
    """
    try:
        parsed = datetime.strptime(value, TIME_FORMAT)
    except ValueError:
        raise ConfigurationError(f"Invalid time '{value}', expected yyyyMMddHHmmss")
    return int(parsed.timestamp() * 1000)


def parse_modified_range(value: str) -> Tuple[int, int]:
    low, high = parse_range(value, 'file_modified_time_range')
    min_ts, max_ts = parse_timestamp(low), parse_timestamp(high)
    if min_ts <= 0 or max_ts <= 0 or min_ts > max_ts:
        raise ConfigurationError(f"--file_modified_time_range is invalid: {value}")
    return min_ts, max_ts


def parse_access(value: str) -> List[AccessRight]:
    """Parse ``read|write|execute`` names, warning about and dropping unknown ones."""
    rights = []
    for item in value.split(','):
        try:
            rights.append(AccessRight(item.strip().lower()))
        except ValueError:
            logger.warning(f"Access {item} is invalid")
    if not rights:
        raise ConfigurationError(f"--file_access is empty: {value}")
    return rights


def parse_dirs(value: str) -> List[str]:
    """Keep the directories that exist, warning about the rest."""
    dirs = []
    for item in split_list(value, 'dirs'):
        if Path(item).expanduser().exists():
            dirs.append(item)
        else:
            logger.warning(f"Dir {item} does not exist")
    if not dirs:
        raise ConfigurationError(f"--dirs is empty: {value}")
    return dirs


def criteria_from_args(args: argparse.Namespace) -> SearchCriteria:
    """
    Build SearchCriteria from parsed command line arguments.

    Raises:
        ConfigurationError: If any flag is invalid or no constraint flag was given
    """
    if args.dirs is None:
        raise ConfigurationError("--dirs not found!")

    if all(getattr(args, flag) is None for flag in CONSTRAINT_FLAGS):
        raise ConfigurationError("no search condition found!")

    values = {'roots': parse_dirs(args.dirs)}
    if args.file_prefixes is not None:
        values['name_prefixes'] = split_list(args.file_prefixes, 'file_prefixes')
    if args.file_suffixes is not None:
        values['name_suffixes'] = split_list(args.file_suffixes, 'file_suffixes')
    if args.file_names is not None:
        values['name_substrings'] = split_list(args.file_names, 'file_names')
    if args.file_size_range is not None:
        values['size_range'] = parse_size_range(args.file_size_range)
    if args.file_modified_time_range is not None:
        values['modified_range'] = parse_modified_range(args.file_modified_time_range)
    if args.file_access is not None:
        values['access'] = parse_access(args.file_access)
    if args.file_content_words is not None:
        values['content_words'] = split_list(args.file_content_words, 'file_content_words')

    return build_criteria(**values)


def format_elapsed(seconds: float) -> str:
    """Format a duration, e.g. ``0.532s``, ``2m 5.100s`` or ``1h 2m 3.000s``."""
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h {minutes}m {secs:.3f}s"
    if minutes:
        return f"{minutes}m {secs:.3f}s"
    return f"{secs:.3f}s"


class MatchPrinter:
    """Prints match events as they arrive, numbering attribute matches."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self.count = 0

    def __call__(self, event: MatchEvent) -> None:
        stream = self.stream or sys.stdout
        if event.match_type is MatchType.ATTRIBUTE:
            self.count += 1
            print(f"{self.count} => {event.path}", file=stream, flush=True)
        else:
            print(str(event), file=stream, flush=True)


class SearchArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = SearchArgumentParser(
        prog='fast-search',
        description="Find files by name, size, modification time, access rights and content.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=EPILOG
    )
    parser.add_argument('--dirs', help='Directories to search (comma-delimited)')
    parser.add_argument('--file_prefixes', help='Filename prefixes (comma-delimited)')
    parser.add_argument('--file_suffixes', help='Filename suffixes (comma-delimited)')
    parser.add_argument('--file_names', help='Filename substrings (comma-delimited)')
    parser.add_argument('--file_size_range', help='Size range, format must be: [min_bytes,max_bytes]')
    parser.add_argument('--file_modified_time_range',
                        help='Modified time range, format must be: [yyyyMMddHHmmss,yyyyMMddHHmmss]')
    parser.add_argument('--file_access', help='read|write|execute (comma-delimited)')
    parser.add_argument('--file_content_words', help='Words to find in file content (comma-delimited)')
    parser.add_argument('--config', type=Path, help='YAML settings file (default: discovered)')
    parser.add_argument('--log-level', help='Override the configured logging level')
    return parser


def configure_logging(config: LoggingConfig) -> None:
    logging.basicConfig(level=config.get_level(), format=config.format, stream=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_config(args.config).settings
        if args.log_level:
            log_config = LoggingConfig(level=args.log_level, format=settings.logging.format)
            settings = settings.model_copy(update={'logging': log_config})
    except (ConfigurationError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    configure_logging(settings.logging)

    try:
        criteria = criteria_from_args(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    start = time.monotonic()
    printer = MatchPrinter()
    try:
        results = FastSearch(settings).search(criteria, on_event=printer)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nSearch interrupted by user.", file=sys.stderr)
        return 130

    for error in results.errors:
        logger.warning(error)

    print(f"Finished in {format_elapsed(time.monotonic() - start)}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
