#!/usr/bin/env python3
import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .builder import ResultBuilder, TraceResult, TraceStatus
from .config import DEFAULT_DISTANCE, Settings
from .parser import TraceExtractor
from .presenter import STATUS_MESSAGES, format_quickfix, render_table
from .resolver import FrameResolver
from .sources import (
    ChainedLookup,
    DefinitionLookup,
    FileLogSource,
    LogLineSource,
    MappingLookup,
    ScriptIndexLookup,
)

LOG = logging.getLogger("main")


def run_trace(
    source: LogLineSource,
    lookup: DefinitionLookup,
    max_distance: Optional[int] = None,
    default_distance: int = DEFAULT_DISTANCE,
) -> TraceResult:
    """Extract the newest error burst(s) from ``source`` and resolve their frames."""
    if not max_distance or max_distance < 1:
        max_distance = default_distance

    lines = source.read()
    events = TraceExtractor().extract(lines, max_distance)
    if not events:
        LOG.info("No error found in %d line(s)", len(lines))

    builder = ResultBuilder(FrameResolver(lookup))
    return builder.build_result(events)


def build_lookup(script_dirs: List[str], definitions: Optional[str] = None) -> DefinitionLookup:
    """Captured definitions first, then the script index."""
    lookups = []
    if definitions:
        lookups.append(MappingLookup.from_json_file(definitions))
    if script_dirs:
        lookups.append(ScriptIndexLookup(script_dirs))
    return ChainedLookup(*lookups)


def main(argv: Optional[List[str]] = None) -> int:
    settings = Settings.from_env()

    arg_parser = argparse.ArgumentParser(description="Rebuild a Vim script stack trace from :messages output")
    arg_parser.add_argument("--input", default=settings.messages_file,
                            help="Saved :messages output ('-' for stdin)")
    arg_parser.add_argument("--distance", type=int, default=settings.distance,
                            help="Maximum line distance between grouped error headers")
    arg_parser.add_argument("--script-dir", action="append", default=[],
                            help="Directory of Vim scripts to index (repeatable)")
    arg_parser.add_argument("--definitions",
                            help="JSON file mapping function names to ':verbose function' output")
    arg_parser.add_argument("--format", choices=["table", "quickfix"], default="table",
                            help="Output format")
    arg_parser.add_argument("--debug", action="store_true", help="Print debug information")

    args = arg_parser.parse_args(argv)

    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    if not args.input:
        arg_parser.error("--input is required when VIM_MESSAGES_FILE is not set")

    try:
        lookup = build_lookup(args.script_dir or settings.script_dirs, args.definitions)
        result = run_trace(FileLogSource(args.input), lookup, args.distance, settings.distance)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 2

    if args.format == "quickfix":
        for line in format_quickfix(result):
            print(line)
        if result.status is not TraceStatus.OK:
            print(STATUS_MESSAGES[result.status], file=sys.stderr)
    else:
        render_table(result, console)

    return 0 if result.status is TraceStatus.OK else 1


if __name__ == "__main__":
    sys.exit(main())
