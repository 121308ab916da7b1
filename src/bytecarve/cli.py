from __future__ import annotations

import argparse
import fnmatch
import logging
import os
import re
import sys
import time
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from bytecarve.core.codecs import resolve_code_page
from bytecarve.core.config import (
    DEFAULT_CHUNK_SIZE_MB,
    DEFAULT_CODE_PAGE,
    DEFAULT_MIN_LENGTH,
    DEFAULT_NARROW_CLASS,
    DEFAULT_WIDE_CLASS,
    ScanConfig,
    SortOrder,
    chunk_size_from_megabytes,
    default_config_path,
    load_config_file,
)
from bytecarve.core.errors import ConfigError, SourceError
from bytecarve.core.filter import compile_criteria, filter_hits
from bytecarve.core.hits import sort_hits
from bytecarve.core.io import open_source
from bytecarve.core.patterns import PatternCatalog, load_catalog, load_criteria_file
from bytecarve.core.scan import scan

logger = logging.getLogger("bytecarve")

HIGHLIGHT_STYLE = "bold red on green"
BOUNDARY_LEGEND = "** Strings prefixed with 2 spaces are hits found across chunk boundaries **"


def _version() -> str:
    try:
        return version("bytecarve")
    except PackageNotFoundError:
        return "0+unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bytecarve",
        description="Find strings in binary files, including across chunk boundaries",
        epilog=(
            "examples: bytecarve -f image.dd --ls URL | "
            "bytecarve -d ./evidence --mask '*.dll' --lr guid --off | "
            "bytecarve -f big.bin --fs strings.txt --fr regexes.txt -s -o hits.txt"
        ),
    )
    src = parser.add_argument_group("input")
    src.add_argument("-f", dest="file", help="File to search. Either this or -d is required")
    src.add_argument("-d", dest="directory", help="Directory to recursively process")
    src.add_argument("--mask", help="With -d, file mask to search for (* and ? supported)")
    src.add_argument(
        "--ms", dest="max_file_size", type=int, default=-1, help="With -d, maximum file size to process"
    )

    carve = parser.add_argument_group("carving")
    carve.add_argument("--narrow", action=argparse.BooleanOptionalAction, default=True,
                       help="Look for code-page strings")
    carve.add_argument("--wide", action=argparse.BooleanOptionalAction, default=True,
                       help="Look for UTF-16LE strings")
    carve.add_argument("-m", dest="min_length", type=int, default=DEFAULT_MIN_LENGTH,
                       help="Minimum string length")
    carve.add_argument("-x", dest="max_length", type=int, default=-1,
                       help="Maximum string length. Default is unlimited")
    carve.add_argument("-b", dest="chunk_size_mb", type=int, default=DEFAULT_CHUNK_SIZE_MB,
                       help="Chunk size in MB. Valid range is 1 to 1024")
    carve.add_argument("--ar", dest="narrow_class", default=DEFAULT_NARROW_CLASS,
                       help="Character class for code-page strings")
    carve.add_argument("--ur", dest="wide_class", default=DEFAULT_WIDE_CLASS,
                       help="Character class for UTF-16LE strings")
    carve.add_argument("--cp", dest="code_page", type=int, default=DEFAULT_CODE_PAGE,
                       help="Code page identifier for code-page strings")
    carve.add_argument("--off", dest="with_offsets", action="store_true",
                       help="Show offset to hit after string, followed by the encoding (A or U)")

    search = parser.add_argument_group("filtering")
    search.add_argument("--ls", dest="literal", help="String to look for")
    search.add_argument("--lr", dest="regex", help="Regex (or built-in pattern name) to look for")
    search.add_argument("--fs", dest="literal_file", help="File of strings to look for, one per line")
    search.add_argument("--fr", dest="regex_file", help="File of regexes to look for, one per line")
    search.add_argument("--ro", dest="regex_only", action="store_true",
                        help="List the text matched by the regex instead of the whole string "
                             "(~ denotes approximate offset)")
    search.add_argument("--sa", dest="sort_lexical", action="store_true",
                        help="Sort results alphabetically")
    search.add_argument("--sl", dest="sort_length", action="store_true", help="Sort results by length")
    search.add_argument("-p", dest="list_patterns", action="store_true",
                        help="Display list of built-in regular expressions")

    out = parser.add_argument_group("output")
    out.add_argument("-o", dest="output", help="File to append results to")
    out.add_argument("-q", dest="quiet", action="store_true",
                     help="Quiet mode (no header or totals)")
    out.add_argument("-s", dest="silent", action="store_true",
                     help="Do not display hits on the console")
    out.add_argument("-v", dest="verbose", action="store_true", help="Debug logging")
    out.add_argument("--config", type=Path, help="YAML file with option defaults")
    return parser


def configure_logging(*, verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


def size_readable(n: int) -> str:
    """Human-readable size (1024-based)."""
    for suffix, shift in (("EB", 60), ("PB", 50), ("TB", 40), ("GB", 30), ("MB", 20), ("KB", 10)):
        if n >= 1 << shift:
            return f"{n / (1 << shift):.3f}".rstrip("0").rstrip(".") + f" {suffix}"
    return f"{n} B"


def discover_files(directory: str, mask: str | None) -> list[str]:
    """All files below `directory`, optionally filtered by a glob mask on the name."""
    found: list[str] = []
    for root, _dirs, names in os.walk(os.path.abspath(directory)):
        for name in sorted(names):
            if mask and not fnmatch.fnmatch(name, mask):
                continue
            found.append(os.path.join(root, name))
    return found


def _load_defaults(argv: list[str] | None) -> dict:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path)
    known, _ = pre.parse_known_args(argv)
    path = known.config
    if path is None:
        path = default_config_path()
        if not path.exists():
            return {}
    return load_config_file(path)


def _open_output(path: str, quiet: bool) -> TextIO | None:
    target = Path(path.rstrip("\\/"))
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fh = target.open("a", encoding="utf-8")
    except OSError as exc:
        logger.warning("Invalid path: '%s'. Results will not be saved to a file. (%s)", path, exc)
        return None
    if not quiet:
        logger.info("Saving hits to '%s'", target)
    return fh


def _criteria(args: argparse.Namespace, catalog: PatternCatalog) -> tuple[list[str], list[str]]:
    literals: list[str] = []
    patterns: list[str] = []
    if args.literal:
        literals.append(args.literal)
    if args.regex:
        patterns.append(catalog.resolve(args.regex))
    for path, bucket, label in (
        (args.literal_file, literals, "Strings"),
        (args.regex_file, patterns, "Regex"),
    ):
        if not path:
            continue
        try:
            bucket.extend(load_criteria_file(path))
        except OSError:
            logger.error("%s file '%s' not found.", label, path)
    return literals, patterns


def _print_patterns(console: Console, catalog: PatternCatalog) -> None:
    table = Table("Name", "Description", box=None, header_style="bold")
    for entry in catalog.sorted_entries():
        table.add_row(entry.name, entry.description)
    console.print(table)
    console.print("\nTo use a built in pattern, supply the Name to the --lr switch")


def _highlighted(line: str, literals: list[str], patterns: list[str]) -> Text:
    text = Text(line)
    if literals:
        text.highlight_words([w for w in literals if w.strip()], HIGHLIGHT_STYLE, case_sensitive=False)
    for pattern in patterns:
        try:
            text.highlight_regex(f"(?ix){pattern}", HIGHLIGHT_STYLE)
        except re.error:
            # Patterns with their own leading flags cannot take the prefix.
            continue
    return text


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        defaults = _load_defaults(argv)
    except ConfigError as exc:
        print(f"bytecarve: {exc}", file=sys.stderr)
        return 2
    if "chunk_size_mb" in defaults:
        defaults["chunk_size_mb"] = int(defaults["chunk_size_mb"])
    parser.set_defaults(**defaults)
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose, quiet=args.quiet)
    console = Console(highlight=False, soft_wrap=True)
    catalog = load_catalog()

    if args.list_patterns:
        _print_patterns(console, catalog)
        return 0

    if not args.file and not args.directory:
        parser.print_help(sys.stderr)
        logger.warning("Either -f or -d is required. Exiting")
        return 2
    if args.file and not os.path.isfile(args.file):
        logger.warning("File '%s' not found. Exiting", args.file)
        return 2
    if not args.file and not os.path.isdir(args.directory):
        logger.warning("Directory '%s' not found. Exiting", args.directory)
        return 2

    try:
        config = ScanConfig(
            min_length=args.min_length if args.min_length > 0 else DEFAULT_MIN_LENGTH,
            max_length=(
                args.max_length
                if args.max_length is not None and args.max_length > args.min_length
                else None
            ),
            chunk_size_bytes=chunk_size_from_megabytes(args.chunk_size_mb),
            narrow=args.narrow,
            wide=args.wide,
            narrow_class=args.narrow_class,
            wide_class=args.wide_class,
            code_page=args.code_page,
            with_offsets=args.with_offsets,
            sort_order=SortOrder.from_flags(args.sort_lexical, args.sort_length),
        )
        resolve_code_page(config.code_page)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    if not args.quiet:
        logger.info("bytecarve version %s", _version())
        logger.info("Command line: %s", " ".join(sys.argv[1:] if argv is None else argv))

    files = [os.path.abspath(args.file)] if args.file else discover_files(args.directory, args.mask)
    literals, patterns = _criteria(args, catalog)
    if patterns and not args.quiet:
        logger.info("Searching via RegEx pattern: %s", " | ".join(patterns))
    valid_patterns = [p.pattern for p in compile_criteria(patterns)[0]]
    highlight_patterns = [] if args.regex_only else valid_patterns

    sink = _open_output(args.output, args.quiet) if args.output else None

    total_count = 0
    total_hits = 0
    total_time = 0.0
    failures = 0
    try:
        for path in files:
            if args.max_file_size > 0 and args.directory and os.path.getsize(path) > args.max_file_size:
                logger.warning(
                    "'%s' is bigger than max file size of %s bytes! Skipping...",
                    path,
                    f"{args.max_file_size:,}",
                )
                continue

            started = time.perf_counter()
            try:
                with open_source(path) as source:
                    if not args.quiet:
                        chunks = max(1, -(-source.size // config.chunk_size_bytes))
                        logger.info(
                            "Searching %s chunk%s (%d MB each) across %s in '%s'",
                            f"{chunks:,}",
                            "" if chunks == 1 else "s",
                            config.chunk_size_bytes // (1024 * 1024),
                            size_readable(source.size),
                            path,
                        )
                    result = scan(source, config)
            except SourceError as exc:
                logger.error("Error: %s", exc)
                failures += 1
                continue

            if not args.quiet:
                logger.info("Search complete.")
                if config.sort_order is SortOrder.LEXICAL:
                    logger.info("Sorting alphabetically...")
                elif config.sort_order is SortOrder.LENGTH:
                    logger.info("Sorting by length...")
            ordered = sort_hits(result.hits, config.sort_order)

            if not args.quiet:
                logger.info("Processing strings...")
            filtered = filter_hits(ordered, literals, patterns, regex_only=args.regex_only)
            for reported in filtered.reported:
                line = str(reported)
                if not args.silent:
                    console.print(_highlighted(line, literals, highlight_patterns))
                if sink is not None:
                    sink.write(line + "\n")

            elapsed = time.perf_counter() - started
            if result.diagnostics:
                logger.warning("%d window(s) skipped for one encoding; see messages above", len(result.diagnostics))
            total_count += filtered.match_count
            total_hits += len(result.hits)
            total_time += elapsed

            if args.quiet:
                continue
            if result.boundary_hits_found:
                logger.info(BOUNDARY_LEGEND)
            rate = len(result.hits) / elapsed if elapsed > 0 else 0.0
            logger.info(
                "Found %s string%s in %.3f seconds. Average strings/sec: %s",
                f"{filtered.match_count:,}",
                "" if filtered.match_count == 1 else "s",
                elapsed,
                f"{rate:,.0f}",
            )
    finally:
        if sink is not None:
            sink.close()

    if not args.quiet and len(files) > 1:
        rate = total_hits / total_time if total_time > 0 else 0.0
        logger.info(
            "Total across %s files: Found %s string%s in %.3f seconds. Average strings/sec: %s",
            f"{len(files):,}",
            f"{total_count:,}",
            "" if total_count == 1 else "s",
            total_time,
            f"{rate:,.0f}",
        )

    if files and failures == len(files):
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
