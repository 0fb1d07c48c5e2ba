#!/usr/bin/env python3
"""
drive_merge.py
Merge PDFs and images shared as Google Drive links into a single PDF

Usage:
  python drive_merge.py "URL1 URL2 URL3"                  # -> output/merged.pdf
  python drive_merge.py "URL1,URL2" -o combined.pdf
  python drive_merge.py "URL1 URL2" -n scans             # -> output/scans.pdf
  python drive_merge.py interactive                     # guided prompts (alias: i)

Files must be shared as "Anyone with the link can view". Every link is
checked before anything is downloaded.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from drive_utils import parse_urls
from merge_config import DEFAULT_OUTPUT, OUTPUT_DIR
from merge_errors import MergeToolError, OutputExistsError, UsageError
from merge_pipeline import needs_merge, process_files
from merge_session import InteractiveSession
from pdf_utils import safe_filename

__version__ = "1.0.0"

INTERACTIVE_COMMANDS = ("interactive", "i")

log = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    level = logging.DEBUG if verbose else logging.WARNING
    root_logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("PyPDF2").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='drive-merge',
        description='Merge PDF files and images from Google Drive URLs into a single PDF',
        epilog='Run "drive-merge interactive" (or "drive-merge i") for guided prompts',
    )
    parser.add_argument(
        'urls',
        help='Google Drive URLs (publicly shared) - can be space, newline, or comma separated',
    )
    parser.add_argument('-o', '--output', default=str(DEFAULT_OUTPUT),
                        help=f'Output PDF file path (default: {DEFAULT_OUTPUT})')
    parser.add_argument('-n', '--name',
                        help=f'Output filename without .pdf, saved in {OUTPUT_DIR}/ (overrides -o)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def build_interactive_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='drive-merge interactive',
        description='Start interactive mode - guided PDF merging with prompts',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    return parser


def resolve_output_path(output: Optional[str], name: Optional[str]) -> Path:
    """-n wins over -o; -n always lands in OUTPUT_DIR."""
    if name:
        return OUTPUT_DIR / f"{safe_filename(name)}.pdf"
    return Path(output) if output else DEFAULT_OUTPUT


def print_error(message) -> None:
    print(f"❌ Error: {message}", file=sys.stderr)


def run_direct(urls_text: str, output_path: Path) -> int:
    """One-shot merge. Returns the process exit code."""
    urls = parse_urls(urls_text)
    try:
        if not needs_merge(urls):
            print(f"🔗 Your URL: {urls[0]}")
            return 0
    except UsageError as e:
        print_error(e)
        return 1

    print("🚀 PDF Merge CLI")
    print(f"📋 Input URLs: {len(urls)}")

    output_path = Path(output_path)
    if output_path.exists():
        print_error(OutputExistsError(output_path))
        return 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    print(f"📄 Output file: {output_path}")

    try:
        report = process_files(urls, output_path)
    except MergeToolError as e:
        print_error(e)
        return 1

    print(f"\n✅ Created: {output_path} ({report.page_count} pages)")
    return 0


def run_interactive() -> int:
    InteractiveSession().run()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)

    if argv and argv[0] in INTERACTIVE_COMMANDS:
        args = build_interactive_parser().parse_args(argv[1:])
        _setup_logging(args.verbose)
        return run_interactive()

    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    log.debug("Arguments: %s", args)

    try:
        return run_direct(args.urls, resolve_output_path(args.output, args.name))
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted")
        return 130


if __name__ == '__main__':
    sys.exit(main())
