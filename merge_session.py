#!/usr/bin/env python3
"""
merge_session.py - Interactive merge loop

The loop is a small state machine. Each handle_* method takes the user's
answer for the current state and returns the next state, so the rules can
be exercised without a terminal:

  COLLECT_URLS --2+ urls--> COLLECT_NAME --free name--> PROCESSING
  PROCESSING --done / error--> COLLECT_URLS
  PROCESSING --access check failed--> RETRY_URLS --2+ urls--> PROCESSING

RETRY_URLS keeps the chosen output name; everything else starts fresh.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from drive_utils import extract_file_id, parse_urls
from merge_config import OUTPUT_DIR
from merge_errors import AccessCheckError, InvalidUrlError, MergeToolError
from merge_pipeline import SEPARATOR, needs_merge, process_files
from pdf_utils import safe_filename

log = logging.getLogger(__name__)


class State(Enum):
    COLLECT_URLS = "collect_urls"
    COLLECT_NAME = "collect_name"
    RETRY_URLS = "retry_urls"
    PROCESSING = "processing"


class InteractiveSession:
    """Prompt-driven merges, repeated until interrupted."""

    def __init__(self, output_dir: Path = OUTPUT_DIR,
                 prompt: Callable[[str], str] = input,
                 echo: Callable[[str], None] = print,
                 process: Callable = process_files):
        self.output_dir = Path(output_dir)
        self.prompt = prompt
        self.echo = echo
        self.process = process
        self.state = State.COLLECT_URLS
        self.urls: List[str] = []
        self.output_path: Optional[Path] = None

    def reset(self) -> State:
        self.urls = []
        self.output_path = None
        self.state = State.COLLECT_URLS
        return self.state

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def handle_urls(self, text: str) -> State:
        """Validate a pasted URL blob (COLLECT_URLS or RETRY_URLS)."""
        if not text.strip():
            self.echo("⚠️  No URLs provided. Please try again.\n")
            return self.state

        urls = parse_urls(text)
        if not urls:
            self.echo("⚠️  No valid URLs found. Please try again.\n")
            return self.state

        if not needs_merge(urls, echo=self.echo):
            self.echo("")
            return self.state

        try:
            for url in urls:
                extract_file_id(url)
        except InvalidUrlError as e:
            self.echo(f"⚠️  {e}. Please try again.\n")
            return self.state

        self.urls = urls
        self.echo(f"✅ Found {len(urls)} URLs to process\n")

        if self.state == State.RETRY_URLS and self.output_path is not None:
            if self.output_path.exists():
                self.echo(f"⚠️  {self.output_path.name} now exists. Choose another name.\n")
                self.state = State.COLLECT_NAME
            else:
                self.state = State.PROCESSING
            return self.state

        self.state = State.COLLECT_NAME
        return self.state

    def handle_name(self, text: str) -> State:
        """Validate the output basename; URLs are kept on any rejection."""
        if not text.strip():
            self.echo("⚠️  No filename provided. Please try again.\n")
            return self.state

        output_path = self.output_dir / f"{safe_filename(text)}.pdf"
        if output_path.exists():
            self.echo(f"⚠️  {output_path.name} already exists in {self.output_dir}/. "
                      "Please choose another name.\n")
            return self.state

        self.output_path = output_path
        self.state = State.PROCESSING
        return self.state

    def handle_processing(self) -> State:
        """Run the pipeline for the collected URLs and pick the next state."""
        self.echo(f"\n🔄 Processing {len(self.urls)} files...")
        self.echo(SEPARATOR)

        try:
            self.process(self.urls, self.output_path)
        except AccessCheckError as e:
            self.echo(SEPARATOR)
            self.echo(f"❌ {e}")
            self.echo("🔁 Paste the corrected URLs (the output name is kept).\n")
            self.urls = []
            self.state = State.RETRY_URLS
            return self.state
        except (MergeToolError, OSError) as e:
            self.echo(SEPARATOR)
            self.echo(f"❌ Error occurred: {e}")
            self.echo("💡 Please try again with different URLs or check the file permissions.\n")
            return self.reset()

        self.echo(SEPARATOR)
        self.echo("🎉 Success! Ready for next merge.\n")
        return self.reset()

    # ------------------------------------------------------------------
    # Terminal I/O
    # ------------------------------------------------------------------

    def read_url_blob(self) -> str:
        """Read lines until a blank line or 'done'."""
        self.echo("🔗 Enter Google Drive URLs (publicly shared):")
        self.echo("💡 Tip: You can paste multiple URLs separated by spaces, commas, or newlines")
        self.echo("📝 Press Enter on an empty line when done, or type 'done':")

        lines = []
        while True:
            line = self.prompt("")
            if line.strip() in ("", "done"):
                break
            lines.append(line)
        return "\n".join(lines)

    def step(self) -> State:
        """Prompt for whatever the current state needs and advance once."""
        if self.state == State.COLLECT_URLS:
            self.echo("📋 Step 1: Provide Google Drive URLs")
            self.echo("─" * 36)
            return self.handle_urls(self.read_url_blob())

        if self.state == State.RETRY_URLS:
            return self.handle_urls(self.read_url_blob())

        if self.state == State.COLLECT_NAME:
            self.echo("📝 Step 2: Choose output filename")
            self.echo("─" * 36)
            return self.handle_name(self.prompt("📄 Enter output filename (without .pdf extension): "))

        return self.handle_processing()

    def run(self) -> None:
        self.echo("🚀 PDF Merge CLI - Interactive Mode")
        self.echo("=" * 37)
        self.echo("Welcome! This tool will help you merge PDF files and images from Google Drive URLs.")
        self.echo("Press Ctrl+C anytime to exit.\n")

        self.output_dir.mkdir(parents=True, exist_ok=True)

        try:
            while True:
                log.debug("State: %s", self.state.value)
                self.step()
        except (KeyboardInterrupt, EOFError):
            self.echo("\n👋 Bye!")
