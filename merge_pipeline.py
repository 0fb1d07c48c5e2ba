#!/usr/bin/env python3
"""
merge_pipeline.py - One merge attempt, start to finish

check access -> download -> detect type -> convert images -> merge

All URLs must pass the access check before anything is downloaded. After
that, a file that fails to download or convert is reported and skipped;
the merge goes ahead with whatever succeeded.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from drive_utils import (
    ProbeResult,
    check_all_access,
    direct_download_url,
    download_file,
    extract_file_id,
)
from merge_config import TEMP_PREFIX
from merge_errors import (
    AccessCheckError,
    AllFilesFailedError,
    DownloadError,
    ImageConversionError,
    UnsupportedFileTypeError,
    UsageError,
)
from pdf_utils import detect_file_type, image_to_pdf, merge_pdf_buffers

log = logging.getLogger(__name__)

SEPARATOR = "═" * 50


@dataclass
class FileResult:
    """Outcome for one URL in the download/convert loop."""

    url: str
    index: int
    status: str = "pending"
    file_type: Optional[str] = None
    error: Optional[str] = None


@dataclass
class MergeReport:
    output_path: Path
    results: List[FileResult] = field(default_factory=list)
    page_count: int = 0
    merged: bool = False

    @property
    def succeeded(self) -> List[FileResult]:
        return [r for r in self.results if r.status == "success"]

    @property
    def failed(self) -> List[FileResult]:
        return [r for r in self.results if r.status == "error"]


def needs_merge(urls: List[str], echo: Callable[[str], None] = print) -> bool:
    """
    Apply the URL-count rules shared by every front end.

    Raises:
        UsageError: no URLs at all

    Returns:
        False (after printing a notice) for a single URL, True otherwise
    """
    if not urls:
        raise UsageError("Please provide at least one Google Drive URL")
    if len(urls) == 1:
        echo("ℹ️  Only one file provided - no need to merge!")
        echo("💡 Tip: Provide multiple URLs to merge files together")
        return False
    return True


def print_access_failures(failures: List[ProbeResult]) -> None:
    print(f"\n❌ Access issues detected for {len(failures)} file(s):")
    for failed in failures:
        print(f"   File {failed.index}: {failed.error}")
        print(f"   URL: {failed.url}")

    print("\n🔒 Permission Check Failed!")
    print("💡 Please check the following:")
    print("   • Ensure all Google Drive files are shared publicly")
    print('   • Verify "Anyone with the link can view" is enabled')
    print("   • Check that the URLs are correct and files exist")


def fetch_as_pdf(file_id: str, temp_file: Path,
                 session=None) -> Tuple[bytes, str]:
    """
    Download one file and return it as PDF bytes plus its detected type.

    The download is deleted before returning, whatever happens.
    """
    try:
        print("⬇️  Downloading...")
        download_file(direct_download_url(file_id), temp_file, session=session)

        file_type = detect_file_type(temp_file)
        print(f"📄 File type detected: {file_type}")

        if file_type == "pdf":
            return temp_file.read_bytes(), file_type

        print("🖼️  Converting image to PDF...")
        return image_to_pdf(temp_file), file_type
    finally:
        if temp_file.exists():
            temp_file.unlink()
            log.debug("Removed %s", temp_file)


def process_files(urls: List[str], output_path: Path,
                  temp_root: Optional[Path] = None, session=None) -> MergeReport:
    """
    Run a full merge attempt.

    Args:
        urls: Drive URLs, in the order their pages should appear
        output_path: Merged PDF destination (must not exist yet)
        temp_root: Parent for the working dir (default: system temp)
        session: Optional requests.Session for all HTTP calls

    Returns:
        MergeReport with per-file results. A single URL returns an unmerged
        report without touching the network or the output path.

    Raises:
        UsageError: no URLs
        InvalidUrlError: a URL has no recognisable file ID (before any I/O)
        AccessCheckError: one or more URLs failed the access check
        AllFilesFailedError: nothing could be downloaded/converted
        MergeError, OutputExistsError: from the final merge
    """
    output_path = Path(output_path)
    if not needs_merge(urls):
        return MergeReport(output_path=output_path)

    file_ids = [extract_file_id(url) for url in urls]

    print(f"📥 Checking access to {len(urls)} files...")
    probes = check_all_access(urls, session=session)
    failures = [probe for probe in probes if not probe.success]
    if failures:
        print_access_failures(failures)
        raise AccessCheckError(failures)

    print("✅ All files accessible! Starting download and processing...")

    report = MergeReport(output_path=output_path)
    pdf_buffers = []

    with tempfile.TemporaryDirectory(prefix=TEMP_PREFIX, dir=temp_root) as temp_dir:
        log.debug("Working directory: %s", temp_dir)
        for i, (url, file_id) in enumerate(zip(urls, file_ids)):
            result = FileResult(url=url, index=i + 1)
            report.results.append(result)
            print(f"\n🔗 Processing file {i + 1}/{len(urls)}: {url}")

            temp_file = Path(temp_dir) / f"file_{i}_{file_id}"
            try:
                pdf_bytes, result.file_type = fetch_as_pdf(file_id, temp_file, session=session)
            except (DownloadError, UnsupportedFileTypeError, ImageConversionError) as e:
                result.status = "error"
                result.error = str(e)
                print(f"❌ File {i + 1} failed: {e}")
                continue

            pdf_buffers.append(pdf_bytes)
            result.status = "success"
            print(f"✅ File {i + 1} processed successfully")

    if not pdf_buffers:
        raise AllFilesFailedError(report.results)

    print(f"\n🔗 Merging {len(pdf_buffers)} PDFs...")
    report.page_count = merge_pdf_buffers(pdf_buffers, output_path)
    report.merged = True
    print(f"✅ Successfully merged PDF saved to: {output_path}")

    if report.failed:
        print(f"\n⚠️  {len(report.failed)} file(s) were skipped:")
        for failed in report.failed:
            print(f"   File {failed.index}: {failed.error}")
            print(f"   URL: {failed.url}")

    log.info(
        "Merge done: output=%s pages=%s succeeded=%s failed=%s",
        output_path,
        report.page_count,
        len(report.succeeded),
        len(report.failed),
    )
    return report
