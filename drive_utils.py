#!/usr/bin/env python3
"""
drive_utils.py - Google Drive link handling

Functions used by drive_merge.py for:
- Pulling Drive URLs out of free-form text
- Extracting file IDs and building direct-download URLs
- Checking that files are publicly readable (range-request probe)
- Streaming downloads to disk
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests

from merge_config import (
    CHUNK_SIZE,
    DOWNLOAD_TIMEOUT,
    DOWNLOAD_URL_TEMPLATE,
    DRIVE_HOST,
    MAX_PROBE_WORKERS,
    PROBE_RANGE,
    PROBE_TIMEOUT,
    USER_AGENT,
)
from merge_errors import DownloadError, InvalidUrlError

log = logging.getLogger(__name__)

SEPARATOR_REGEX = re.compile(r"[\n,]|\s+")

# Tried in order, first match wins
FILE_ID_PATTERNS = [
    re.compile(r"/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
]

# Punctuation that hugs a link pasted inside prose
LEADING_JUNK = "<([{\"'"
TRAILING_JUNK = ">)]}\"'.;:!?"

DNS_ERROR_MARKERS = (
    "NameResolutionError",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
)
RESET_ERROR_MARKERS = ("ConnectionResetError", "Connection reset")


@dataclass
class ProbeResult:
    """Outcome of one access probe. ``index`` is 1-based input position."""

    url: str
    index: int
    success: bool
    file_id: Optional[str] = None
    error: Optional[str] = None


# ============================================================================
# URL PARSING
# ============================================================================

def looks_like_drive_url(token: str) -> bool:
    """True if token has the Drive host plus a /d/ path or id= parameter."""
    if DRIVE_HOST not in token:
        return False
    return "/d/" in token or "id=" in token


def parse_urls(text: str) -> List[str]:
    """
    Pull Google Drive links out of free-form text.

    Splits on newlines, commas and whitespace runs, trims punctuation from
    around each token and keeps only Drive-looking links. Input order and
    duplicates are preserved.

    Args:
        text: Anything a user might paste (one or many lines)

    Returns:
        List of URL strings
    """
    urls = []
    for token in SEPARATOR_REGEX.split(text or ""):
        token = token.strip().lstrip(LEADING_JUNK).rstrip(TRAILING_JUNK)
        if token and looks_like_drive_url(token):
            urls.append(token)
    return urls


def extract_file_id(url: str) -> str:
    """
    Extract the Drive file ID from a share URL.

    Raises:
        InvalidUrlError: if none of the known URL shapes match
    """
    for pattern in FILE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    raise InvalidUrlError(url)


def direct_download_url(file_id: str) -> str:
    return DOWNLOAD_URL_TEMPLATE.format(file_id=file_id)


# ============================================================================
# ACCESS PROBE
# ============================================================================

def describe_request_error(exc: requests.RequestException) -> str:
    """Turn a transport exception into a short plain-language reason."""
    text = str(exc)
    if isinstance(exc, requests.ConnectionError):
        if any(marker in text for marker in DNS_ERROR_MARKERS):
            return "Network error"
        if any(marker in text for marker in RESET_ERROR_MARKERS):
            return "Connection reset"
    return text or "Unknown error"


def check_url_access(url: str, index: int, session=None,
                     timeout: float = PROBE_TIMEOUT) -> ProbeResult:
    """
    Check that a Drive file is publicly readable without downloading it.

    Requests the first KB of the direct-download endpoint. HTML in the
    response means Google served its sign-in / error page instead of the file.

    Args:
        url: Drive share URL
        index: 1-based position of the URL in the batch
        session: Optional requests.Session (defaults to the requests module)
        timeout: Seconds before giving up

    Returns:
        ProbeResult (never raises)
    """
    try:
        file_id = extract_file_id(url)
    except InvalidUrlError as e:
        return ProbeResult(url=url, index=index, success=False, error=str(e))

    http = session or requests
    try:
        response = http.get(
            direct_download_url(file_id),
            headers={"Range": PROBE_RANGE, "User-Agent": USER_AGENT},
            timeout=timeout,
            stream=True,
        )
    except requests.RequestException as e:
        log.debug("Probe %s failed: %r", url, e)
        return ProbeResult(url=url, index=index, success=False,
                           error=describe_request_error(e))

    with response:
        status = response.status_code
        content_type = response.headers.get("Content-Type", "")

    log.debug("Probe %s -> %s (%s)", url, status, content_type)

    if status == 403:
        error = "Permission denied"
    elif status == 404:
        error = "File not found"
    elif status not in (200, 206):
        error = f"HTTP {status} {response.reason or ''}".strip()
    elif "text/html" in content_type.lower():
        error = "Permission denied or file not accessible"
    else:
        return ProbeResult(url=url, index=index, success=True, file_id=file_id)

    return ProbeResult(url=url, index=index, success=False, error=error)


def check_all_access(urls: List[str], max_workers: Optional[int] = None,
                     session=None, timeout: float = PROBE_TIMEOUT) -> List[ProbeResult]:
    """
    Probe every URL concurrently and return results in input order.
    """
    if not urls:
        return []

    workers = max_workers or min(MAX_PROBE_WORKERS, len(urls))
    indexes = range(1, len(urls) + 1)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        # map() yields in submission order whatever order probes finish in
        results = executor.map(
            lambda pair: check_url_access(pair[0], pair[1], session=session, timeout=timeout),
            zip(urls, indexes),
        )
        return list(results)


# ============================================================================
# DOWNLOAD
# ============================================================================

def download_file(url: str, dest: Path, session=None,
                  timeout: float = DOWNLOAD_TIMEOUT,
                  chunk_size: int = CHUNK_SIZE) -> Path:
    """
    Stream a file to disk.

    Args:
        url: Direct-download URL
        dest: Local file to write
        session: Optional requests.Session
        timeout: Seconds per read before giving up
        chunk_size: Bytes per write

    Returns:
        dest

    Raises:
        DownloadError: on any transport, HTTP or write failure. A partial
            file may be left behind; the caller owns cleanup.
    """
    http = session or requests
    try:
        with http.get(url, headers={"User-Agent": USER_AGENT},
                      timeout=timeout, stream=True) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        raise DownloadError(describe_request_error(e), url=url) from e
    except OSError as e:
        raise DownloadError(str(e), url=url) from e

    log.debug("Downloaded %s -> %s (%d bytes)", url, dest, Path(dest).stat().st_size)
    return Path(dest)
