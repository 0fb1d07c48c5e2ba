#!/usr/bin/env python3
"""
merge_errors.py - Exceptions raised by the drive-merge pipeline

Everything derives from MergeToolError so the CLI can print a plain
message for any of them without a traceback.
"""

from typing import List, Optional


class MergeToolError(Exception):
    """Base class for all expected pipeline failures."""


class UsageError(MergeToolError):
    """Bad invocation: no URLs, empty filename."""


class InvalidUrlError(MergeToolError):
    """A URL that no known Google Drive pattern matches."""

    def __init__(self, url: str):
        super().__init__(f"Invalid Google Drive URL: {url}")
        self.url = url


class AccessCheckError(MergeToolError):
    """One or more URLs failed the access probe.

    ``failures`` holds the failed ProbeResult objects in input order.
    """

    def __init__(self, failures: list):
        super().__init__("Permission check failed - please verify URL access and try again")
        self.failures = failures


class DownloadError(MergeToolError):
    """Transport failure while fetching a file."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(f"Failed to download file: {message}")
        self.url = url


class UnsupportedFileTypeError(MergeToolError):
    """Downloaded content is neither a PDF nor a supported image."""


class ImageConversionError(MergeToolError):
    """Image could not be decoded or converted to PDF."""


class HeicDecodeError(ImageConversionError):
    """HEIF/HEIC container that the installed codecs cannot decode."""


class OutputExistsError(MergeToolError):
    def __init__(self, path):
        super().__init__(f"Output exists: {path}")
        self.path = path


class MergeError(MergeToolError):
    """A PDF buffer could not be read or the merged file not written."""


class AllFilesFailedError(MergeToolError):
    """Every file in the batch failed to download or convert."""

    def __init__(self, results: List):
        super().__init__(f"All {len(results)} files failed to process")
        self.results = results
