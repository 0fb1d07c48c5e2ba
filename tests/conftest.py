"""Shared fixtures for the drive-merge test suite.

Images and PDFs are generated on the fly with Pillow and reportlab. HTTP is
replaced by FakeDrive, which serves in-memory files keyed by Drive file ID.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from PIL import Image
from reportlab.pdfgen import canvas

import drive_utils


# ---------------------------------------------------------------------------
# File builders
# ---------------------------------------------------------------------------


def make_image_bytes(size=(40, 30), fmt="PNG", color=(200, 30, 30), mode="RGB", **save_kwargs) -> bytes:
    buf = BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_pdf_bytes(*page_sizes) -> bytes:
    """One page per (width, height) in *page_sizes*."""
    buf = BytesIO()
    can = canvas.Canvas(buf, pagesize=page_sizes[0])
    for size in page_sizes:
        can.setPageSize(size)
        can.drawString(10, 10, f"{size[0]}x{size[1]}")
        can.showPage()
    can.save()
    return buf.getvalue()


def page_sizes(pdf_source) -> list[tuple[float, float]]:
    """(width, height) of every page in a PDF path or byte string."""
    from PyPDF2 import PdfReader

    data = Path(pdf_source).read_bytes() if isinstance(pdf_source, (str, Path)) else pdf_source
    reader = PdfReader(BytesIO(data))
    return [(float(p.mediabox.width), float(p.mediabox.height)) for p in reader.pages]


def drive_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view?usp=sharing"


# ---------------------------------------------------------------------------
# Fake HTTP
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code=200, body=b"", content_type="application/octet-stream", reason="OK"):
        self.status_code = status_code
        self.body = body
        self.headers = {"Content-Type": content_type}
        self.reason = reason
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def close(self):
        self.closed = True

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error: {self.reason}", response=self)


class FakeDrive:
    """Stands in for ``requests.get`` against the Drive download endpoint."""

    def __init__(self):
        self.files: dict[str, tuple] = {}
        self.probe_errors: dict[str, Exception] = {}
        self.download_errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, dict]] = []

    def add(self, file_id, body, content_type="application/octet-stream", status=200, reason="OK"):
        self.files[file_id] = (status, content_type, body, reason)
        return drive_url(file_id)

    @property
    def probes(self):
        return [url for url, headers in self.calls if "Range" in headers]

    @property
    def downloads(self):
        return [url for url, headers in self.calls if "Range" not in headers]

    def get(self, url, headers=None, timeout=None, stream=False):
        headers = dict(headers or {})
        self.calls.append((url, headers))
        file_id = parse_qs(urlparse(url).query)["id"][0]

        errors = self.probe_errors if "Range" in headers else self.download_errors
        if file_id in errors:
            raise errors[file_id]

        status, content_type, body, reason = self.files.get(
            file_id, (404, "text/html", b"<html>Not Found</html>", "Not Found")
        )
        if "Range" in headers and status == 200:
            return FakeResponse(206, body[:1024], content_type, "Partial Content")
        return FakeResponse(status, body, content_type, reason)


@pytest.fixture
def fake_drive(monkeypatch) -> FakeDrive:
    drive = FakeDrive()
    monkeypatch.setattr(drive_utils.requests, "get", drive.get)
    return drive


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """drive_merge._setup_logging replaces root handlers; put them back."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
