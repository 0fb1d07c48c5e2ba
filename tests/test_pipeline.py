"""End-to-end tests for merge_pipeline.process_files against FakeDrive."""

from __future__ import annotations

from pathlib import Path

import pytest
import requests
from PIL import Image

from conftest import drive_url, make_image_bytes, make_pdf_bytes, page_sizes
from merge_errors import (
    AccessCheckError,
    AllFilesFailedError,
    InvalidUrlError,
    MergeError,
    UsageError,
)
from merge_pipeline import process_files


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


def test_mixed_images_and_pdfs_keep_input_order(fake_drive, tmp_path, work_dir):
    urls = [
        fake_drive.add("IMG1", make_image_bytes(size=(101, 50))),
        fake_drive.add("PDF1", make_pdf_bytes((202, 60)), "application/pdf"),
        fake_drive.add("IMG2", make_image_bytes(size=(303, 70), fmt="JPEG"), "image/jpeg"),
        fake_drive.add("PDF2", make_pdf_bytes((404, 80)), "application/pdf"),
    ]
    out = tmp_path / "merged.pdf"

    report = process_files(urls, out, temp_root=work_dir)

    assert report.merged
    assert report.page_count == 4
    assert [w for w, _ in page_sizes(out)] == [101, 202, 303, 404]
    assert [r.file_type for r in report.results] == ["image", "pdf", "image", "pdf"]
    assert report.failed == []
    assert list(work_dir.iterdir()) == []


def test_multi_page_pdf_pages_stay_together(fake_drive, tmp_path, work_dir):
    urls = [
        fake_drive.add("A", make_pdf_bytes((10, 10), (11, 11)), "application/pdf"),
        fake_drive.add("B", make_image_bytes(size=(12, 12))),
    ]
    out = tmp_path / "merged.pdf"
    process_files(urls, out, temp_root=work_dir)
    assert [w for w, _ in page_sizes(out)] == [10, 11, 12]


def test_access_failure_blocks_every_download(fake_drive, tmp_path, work_dir, capsys):
    good = fake_drive.add("GOOD", make_pdf_bytes((10, 10)), "application/pdf")
    private = fake_drive.add("PRIVATE", b"<html>Sign in</html>", "text/html")
    missing = drive_url("MISSING")
    out = tmp_path / "merged.pdf"

    with pytest.raises(AccessCheckError) as excinfo:
        process_files([good, private, missing], out, temp_root=work_dir)

    failures = excinfo.value.failures
    assert [(f.index, f.url, f.error) for f in failures] == [
        (2, private, "Permission denied or file not accessible"),
        (3, missing, "File not found"),
    ]
    assert len(fake_drive.probes) == 3
    assert fake_drive.downloads == []
    assert not out.exists()

    printed = capsys.readouterr().out
    assert private in printed and missing in printed


def test_one_failed_download_is_skipped(fake_drive, tmp_path, work_dir, capsys):
    urls = [
        fake_drive.add("A", make_pdf_bytes((10, 10)), "application/pdf"),
        fake_drive.add("B", make_pdf_bytes((20, 20)), "application/pdf"),
        fake_drive.add("C", make_image_bytes(size=(30, 30))),
    ]
    fake_drive.download_errors["B"] = requests.ConnectionError("Connection reset by peer")
    out = tmp_path / "merged.pdf"

    report = process_files(urls, out, temp_root=work_dir)

    assert [w for w, _ in page_sizes(out)] == [10, 30]
    assert [r.index for r in report.failed] == [2]
    assert "Failed to download file" in report.failed[0].error
    assert len(report.succeeded) == 2
    assert "skipped" in capsys.readouterr().out
    assert list(work_dir.iterdir()) == []


def test_unsupported_content_is_skipped(fake_drive, tmp_path, work_dir):
    urls = [
        fake_drive.add("ZIP", b"PK\x03\x04" + b"\x00" * 100, "application/zip"),
        fake_drive.add("PDF", make_pdf_bytes((10, 10)), "application/pdf"),
    ]
    report = process_files(urls, tmp_path / "merged.pdf", temp_root=work_dir)
    assert report.failed[0].error == "Unsupported file type"
    assert report.page_count == 1


def test_all_files_failed(fake_drive, tmp_path, work_dir):
    urls = [
        fake_drive.add("A", b"just text", "application/octet-stream"),
        fake_drive.add("B", b"\x89PNG\r\n\x1a\nbroken", "image/png"),
    ]
    out = tmp_path / "merged.pdf"
    with pytest.raises(AllFilesFailedError) as excinfo:
        process_files(urls, out, temp_root=work_dir)
    assert len(excinfo.value.results) == 2
    assert not out.exists()
    assert list(work_dir.iterdir()) == []


def test_corrupt_pdf_aborts_merge(fake_drive, tmp_path, work_dir):
    urls = [
        fake_drive.add("A", make_pdf_bytes((10, 10)), "application/pdf"),
        fake_drive.add("B", b"%PDF-1.4 truncated", "application/pdf"),
    ]
    out = tmp_path / "merged.pdf"
    with pytest.raises(MergeError):
        process_files(urls, out, temp_root=work_dir)
    assert not out.exists()
    assert list(work_dir.iterdir()) == []


def test_invalid_url_fails_before_any_request(fake_drive, tmp_path):
    urls = [drive_url("A"), "https://drive.google.com/drive/folders/"]
    with pytest.raises(InvalidUrlError):
        process_files(urls, tmp_path / "merged.pdf")
    assert fake_drive.calls == []


def test_temp_file_names_use_index_and_id(fake_drive, tmp_path, work_dir, monkeypatch):
    import merge_pipeline

    seen = []
    real_detect = merge_pipeline.detect_file_type

    def spy(path):
        seen.append(Path(path).name)
        return real_detect(path)

    monkeypatch.setattr(merge_pipeline, "detect_file_type", spy)
    urls = [
        fake_drive.add("X1", make_pdf_bytes((10, 10)), "application/pdf"),
        fake_drive.add("X1", make_pdf_bytes((10, 10)), "application/pdf"),
    ]
    process_files(urls, tmp_path / "merged.pdf", temp_root=work_dir)
    assert seen == ["file_0_X1", "file_1_X1"]


def test_oversized_image_is_skipped(fake_drive, tmp_path, work_dir, monkeypatch):
    urls = [
        fake_drive.add("BIG", make_image_bytes(size=(50, 50))),
        fake_drive.add("PDF", make_pdf_bytes((10, 10)), "application/pdf"),
    ]
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    out = tmp_path / "merged.pdf"

    report = process_files(urls, out, temp_root=work_dir)

    assert report.page_count == 1
    assert [r.index for r in report.failed] == [1]
    assert "Failed to convert image to PDF" in report.failed[0].error
    assert page_sizes(out) == [(10, 10)]
    assert list(work_dir.iterdir()) == []


def test_no_urls_is_a_usage_error(fake_drive, tmp_path):
    with pytest.raises(UsageError, match="at least one Google Drive URL"):
        process_files([], tmp_path / "merged.pdf")
    assert fake_drive.calls == []


def test_single_url_needs_no_merge(fake_drive, tmp_path, capsys):
    url = fake_drive.add("ONLY", make_pdf_bytes((10, 10)), "application/pdf")
    out = tmp_path / "merged.pdf"

    report = process_files([url], out)

    assert not report.merged
    assert report.results == []
    assert fake_drive.calls == []
    assert not out.exists()
    assert "no need to merge" in capsys.readouterr().out


def test_single_url_without_file_id_needs_no_merge(fake_drive, tmp_path):
    report = process_files(["https://drive.google.com/open?id="], tmp_path / "merged.pdf")
    assert not report.merged
    assert fake_drive.calls == []
