#!/usr/bin/env python3
"""
pdf_utils.py - Shared utilities for PDF processing

Common functions used by drive_merge.py for:
- File type detection from magic bytes
- Image to single-page PDF conversion
- Merging in-memory PDFs (atomic write)
- Output filename safety
"""

import importlib.util
import logging
import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PIL import Image, ImageOps, UnidentifiedImageError
from PyPDF2 import PdfReader, PdfWriter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from merge_config import HEADER_SIZE, JPEG_QUALITY
from merge_errors import (
    HeicDecodeError,
    ImageConversionError,
    MergeError,
    OutputExistsError,
    UnsupportedFileTypeError,
)

try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HEIF_AVAILABLE = True
except ImportError:
    HEIF_AVAILABLE = False

log = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"

# Leading-byte signatures, checked at offset 0
IMAGE_SIGNATURES = {
    "png": b"\x89PNG",
    "jpeg": b"\xff\xd8\xff",
    "gif": b"GIF8",
    "bmp": b"BM",
    "tiff-le": b"II*\x00",
    "tiff-be": b"MM\x00*",
}

# ISO base media: 4-byte box size, then "ftyp", then the major brand
FTYP_OFFSET = 4
BRAND_OFFSET = 8
HEIF_BRANDS = {b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"mif1", b"msf1", b"avif"}

# Distribution name -> import name
DEPENDENCY_MODULES = {
    'pypdf2': 'PyPDF2',
    'reportlab': 'reportlab',
    'pillow': 'PIL',
    'requests': 'requests',
    'pillow-heif': 'pillow_heif',
}


# ============================================================================
# FILE TYPE DETECTION
# ============================================================================

def detect_image_format(header: bytes) -> Optional[str]:
    """
    Name the image format in a file header, or None.

    WebP and HEIF need a second look further into the header: both start
    with a container tag, not a unique magic number.
    """
    for name, signature in IMAGE_SIGNATURES.items():
        if header.startswith(signature):
            return name.split("-")[0]

    if header.startswith(b"RIFF") and header[8:12] == b"WEBP":
        return "webp"

    if header[FTYP_OFFSET:FTYP_OFFSET + 4] == b"ftyp":
        if header[BRAND_OFFSET:BRAND_OFFSET + 4] in HEIF_BRANDS:
            return "heif"

    return None


def classify_header(header: bytes) -> str:
    """
    Classify leading bytes as 'pdf' or 'image'.

    Raises:
        UnsupportedFileTypeError: when no known signature matches
    """
    if header.startswith(PDF_SIGNATURE):
        return "pdf"
    if detect_image_format(header):
        return "image"
    raise UnsupportedFileTypeError("Unsupported file type")


def read_header(path: Path, size: int = HEADER_SIZE) -> bytes:
    with open(path, "rb") as f:
        return f.read(size)


def detect_file_type(path: Path) -> str:
    """
    Detect whether a downloaded file is a PDF or an image.

    Only the first HEADER_SIZE bytes are read.

    Args:
        path: Local file

    Returns:
        'pdf' or 'image'

    Raises:
        UnsupportedFileTypeError: for anything else
    """
    header = read_header(path)
    file_type = classify_header(header)
    log.debug("%s: %s (%s)", Path(path).name, file_type, detect_image_format(header) or "pdf")
    return file_type


# ============================================================================
# IMAGE CONVERSION
# ============================================================================

def image_to_pdf(image_path: Path, quality: int = JPEG_QUALITY) -> bytes:
    """
    Convert an image into a one-page PDF the exact size of the image.

    EXIF orientation is applied first, then the image is re-encoded as JPEG
    and drawn edge to edge on a page of width x height points.

    Args:
        image_path: Image file on disk
        quality: JPEG quality (1-95)

    Returns:
        PDF bytes

    Raises:
        HeicDecodeError: HEIF/HEIC that the installed codecs cannot open
        ImageConversionError: any other decode or encode failure
    """
    image_format = detect_image_format(read_header(image_path))
    jpeg = BytesIO()

    try:
        with Image.open(image_path) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGB":
                img = img.convert("RGB")
            img.save(jpeg, format="JPEG", quality=quality)
    except (UnidentifiedImageError, Image.DecompressionBombError,
            OSError, ValueError, SyntaxError) as e:
        if image_format == "heif":
            hint = "" if HEIF_AVAILABLE else " (install pillow-heif: pip install 'drive-merge[heif]')"
            raise HeicDecodeError(
                f"Could not decode HEIC/HEIF image - the HEIF codec is not available or "
                f"does not support this file{hint}"
            ) from e
        raise ImageConversionError(f"Failed to convert image to PDF: {e}") from e

    jpeg.seek(0)
    with Image.open(jpeg) as processed:
        width, height = processed.size
    jpeg.seek(0)

    packet = BytesIO()
    can = canvas.Canvas(packet, pagesize=(width, height))
    can.drawImage(ImageReader(jpeg), 0, 0, width=width, height=height)
    can.showPage()
    can.save()

    log.debug("%s: %sx%s %s image -> 1 page", Path(image_path).name, width, height, image_format)
    return packet.getvalue()


# ============================================================================
# PDF MERGING
# ============================================================================

def count_pages(pdf_bytes: bytes) -> int:
    return len(PdfReader(BytesIO(pdf_bytes)).pages)


def merge_pdf_buffers(pdf_buffers: Sequence[bytes], output_path: Path,
                      overwrite: bool = False) -> int:
    """
    Merge in-memory PDFs into one file, in order.

    Every buffer is read before anything touches the disk, and the result is
    written to a temp file then moved into place, so a failure never leaves a
    partial output behind.

    Args:
        pdf_buffers: PDF bytes, in the order pages should appear
        output_path: Path for merged output PDF
        overwrite: Replace output_path if it already exists

    Returns:
        Number of pages written

    Raises:
        MergeError: a buffer is unreadable or the file cannot be written
        OutputExistsError: output_path exists and overwrite is False
    """
    if not pdf_buffers:
        raise MergeError("Failed to merge PDFs: nothing to merge")

    writer = PdfWriter()

    for position, pdf_bytes in enumerate(pdf_buffers, 1):
        try:
            reader = PdfReader(BytesIO(pdf_bytes))
            if reader.is_encrypted:
                reader.decrypt("")
            for page in reader.pages:
                writer.add_page(page)
        except Exception as e:
            raise MergeError(f"Failed to merge PDFs: document {position} is unreadable ({e})") from e

    packet = BytesIO()
    try:
        writer.write(packet)
    except Exception as e:
        raise MergeError(f"Failed to merge PDFs: could not serialize output ({e})") from e
    page_count = len(writer.pages)

    output_path = Path(output_path)
    if output_path.exists() and not overwrite:
        raise OutputExistsError(output_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmpfd, tmppath = tempfile.mkstemp(suffix=".pdf", prefix="tmp-merge-",
                                      dir=str(output_path.parent))
    try:
        with os.fdopen(tmpfd, "wb") as f:
            f.write(packet.getvalue())
        os.replace(tmppath, output_path)
    except OSError as e:
        if os.path.exists(tmppath):
            os.unlink(tmppath)
        raise MergeError(f"Failed to write merged PDF: {e}") from e

    log.debug("Merged %d buffers into %s (%d pages)", len(pdf_buffers), output_path, page_count)
    return page_count


# ============================================================================
# FILE SAFETY UTILITIES
# ============================================================================

def safe_filename(text: str, max_length: int = 200) -> str:
    """
    Convert text to a safe output basename (no extension).

    Args:
        text: User-supplied name, with or without .pdf
        max_length: Maximum filename length

    Returns:
        Sanitized name ('untitled' if nothing usable is left)
    """
    safe = text.strip()
    if safe.lower().endswith(".pdf"):
        safe = safe[:-4]

    # Remove or replace unsafe characters
    safe = safe.replace('/', '-').replace('\\', '-')
    safe = ''.join(c for c in safe if c.isalnum() or c in ' -_.')
    safe = safe.strip(' .')

    while '  ' in safe:
        safe = safe.replace('  ', ' ')
    while '--' in safe:
        safe = safe.replace('--', '-')

    if len(safe) > max_length:
        safe = safe[:max_length].rsplit(' ', 1)[0]

    return safe or 'untitled'


# ============================================================================
# DEPENDENCY CHECK
# ============================================================================

def check_dependencies() -> Dict[str, bool]:
    """
    Check which libraries are available.

    Returns:
        Dictionary of library availability
    """
    return {
        name: importlib.util.find_spec(module) is not None
        for name, module in DEPENDENCY_MODULES.items()
    }


def print_dependencies():
    """Print status of all dependencies."""
    deps = check_dependencies()
    print("\n📦 drive-merge dependencies:")
    for name, available in deps.items():
        status = "✅" if available else "❌"
        print(f"  {status} {name}")
    print()


def supported_formats() -> List[str]:
    formats = sorted({name.split("-")[0] for name in IMAGE_SIGNATURES} | {"webp"})
    if HEIF_AVAILABLE:
        formats.append("heif")
    return ["pdf"] + formats


if __name__ == '__main__':
    print_dependencies()
    print("🖼️  Supported inputs: " + ", ".join(supported_formats()))
    print()
