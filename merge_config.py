# drive-merge configuration
# Module-level settings shared by drive_utils, pdf_utils and drive_merge.
# Edit values here; callers can also override most of them per call.

from pathlib import Path

# ======================
# PATHS
# ======================
OUTPUT_DIR = Path("output")
DEFAULT_OUTPUT = OUTPUT_DIR / "merged.pdf"
TEMP_PREFIX = "drive-merge-"  # Per-attempt working dir under the system temp root

# ======================
# GOOGLE DRIVE
# ======================
DRIVE_HOST = "drive.google.com"
DOWNLOAD_URL_TEMPLATE = "https://drive.google.com/uc?export=download&id={file_id}"
USER_AGENT = "drive-merge/1.0"

# Access probe: ask for the first KB only
PROBE_RANGE = "bytes=0-1023"
PROBE_TIMEOUT = 10  # seconds
MAX_PROBE_WORKERS = 8

# Full downloads
DOWNLOAD_TIMEOUT = 60  # seconds
CHUNK_SIZE = 64 * 1024

# ======================
# CONVERSION
# ======================
JPEG_QUALITY = 90
HEADER_SIZE = 16  # Bytes read when sniffing file type
