"""
Configuration constants for the takeout organizer.
"""
from dataclasses import dataclass, field
from datetime import datetime

# --- File Type Definitions ---
IMAGE_EXTS = {'.jpg', '.jpeg', '.jpe', '.png', '.gif', '.bmp', '.webp', '.heic', '.heif', '.tif', '.tiff'}
RAW_EXTS = {'.cr2', '.cr3', '.nef', '.arw', '.orf', '.rw2', '.dng'}
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.avi', '.mts', '.m2ts', '.3gp', '.mpg', '.mpeg', '.mkv', '.wmv'}

# Extension to Kind Mapping
# RAW files are still images as far as evidence resolution is concerned
EXT_TO_KIND = {}
for ext in IMAGE_EXTS: EXT_TO_KIND[ext] = 'image'
for ext in RAW_EXTS: EXT_TO_KIND[ext] = 'image'
for ext in VIDEO_EXTS: EXT_TO_KIND[ext] = 'video'

# Formats that are known to embed an EXIF capture-time tag
EXIF_EXTS = {'.jpg', '.jpeg', '.jpe', '.tif', '.tiff', '.heic', '.heif'} | RAW_EXTS

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# MediaInfo General-track fields, in priority order.
# file_last_modification_date is deliberately absent: it is filesystem time.
MEDIA_PROPERTY_FIELDS = ["recorded_date", "encoded_date", "tagged_date"]
EXIFTOOL_DATE_FIELDS = ["CreateDate", "CreationDate", "DateTimeOriginal", "MediaCreateDate"]

# --- Sidecars ---
SIDECAR_EXT = '.json'
SUPPLEMENTAL_SUFFIX = 'supplemental-metadata'
# Takeout truncates long sidecar names; shorter prefixes than this are ignored
SUPPLEMENTAL_MIN_PREFIX = 3

# Sidecar quality score weights
SCORE_PRIMARY_TIME = 100
SCORE_SECONDARY_TIME = 60
SCORE_GEO = 30
SCORE_DESCRIPTION = 10
SCORE_FAVORITE = 5
SCORE_PEOPLE = 5
SCORE_ABSENT = -1

# --- Filename Dates ---
# Epoch-second names outside [EPOCH_MIN_YEAR, current_year + 1] are treated as IDs
EPOCH_MIN_YEAR = 2010

# --- Hashing & Retry ---
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading
RETRY_ATTEMPTS = 4
RETRY_BASE_DELAY = 0.5  # seconds, doubled on every attempt

# --- Organization ---
INDEX_LOG_NAME = "_index.tsv"
BAD_FILE_LOG_NAME = "_bad_files.tsv"
UNCERTAIN_DIR = "Uncertain"
SUSPECTS_BUCKET = "{year}_suspects"
SECONDARY_BUCKET = "JSONC_{year}"
FS_BUCKET = "FS_{year}"


def _this_year() -> int:
    return datetime.now().year


@dataclass
class RunSettings:
    """
    Per-run values that can be overridden from the command line.

    suspect_year is only a contamination threshold, never evidence.
    current_year is the run-time reference for "future" folders and the
    epoch-second range gate.
    """
    suspect_year: int = field(default_factory=_this_year)
    current_year: int = field(default_factory=_this_year)
    use_media_property: bool = False
    move: bool = True
