import logging
import subprocess
import json
from pathlib import Path
from datetime import datetime
from typing import Optional, Any

from .. import config

# Optional imports handled gracefully to prevent crashes if libs are missing
try:
    import exifread
except ImportError:
    exifread = None

# Type hint 'Any' prevents Pylance from complaining about "None" having no attribute "parse"
MediaInfo: Any = None
try:
    from pymediainfo import MediaInfo
except ImportError:
    MediaInfo = None


class MetadataExtractor:
    """
    Best-effort timestamp extraction capability consumed by the resolver.

    Both entry points return a naive datetime or None. They never raise:
    a tag that cannot be read is simply absent evidence.

    Strategies:
      - Embedded capture tag: 'exifread', EXIF-bearing formats only.
      - Media property: 'pymediainfo' -> falls back to 'exiftool'.
    """

    def try_extract_capture_time(self, path: Path) -> Optional[datetime]:
        if path.suffix.lower() not in config.EXIF_EXTS:
            return None

        if not exifread:
            logging.warning("exifread module not found. Skipping embedded capture tags.")
            return None

        try:
            with path.open('rb') as f:
                # details=False speeds up processing significantly
                tags = exifread.process_file(f, details=False)
            return self._parse_exif_date(tags)
        except Exception as e:
            logging.debug(f"ExifRead failed for {path}: {e}")
            return None

    def get_media_property_time(self, path: Path) -> Optional[datetime]:
        """
        Container-level creation date (video atoms, encoder tags).
        Only consulted when RunSettings.use_media_property is on.
        """
        # Strategy 1: Try MediaInfo (Fastest, usually sufficient)
        if MediaInfo is not None:
            try:
                dt = self._extract_mediainfo(path)
                if dt:
                    return dt
            except Exception as e:
                logging.debug(f"MediaInfo failed for {path}: {e}")

        # Strategy 2: Try ExifTool (Robust fallback, requires system install)
        try:
            return self._extract_exiftool(path)
        except Exception as e:
            # Only log at debug level to avoid spamming console if tool is missing
            logging.debug(f"ExifTool failed for {path}: {e}")
        return None

    # --- Internal Extraction Helpers ---

    def _extract_mediainfo(self, path: Path) -> Optional[datetime]:
        mi = MediaInfo.parse(str(path))
        for track in mi.tracks:
            if track.track_type != "General":
                continue
            for field in config.MEDIA_PROPERTY_FIELDS:
                val = getattr(track, field, None)
                if val:
                    dt = self._parse_flexible_date(str(val))
                    if dt:
                        return dt
        return None

    def _extract_exiftool(self, path: Path) -> Optional[datetime]:
        """
        Wraps the 'exiftool' command line utility.
        Must be installed and on the system PATH.
        """
        cmd = ["exiftool", "-j", "-n", str(path)]
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, text=True)
        data_list = json.loads(out)
        if not data_list:
            return None

        tags = data_list[0]
        for field in config.EXIFTOOL_DATE_FIELDS:
            if tags.get(field):
                dt = self._parse_flexible_date(str(tags[field]))
                if dt:
                    return dt
        return None

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """Helper to parse standard EXIF date strings from exifread."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    # EXIF format is usually "YYYY:MM:DD HH:MM:SS"
                    dt_str = str(tags[tag]).strip().replace(':', '-', 2)
                    return datetime.strptime(dt_str[:19], "%Y-%m-%d %H:%M:%S")
                except ValueError:
                    # "0000:00:00 00:00:00" and friends
                    continue
        return None

    def _parse_flexible_date(self, dt_str: str) -> Optional[datetime]:
        """
        Handles various date formats (ISO, UTC suffixes, Exiftool quirks).
        Returns a naive datetime object.
        """
        if not dt_str:
            return None

        clean = dt_str.replace("UTC", "").strip()

        # 1. Try ISO format (e.g. 2020-01-01T12:00:00)
        try:
            return datetime.fromisoformat(clean).replace(tzinfo=None)
        except ValueError:
            pass

        # 2. Try Standard EXIF style "YYYY:MM:DD HH:MM:SS"
        try:
            clean_exif = clean.replace(":", "-", 2)
            if "." in clean_exif:
                clean_exif = clean_exif.split(".")[0]
            return datetime.strptime(clean_exif, "%Y-%m-%d %H:%M:%S")
        except ValueError:
            pass

        return None
