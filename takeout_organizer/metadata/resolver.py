"""
Trust-weighted year resolution for a single media file.

Evidence is consulted in strict priority order and the first source that
yields a timestamp decides:

  1. sidecar primary timestamp      -> Confirmed / PrimaryMetadata
  2. embedded EXIF capture tag      -> Confirmed / EmbeddedTag
  3. media property (switch, off)   -> Confirmed / MediaProperty
  4. filename date                  -> Confirmed / Filename
  5. sidecar secondary timestamp    -> Uncertain / SecondaryMetadata
  6. nothing                        -> Uncertain / FilesystemFallback

Any source that would confirm the suspect year is demoted to
Uncertain / ContaminationGuard instead. A burst of "this year" dates
usually means a library re-processed the files, not that they were shot
this year. The filesystem year is computed for every file but is never
confirmed.
"""
import logging
from datetime import datetime
from typing import Optional

from ..config import RunSettings
from ..models import (
    DecisionStatus,
    EvidenceSource,
    MediaCandidate,
    Sidecar,
    YearDecision,
)
from .extract import MetadataExtractor
from .filename_dates import date_from_filename


class DateEvidenceResolver:
    def __init__(self, settings: RunSettings, extractor: Optional[MetadataExtractor] = None):
        self.settings = settings
        self.extractor = extractor if extractor is not None else MetadataExtractor()

    @property
    def suspect_year(self) -> str:
        return f"{self.settings.suspect_year:04d}"

    def resolve(self, candidate: MediaCandidate, sidecar: Optional[Sidecar]) -> YearDecision:
        fs_year = f"{datetime.fromtimestamp(candidate.mtime).year:04d}"

        # 1. Sidecar capture time
        if sidecar and sidecar.primary_time:
            return self._confirm(sidecar.primary_time, EvidenceSource.PRIMARY_METADATA, fs_year)

        # 2. Embedded capture tag (stills only)
        if candidate.kind == 'image':
            dt = self.extractor.try_extract_capture_time(candidate.path)
            if dt:
                return self._confirm(dt, EvidenceSource.EMBEDDED_TAG, fs_year)

        # 3. Media property, only when explicitly enabled
        if self.settings.use_media_property:
            dt = self.extractor.get_media_property_time(candidate.path)
            if dt:
                return self._confirm(dt, EvidenceSource.MEDIA_PROPERTY, fs_year)

        # 4. Filename
        dt = date_from_filename(candidate.path.name, self.settings.current_year)
        if dt:
            return self._confirm(dt, EvidenceSource.FILENAME, fs_year)

        # 5. Upload time: never better than Uncertain
        if sidecar and sidecar.secondary_time:
            return YearDecision(
                status=DecisionStatus.UNCERTAIN,
                year=f"{sidecar.secondary_time.year:04d}",
                source=EvidenceSource.SECONDARY_METADATA,
                fs_year=fs_year,
            )

        # 6. Nothing at all
        return YearDecision(
            status=DecisionStatus.UNCERTAIN,
            year=fs_year,
            source=EvidenceSource.FILESYSTEM_FALLBACK,
            fs_year=fs_year,
        )

    def _confirm(self, dt: datetime, source: EvidenceSource, fs_year: str) -> YearDecision:
        year = f"{dt.year:04d}"
        if year == self.suspect_year:
            logging.debug(f"Contamination guard: {source.value} says {year}")
            return YearDecision(
                status=DecisionStatus.UNCERTAIN,
                year=year,
                source=EvidenceSource.CONTAMINATION_GUARD,
                fs_year=fs_year,
                demoted_from=source,
            )
        return YearDecision(
            status=DecisionStatus.CONFIRMED,
            year=year,
            source=source,
            fs_year=fs_year,
        )
