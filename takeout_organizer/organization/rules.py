import re
from pathlib import PurePosixPath
from typing import Callable, Dict, Optional

from .. import config
from ..config import RunSettings
from ..models import EvidenceSource, YearDecision

_YEAR_DIR_RE = re.compile(r'^\d{4}$')


def year_of_folder(rel_path: str) -> Optional[int]:
    """Year of a plain `<year>/...` placement; None for quarantine buckets."""
    parts = PurePosixPath(rel_path).parts
    if len(parts) > 1 and _YEAR_DIR_RE.match(parts[0]):
        return int(parts[0])
    return None


class DestinationPlanner:
    """
    Maps a YearDecision to a folder relative to the destination root.

    Confirmed decisions go to `<year>/`. Uncertain ones are quarantined
    under `Uncertain/` in a bucket chosen by the evidence source, so a
    reviewer can tell "probably upload time" apart from "only mtime".
    """
    def __init__(self, settings: RunSettings):
        self.settings = settings
        self.buckets: Dict[EvidenceSource, Callable[[YearDecision], str]] = {
            EvidenceSource.CONTAMINATION_GUARD:
                lambda d: config.SUSPECTS_BUCKET.format(year=self.settings.suspect_year),
            EvidenceSource.SECONDARY_METADATA:
                lambda d: config.SECONDARY_BUCKET.format(year=d.year),
            EvidenceSource.FILESYSTEM_FALLBACK:
                lambda d: config.FS_BUCKET.format(year=d.fs_year),
        }

    def target_folder(self, decision: YearDecision) -> PurePosixPath:
        if decision.is_confirmed and decision.year:
            return PurePosixPath(decision.year)

        bucket = self.buckets.get(decision.source)
        if bucket is None:
            # Overflow bucket
            return PurePosixPath(config.UNCERTAIN_DIR)
        return PurePosixPath(config.UNCERTAIN_DIR, bucket(decision))
