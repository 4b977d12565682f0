from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class MediaCandidate:
    """
    A media file found in the source tree, consumed once.
    """
    path: Path
    kind: str               # image/video
    mtime: float


@dataclass
class Sidecar:
    """
    A metadata document associated with one media file.
    Fields are None when the document does not carry them.
    """
    path: Path
    primary_time: Optional[datetime] = None     # photoTakenTime
    secondary_time: Optional[datetime] = None   # creationTime (upload time, weak)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None
    favorited: bool = False
    people: List[str] = field(default_factory=list)
    title: Optional[str] = None

    # Set when the document could not be parsed; it then carries no evidence
    parse_error: Optional[str] = None

    @property
    def has_geo(self) -> bool:
        if self.latitude is None or self.longitude is None:
            return False
        return not (self.latitude == 0 and self.longitude == 0)


class DecisionStatus(str, Enum):
    CONFIRMED = "Confirmed"
    UNCERTAIN = "Uncertain"


class EvidenceSource(str, Enum):
    PRIMARY_METADATA = "PrimaryMetadata"
    EMBEDDED_TAG = "EmbeddedTag"
    MEDIA_PROPERTY = "MediaProperty"
    FILENAME = "Filename"
    SECONDARY_METADATA = "SecondaryMetadata"
    FILESYSTEM_FALLBACK = "FilesystemFallback"
    CONTAMINATION_GUARD = "ContaminationGuard"


@dataclass(frozen=True)
class YearDecision:
    status: DecisionStatus
    year: Optional[str]
    source: EvidenceSource
    fs_year: str
    # The source that would have confirmed the year, for guard hits
    demoted_from: Optional[EvidenceSource] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == DecisionStatus.CONFIRMED


@dataclass(frozen=True)
class IndexRecord:
    content_hash: str
    path: str               # relative to the destination root, '/' separated
    best_score: int


class PlacementStatus(str, Enum):
    PLACED = "Placed"
    DUPLICATE = "Duplicate"
    RECOVERED = "Recovered"
    ALREADY_PLACED = "AlreadyPlaced"
    FAILED = "Failed"


class HealOutcome(str, Enum):
    NOT_TRIGGERED = "NotTriggered"
    REFUSED = "Refused"
    RELOCATED = "Relocated"
    STALE = "Stale"


@dataclass
class HealResult:
    outcome: HealOutcome
    reason: str = ""
    new_path: Optional[str] = None


@dataclass
class PlacementResult:
    """Outcome of processing one candidate, used for the run summary."""
    source: Path
    status: PlacementStatus
    content_hash: Optional[str] = None
    decision: Optional[YearDecision] = None
    dest_path: Optional[str] = None
    sidecar_upgraded: bool = False
    heal: Optional[HealResult] = None
    detail: str = ""
