"""
Retroactive correction of representatives placed in the wrong year.

A duplicate sighting may carry better evidence than the file that was
first stored. The healer never trusts the duplicate's year directly:
the duplicate only *triggers* a re-check, and the representative is
moved solely to the year its own re-derived, Confirmed evidence points
at. One contaminated duplicate therefore cannot drag a correctly placed
representative into the wrong year.

The one exception is a representative whose own evidence dates it after
the current year. Such evidence cannot be a real capture date, so a
Confirmed duplicate year that is not in the future takes its place.
"""
import logging
from pathlib import Path
from typing import Optional

from .. import config
from ..config import RunSettings
from ..database.index import ContentAddressedIndex, to_relative
from ..exceptions import IndexIntegrityError
from ..metadata.resolver import DateEvidenceResolver
from ..metadata.sidecar import SidecarMatcher
from ..models import HealOutcome, HealResult, MediaCandidate, YearDecision
from .mover import FileMover, sidecar_path_for
from .rules import year_of_folder


class RepresentativeHealer:
    def __init__(self,
                 index: ContentAddressedIndex,
                 resolver: DateEvidenceResolver,
                 matcher: SidecarMatcher,
                 mover: FileMover,
                 settings: RunSettings):
        self.index = index
        self.resolver = resolver
        self.matcher = matcher
        self.mover = mover
        self.settings = settings

    def heal(self, content_hash: str, duplicate_decision: Optional[YearDecision] = None) -> HealResult:
        record = self.index.lookup(content_hash)
        if record is None:
            raise IndexIntegrityError(f"Cannot heal unknown hash: {content_hash}")

        rep = self.index.absolute(record)
        if not rep.is_file():
            return HealResult(HealOutcome.STALE, f"representative missing: {record.path}")

        folder_year = year_of_folder(record.path)
        in_future = folder_year is not None and folder_year > self.settings.current_year
        contradicted = (
            duplicate_decision is not None
            and duplicate_decision.is_confirmed
            and duplicate_decision.year is not None
            and (folder_year is None or int(duplicate_decision.year) != folder_year)
        )
        if not (in_future or contradicted):
            return HealResult(HealOutcome.NOT_TRIGGERED)

        own = self.rederive(rep)
        if not own.is_confirmed:
            reason = f"own evidence is {own.status.value}/{own.source.value}"
            logging.info(f"Healing refused for {record.path}: {reason}")
            return HealResult(HealOutcome.REFUSED, reason)

        target, source = own.year, own.source
        if in_future and int(own.year) > self.settings.current_year:
            # A capture date after the current year is itself bad evidence
            if not contradicted or int(duplicate_decision.year) > self.settings.current_year:
                reason = f"own evidence ({own.source.value}) points at future {own.year}"
                logging.info(f"Healing refused for {record.path}: {reason}")
                return HealResult(HealOutcome.REFUSED, reason)
            target, source = duplicate_decision.year, duplicate_decision.source

        if folder_year == int(target):
            reason = f"own evidence ({own.source.value}) agrees with {own.year}"
            logging.info(f"Healing refused for {record.path}: {reason}")
            return HealResult(HealOutcome.REFUSED, reason)

        new_dest = self.mover.relocate(rep, self.index.root / target)
        new_rel = to_relative(self.index.root, new_dest)
        self.index.update(content_hash, new_rel, record.best_score)
        logging.info(f"Healed {record.path} -> {new_rel} ({source.value})")
        return HealResult(HealOutcome.RELOCATED, source.value, new_rel)

    def rederive(self, rep: Path) -> YearDecision:
        """The representative's own decision, from the file and its placed sidecar."""
        kind = config.EXT_TO_KIND.get(rep.suffix.lower(), 'image')
        candidate = MediaCandidate(path=rep, kind=kind, mtime=rep.stat().st_mtime)
        sidecar_path = sidecar_path_for(rep)
        sidecar = self.matcher.load(sidecar_path) if sidecar_path.is_file() else None
        return self.resolver.resolve(candidate, sidecar)
