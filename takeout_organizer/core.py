import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Set, Optional

from tqdm import tqdm

from .config import RunSettings
from .database.badlog import BadFileLog
from .database.index import ContentAddressedIndex, to_relative
from .exceptions import (
    ErrorKind,
    FileOperationError,
    HashComputationError,
    SidecarAssociationError,
)
from .metadata.extract import MetadataExtractor
from .metadata.resolver import DateEvidenceResolver
from .metadata.sidecar import SidecarCache, SidecarMatcher, score_sidecar
from .models import (
    HealOutcome,
    IndexRecord,
    MediaCandidate,
    PlacementResult,
    PlacementStatus,
    Sidecar,
    YearDecision,
)
from .organization.healer import RepresentativeHealer
from .organization.mover import FileMover, sidecar_path_for
from .organization.rules import DestinationPlanner
from .scanning.filesystem import DiskScanner
from .scanning.hasher import FileHasher


class PlacementEngine:
    """
    Decides the final folder for one candidate and mutates the index.

    New bytes are committed (file, sidecar, index row). Known bytes are
    never copied again: the duplicate may only upgrade the stored
    sidecar and trigger a healing re-check of the representative.
    """
    def __init__(self,
                 index: ContentAddressedIndex,
                 resolver: DateEvidenceResolver,
                 matcher: SidecarMatcher,
                 healer: RepresentativeHealer,
                 mover: FileMover,
                 planner: DestinationPlanner,
                 hasher: FileHasher,
                 bad_log: BadFileLog):
        self.index = index
        self.resolver = resolver
        self.matcher = matcher
        self.healer = healer
        self.mover = mover
        self.planner = planner
        self.hasher = hasher
        self.bad_log = bad_log

    @property
    def root(self) -> Path:
        return self.index.root

    def place(self, candidate: MediaCandidate) -> PlacementResult:
        content_hash = self.hasher.compute_hash(candidate.path)
        sidecar = self._find_sidecar(candidate)
        decision = self.resolver.resolve(candidate, sidecar)

        record = self.index.lookup(content_hash)
        if record is None:
            return self._place_new(candidate, content_hash, sidecar, decision)

        rep = self.index.absolute(record)
        if self._is_same_file(rep, candidate.path):
            return PlacementResult(candidate.path, PlacementStatus.ALREADY_PLACED,
                                   content_hash, decision, record.path)

        if not rep.is_file():
            # The bytes were moved but the index row never followed (or the
            # representative was removed by hand). This sighting takes over.
            logging.warning(f"Index points at missing {record.path}; adopting {candidate.path}")
            return self._place_new(candidate, content_hash, sidecar, decision, recovered=True)

        return self._place_duplicate(candidate, content_hash, sidecar, decision, record)

    def _find_sidecar(self, candidate: MediaCandidate) -> Optional[Sidecar]:
        try:
            sidecar = self.matcher.find(candidate)
        except SidecarAssociationError as e:
            logging.warning(f"Proceeding without sidecar for {candidate.path}: {e}")
            self.bad_log.record(ErrorKind.SIDECAR, candidate.path, str(e))
            return None
        if sidecar is not None and sidecar.parse_error:
            self.bad_log.record(ErrorKind.METADATA, sidecar.path, sidecar.parse_error)
        return sidecar

    def _place_new(self,
                   candidate: MediaCandidate,
                   content_hash: str,
                   sidecar: Optional[Sidecar],
                   decision: YearDecision,
                   recovered: bool = False) -> PlacementResult:
        folder = self.root.joinpath(*self.planner.target_folder(decision).parts)
        shared = sidecar is not None and self.mover.move and self._sidecar_shared(sidecar, candidate)
        dest, sidecar_dest = self.mover.commit(candidate.path, folder, sidecar, shared)

        score = score_sidecar(sidecar) if sidecar_dest else score_sidecar(None)
        if sidecar is not None and sidecar_dest is None:
            self.bad_log.record(ErrorKind.SIDECAR, sidecar.path, f"not carried to {dest}")

        rel = to_relative(self.root, dest)
        if recovered:
            self.index.update(content_hash, rel, score)
        else:
            self.index.insert(content_hash, rel, score)

        logging.debug(f"{candidate.path.name} -> {rel} ({decision.status.value}/{decision.source.value})")
        status = PlacementStatus.RECOVERED if recovered else PlacementStatus.PLACED
        return PlacementResult(candidate.path, status, content_hash, decision, rel)

    def _place_duplicate(self,
                         candidate: MediaCandidate,
                         content_hash: str,
                         sidecar: Optional[Sidecar],
                         decision: YearDecision,
                         record: IndexRecord) -> PlacementResult:
        result = PlacementResult(candidate.path, PlacementStatus.DUPLICATE, content_hash, decision, record.path)

        # Upgrade first so the healer re-derives from the best sidecar on disk
        score = score_sidecar(sidecar)
        if sidecar is not None and not sidecar.parse_error and score > record.best_score:
            rep = self.index.absolute(record)
            try:
                self.mover.replace_sidecar(sidecar, rep)
            except FileOperationError as e:
                logging.error(str(e))
                self.bad_log.record(ErrorKind.SIDECAR, sidecar.path, str(e))
            else:
                logging.info(f"Sidecar upgraded for {record.path}: {record.best_score} -> {score}")
                self.index.update(content_hash, record.path, score)
                result.sidecar_upgraded = True

        confirmed = decision if decision.is_confirmed else None
        result.heal = self.healer.heal(content_hash, confirmed)
        if result.heal.outcome == HealOutcome.RELOCATED:
            result.dest_path = result.heal.new_path

        logging.debug(f"Duplicate {candidate.path.name} of {result.dest_path}")
        return result

    def _sidecar_shared(self, sidecar: Sidecar, candidate: MediaCandidate) -> bool:
        try:
            return self.matcher.is_shared(sidecar.path, candidate.path)
        except SidecarAssociationError as e:
            # Unknown siblings: keep the source document
            logging.warning(str(e))
            return True

    def _is_same_file(self, rep: Path, path: Path) -> bool:
        try:
            return rep.exists() and rep.samefile(path)
        except OSError:
            return False


@dataclass
class RunSummary:
    placed: int = 0
    duplicates: int = 0
    recovered: int = 0
    already_placed: int = 0
    sidecar_upgrades: int = 0
    healed: int = 0
    heal_refused: int = 0
    failed: int = 0

    def add(self, result: PlacementResult):
        if result.status == PlacementStatus.PLACED:
            self.placed += 1
        elif result.status == PlacementStatus.DUPLICATE:
            self.duplicates += 1
        elif result.status == PlacementStatus.RECOVERED:
            self.recovered += 1
        elif result.status == PlacementStatus.ALREADY_PLACED:
            self.already_placed += 1
        else:
            self.failed += 1

        if result.sidecar_upgraded:
            self.sidecar_upgrades += 1
        if result.heal and result.heal.outcome == HealOutcome.RELOCATED:
            self.healed += 1
        elif result.heal and result.heal.outcome == HealOutcome.REFUSED:
            self.heal_refused += 1


class TakeoutOrganizerApp:
    def __init__(self, dest_root: Path, settings: Optional[RunSettings] = None,
                 extractor: Optional[MetadataExtractor] = None):
        self.root = dest_root
        self.settings = settings or RunSettings()

        self.index = ContentAddressedIndex(dest_root)
        self.bad_log = BadFileLog(dest_root)
        self.hasher = FileHasher()
        # Caches live exactly as long as this app instance
        self.matcher = SidecarMatcher(SidecarCache())
        self.resolver = DateEvidenceResolver(self.settings, extractor)
        self.mover = FileMover(move=self.settings.move)
        self.planner = DestinationPlanner(self.settings)
        self.healer = RepresentativeHealer(self.index, self.resolver, self.matcher, self.mover, self.settings)
        self.engine = PlacementEngine(
            self.index, self.resolver, self.matcher, self.healer,
            self.mover, self.planner, self.hasher, self.bad_log,
        )

    def organize(self, src_root: Path, skip_dirs: Optional[Set[Path]] = None) -> RunSummary:
        """
        Processes every media file under src_root, one at a time.
        Per-file failures are logged and skipped; only an unusable index
        log (IndexLogError) stops the run.
        """
        self.index.load()
        logging.info(f"Organizing {src_root} -> {self.root} "
                     f"(suspect year {self.settings.suspect_year}, "
                     f"media property {'on' if self.settings.use_media_property else 'off'})")

        skip = set(skip_dirs or set())
        # Never feed the library back into itself
        if src_root in self.root.parents:
            skip.add(self.root)

        summary = RunSummary()
        scanner = DiskScanner()
        for candidate in tqdm(scanner.scan(src_root, skip), desc="Organizing", unit="file"):
            summary.add(self.process(candidate))

        logging.info(
            f"Run complete: {summary.placed} placed, {summary.duplicates} duplicates, "
            f"{summary.recovered} recovered, {summary.healed} healed "
            f"({summary.heal_refused} refused), {summary.sidecar_upgrades} sidecar upgrades, "
            f"{summary.failed} failed"
        )
        return summary

    def process(self, candidate: MediaCandidate) -> PlacementResult:
        try:
            return self.engine.place(candidate)
        except HashComputationError as e:
            logging.error(str(e))
            self.bad_log.record(ErrorKind.HASH, candidate.path, str(e))
            return PlacementResult(candidate.path, PlacementStatus.FAILED, detail=str(e))
        except FileOperationError as e:
            logging.error(str(e))
            self.bad_log.record(ErrorKind.MOVE, candidate.path, str(e))
            return PlacementResult(candidate.path, PlacementStatus.FAILED, detail=str(e))

    def reconcile(self) -> int:
        """
        Repairs index rows whose representative is gone from its recorded
        path, e.g. after a crash between relocating bytes and appending the
        update. The destination tree is hashed to find where the bytes are.
        Returns the number of rows corrected.
        """
        self.index.load()
        wanted = {r.content_hash: r for r in self.index.records()
                  if not self.index.absolute(r).is_file()}
        if not wanted:
            logging.info("Index is consistent with the destination tree.")
            return 0

        logging.info(f"Reconciling {len(wanted)} stale index rows...")
        fixed = 0
        for candidate in tqdm(DiskScanner().scan(self.root), desc="Reconciling", unit="file"):
            try:
                content_hash = self.hasher.compute_hash(candidate.path)
            except HashComputationError as e:
                logging.error(str(e))
                self.bad_log.record(ErrorKind.HASH, candidate.path, str(e))
                continue

            record = wanted.pop(content_hash, None)
            if record is None:
                continue

            rel = to_relative(self.root, candidate.path)
            score = record.best_score if sidecar_path_for(candidate.path).is_file() else score_sidecar(None)
            self.index.update(content_hash, rel, score)
            logging.info(f"Reconciled {record.path} -> {rel}")
            fixed += 1
            if not wanted:
                break

        for record in wanted.values():
            logging.warning(f"Bytes for {record.path} not found under {self.root}")
        return fixed
