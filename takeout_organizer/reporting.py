import csv
import logging
from pathlib import Path
from typing import Optional, Set

from .database.index import ContentAddressedIndex
from .exceptions import HashComputationError
from .models import MediaCandidate
from .scanning.filesystem import DiskScanner
from .scanning.hasher import FileHasher


class ReportGenerator:
    def __init__(self, index: ContentAddressedIndex):
        self.index = index
        self.hasher = FileHasher()
        self.scanner = DiskScanner()

    def generate_source_report(self, source_root: str, output_csv: str,
                               skip_dirs: Optional[Set[Path]] = None):
        """
        Walks the source tree and produces a CSV report detailing whether
        each media file's bytes are already represented in the library.
        """
        root = Path(source_root)
        if not root.exists():
            raise FileNotFoundError(f"Source path {source_root} does not exist.")

        logging.info(f"Generating report for {source_root} -> {output_csv}")

        headers = [
            "Source Path",
            "Status",
            "Kind",
            "Representative Path",
            "Notes",
        ]

        processed_count = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)

            for candidate in self.scanner.scan(root, skip_dirs or set()):
                processed_count += 1
                if processed_count % 1000 == 0:
                    logging.info(f"Analyzed {processed_count} files...")
                writer.writerow(self._analyze_file(candidate))

        logging.info(f"Report complete. Analyzed {processed_count} files.")

    def _analyze_file(self, candidate: MediaCandidate) -> list:
        str_path = str(candidate.path)
        try:
            content_hash = self.hasher.compute_hash(candidate.path)
        except HashComputationError as e:
            return [str_path, "Error", candidate.kind, "", f"Hash failed: {e}"]

        record = self.index.lookup(content_hash)
        if record is None:
            return [str_path, "Not In Index", candidate.kind, "", "Pending import"]

        rep = self.index.absolute(record)
        try:
            is_rep = rep.exists() and rep.samefile(candidate.path)
        except OSError:
            is_rep = False

        if is_rep:
            return [str_path, "Placed", candidate.kind, record.path, "Representative"]
        if not rep.exists():
            return [str_path, "Duplicate", candidate.kind, record.path, "Representative missing; run --reconcile"]
        return [str_path, "Duplicate", candidate.kind, record.path, f"Same bytes as {content_hash[:12]}"]
