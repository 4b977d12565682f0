"""
Content-addressed index backed by an append-only TSV log.

Each row is `hash<TAB>relative_path<TAB>best_sidecar_score`. Nothing is
ever rewritten in place: an Update appends a new row, and Load replays
the log in order so the last row for a hash wins. Older rows remain as
the history of healing events.
"""
import logging
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, Optional

from .. import config
from ..exceptions import IndexIntegrityError, IndexLogError
from ..models import IndexRecord
from ..organization.fsops import append_line

_ESCAPES = {'\\': '\\\\', '\t': '\\t', '\n': '\\n', '\r': '\\r'}
_UNESCAPES = {'\\': '\\', 't': '\t', 'n': '\n', 'r': '\r'}


def _escape(value: str) -> str:
    return ''.join(_ESCAPES.get(c, c) for c in value)


def _unescape(value: str) -> str:
    out = []
    chars = iter(value)
    for c in chars:
        if c == '\\':
            nxt = next(chars, '')
            out.append(_UNESCAPES.get(nxt, nxt))
        else:
            out.append(c)
    return ''.join(out)


def to_relative(root: Path, path: Path) -> str:
    """Relative, '/'-separated form used in the log."""
    return PurePosixPath(*path.relative_to(root).parts).as_posix()


class ContentAddressedIndex:
    def __init__(self, root: Path, log_path: Optional[Path] = None):
        self.root = root
        self.log_path = log_path or root / config.INDEX_LOG_NAME
        self._records: Dict[str, IndexRecord] = {}

    def load(self) -> int:
        """
        Rebuilds the in-memory map by folding the log in order.
        Also proves the log can be appended to; a log that cannot be
        opened at all is the one failure that stops the run.
        Returns the number of distinct hashes.
        """
        self._records = {}
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8"):
                pass
        except OSError as e:
            raise IndexLogError(f"Cannot open index log {self.log_path}: {e}") from e

        for record in self._replay():
            self._records[record.content_hash] = record

        logging.info(f"Index loaded: {len(self._records)} assets from {self.log_path}")
        return len(self._records)

    def _replay(self) -> Iterator[IndexRecord]:
        with self.log_path.open("r", encoding="utf-8", newline="\n") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.rstrip("\n")
                if not line:
                    continue
                fields = line.split("\t")
                if len(fields) not in (2, 3) or not fields[0]:
                    logging.warning(f"Skipping malformed index row {line_no}: {line!r}")
                    continue
                score = config.SCORE_ABSENT
                if len(fields) == 3:
                    try:
                        score = int(fields[2])
                    except ValueError:
                        logging.warning(f"Bad score on index row {line_no}: {fields[2]!r}")
                yield IndexRecord(fields[0], _unescape(fields[1]), score)

    def lookup(self, content_hash: str) -> Optional[IndexRecord]:
        return self._records.get(content_hash)

    def insert(self, content_hash: str, path: str, score: int) -> IndexRecord:
        """First sighting of a hash. Known hashes must go through update()."""
        if content_hash in self._records:
            raise IndexIntegrityError(f"Hash already indexed: {content_hash}")
        return self._append(IndexRecord(content_hash, path, score))

    def update(self, content_hash: str, path: str, score: int) -> IndexRecord:
        if content_hash not in self._records:
            raise IndexIntegrityError(f"Cannot update unknown hash: {content_hash}")
        return self._append(IndexRecord(content_hash, path, score))

    def _append(self, record: IndexRecord) -> IndexRecord:
        line = f"{record.content_hash}\t{_escape(record.path)}\t{record.best_score}"
        try:
            append_line(self.log_path, line)
        except OSError as e:
            raise IndexLogError(f"Cannot append to index log {self.log_path}: {e}") from e
        self._records[record.content_hash] = record
        return record

    def absolute(self, record: IndexRecord) -> Path:
        return self.root.joinpath(*PurePosixPath(record.path).parts)

    def records(self) -> Iterator[IndexRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, content_hash: str) -> bool:
        return content_hash in self._records
