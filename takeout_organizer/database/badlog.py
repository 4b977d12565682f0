import logging
from pathlib import Path
from typing import Dict, Optional

from .. import config
from ..exceptions import ErrorKind
from ..organization.fsops import append_line
from .index import _escape


class BadFileLog:
    """
    Append-only `kind<TAB>path<TAB>detail` record of per-file failures.
    """
    def __init__(self, root: Path, log_path: Optional[Path] = None):
        self.log_path = log_path or root / config.BAD_FILE_LOG_NAME
        self.counts: Dict[ErrorKind, int] = {}

    def record(self, kind: ErrorKind, path: Path, detail: str):
        self.counts[kind] = self.counts.get(kind, 0) + 1
        detail = " ".join(str(detail).split())
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            append_line(self.log_path, f"{kind.value}\t{_escape(str(path))}\t{detail}")
        except OSError as e:
            # Losing a bad-file row must not cost the run
            logging.error(f"Cannot write bad-file log {self.log_path}: {e}")

    @property
    def total(self) -> int:
        return sum(self.counts.values())
