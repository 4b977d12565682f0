import os
import logging
from pathlib import Path
from typing import Iterator, Set, Optional

from .. import config
from ..models import MediaCandidate


class DiskScanner:
    """
    Enumerates MediaCandidates under a source root.
    Only extensions on the media allow-list are yielded; sidecars and
    everything else are left for the SidecarMatcher to discover.
    """

    def scan(self, root: Path, skip_dirs: Optional[Set[Path]] = None) -> Iterator[MediaCandidate]:
        skip_dirs = skip_dirs or set()
        for path in self._iter_files(root, skip_dirs):
            candidate = self.make_candidate(path)
            if candidate:
                yield candidate

    def make_candidate(self, path: Path) -> Optional[MediaCandidate]:
        """Classifies a single file; returns None for non-media or unreadable files."""
        # macOS resource forks share the media extension
        if path.name.startswith("._"):
            return None

        kind = config.EXT_TO_KIND.get(path.suffix.lower())
        if kind is None:
            return None

        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            logging.warning(f"Cannot stat {path}: {e}")
            return None

        return MediaCandidate(path=path, kind=kind, mtime=mtime)

    def _iter_files(self, root: Path, skip_dirs: Set[Path]) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed."""
        stack = [root]
        while stack:
            current = stack.pop()
            if skip_dirs and any(sd == current or sd in current.parents for sd in skip_dirs):
                continue

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except (OSError, PermissionError):
                logging.warning(f"Permission denied: {current}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                if e.is_dir(follow_symlinks=False):
                    dirs.append(Path(e.path))
                elif e.is_file(follow_symlinks=False):
                    files.append(Path(e.path))

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)

            for f in files:
                yield f
