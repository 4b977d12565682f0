import hashlib
from pathlib import Path

from .. import config
from ..exceptions import HashComputationError
from ..organization.fsops import retry_io


class FileHasher:
    def compute_hash(self, path: Path) -> str:
        """
        SHA-256 over the full byte content of the file.

        Two files with equal digests are the same asset regardless of
        name or location, so no sampling shortcuts are taken here.
        Raises HashComputationError when the bytes cannot be read.
        """
        try:
            return retry_io(self._full_sha256, path, what=f"hash {path.name}")
        except OSError as e:
            raise HashComputationError(f"Cannot read {path}: {e}") from e

    def _full_sha256(self, path: Path) -> str:
        """Reads entire file. High I/O cost."""
        h = hashlib.sha256()
        with open(path, 'rb') as f:
            while chunk := f.read(config.HASH_CHUNK_SIZE):
                h.update(chunk)
        return h.hexdigest()
