import logging
from pathlib import Path
from typing import Optional, Tuple

from .. import config
from ..exceptions import FileOperationError
from ..models import Sidecar
from .fsops import copy_file, move_file


def sidecar_path_for(media: Path) -> Path:
    """Placed sidecars are always named `<media name>.json`."""
    return media.with_name(media.name + config.SIDECAR_EXT)


def free_destination(folder: Path, filename: str) -> Path:
    """
    First of folder/filename, folder/name__1.ext, ... where neither the
    media nor its sidecar name is taken.
    """
    stem = Path(filename).stem
    ext = Path(filename).suffix
    candidate = folder / filename
    counter = 1
    while candidate.exists() or sidecar_path_for(candidate).exists():
        candidate = folder / f"{stem}__{counter}{ext}"
        counter += 1
    return candidate


class FileMover:
    """
    Commits placements. Media bytes are only ever moved or copied whole;
    sidecars always travel with (and are renamed to match) their media.
    """
    def __init__(self, move: bool = True):
        self.move = move

    def commit(self, src: Path, folder: Path, sidecar: Optional[Sidecar],
               shared_sidecar: bool = False) -> Tuple[Path, Optional[Path]]:
        """
        Places src (and its sidecar) into folder. A shared sidecar is copied
        so the other media resolving to it still find it at the source.
        Returns (media_dest, sidecar_dest); sidecar_dest is None when there
        was no sidecar or it could not be transferred.
        Raises FileOperationError when the media itself could not be placed.
        """
        dest = free_destination(folder, src.name)
        try:
            if self.move:
                move_file(src, dest)
            else:
                copy_file(src, dest)
        except OSError as e:
            raise FileOperationError(f"{'Move' if self.move else 'Copy'} {src} -> {dest} failed: {e}") from e

        sidecar_dest = None
        if sidecar is not None:
            sidecar_dest = self._carry_sidecar(sidecar.path, dest, keep_source=shared_sidecar or not self.move)
        return dest, sidecar_dest

    def relocate(self, media: Path, folder: Path) -> Path:
        """Moves an already-placed representative and its sidecar."""
        dest = free_destination(folder, media.name)
        try:
            move_file(media, dest)
        except OSError as e:
            raise FileOperationError(f"Relocate {media} -> {dest} failed: {e}") from e

        old_sidecar = sidecar_path_for(media)
        if old_sidecar.is_file():
            self._carry_sidecar(old_sidecar, dest, keep_source=False)
        return dest

    def replace_sidecar(self, sidecar: Sidecar, media: Path) -> Path:
        """Overwrites the placed media's sidecar with a better one (copy)."""
        target = sidecar_path_for(media)
        try:
            copy_file(sidecar.path, target)
        except OSError as e:
            raise FileOperationError(f"Sidecar replace {sidecar.path} -> {target} failed: {e}") from e
        return target

    def _carry_sidecar(self, sidecar: Path, media_dest: Path, keep_source: bool) -> Optional[Path]:
        target = sidecar_path_for(media_dest)
        try:
            if keep_source:
                copy_file(sidecar, target)
            else:
                move_file(sidecar, target)
            return target
        except OSError as e:
            logging.error(f"Failed to carry sidecar {sidecar} -> {target}: {e}")
            return None
