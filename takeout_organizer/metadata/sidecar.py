"""
Locates, parses and scores the JSON sidecars exported next to media.

A sidecar is never merged with another: the first document found by
the matching order below is the one that speaks for the media file.

    1. <name.ext>.supplemental-metadata.json  (or a truncated suffix)
    2. <name.ext>.json
    3. <name>.supplemental-metadata.json      (or a truncated suffix)
    4. <name>.json
    5. any document in the directory whose "title" normalizes to the
       media filename
"""
import json
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .. import config
from ..exceptions import MetadataParseError, SidecarAssociationError
from ..models import MediaCandidate, Sidecar

# "IMG__2.jpg" (our own collision naming) and "IMG(1).jpg" (Takeout's)
_DISAMBIG_RE = re.compile(r'(?:__\d+|\(\d+\))(?=\.[^.]*$|$)')


@dataclass
class SidecarCache:
    """Per-directory memo, owned by one matcher for the lifetime of a run."""
    titles: Dict[Path, Dict[str, Path]] = field(default_factory=dict)
    listings: Dict[Path, List[str]] = field(default_factory=dict)
    media: Dict[Path, List[str]] = field(default_factory=dict)


def normalize_name(name: str) -> str:
    s = unicodedata.normalize('NFC', name.strip()).casefold()
    s = unicodedata.normalize('NFC', s)
    return _DISAMBIG_RE.sub('', s)


def _timestamp(data: dict, key: str) -> Optional[datetime]:
    block = data.get(key)
    if not isinstance(block, dict):
        return None
    try:
        ts = int(block.get('timestamp'))
    except (TypeError, ValueError):
        return None
    if ts <= 0:
        return None
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _coords(geo) -> tuple:
    if not isinstance(geo, dict):
        return None, None
    try:
        return float(geo.get('latitude', 0)), float(geo.get('longitude', 0))
    except (TypeError, ValueError):
        return None, None


def parse_sidecar(path: Path) -> Sidecar:
    """
    Reads a Takeout JSON document.
    Raises MetadataParseError for unreadable, truncated or non-object JSON.
    """
    try:
        with path.open('r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MetadataParseError(f"{path.name}: {e}") from e
    if not isinstance(data, dict):
        raise MetadataParseError(f"{path.name}: top level is not an object")

    lat, lon = _coords(data.get('geoData'))
    if not lat and not lon:
        lat, lon = _coords(data.get('geoDataExif'))

    description = data.get('description')
    if not isinstance(description, str) or not description.strip():
        description = None

    people = []
    for entry in data.get('people') or []:
        if isinstance(entry, dict):
            people.append(str(entry.get('name', '')))

    title = data.get('title')

    return Sidecar(
        path=path,
        primary_time=_timestamp(data, 'photoTakenTime'),
        secondary_time=_timestamp(data, 'creationTime'),
        latitude=lat,
        longitude=lon,
        description=description,
        favorited=data.get('favorited') is True,
        people=people,
        title=title if isinstance(title, str) else None,
    )


def score_sidecar(sidecar: Optional[Sidecar]) -> int:
    """Higher score = more information. -1 means no document at all."""
    if sidecar is None:
        return config.SCORE_ABSENT

    score = 0
    if sidecar.primary_time:
        score += config.SCORE_PRIMARY_TIME
    elif sidecar.secondary_time:
        # Upload time is only worth something when capture time is missing
        score += config.SCORE_SECONDARY_TIME
    if sidecar.has_geo:
        score += config.SCORE_GEO
    if sidecar.description:
        score += config.SCORE_DESCRIPTION
    if sidecar.favorited:
        score += config.SCORE_FAVORITE
    if sidecar.people:
        score += config.SCORE_PEOPLE
    return score


class SidecarMatcher:
    def __init__(self, cache: Optional[SidecarCache] = None):
        self.cache = cache if cache is not None else SidecarCache()

    def find(self, candidate: MediaCandidate) -> Optional[Sidecar]:
        """
        Returns the parsed sidecar for the candidate, or None.
        A malformed document is still returned, flagged with parse_error,
        so it travels with its media but contributes no evidence.
        """
        path = self.locate(candidate.path)
        if path is None:
            return None
        return self.load(path)

    def load(self, path: Path) -> Sidecar:
        try:
            return parse_sidecar(path)
        except MetadataParseError as e:
            logging.warning(f"Unreadable sidecar {path}: {e}")
            return Sidecar(path=path, parse_error=str(e))

    def locate(self, media_path: Path) -> Optional[Path]:
        directory = media_path.parent
        name = media_path.name
        stem = media_path.stem
        ext = config.SIDECAR_EXT

        for base in (name, stem):
            hit = self._supplemental(directory, base)
            if hit:
                return hit
            plain = directory / f"{base}{ext}"
            if plain.is_file():
                return plain

        return self._by_title(directory, name)

    def _supplemental(self, directory: Path, base: str) -> Optional[Path]:
        suffix = config.SUPPLEMENTAL_SUFFIX
        ext = config.SIDECAR_EXT

        full = directory / f"{base}.{suffix}{ext}"
        if full.is_file():
            return full

        # Truncated variants, longest first
        names = set(self._listing(directory))
        for length in range(len(suffix) - 1, config.SUPPLEMENTAL_MIN_PREFIX - 1, -1):
            candidate = f"{base}.{suffix[:length]}{ext}"
            if candidate in names and (directory / candidate).is_file():
                return directory / candidate
        return None

    def _listing(self, directory: Path) -> List[str]:
        if directory not in self.cache.listings:
            try:
                self.cache.listings[directory] = sorted(
                    p.name for p in directory.iterdir()
                    if p.suffix.lower() == config.SIDECAR_EXT
                )
            except OSError as e:
                raise SidecarAssociationError(f"Cannot list {directory}: {e}") from e
        return self.cache.listings[directory]

    def _by_title(self, directory: Path, media_name: str) -> Optional[Path]:
        if directory not in self.cache.titles:
            self.cache.titles[directory] = self._build_title_index(directory)
        hit = self.cache.titles[directory].get(normalize_name(media_name))
        if hit and hit.is_file():
            logging.debug(f"Title match {media_name} -> {hit.name}")
            return hit
        return None

    def _build_title_index(self, directory: Path) -> Dict[str, Path]:
        index: Dict[str, Path] = {}
        for json_name in self._listing(directory):
            path = directory / json_name
            try:
                with path.open('r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError):
                continue
            title = data.get('title') if isinstance(data, dict) else None
            if isinstance(title, str) and title.strip():
                # First document (sorted by name) wins a tie
                index.setdefault(normalize_name(title), path)
        return index

    def is_shared(self, sidecar_path: Path, media_path: Path) -> bool:
        """
        True when another media file still in the same directory resolves
        to sidecar_path, e.g. live.jpg and live.mp4 both matching live.json.
        """
        directory = sidecar_path.parent
        if directory not in self.cache.titles:
            self.cache.titles[directory] = self._build_title_index(directory)
        titles = self.cache.titles[directory]
        title_keys = {key for key, path in titles.items() if path == sidecar_path}

        for name in self._media_listing(directory):
            if name == media_path.name:
                continue
            # Only a name prefix or a title can lead to this document
            stem = Path(name).stem
            if not (sidecar_path.name.startswith(stem + '.') or normalize_name(name) in title_keys):
                continue
            other = directory / name
            if other.is_file() and self.locate(other) == sidecar_path:
                return True
        return False

    def _media_listing(self, directory: Path) -> List[str]:
        if directory not in self.cache.media:
            try:
                self.cache.media[directory] = sorted(
                    p.name for p in directory.iterdir()
                    if p.suffix.lower() in config.EXT_TO_KIND and not p.name.startswith('._')
                )
            except OSError as e:
                raise SidecarAssociationError(f"Cannot list {directory}: {e}") from e
        return self.cache.media[directory]
