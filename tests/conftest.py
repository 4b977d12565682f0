import json
import os
import pytest
from datetime import datetime
from pathlib import Path

from takeout_organizer import config
from takeout_organizer.config import RunSettings
from takeout_organizer.core import TakeoutOrganizerApp


class FakeExtractor:
    """Stands in for exifread/pymediainfo; answers by file name."""
    def __init__(self):
        self.capture = {}
        self.media_property = {}
        self.calls = []

    def try_extract_capture_time(self, path):
        self.calls.append(("capture", path.name))
        return self.capture.get(path.name)

    def get_media_property_time(self, path):
        self.calls.append(("property", path.name))
        return self.media_property.get(path.name)


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(config, "RETRY_BASE_DELAY", 0)


@pytest.fixture
def settings():
    """Run pinned to 2026 so suspect/future checks are deterministic."""
    return RunSettings(suspect_year=2026, current_year=2026)


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def library(tmp_path):
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def app(library, settings, extractor):
    a = TakeoutOrganizerApp(library, settings, extractor)
    a.index.load()
    return a


@pytest.fixture
def make_media():
    """Writes a media file with an mtime in the given year."""
    def _make(path: Path, data: bytes = b"\xff\xd8pixels", year: int = 2015) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        ts = datetime(year, 6, 1, 12, 0, 0).timestamp()
        os.utime(path, (ts, ts))
        return path
    return _make


@pytest.fixture
def make_sidecar():
    """Writes a Takeout-style JSON document."""
    def _make(path: Path, taken=None, created=None, title=None, **extra) -> Path:
        doc = dict(extra)
        if title is not None:
            doc["title"] = title
        if taken is not None:
            doc["photoTakenTime"] = {"timestamp": str(taken)}
        if created is not None:
            doc["creationTime"] = {"timestamp": str(created)}
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(doc, ensure_ascii=False), encoding="utf-8")
        return path
    return _make
