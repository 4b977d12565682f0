import pytest
from datetime import datetime, timezone
from pathlib import Path

from takeout_organizer.metadata.sidecar import (
    SidecarCache,
    SidecarMatcher,
    normalize_name,
    parse_sidecar,
    score_sidecar,
)
from takeout_organizer.models import MediaCandidate, Sidecar


def _candidate(path: Path) -> MediaCandidate:
    return MediaCandidate(path=path, kind="image", mtime=0.0)


def test_matching_order(tmp_path, make_media, make_sidecar):
    media = make_media(tmp_path / "IMG_1.jpg")
    supp = make_sidecar(tmp_path / "IMG_1.jpg.supplemental-metadata.json")
    full = make_sidecar(tmp_path / "IMG_1.jpg.json")
    stem_supp = make_sidecar(tmp_path / "IMG_1.supplemental-metadata.json")
    stem = make_sidecar(tmp_path / "IMG_1.json")

    matcher = SidecarMatcher()
    assert matcher.locate(media) == supp
    supp.unlink()
    assert matcher.locate(media) == full
    full.unlink()
    assert matcher.locate(media) == stem_supp
    stem_supp.unlink()
    assert matcher.locate(media) == stem
    stem.unlink()
    assert matcher.locate(media) is None


def test_truncated_supplemental_suffix(tmp_path, make_media, make_sidecar):
    media = make_media(tmp_path / "20190503_142201_long_original_name.jpg")
    truncated = make_sidecar(tmp_path / "20190503_142201_long_original_name.jpg.supplemental-met.json")

    assert SidecarMatcher().locate(media) == truncated


def test_title_fallback_normalizes_names(tmp_path, make_media, make_sidecar):
    # Takeout wrote the title decomposed; our collision naming added __2
    media = make_media(tmp_path / "CAF\u00c9__2.jpg")
    doc = make_sidecar(tmp_path / "a1b2c3.json", title="Cafe\u0301.jpg", taken=1527811200)
    make_sidecar(tmp_path / "other.json", title="other.jpg")

    sidecar = SidecarMatcher().find(_candidate(media))
    assert sidecar.path == doc
    assert sidecar.primary_time.year == 2018


def test_title_scan_is_memoized_per_matcher(tmp_path, make_media, make_sidecar):
    first = make_media(tmp_path / "one.jpg")
    second = make_media(tmp_path / "two.jpg", data=b"two")

    matcher = SidecarMatcher(SidecarCache())
    assert matcher.locate(first) is None

    # Appears after the directory was scanned: invisible to this matcher
    make_sidecar(tmp_path / "x.json", title="two.jpg")
    assert matcher.locate(second) is None

    # A fresh matcher has its own cache
    assert SidecarMatcher().locate(second) == tmp_path / "x.json"


def test_normalize_name():
    assert normalize_name("IMG__12.JPG") == "img.jpg"
    assert normalize_name("IMG(1).jpg") == "img.jpg"
    assert normalize_name("Cafe\u0301.JPG") == normalize_name("caf\u00e9.jpg")
    assert normalize_name("a__b.jpg") == "a__b.jpg"


def test_parse_takeout_document(tmp_path, make_sidecar):
    path = make_sidecar(
        tmp_path / "p.jpg.json",
        taken=1700000000,
        created=1710000000,
        description="Beach",
        favorited=True,
        people=[{"name": "Ana"}, {"name": "Ben"}],
        geoData={"latitude": 0.0, "longitude": 0.0},
        geoDataExif={"latitude": 37.5, "longitude": 127.0},
    )
    sc = parse_sidecar(path)

    assert sc.primary_time == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert sc.secondary_time.year == 2024
    assert sc.has_geo
    assert (sc.latitude, sc.longitude) == (37.5, 127.0)
    assert sc.description == "Beach"
    assert sc.favorited is True
    assert sc.people == ["Ana", "Ben"]


def test_malformed_document_carries_no_evidence(tmp_path, make_media):
    media = make_media(tmp_path / "p.jpg")
    (tmp_path / "p.jpg.json").write_text('{"photoTakenTime": {"timest', encoding="utf-8")

    sc = SidecarMatcher().find(_candidate(media))
    assert sc is not None
    assert sc.parse_error
    assert sc.primary_time is None
    assert score_sidecar(sc) == 0


def test_bad_timestamp_field_is_ignored(tmp_path, make_sidecar):
    path = make_sidecar(tmp_path / "p.json", photoTakenTime={"timestamp": "soon"}, created=1559347200)
    sc = parse_sidecar(path)
    assert sc.primary_time is None
    assert sc.secondary_time.year == 2019


T = datetime(2020, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("sidecar, expected", [
    (None, -1),
    (Sidecar(path=Path("x.json")), 0),
    (Sidecar(path=Path("x.json"), primary_time=T), 100),
    (Sidecar(path=Path("x.json"), secondary_time=T), 60),
    (Sidecar(path=Path("x.json"), primary_time=T, secondary_time=T), 100),
    (Sidecar(path=Path("x.json"), latitude=0.0, longitude=0.0), 0),
    (Sidecar(path=Path("x.json"), latitude=1.0, longitude=0.0), 30),
    (Sidecar(path=Path("x.json"), description="hi"), 10),
    (Sidecar(path=Path("x.json"), favorited=True, people=["Ana"]), 10),
    (Sidecar(path=Path("x.json"), primary_time=T, latitude=1.0, longitude=2.0,
             description="hi", favorited=True, people=["Ana"]), 150),
])
def test_score_table(sidecar, expected):
    assert score_sidecar(sidecar) == expected


def test_stem_sidecar_is_shared_by_sibling_media(tmp_path, make_media, make_sidecar):
    jpg = make_media(tmp_path / "live.jpg")
    mp4 = make_media(tmp_path / "live.mp4", data=b"video")
    doc = make_sidecar(tmp_path / "live.json", taken=1527811200)
    make_media(tmp_path / "other.jpg", data=b"other")
    matcher = SidecarMatcher()

    assert matcher.is_shared(doc, jpg)
    assert matcher.is_shared(doc, mp4)

    mp4.unlink()
    assert not matcher.is_shared(doc, jpg)


def test_name_sidecar_is_not_shared(tmp_path, make_media, make_sidecar):
    jpg = make_media(tmp_path / "live.jpg")
    make_media(tmp_path / "live.mp4", data=b"video")
    doc = make_sidecar(tmp_path / "live.jpg.json", taken=1527811200)

    assert not SidecarMatcher().is_shared(doc, jpg)
