import pytest
from pathlib import Path

from takeout_organizer.database.badlog import BadFileLog
from takeout_organizer.database.index import ContentAddressedIndex, to_relative
from takeout_organizer.exceptions import ErrorKind, IndexIntegrityError, IndexLogError


def test_insert_and_lookup(library):
    index = ContentAddressedIndex(library)
    index.load()

    index.insert("h1", "2014/a.jpg", 100)
    rec = index.lookup("h1")

    assert rec.path == "2014/a.jpg"
    assert rec.best_score == 100
    assert index.lookup("missing") is None
    assert index.absolute(rec) == library / "2014" / "a.jpg"


def test_insert_of_known_hash_must_go_through_update(library):
    index = ContentAddressedIndex(library)
    index.load()
    index.insert("h1", "2014/a.jpg", -1)

    with pytest.raises(IndexIntegrityError):
        index.insert("h1", "2015/a.jpg", -1)
    with pytest.raises(IndexIntegrityError):
        index.update("h2", "2015/b.jpg", -1)


def test_reload_last_row_wins_and_history_is_kept(library):
    index = ContentAddressedIndex(library)
    index.load()
    index.insert("h1", "2027/a.jpg", -1)
    index.insert("h2", "2010/b.jpg", 60)
    index.update("h1", "2027/a.jpg", 100)
    index.update("h1", "2021/a.jpg", 100)

    reloaded = ContentAddressedIndex(library)
    assert reloaded.load() == 2
    assert reloaded.lookup("h1").path == "2021/a.jpg"
    assert reloaded.lookup("h1").best_score == 100
    assert reloaded.lookup("h2").path == "2010/b.jpg"

    # Nothing rewritten in place
    lines = index.log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    assert lines[0].startswith("h1\t2027/a.jpg")


def test_load_tolerates_legacy_and_malformed_rows(library):
    log = library / "_index.tsv"
    log.write_text("h1\t2012/a.jpg\n"
                   "garbage-without-tabs\n"
                   "\n"
                   "h2\t2013/b.jpg\tnot-a-number\n", encoding="utf-8")

    index = ContentAddressedIndex(library)
    assert index.load() == 2
    assert index.lookup("h1").best_score == -1
    assert index.lookup("h2").best_score == -1


def test_paths_with_tabs_survive_reload(library):
    index = ContentAddressedIndex(library)
    index.load()
    index.insert("h1", "2014/odd\tname.jpg", 5)

    reloaded = ContentAddressedIndex(library)
    reloaded.load()
    assert reloaded.lookup("h1").path == "2014/odd\tname.jpg"


def test_unopenable_log_is_fatal(library):
    (library / "_index.tsv").mkdir()
    with pytest.raises(IndexLogError):
        ContentAddressedIndex(library).load()


def test_to_relative_uses_forward_slashes(library):
    assert to_relative(library, library / "Uncertain" / "FS_2015" / "a.jpg") == "Uncertain/FS_2015/a.jpg"


def test_bad_file_log_rows(library):
    bad = BadFileLog(library)
    bad.record(ErrorKind.HASH, Path("/src/a.jpg"), "Permission denied\n(retry exhausted)")
    bad.record(ErrorKind.MOVE, Path("/src/b.jpg"), "disk full")

    rows = [line.split("\t") for line in bad.log_path.read_text(encoding="utf-8").splitlines()]
    assert rows[0] == ["HashComputationFailure", "/src/a.jpg", "Permission denied (retry exhausted)"]
    assert rows[1][0] == "MoveOrCopyFailure"
    assert bad.total == 2


def test_bad_file_log_escapes_paths(library):
    bad = BadFileLog(library)
    bad.record(ErrorKind.SIDECAR, Path("/src/odd\tname\n.jpg"), "no sidecar")

    lines = bad.log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert lines[0].split("\t") == ["SidecarAssociationFailure", "/src/odd\\tname\\n.jpg", "no sidecar"]
