import csv

from takeout_organizer.reporting import ReportGenerator


def test_source_report_statuses(app, tmp_path, make_media):
    src = tmp_path / "src"
    make_media(src / "IMG_20140512_1000.jpg", data=b"placed")
    app.organize(src)

    make_media(src / "again.jpg", data=b"placed")
    make_media(src / "fresh.jpg", data=b"new bytes")
    make_media(src / "skip" / "hidden.jpg", data=b"hidden")
    (src / "notes.txt").write_text("not media")

    output_csv = tmp_path / "report.csv"
    ReportGenerator(app.index).generate_source_report(str(src), str(output_csv), skip_dirs={src / "skip"})

    with open(output_csv, newline="", encoding="utf-8") as f:
        rows = {row["Source Path"]: row for row in csv.DictReader(f)}

    assert set(rows) == {str(src / "again.jpg"), str(src / "fresh.jpg")}
    assert rows[str(src / "again.jpg")]["Status"] == "Duplicate"
    assert rows[str(src / "again.jpg")]["Representative Path"] == "2014/IMG_20140512_1000.jpg"
    assert rows[str(src / "fresh.jpg")]["Status"] == "Not In Index"


def test_report_marks_representatives_as_placed(app, tmp_path, make_media):
    make_media(tmp_path / "src" / "IMG_20140512_1000.jpg")
    app.organize(tmp_path / "src")

    output_csv = tmp_path / "report.csv"
    ReportGenerator(app.index).generate_source_report(str(app.root), str(output_csv))

    with open(output_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    assert [r["Status"] for r in rows] == ["Placed"]
