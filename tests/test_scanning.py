import hashlib
from pathlib import Path

import pytest

from photo_dedup.metadata.extract import MetadataExtractor
from photo_dedup.models import DedupOptions
from photo_dedup.scanning.filesystem import DiskScanner, key_part
from photo_dedup.scanning.hasher import ImageHasher

BIG = 200001


def _tags(monkeypatch, tags_by_name):
    # Mock MetadataExtractor to avoid reading real JPEGs in unit tests
    monkeypatch.setattr(MetadataExtractor, "get_image_tags",
                        lambda self, p: dict(tags_by_name.get(Path(p).name, {})))


def test_iter_files_is_ordered_and_recursive(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "b" / "2.jpg").write_bytes(b"2")
    (tmp_path / "a" / "1.jpg").write_bytes(b"1")
    (tmp_path / "top.jpg").write_bytes(b"t")

    scanner = DiskScanner(DedupOptions())
    files = [p.relative_to(tmp_path).as_posix() for p in scanner._iter_files(tmp_path)]

    assert files == ["top.jpg", "a/1.jpg", "b/2.jpg"]


def test_plausible_large_photo_keyed_by_date(monkeypatch, tmp_path, make_file, fake_exiftool):
    make_file(tmp_path / "IMG_1.jpg", BIG)
    _tags(monkeypatch, {"IMG_1.jpg": {'DateTimeOriginal': '2019:07:01 10:00:00', 'ISO': 100}})
    exiftool = fake_exiftool()

    results = list(DiskScanner(DedupOptions(), exiftool=exiftool).scan_photos(tmp_path))

    assert len(results) == 1
    key, record = results[0]
    assert key == "2019:07:01 10:00:00"
    assert record.size == BIG
    assert record.fields == {'DateTimeOriginal': '2019:07:01 10:00:00', 'ISO': 100}
    assert exiftool.calls == []


def test_modify_date_stands_in_for_missing_capture_date(monkeypatch, tmp_path, make_file, fake_exiftool):
    # year comes from the file name since there is no capture date
    make_file(tmp_path / "IMG_20180101.jpg", BIG)
    _tags(monkeypatch, {"IMG_20180101.jpg": {'ModifyDate': '2018:01:01 00:00:00'}})
    key, _ = next(DiskScanner(DedupOptions(), exiftool=fake_exiftool()).scan_photos(tmp_path))
    assert key == "2018:01:01 00:00:00"


def test_small_photo_gets_dimension_disambiguator(monkeypatch, tmp_path, make_file, fake_exiftool):
    path = Path(make_file(tmp_path / "IMG_1.jpg", 1000)).resolve()
    _tags(monkeypatch, {"IMG_1.jpg": {'DateTimeOriginal': '2019:07:01 10:00:00'}})
    exiftool = fake_exiftool(tags={path: {'ImageSize': '640x480', 'ISO': 50, 'FileModifyDate': 'noise'}})

    key, record = next(DiskScanner(DedupOptions(), exiftool=exiftool).scan_photos(tmp_path))

    assert key == "2019:07:01 10:00:00 (2019) - (640x480)"
    assert record.fields['ISO'] == 50
    assert record.fields['ImageSize'] == '640x480'
    assert 'FileModifyDate' not in record.fields


def test_missing_date_renders_undefined(monkeypatch, tmp_path, make_file, fake_exiftool):
    make_file(tmp_path / "holiday.jpg", BIG)
    _tags(monkeypatch, {"holiday.jpg": {'ISO': 100}})

    key, _ = next(DiskScanner(DedupOptions(), exiftool=fake_exiftool()).scan_photos(tmp_path))
    assert key == "undefined (undefined) - (undefined)"


def test_implausible_year_gets_disambiguator(monkeypatch, tmp_path, make_file, fake_exiftool):
    make_file(tmp_path / "IMG_1.jpg", BIG)
    _tags(monkeypatch, {"IMG_1.jpg": {'DateTimeOriginal': '1990:01:01 00:00:00'}})

    key, _ = next(DiskScanner(DedupOptions(), exiftool=fake_exiftool()).scan_photos(tmp_path))
    assert key == "1990:01:01 00:00:00 (1990) - (undefined)"


def test_non_jpeg_and_tagless_files_are_skipped(monkeypatch, tmp_path, make_file, fake_exiftool):
    make_file(tmp_path / "notes.txt", BIG)
    make_file(tmp_path / "raw.cr2", BIG)
    make_file(tmp_path / "empty.jpg", BIG)
    _tags(monkeypatch, {})

    assert list(DiskScanner(DedupOptions(), exiftool=fake_exiftool()).scan_photos(tmp_path)) == []


def test_hash_mode_fingerprints_photos(monkeypatch, tmp_path, make_file, fake_exiftool):
    path = Path(make_file(tmp_path / "IMG_1.jpg", BIG)).resolve()
    _tags(monkeypatch, {"IMG_1.jpg": {'DateTimeOriginal': '2019:07:01 10:00:00'}})
    exiftool = fake_exiftool(payloads={path: b"pixels"})

    _, record = next(DiskScanner(DedupOptions(hash=True), exiftool=exiftool).scan_photos(tmp_path))
    assert record.hash == hashlib.sha256(b"pixels").hexdigest()


def test_video_key_prefers_track_duration(tmp_path, make_file, fake_exiftool):
    path = Path(make_file(tmp_path / "VID_1.mp4", 500)).resolve()
    exiftool = fake_exiftool(tags={path: {
        'MediaCreateDate': '2020:01:01 00:00:00', 'TrackDuration': '12.50 s',
        'Duration': '12.52 s', 'FileName': 'VID_1.mp4',
    }})

    key, record = next(DiskScanner(DedupOptions(), exiftool=exiftool).scan_videos(tmp_path))

    assert key == "2020:01:01 00:00:00 DUR:12.50 s"
    assert 'FileName' not in record.fields
    assert record.fields['Duration'] == '12.52 s'


def test_video_without_tags_is_skipped(tmp_path, make_file, fake_exiftool, monkeypatch):
    make_file(tmp_path / "VID_1.mov", 500)
    make_file(tmp_path / "IMG_1.jpg", 500)
    exiftool = fake_exiftool()
    monkeypatch.setattr(exiftool, "video_tags", lambda p: None)

    assert list(DiskScanner(DedupOptions(), exiftool=exiftool).scan_videos(tmp_path)) == []


def test_video_missing_date_is_undefined(tmp_path, make_file, fake_exiftool):
    path = Path(make_file(tmp_path / "clip.mov", 500)).resolve()
    exiftool = fake_exiftool(tags={path: {'Duration': 3.2}})

    key, _ = next(DiskScanner(DedupOptions(), exiftool=exiftool).scan_videos(tmp_path))
    assert key == "undefined DUR:3.2"


@pytest.mark.parametrize("value,expected", [
    (None, "undefined"),
    ("", "undefined"),
    ("640x480", "640x480"),
    (2019, "2019"),
])
def test_key_part(value, expected):
    assert key_part(value) == expected


def test_hasher_uses_stripped_payload(fake_exiftool):
    hasher = ImageHasher(fake_exiftool(payloads={"/a.jpg": b"abc"}))
    assert hasher.compute_hash("/a.jpg") == hashlib.sha256(b"abc").hexdigest()
    assert hasher.compute_hash("/missing.jpg") is None


def test_overlapping_roots_are_walked_once(monkeypatch, archive, make_file, fake_exiftool, caplog):
    make_file(archive / "2019" / "IMG_1.jpg", BIG)
    _tags(monkeypatch, {"IMG_1.jpg": {'DateTimeOriginal': '2019:07:01 10:00:00', 'ISO': 100}})
    scanner = DiskScanner(DedupOptions(), exiftool=fake_exiftool())

    first = list(scanner.scan_photos(archive))
    second = list(scanner.scan_photos(archive / "2019"))

    assert [Path(r.path).name for _, r in first] == ["IMG_1.jpg"]
    assert second == []
    assert "Already saw directory" in caplog.text
