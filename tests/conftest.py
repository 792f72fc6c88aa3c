import pytest
from pathlib import Path

from photo_dedup.models import MetadataRecord


class FakeExifTool:
    """Stands in for the exiftool binary: canned tags per path, no subprocess."""

    def __init__(self, tags=None, payloads=None):
        self.tags = {str(k): v for k, v in (tags or {}).items()}
        self.payloads = {str(k): v for k, v in (payloads or {}).items()}
        self.calls = []

    def lookup(self, paths):
        self.calls.append([str(p) for p in paths])
        if not all(str(p) in self.tags for p in paths):
            return []
        return [dict(self.tags[str(p)]) for p in paths]

    def strip_metadata(self, path):
        return self.payloads.get(str(path))

    def video_tags(self, path):
        found = self.lookup([path])
        return found[0] if found else None


@pytest.fixture
def archive(tmp_path):
    """Archive root laid out as sortedByYear/<year>/."""
    root = tmp_path / "sortedByYear"
    for year in ("2019", "2020"):
        (root / year).mkdir(parents=True)
    return root


@pytest.fixture
def make_file():
    def _make(path: Path, size: int = 100) -> str:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size)
        return str(path)
    return _make


@pytest.fixture
def make_record(make_file):
    """Writes a file of `size` bytes and returns a record for it."""
    def _make(path: Path, size: int = 100, **fields) -> MetadataRecord:
        if not fields:
            fields = {'DateTimeOriginal': '2019:07:01 10:00:00', 'ISO': 100, 'ExposureTime': '1/60'}
        return MetadataRecord(path=make_file(path, size), size=size, fields=fields)
    return _make


@pytest.fixture
def fake_exiftool():
    return FakeExifTool
