import os
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Set, Tuple

from .. import config
from ..matching.classify import YearClassifier
from ..metadata.exiftool import ExifTool
from ..metadata.extract import MetadataExtractor
from ..models import DedupOptions, MetadataRecord
from .hasher import ImageHasher


def key_part(value: Any) -> str:
    if value is None or value == '':
        return config.UNDEFINED_KEY
    return str(value)


class DiskScanner:
    """
    Walks source directories and turns every supported file into a
    (partition key, MetadataRecord) pair.
    """

    def __init__(self,
                 options: DedupOptions,
                 extractor: Optional[MetadataExtractor] = None,
                 exiftool: Optional[ExifTool] = None,
                 hasher: Optional[ImageHasher] = None,
                 classifier: Optional[YearClassifier] = None):
        self.options = options
        self.fields = options.record_fields()
        self.extractor = extractor or MetadataExtractor(self.fields)
        self.exiftool = exiftool or ExifTool()
        self.hasher = hasher or ImageHasher(self.exiftool)
        self.classifier = classifier or YearClassifier(options.archive_root)
        # realpaths already walked, per media kind, across every root of a run
        self._seen_photo_dirs: Set[str] = set()
        self._seen_video_dirs: Set[str] = set()

    def scan_photos(self, root: Path) -> Iterator[Tuple[str, MetadataRecord]]:
        """Generator over JPEGs under root, keyed by capture time."""
        for path in self._iter_files(Path(root).resolve(), self._seen_photo_dirs):
            if path.suffix.lower() not in config.JPEG_EXTS:
                logging.log(config.TRACE, f"not getting non JPEG: {path}")
                continue
            try:
                item = self._process_photo(path)
            except OSError as e:
                logging.error(f"Error reading file {path}: {e}")
                continue
            if item:
                yield item

    def scan_videos(self, root: Path) -> Iterator[Tuple[str, MetadataRecord]]:
        """Generator over videos under root, keyed by creation time + duration."""
        for path in self._iter_files(Path(root).resolve(), self._seen_video_dirs):
            if path.suffix.lower() not in config.VIDEO_EXTS:
                logging.log(config.TRACE, f"not getting non movie: {path}")
                continue
            try:
                item = self._process_video(path)
            except OSError as e:
                logging.error(f"Error getting file {path}: {e}")
                continue
            if item:
                yield item

    def scan_file(self, path: Path) -> Optional[Tuple[str, MetadataRecord]]:
        """Key and record for a single photo or video, or None if it has no usable tags."""
        path = Path(path).resolve()
        suffix = path.suffix.lower()
        if suffix in config.JPEG_EXTS:
            return self._process_photo(path)
        if suffix in config.VIDEO_EXTS:
            return self._process_video(path)
        logging.warning(f"Not a JPEG or video: {path}")
        return None

    def _process_photo(self, path: Path) -> Optional[Tuple[str, MetadataRecord]]:
        size = path.stat().st_size
        logging.debug(f"Getting info for: {path}")
        tags = self.extractor.get_image_tags(path)
        if not tags:
            return None

        fields = {k: tags[k] for k in self.fields if k in tags}
        record = MetadataRecord(path=str(path), size=size, fields=fields)
        if self.options.hash:
            record.hash = self.hasher.compute_hash(path)

        date_taken = tags.get('DateTimeOriginal') or tags.get('ModifyDate')
        year_taken = self.classifier.classify(path, tags).year_taken
        if self._needs_disambiguator(date_taken, year_taken, size):
            # Key alone is too weak here; pin it down with the image dimensions.
            found = self.exiftool.lookup([path])
            exif_data: Dict[str, Any] = found[0] if found else {}
            for name in self.fields:
                if name in exif_data:
                    record.fields[name] = exif_data[name]
            key = f"{key_part(date_taken)} ({key_part(year_taken)}) - ({key_part(exif_data.get('ImageSize'))})"
        else:
            key = str(date_taken)

        logging.log(config.TRACE, f"using key: {key}")
        return key, record

    def _process_video(self, path: Path) -> Optional[Tuple[str, MetadataRecord]]:
        size = path.stat().st_size
        logging.debug(f"Getting video info for: {path}")
        tags = self.exiftool.video_tags(path)
        if not tags:
            return None

        record = MetadataRecord(path=str(path), size=size, fields=dict(tags))
        if self.options.hash:
            record.hash = self.hasher.compute_hash(path)

        created = tags.get('DateTimeOriginal') or tags.get('MediaCreateDate')
        duration = tags.get('TrackDuration') or tags.get('Duration')
        return f"{key_part(created)} DUR:{key_part(duration)}", record

    def _needs_disambiguator(self, date_taken: Any, year_taken: Optional[str], size: int) -> bool:
        if not date_taken or not year_taken:
            return True
        year = int(year_taken)
        if year < config.MIN_PLAUSIBLE_YEAR or year > config.MAX_PLAUSIBLE_YEAR:
            return True
        return size < config.SMALL_FILE_THRESHOLD

    def _iter_files(self, root: Path, seen: Optional[Set[str]] = None) -> Iterator[Path]:
        """Depth-first walker using os.scandir for speed. Directories in `seen` are skipped."""
        seen = set() if seen is None else seen
        stack = [root]
        while stack:
            current = stack.pop()
            real = os.path.realpath(current)
            if real in seen:
                logging.warning(f"Already saw directory: {current}")
                continue
            seen.add(real)
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logging.warning(f"Cannot read directory {current}: {e}")
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
