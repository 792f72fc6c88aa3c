"""
Year-correctness: does a file live under the archive directory for the year
it was taken?

The capture year is resolved through a fixed chain of fallbacks. The order
is load-bearing: existing archives were filed by it, so rules are applied
exactly as listed in `YearClassifier.year_taken`.
"""
import logging
import re
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .. import config
from ..metadata.sidecar import read_sidecar_year
from ..models import ClassificationResult

EXIF_DATE_RE = re.compile(r'\d{4}:\d\d:\d\d \d\d:\d\d:\d\d')
YEAR_RE = re.compile(r'^\d{4}$')
# VID_2022-03-04, PXL-20220304, IMG_19991231
PREFIXED_YEAR_RE = re.compile(r'^[A-Z\-_]+[12][90]\d\d')
PREFIX_YEAR_RE = re.compile(r'^[A-Z\-_]+(\d{4})')
# 20220304_120000
BARE_YEAR_RE = re.compile(r'^20\d\d')


def extract_year_from_filename(filename: str) -> Optional[str]:
    """Best-effort year from camera-style file names."""
    filename = str(filename)
    if config.NO_YEAR_PREFIX in filename:
        return None
    base = re.sub(r'^.+/', '', filename)
    if PREFIXED_YEAR_RE.match(base):
        return PREFIX_YEAR_RE.match(base).group(1)
    if BARE_YEAR_RE.match(base):
        return base[:4]
    return None


def parse_flexible_date(dt_str: str) -> Optional[datetime]:
    """
    Handles the date shapes seen in keys and tags (ISO, EXIF, UTC suffixes).
    Returns None when nothing fits.
    """
    if not dt_str:
        return None
    clean = dt_str.replace("UTC", "").strip()
    if clean.endswith("Z"):
        clean = clean[:-1]

    try:
        return datetime.fromisoformat(clean)
    except ValueError:
        pass

    clean_exif = clean.replace(":", "-", 2).split(".")[0]
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d", "%Y/%m/%d %H:%M:%S", "%Y/%m/%d"):
        try:
            return datetime.strptime(clean_exif, fmt)
        except ValueError:
            continue
    return None


def _valid_year(value: Any) -> Optional[str]:
    """A usable year is four digits and not all zeros."""
    if value is None:
        return None
    text = str(value)
    if YEAR_RE.match(text) and int(text) != 0:
        return text
    return None


def _leading_year(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return _valid_year(value.year)
    return _valid_year(str(value)[:4])


def _before_colon(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _valid_year(re.sub(r':.+$', '', str(value)))


def years_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Loose equality: '2019' matches 2019 and '02019'."""
    if a is None or b is None:
        return False
    sa, sb = str(a), str(b)
    if sa.isdigit() and sb.isdigit():
        return int(sa) == int(sb)
    return sa == sb


class YearClassifier:
    def __init__(self, archive_root: str = config.ARCHIVE_ROOT):
        self.archive_root = archive_root
        self._dir_re = re.compile(re.escape(archive_root) + r'/([^/]+)')

    def classify(self, path, metadata: Any) -> ClassificationResult:
        """
        `metadata` is either a tag mapping or a raw string (typically the
        partition key the file was grouped under).
        """
        path_str = Path(path).as_posix()
        year_taken = self.year_taken(path_str, metadata)

        file_year = self.file_year(path_str)
        if file_year is None:
            logging.log(config.TRACE, f"File does not appear in {self.archive_root}: {path_str} - not correct year")
            return ClassificationResult(is_ok=False, year_taken=year_taken, file_year=None)

        logging.log(config.TRACE, f"directory YEAR: {file_year}, year taken: {year_taken} - file: {path_str}")
        return ClassificationResult(
            is_ok=years_equal(file_year, year_taken),
            year_taken=year_taken,
            file_year=file_year,
        )

    def file_year(self, path) -> Optional[str]:
        matches = self._dir_re.search(Path(path).as_posix())
        return matches.group(1) if matches else None

    def year_taken(self, path: str, metadata: Any) -> Optional[str]:
        # 1. Sidecar JSON
        year = _valid_year(read_sidecar_year(path))
        tags = metadata if isinstance(metadata, Mapping) else {}

        # 2. Raw string metadata
        if not year and isinstance(metadata, str):
            logging.log(config.TRACE, f"String exif: {metadata}")
            if EXIF_DATE_RE.search(metadata):
                year = _before_colon(metadata)
            else:
                parsed = parse_flexible_date(metadata)
                year = _valid_year(parsed.year) if parsed else None
                if not year:
                    logging.debug(f"Unable to get date from: {metadata}")

        # 3. Primary capture timestamp
        if not year:
            year = _leading_year(tags.get('DateTimeOriginal'))

        # 4. Media creation timestamp
        if not year:
            year = _leading_year(tags.get('MediaCreateDate'))

        # 5. Camera flagged its own clock as wrong; trust the filename instead
        warning = tags.get(config.WARNING_FIELD)
        if warning and config.INCORRECT_TIME_WARNING in str(warning):
            name_year = extract_year_from_filename(path)
            if name_year and name_year != year:
                logging.warning(f"Using file year rather than exif due to warning: {path} - "
                                f"file year: {name_year} - exif year: {year}, warn: {warning}")
                year = name_year

        # 6. Secondary creation date
        if not year:
            year = _before_colon(tags.get('CreationDate'))

        # 7. Filename
        if not year:
            year = extract_year_from_filename(path)

        return year
