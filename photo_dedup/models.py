from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from . import config
from .exceptions import ConfigurationError


@dataclass
class MetadataRecord:
    """
    One file's duplicate-relevant attributes.

    `fields` only ever holds allow-listed tags; deny-listed keys are dropped
    on construction so no comparison can see them.
    """
    path: str
    size: int
    fields: Dict[str, Any] = field(default_factory=dict)
    hash: Optional[str] = None

    def __post_init__(self):
        self.fields = {k: v for k, v in self.fields.items() if k not in config.OMIT_FIELDS}

    def comparable(self) -> Dict[str, Any]:
        """The mapping the comparator walks: size, fields and hash (if any)."""
        view: Dict[str, Any] = {'size': self.size}
        view.update(self.fields)
        if self.hash is not None:
            view['hash'] = self.hash
        return view

    def to_dict(self) -> Dict[str, Any]:
        """Flat form used by the saved index (filepath + size + tags)."""
        data: Dict[str, Any] = {'filepath': self.path, 'size': self.size}
        data.update(self.fields)
        if self.hash is not None:
            data['hash'] = self.hash
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetadataRecord':
        rest = dict(data)
        path = rest.pop('filepath')
        size = rest.pop('size', 0)
        digest = rest.pop('hash', None)
        return cls(path=path, size=size, fields=rest, hash=digest)


@dataclass
class ClassificationResult:
    is_ok: bool
    year_taken: Optional[str]
    file_year: Optional[str]


@dataclass
class DedupOptions:
    """Operator switches, as parsed from the command line."""
    compare: bool = False
    stats: bool = False
    exiftool: bool = False
    hash: bool = False
    delete: bool = False
    move: bool = False
    move_dir: Optional[str] = None
    keep_match: Optional[str] = None
    delete_match: List[str] = field(default_factory=list)
    skip: List[str] = field(default_factory=list)
    only: bool = False
    picasa: bool = False
    no_thumb: bool = False
    undefined: bool = False
    no_year: bool = False
    close_size: bool = False
    archive_root: str = config.ARCHIVE_ROOT

    def record_fields(self) -> List[str]:
        fields = list(config.EXIF_FIELDS)
        if not self.no_thumb:
            fields.append(config.THUMBNAIL_FIELD)
        return fields

    def picasa_fields(self) -> List[str]:
        fields = list(config.PICASA_FIELDS)
        if not self.no_thumb:
            fields.append(config.THUMBNAIL_FIELD)
        return fields

    def is_skipped(self, path: str) -> bool:
        return any(s in path for s in self.skip)

    def matches_keep(self, path: str) -> bool:
        return bool(self.keep_match) and self.keep_match in path

    def matches_delete(self, path: str) -> bool:
        return any(m in path for m in self.delete_match)

    def validate(self):
        if self.move and not self.move_dir:
            raise ConfigurationError("Must have movedir option with move. Not moving files")


@dataclass
class RunStats:
    duplicates: int = 0
    deleted: int = 0
    would_delete: int = 0
    bytes_reclaimed: int = 0
    refused: int = 0
    hash_anomalies: int = 0
    moved: int = 0


@dataclass
class DedupContext:
    """
    State shared by one run: the operator's options, the partition index
    and the run-wide counters. Components receive it instead of reaching
    for globals.
    """
    options: DedupOptions
    index: Any = None
    stats: RunStats = field(default_factory=RunStats)

    def records(self) -> Iterable[MetadataRecord]:
        if self.index is None:
            return []
        return self.index.records()
