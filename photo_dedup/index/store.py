"""
Saved partition index: a JSON object mapping partition key -> list of
flat record dicts (`filepath`, `size`, tags..., optional `hash`).
"""
import base64
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable

from ..exceptions import IndexFormatError
from ..models import MetadataRecord
from .partition import PartitionIndex


def encode_value(value: Any) -> Any:
    # Binary tags are written as base64 and stay opaque strings on reload
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode('ascii')
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def save_index(index: PartitionIndex, path: Path):
    logging.info(f"Saving to {path}")
    data = {key: [r.to_dict() for r in records] for key, records in index.partitions.items()}
    with Path(path).open('w', encoding='utf-8') as f:
        json.dump(data, f, default=encode_value, indent=2)


def load_index(path: Path) -> PartitionIndex:
    logging.info(f"loading {path}")
    try:
        with Path(path).open('r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise IndexFormatError(f"Cannot read index {path}: {e}") from e

    if not isinstance(data, dict):
        raise IndexFormatError(f"Index {path} is not a JSON object")

    index = PartitionIndex()
    for key, items in data.items():
        if not isinstance(items, list):
            raise IndexFormatError(f"Index {path}: entry {key!r} is not a list")
        for item in items:
            try:
                index.add(key, MetadataRecord.from_dict(item))
            except (KeyError, TypeError, AttributeError) as e:
                raise IndexFormatError(f"Index {path}: bad record under {key!r}: {e}") from e
    return index


def load_indexes(paths: Iterable[Path]) -> PartitionIndex:
    """
    Loads and merges several saved indexes. A file that cannot be read is
    logged and skipped; the others still load.
    """
    merged = PartitionIndex()
    for path in paths:
        try:
            merged.merge(load_index(path))
        except IndexFormatError as e:
            logging.error(str(e))
    return merged
