import logging
from collections import defaultdict
from typing import Dict, Iterator, List, Tuple

from .. import config
from ..models import MetadataRecord


def is_undefined_key(key: str) -> bool:
    return not key or config.UNDEFINED_KEY in key


class PartitionIndex:
    """
    Candidate-duplicate buckets: partition key -> records.

    Keys are either derived capture-time strings or content hashes
    (see `by_hash`). Insertion order within a bucket carries no meaning;
    the resolver re-sorts each bucket before comparing.
    """

    def __init__(self):
        self.partitions: Dict[str, List[MetadataRecord]] = defaultdict(list)

    def add(self, key: str, record: MetadataRecord):
        self.partitions[key].append(record)

    def extend(self, key: str, records: List[MetadataRecord]):
        self.partitions[key].extend(records)

    def merge(self, other: 'PartitionIndex'):
        """Concatenates same-keyed buckets."""
        for key, records in other.partitions.items():
            self.extend(key, records)

    def records(self) -> Iterator[MetadataRecord]:
        for records in self.partitions.values():
            yield from records

    def by_hash(self) -> 'PartitionIndex':
        """Re-keys every record by its content hash (missing hash -> 'undefined')."""
        logging.debug("Converting time index to hash index")
        rekeyed = PartitionIndex()
        for record in self.records():
            rekeyed.add(record.hash or config.UNDEFINED_KEY, record)
        return rekeyed

    def comparable(self, include_undefined: bool = False) -> Iterator[Tuple[str, List[MetadataRecord]]]:
        """
        Buckets worth resolving. Undefined-key buckets are only offered when
        the operator asked for them.
        """
        for key, records in self.partitions.items():
            if is_undefined_key(key):
                if include_undefined:
                    logging.debug(f"Fileset to compare (with undefined):\t{len(records)}\t{key}")
                    yield key, records
            elif len(records) > 1:
                logging.debug(f"Fileset to compare:\t{len(records)}\t{key}")
                yield key, records

    def __len__(self) -> int:
        return len(self.partitions)

    def __contains__(self, key: str) -> bool:
        return key in self.partitions

    def __getitem__(self, key: str) -> List[MetadataRecord]:
        return self.partitions[key]
