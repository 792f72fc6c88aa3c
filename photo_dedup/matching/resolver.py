import logging
import os
from typing import Any, List, Optional, Sequence, Set

from tqdm import tqdm

from .. import config
from ..metadata.exiftool import ExifTool
from ..models import DedupContext, MetadataRecord
from ..organization.guard import MutationGuard
from ..scanning.hasher import ImageHasher
from .classify import YearClassifier
from .compare import FieldComparator


class DuplicateResolver:
    """
    Decides, partition by partition, which near-identical copies go.

    Within a partition the members are sorted once and scanned pairwise in
    that fixed order; a record removed by a match is claimed and takes no
    further part, so a dry run and a live run reach the same decisions.
    """

    def __init__(self,
                 context: DedupContext,
                 comparator: Optional[FieldComparator] = None,
                 classifier: Optional[YearClassifier] = None,
                 guard: Optional[MutationGuard] = None,
                 exiftool: Optional[ExifTool] = None,
                 hasher: Optional[ImageHasher] = None):
        self.context = context
        self.options = context.options
        self.comparator = comparator or FieldComparator(self.options)
        self.classifier = classifier or YearClassifier(self.options.archive_root)
        self.guard = guard or MutationGuard(context)
        self.exiftool = exiftool or ExifTool()
        self.hasher = hasher or ImageHasher(self.exiftool)

    def resolve_all(self, index) -> int:
        """Runs every comparable partition of the index; returns the duplicate total."""
        dup_count = 0
        partitions = list(index.comparable(include_undefined=self.options.undefined))
        for key, records in tqdm(partitions, desc="Comparing"):
            try:
                dup_count += self.resolve_partition(records, key)
            except Exception:
                # one bad partition must not end the run
                logging.exception(f"error matching partition {key}")

        self.context.stats.duplicates += dup_count
        logging.info("============== Compare duplicates ================")
        logging.info(f"Number of duplicates: {dup_count}")
        return dup_count

    def order_candidates(self, records: Sequence[MetadataRecord]) -> List[MetadataRecord]:
        """
        Drops vanished, skipped and repeated files, then sorts: keep-substring
        first, delete-substring last, then names with '(' last.
        """
        candidates = []
        seen: Set[str] = set()
        for record in records:
            if not os.path.exists(record.path):
                logging.log(config.TRACE, f"not looking up because {record.path} does not exist")
                continue
            if self.options.is_skipped(record.path):
                logging.log(config.TRACE, f"not looking up because {record.path} is skipped")
                continue
            real = os.path.realpath(record.path)
            if real in seen:
                logging.warning(f"Already saw file: {record.path}")
                continue
            seen.add(real)
            candidates.append(record)

        # sort() is stable, so each tier only breaks ties left by the previous one
        candidates.sort(key=lambda r: (
            not self.options.matches_keep(r.path),
            self.options.matches_delete(r.path),
            '(' in r.path,
        ))
        return candidates

    def resolve_partition(self, records: Sequence[MetadataRecord], key: str) -> int:
        candidates = self.order_candidates(records)
        logging.log(config.TRACE, f"Filtered from {len(records)} to {len(candidates)}")
        if len(candidates) < 2:
            return 0

        exif = self._lookup_tags(candidates)
        if self.options.hash:
            self._fill_hashes(candidates)

        claimed: Set[str] = set()
        dup_count = 0

        for i, src in enumerate(candidates):
            if src.path in claimed:
                continue
            if self.options.only and not self.options.matches_keep(src.path):
                logging.log(config.TRACE, f"not comparing because only is set and {src.path} "
                                          f"does not match {self.options.keep_match}")
                continue

            for j in range(i + 1, len(candidates)):
                dst = candidates[j]
                if src.path in claimed:
                    break
                if dst.path in claimed:
                    logging.log(config.TRACE, "not comparing files because already marked as dup")
                    continue

                logging.debug(f"%%%% comparing files: \t{key}\t{src.path}\t{dst.path}")
                diffs, checks = self.comparator.compare(src, dst)
                is_candidate = self.comparator.is_candidate(diffs, checks)

                if src.hash is not None and src.hash == dst.hash and not is_candidate:
                    # Same pixels, disagreeing tags: surface it, never act on it
                    logging.warning(f"HASH match but unequal fields:\t{diffs}/{checks}\t{key}"
                                    f"\t{src.path}\t{dst.path}\t{src.hash}")
                    self.context.stats.hash_anomalies += 1

                if not is_candidate:
                    logging.debug(f"Checked {checks}, found {diffs} differences, declaring different")
                    continue

                logging.debug(f"Possible duplicate: Checked {checks}, found {diffs} differences")
                removed = self._resolve_pair(src, dst, key, diffs,
                                             self._metadata_for(exif, i, key),
                                             self._metadata_for(exif, j, key))
                if removed is not None:
                    claimed.add(removed.path)
                    dup_count += 1

        logging.debug(f"Number of duplicates for set ({key}): {dup_count}/{len(records)}")
        return dup_count

    def _resolve_pair(self, src: MetadataRecord, dst: MetadataRecord, key: str, diffs: int,
                      src_meta: Any, dst_meta: Any) -> Optional[MetadataRecord]:
        """Returns the record that was (or would be) deleted, if any."""
        src_is_right = self.classifier.classify(src.path, src_meta)
        detail = f"{diffs}\t{key}\tSRC:\t{src.path}\t{src.size}\tDUP:\t{dst.path}\t{dst.size}"

        if src_is_right.is_ok:
            dst_is_right = self.classifier.classify(dst.path, dst_meta)
            if not dst_is_right.is_ok:
                logging.info(f"DST Image in wrong year:\t({dst_is_right.file_year} != "
                             f"{dst_is_right.year_taken})\t{detail}")
            else:
                logging.info(f"Duplicate images in correct year:\t({dst_is_right.file_year} == "
                             f"{dst_is_right.year_taken})\t{detail}")
            return dst if self.guard.guarded_delete(dst.path, src.path) else None

        if self.options.no_year:
            return dst if self.guard.guarded_delete(dst.path, src.path) else None

        dst_is_right = self.classifier.classify(dst.path, dst_meta)
        logging.info(f"SRC Image in wrong year:\t(srcYear: {src_is_right.file_year} != "
                     f"yearTaken: {src_is_right.year_taken})\t{detail}")
        # TODO: confirm with the archive owner whether this only/keepmatch swap is intended
        if (self.options.only and self.options.keep_match
                and self.options.matches_keep(dst.path) and dst_is_right.is_ok):
            logging.info(f"Swapping SRC and DST since both match {self.options.keep_match} "
                         f"and DST is right year")
            return src if self.guard.guarded_delete(src.path, dst.path) else None
        return None

    def _lookup_tags(self, candidates: List[MetadataRecord]) -> Optional[List[Any]]:
        if not self.options.exiftool:
            return None
        exif = self.exiftool.lookup([r.path for r in candidates])
        if len(exif) != len(candidates):
            logging.info(f"exiftool returned {len(exif)} entries for {len(candidates)} files; using partition key")
            return None
        return exif

    def _fill_hashes(self, candidates: List[MetadataRecord]):
        for record in candidates:
            if record.hash is None:
                logging.debug(f"No hash for {record.path}")
                record.hash = self.hasher.compute_hash(record.path)

    @staticmethod
    def _metadata_for(exif: Optional[List[Any]], idx: int, key: str) -> Any:
        return exif[idx] if exif is not None else key
