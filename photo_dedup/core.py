import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .exceptions import ConfigurationError
from .index.partition import PartitionIndex
from .index.store import load_indexes, save_index
from .matching.classify import YearClassifier
from .matching.compare import FieldComparator
from .matching.resolver import DuplicateResolver
from .metadata.exiftool import ExifTool
from .models import DedupContext, DedupOptions
from .organization.guard import MutationGuard
from .organization.mover import RelocationResolver
from .reporting import ReportGenerator, YearReport
from .scanning.filesystem import DiskScanner
from .scanning.hasher import ImageHasher


class PhotoDedupApp:
    def __init__(self, options: DedupOptions, exiftool: Optional[ExifTool] = None):
        self.context = DedupContext(options=options, index=PartitionIndex())
        self.exiftool = exiftool or ExifTool()
        self.hasher = ImageHasher(self.exiftool)
        self.classifier = YearClassifier(options.archive_root)
        self.comparator = FieldComparator(options)
        self.guard = MutationGuard(self.context)

    @property
    def options(self) -> DedupOptions:
        return self.context.options

    def run(self,
            dirs: Iterable[Path] = (),
            video_dirs: Iterable[Path] = (),
            load: Iterable[Path] = (),
            save: Optional[Path] = None,
            report_csv: Optional[str] = None,
            detailed_stats: bool = False) -> DedupContext:
        """
        Executes the pipeline.
        1. Build the index (reload saved indexes, scan photo/video dirs)
        2. Save it, if asked
        3. Compare & resolve duplicates
        4. Stats & relocation of wrong-year files
        """
        self.build_index(dirs, video_dirs, load)

        if save:
            save_index(self.context.index, save)

        self.check_options()

        if self.options.compare:
            self.compare()

        if self.options.move_dir or self.options.stats:
            self.show_stats(detailed=detailed_stats, report_csv=report_csv)

        return self.context

    def build_index(self, dirs: Iterable[Path], video_dirs: Iterable[Path], load: Iterable[Path]):
        load = list(load)
        if load:
            self.context.index.merge(load_indexes(load))

        scanner = DiskScanner(self.options, exiftool=self.exiftool, hasher=self.hasher,
                              classifier=self.classifier)
        for root in dirs:
            logging.info(f"getting files: {root}")
            for key, record in scanner.scan_photos(root):
                self.context.index.add(key, record)
        for root in video_dirs:
            logging.info(f"getting files: {root}")
            for key, record in scanner.scan_videos(root):
                self.context.index.add(key, record)

        logging.info(f"Index holds {len(self.context.index)} partitions")

    def describe_file(self, path: Path) -> Optional[Dict[str, Any]]:
        """Partition key and indexed record for one file, as it would be scanned."""
        scanner = DiskScanner(self.options, exiftool=self.exiftool, hasher=self.hasher,
                              classifier=self.classifier)
        try:
            item = scanner.scan_file(path)
        except OSError as e:
            logging.error(f"Error reading file {path}: {e}")
            return None
        if item is None:
            logging.warning(f"No tags found for {path}")
            return None
        key, record = item
        return {'key': key, **record.to_dict()}

    def check_options(self):
        try:
            self.options.validate()
        except ConfigurationError as e:
            logging.error(str(e))
            self.options.move = False

    def compare(self) -> int:
        index = self.context.index
        if self.options.hash:
            for record in index.records():
                if record.hash is None and Path(record.path).exists():
                    record.hash = self.hasher.compute_hash(record.path)
            index = index.by_hash()
        resolver = DuplicateResolver(self.context, comparator=self.comparator,
                                     classifier=self.classifier, guard=self.guard,
                                     exiftool=self.exiftool, hasher=self.hasher)
        return resolver.resolve_all(index)

    def show_stats(self, detailed: bool = False, report_csv: Optional[str] = None) -> Optional[YearReport]:
        reporter = ReportGenerator(self.context, self.classifier)
        if self.options.stats:
            reporter.log_partition_counts()

        if not (self.options.move_dir or detailed):
            return None

        report = reporter.year_report()
        if self.options.move_dir:
            relocator = RelocationResolver(self.context, comparator=self.comparator,
                                           exiftool=self.exiftool, guard=self.guard)
            for item in report.misfiled:
                year = item.classification.year_taken
                if year and relocator.resolve_misfiled(item.path, year):
                    item.moved = True
                    report.move_count += 1
        self.context.stats.moved += report.move_count

        reporter.log_year_report(report)
        if report_csv:
            reporter.write_csv(report, report_csv)
        return report
