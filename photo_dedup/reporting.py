import csv
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from tqdm import tqdm

from .matching.classify import YearClassifier
from .models import ClassificationResult, DedupContext


@dataclass
class MisfiledFile:
    path: str
    size: int
    classification: ClassificationResult
    moved: bool = False


@dataclass
class YearReport:
    total_size: int = 0
    wrong_size: int = 0
    correct_size: int = 0
    count: int = 0
    bad_count: int = 0
    move_count: int = 0
    misfiled: List[MisfiledFile] = field(default_factory=list)


class ReportGenerator:
    """
    Read-only views over the partition index: how files spread over keys,
    and how many bytes sit in the wrong year directory.
    """

    def __init__(self, context: DedupContext, classifier: Optional[YearClassifier] = None):
        self.context = context
        self.options = context.options
        self.classifier = classifier or YearClassifier(self.options.archive_root)

    def partition_counts(self) -> List[Tuple[str, int]]:
        """(key, record count), smallest partitions first."""
        counts = [(key, len(records)) for key, records in self.context.index.partitions.items()]
        counts.sort(key=lambda kv: kv[1])
        return counts

    def log_partition_counts(self):
        logging.info("============= Files by time key ====================")
        for key, count in self.partition_counts():
            logging.info(f"\t{count}\t{key}")

    def year_report(self) -> YearReport:
        """
        Classifies every record still on disk. Wrong-year files that match a
        skip pattern are logged but left out of the wrong-year totals.
        """
        report = YearReport()
        records = list(self.context.records())

        for record in tqdm(records, desc="Checking years"):
            try:
                size = os.stat(record.path).st_size
            except OSError:
                continue
            report.total_size += size
            report.count += 1

            result = self.classifier.classify(record.path, record.fields)
            if result.is_ok:
                report.correct_size += size
                continue

            if self.options.is_skipped(record.path):
                logging.debug(f"File in EXCLUDE LIST (not counting in stats):\tFile year:\t{result.file_year}"
                              f"\tTaken:\t{result.year_taken}\t{record.path}\tSize:\t{size}")
                continue

            logging.debug(f"File in wrong year:\tFile year:\t{result.file_year}\tTaken:\t{result.year_taken}"
                          f"\t{record.path}\tSize:\t{size}")
            report.wrong_size += size
            report.bad_count += 1
            report.misfiled.append(MisfiledFile(path=record.path, size=size, classification=result))

        return report

    def log_year_report(self, report: YearReport):
        logging.info("============= Files by correct year ===================")
        logging.info(f"Total     size:\t{report.total_size}")
        logging.info(f"Bad year  size:\t{report.wrong_size}")
        logging.info(f"Good year size:\t{report.correct_size}")
        logging.info(f"Total    files:\t{report.count}")
        logging.info(f"Wrong yr files:\t{report.bad_count}")
        logging.info(f"Moved    files:\t{report.move_count}")

    def write_csv(self, report: YearReport, output_csv: str):
        """One row per wrong-year file."""
        headers = ["Path", "File Year", "Year Taken", "Size", "Moved"]
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            for item in report.misfiled:
                writer.writerow([
                    item.path,
                    item.classification.file_year or "",
                    item.classification.year_taken or "",
                    item.size,
                    "yes" if item.moved else "no",
                ])
        logging.info(f"Report complete: {len(report.misfiled)} wrong-year files -> {output_csv}")
