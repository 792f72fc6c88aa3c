import re
import shutil
import logging
from pathlib import Path
from typing import Optional

from .. import config
from ..exceptions import FileOperationError
from ..matching.compare import FieldComparator
from ..metadata.exiftool import ExifTool
from ..models import DedupContext
from .guard import MutationGuard
from .quality import is_google_recode, is_lower_quality_copy

YEAR_DIR_RE = re.compile(r'^\d{4}$')


class RelocationResolver:
    """
    Moves files filed under the wrong year into `<movedir>/<year>/moved`.

    Files coming from a non-year directory keep that directory's name as a
    sub-folder so their provenance is not lost.
    """

    def __init__(self,
                 context: DedupContext,
                 comparator: Optional[FieldComparator] = None,
                 exiftool: Optional[ExifTool] = None,
                 guard: Optional[MutationGuard] = None):
        self.options = context.options
        self.comparator = comparator or FieldComparator(self.options)
        self.exiftool = exiftool or ExifTool()
        self.guard = guard or MutationGuard(context)

    def target_dir(self, src: Path, year: str) -> Path:
        year_dir = Path(self.options.move_dir) / str(year)
        parent = src.parent.name
        if not YEAR_DIR_RE.match(parent):
            return year_dir / config.MOVED_DIRNAME / parent
        return year_dir / config.MOVED_DIRNAME

    def resolve_misfiled(self, path, year_taken: Optional[str]) -> bool:
        """
        Returns True when the file was moved (or would be, with the move
        flag off).
        """
        src = Path(path)
        if not year_taken or year_taken == 'null':
            logging.log(config.TRACE, f"not moving {src} to nonexistent year {year_taken}")
            return False
        if not self.options.move_dir:
            logging.log(config.TRACE, f"not moving {src} to {year_taken} because movedir is not set")
            return False

        year_dir = Path(self.options.move_dir) / str(year_taken)
        if not year_dir.exists():
            logging.warning(f"not moving {src} because {year_dir} does not exist")
            return False
        if not year_dir.is_dir():
            logging.warning(f"not moving {src} because {year_dir} is not a directory")
            return False

        new_file = self.target_dir(src, year_taken) / src.name
        logging.log(config.TRACE, f"NEWDIR: {new_file.parent}")

        if new_file.exists() and not self._resolve_collision(src, new_file):
            return False

        if not self.options.move:
            logging.debug(f"not MOVING (move flag off) {src} to {new_file}")
            return True

        try:
            self._move(src, new_file)
        except FileOperationError as e:
            logging.error(str(e))
            return False
        return True

    def _resolve_collision(self, src: Path, new_file: Path) -> bool:
        """
        Something with the same name already sits at the target. Returns
        True only when that copy was cleared out of the way for `src`.
        """
        exif_data = self.exiftool.lookup([src, new_file])
        if len(exif_data) != 2:
            logging.warning(f"not moving {src} because {new_file} already exists and could not be inspected")
            return False
        src_tags, target_tags = exif_data

        if self.options.picasa:
            fields = self.options.picasa_fields()
            if is_lower_quality_copy(src_tags, target_tags, fields):
                logging.info(f"PICASA: {src} is a better version of picasa file {new_file}")
                # only delete the target if src is really going to replace it
                if not self.options.move:
                    logging.warning(f"not deleting {new_file} because it exists, and move option "
                                    f"not set to move {src} to replace it")
                    return False
                self.guard.guarded_delete(str(new_file), str(src))
                return True
            if is_lower_quality_copy(target_tags, src_tags, fields):
                logging.info(f"PICASA (reverse): {new_file} is a better version of picasa file {src}")
                self.guard.guarded_delete(str(src), str(new_file))
                return False
            logging.log(config.TRACE, f"{src} and {new_file} not picasa dups")

        logging.warning(f"not moving {src} because {new_file} already exists")
        diffs, checks = self.comparator.compare(src_tags, target_tags)
        logging.debug(f"Differences with existing files: {diffs}/{checks}")
        if not diffs:
            logging.info(f"SAME file in {src} ({src_tags.get('FileSize')}) and "
                         f"{new_file} ({target_tags.get('FileSize')})")
            # will not be actually deleted unless delete flag is set also
            if self.options.move:
                self.guard.guarded_delete(str(src), str(new_file))
        elif is_google_recode(src_tags, target_tags):
            logging.warning(f"RECODE: {src} appears to be google recode of {new_file}")
        return False

    def _move(self, src: Path, dest: Path):
        if dest.exists():
            logging.debug(f"... really not moving because {dest} already exists")
            return
        logging.debug(f"MOVING {src} to {dest}")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dest))
        except OSError as e:
            raise FileOperationError(f"Error renaming {src} to {dest}: {e}") from e
