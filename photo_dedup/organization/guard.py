import logging
import os

from .. import config
from ..models import DedupContext, RunStats


class MutationGuard:
    """
    Last check before a file is deleted.

    Everything is re-read from disk at call time; the index may be hours
    old by the time a pair is resolved.
    """

    def __init__(self, context: DedupContext):
        self.options = context.options
        self.stats: RunStats = context.stats

    def guarded_delete(self, to_delete: str, keep: str) -> bool:
        """
        Deletes `to_delete` in favour of `keep` when it is safe to.

        Returns True when the match is resolved: the file was deleted, or
        would have been if the delete flag were on.
        """
        if not os.path.exists(keep):
            logging.warning(f"Not deleting {to_delete} because SRC: {keep} does not exist")
            return False
        if not os.path.exists(to_delete):
            logging.warning(f"Not deleting {keep} because DEST: {to_delete} does not exist")
            return False

        try:
            if os.path.samefile(to_delete, keep):
                logging.warning(f"Not deleting {to_delete} because it is the same file as {keep}")
                self.stats.refused += 1
                return False
            keep_size = os.stat(keep).st_size
            delete_size = os.stat(to_delete).st_size
        except OSError as e:
            logging.error(f"unable to delete file {to_delete}: {e}")
            return False

        delta = delete_size - keep_size
        keep_is_at_least_as_big = keep_size >= delete_size
        slightly_larger_delete = (self.options.matches_delete(to_delete)
                                  and delta < config.DELETE_SIZE_SLACK)
        logging.log(config.TRACE, f"delete check: keepIsAtLeastAsBig: {keep_is_at_least_as_big}, "
                                  f"slightlyLargerDelete: {slightly_larger_delete}")

        if not (keep_is_at_least_as_big or slightly_larger_delete):
            logging.info(f"Not deleting {to_delete} because size is larger than {keep} "
                         f"({delete_size} > {keep_size})")
            self.stats.refused += 1
            return False

        if self.options.matches_keep(to_delete) and not self.options.matches_keep(keep):
            logging.info(f"{to_delete} matches {self.options.keep_match}, while src: {keep} does not, not deleting")
            self.stats.refused += 1
            return False

        if not self.options.delete:
            logging.info(f"\twould be DELETED, but not because flag is off\t{to_delete}\tMATCH:\t{keep}"
                         f"\tSIZE:\t{delta}\t{delete_size}\t{keep_size}")
            self.stats.would_delete += 1
            return True

        try:
            os.remove(to_delete)
        except OSError as e:
            logging.error(f"unable to delete file {to_delete}: {e}")
            return False

        logging.info(f"\tDELETED\t{to_delete}\tMATCH:\t{keep}\tSIZE:\t{delta}\t{delete_size}\t{keep_size}")
        self.stats.deleted += 1
        self.stats.bytes_reclaimed += delete_size
        return True
