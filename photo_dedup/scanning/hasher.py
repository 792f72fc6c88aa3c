import hashlib
import logging
from pathlib import Path
from typing import Optional

from .. import config
from ..metadata.exiftool import ExifTool


class ImageHasher:
    """
    Fingerprints the picture itself rather than the file: exiftool strips
    every metadata block and the remaining payload is hashed (SHA-256).
    Two copies that only differ in tags therefore hash the same.
    """

    def __init__(self, exiftool: Optional[ExifTool] = None):
        self.exiftool = exiftool or ExifTool()

    def compute_hash(self, path: Path) -> Optional[str]:
        logging.log(config.TRACE, f"Getting hash for image portion of {path}")
        payload = self.exiftool.strip_metadata(path)
        if payload is None:
            return None

        h = hashlib.sha256()
        h.update(payload)
        digest = h.hexdigest()
        logging.log(config.TRACE, f"filehash: \tName:\t{path}\timage size\t{len(payload)}\t{digest}")
        return digest
