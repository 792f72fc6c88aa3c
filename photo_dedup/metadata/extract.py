import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import exifread
from PIL import Image

from .. import config
from ..exceptions import MetadataExtractionError


class MetadataExtractor:
    """
    In-process tag reader for photos.

    Strategies:
      - EXIF tags: 'exifread' (fast, Python-native), renamed to the
        vocabulary the external tool uses so saved indexes stay comparable.
      - ImageSize: Pillow header read, formatted like exiftool ("WxH").
    """

    def __init__(self, fields: Optional[Iterable[str]] = None):
        self.fields = set(fields) if fields is not None else set(config.EXIF_FIELDS)

    def get_image_tags(self, path: Path) -> Dict[str, Any]:
        """
        Returns allow-listed tags for an image. Never raises: unreadable
        files come back as an empty mapping.
        """
        try:
            tags = self._read_exif(path)
        except MetadataExtractionError as e:
            logging.warning(f"Error getting tags for {path}: {e}")
            return {}

        if not tags:
            # Not really an error, just means "no EXIF at all".
            logging.debug(f"No EXIF tags found for {path}")

        output: Dict[str, Any] = {}
        for exif_name, tag in tags.items():
            name = config.EXIFREAD_TAG_MAP.get(exif_name)
            if name and name in self.fields:
                output[name] = self._tag_value(tag)

        if 'ImageSize' in self.fields and 'ImageSize' not in output:
            size = self._image_size(path)
            if size:
                output['ImageSize'] = size

        logging.log(config.TRACE, f"Tags for {path}: {output}")
        return output

    def _read_exif(self, path: Path) -> Dict[str, Any]:
        try:
            with Path(path).open('rb') as f:
                # details=False speeds up processing significantly
                return exifread.process_file(f, details=False)
        except Exception as e:
            raise MetadataExtractionError(f"ExifRead failed for {path}: {e}") from e

    def _tag_value(self, tag: Any) -> Any:
        values = getattr(tag, 'values', None)
        if isinstance(values, str):
            return values.strip()
        if isinstance(values, list) and len(values) == 1 and isinstance(values[0], int):
            return values[0]
        return str(tag).strip()

    def _image_size(self, path: Path) -> Optional[str]:
        try:
            with Image.open(path) as im:
                return f"{im.width}x{im.height}"
        except Exception as e:
            logging.debug(f"Failed to get image size for {path}: {e}")
            return None
