import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from pymediainfo import MediaInfo

from .. import config
from ..exceptions import ExternalToolError


class ExifTool:
    """
    Wraps the 'exiftool' command line utility.
    Must be installed and on the system PATH.

    Every public call degrades to an empty result on failure; a missing or
    broken exiftool never stops a run.
    """

    def __init__(self, binary: str = config.EXIFTOOL_BIN):
        self.binary = binary

    def lookup(self, paths: Sequence) -> List[Dict[str, Any]]:
        """Returns one tag mapping per path, in the order given (or [])."""
        if not paths:
            return []
        args = [str(p) for p in paths]
        logging.log(config.TRACE, f"exiftool length: {len(args)}, args: {args}")
        try:
            data = self._run_json(args)
        except ExternalToolError as e:
            logging.info(f"ERROR {e}")
            return []
        logging.log(config.TRACE, f"EXIFTOOL DATA: {data}")
        return data

    def strip_metadata(self, path) -> Optional[bytes]:
        """The file's bytes with every metadata block removed (for hashing)."""
        cmd = [self.binary, str(path), '-all=', '-o', '-']
        try:
            out = subprocess.run(cmd, capture_output=True, check=True).stdout
        except (OSError, subprocess.CalledProcessError) as e:
            logging.error(f"Unable to get image payload for {path}: {e}")
            return None
        if len(out) > config.STRIP_MAX_BYTES:
            logging.error(f"Image payload for {path} exceeds {config.STRIP_MAX_BYTES} bytes")
            return None
        return out

    def video_tags(self, path) -> Optional[Dict[str, Any]]:
        """
        Full tag set for a video.
        Strategy: exiftool (complete) -> pymediainfo (date + duration only).
        """
        tags = self.lookup([path])
        if tags:
            return tags[0]

        try:
            return self._mediainfo_tags(Path(path))
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")
            return None

    def _run_json(self, args: List[str]) -> List[Dict[str, Any]]:
        # -j = JSON output
        cmd = [self.binary, '-j', *args]
        try:
            raw = subprocess.check_output(cmd, stderr=subprocess.DEVNULL)
        except FileNotFoundError as e:
            raise ExternalToolError(f"{self.binary} not found on PATH") from e
        except OSError as e:
            raise ExternalToolError(f"{self.binary} could not be run: {e}") from e
        except subprocess.CalledProcessError as e:
            raise ExternalToolError(f"{self.binary} error: {e}") from e
        # legacy tags and file names are not always UTF-8
        out = raw.decode("utf-8", errors="replace")

        try:
            data = json.loads(out)
        except json.JSONDecodeError as e:
            raise ExternalToolError(f"unparsable {self.binary} output: {e}") from e
        if not isinstance(data, list):
            raise ExternalToolError(f"unexpected {self.binary} output type: {type(data).__name__}")
        return data

    def _mediainfo_tags(self, path: Path) -> Optional[Dict[str, Any]]:
        mi = MediaInfo.parse(str(path))
        tags: Dict[str, Any] = {}
        for track in mi.tracks:
            if track.track_type != "General":
                continue
            created = (getattr(track, "recorded_date", None) or
                       getattr(track, "encoded_date", None) or
                       getattr(track, "tagged_date", None))
            if created:
                tags['MediaCreateDate'] = str(created).replace("UTC", "").strip()
            if getattr(track, "duration", None):
                # MediaInfo duration is in milliseconds
                tags['Duration'] = float(track.duration) / 1000.0
        return tags or None
