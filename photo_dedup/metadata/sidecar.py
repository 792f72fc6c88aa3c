import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .. import config


def sidecar_path(path) -> Path:
    """Takeout-style sidecar lives next to the media file as `<name>.json`."""
    return Path(f"{path}.json")


def read_sidecar_year(path) -> Optional[int]:
    """
    Returns the capture year recorded in the sidecar JSON for `path`, or None.

    The sidecar carries `photoTakenTime.timestamp` (preferred) or
    `createTime.timestamp`, both epoch seconds. Anything unreadable is
    logged and ignored so the caller can fall through to the next source.
    """
    info = sidecar_path(path)
    if not info.exists():
        return None

    logging.log(config.TRACE, f"Getting year from json file: {path}")
    data = None
    try:
        with info.open('r', encoding='utf-8') as f:
            data = json.load(f)
        taken = data.get('photoTakenTime') or data['createTime']
        return datetime.fromtimestamp(int(taken['timestamp'])).year
    except (OSError, ValueError, KeyError, TypeError, AttributeError, OverflowError) as e:
        logging.warning(f"Error reading json for year {info}: {e} ({data})")
        return None
