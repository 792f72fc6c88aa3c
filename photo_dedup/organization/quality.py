"""
Heuristics for copies that are the same shot but not the same file:
Picasa's lower-resolution re-saves and Google's automatic re-encodes.
Both work on full exiftool tag mappings.
"""
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .. import config


def _at_least(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return False
    try:
        return a >= b
    except TypeError:
        return False


def is_lower_quality_copy(original: Mapping[str, Any],
                          candidate: Mapping[str, Any],
                          fields: Optional[Iterable[str]] = None) -> bool:
    """
    True when `candidate` is a Picasa render of `original` whose resolution
    is no better than the original's.
    """
    logging.log(config.TRACE, f"Picasa check: {original.get('SourceFile')} =--= {candidate.get('SourceFile')}")
    if candidate.get('Creator') != config.PICASA_CREATOR:
        logging.log(config.TRACE, f"Not from picasa: Creator: {candidate.get('Creator')}")
        return False

    fields = list(fields) if fields is not None else list(config.PICASA_FIELDS)
    for field in fields:
        a, b = original.get(field), candidate.get(field)
        if not a or not b:
            logging.log(config.TRACE, f"Not a picasa match because {field} missing 1:{a}, 2:{b}")
            return False
        if a != b:
            logging.log(config.TRACE, f"Not a picasa match because {field} not equal 1:{a}, 2:{b}")
            return False

    width, height = original.get('ImageWidth'), original.get('ImageHeight')
    resolution_ok = (_at_least(original.get('Megapixels'), candidate.get('Megapixels'))
                     and _at_least(width, candidate.get('ImageWidth'))
                     and _at_least(height, candidate.get('ImageHeight')))
    same_subject = (original.get('SubjectArea') == candidate.get('SubjectArea')
                    or (width is not None and width == candidate.get('RelatedImageWidth')
                        and height == candidate.get('ImageHeight')))

    if resolution_ok and same_subject:
        logging.log(config.TRACE, f"Picasa specs worse or equal to source: {original.get('Megapixels')} >= "
                                  f"{candidate.get('Megapixels')}, {width} >= {candidate.get('ImageWidth')}, "
                                  f"{height} >= {candidate.get('ImageHeight')}")
        return True
    return False


def is_google_recode(recoded: Dict[str, Any], original: Dict[str, Any]) -> bool:
    """`recoded` carries Google's encoder tag and the same source geometry as `original`."""
    logging.log(config.TRACE, f"Encoder: {recoded.get('Encoder')}, " + ", ".join(
        f"{f}: {recoded.get(f)},{original.get(f)}" for f in config.RECODE_FIELDS))
    if recoded.get('Encoder') != config.RECODE_ENCODER:
        return False
    if not all(recoded.get(f) for f in config.RECODE_FIELDS):
        return False
    return all(recoded.get(f) == original.get(f) for f in config.RECODE_FIELDS)
