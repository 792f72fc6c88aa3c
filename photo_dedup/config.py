"""
Configuration constants for the photo deduplicator.
"""
from datetime import datetime

# --- File Type Definitions ---
JPEG_EXTS = {'.jpg', '.jpeg'}
VIDEO_EXTS = {'.mp4', '.mov', '.m4v', '.mpg', '.avi'}

# --- Metadata Fields ---
# Allow-list: the only attributes kept on a photo record.
EXIF_FIELDS = [
    'DateTimeOriginal', 'GPSTimeStamp', 'GPSImgDirection', 'BrightnessValue',
    'HasExtendedXMP', 'ShutterSpeedValue', 'ExposureTime', 'SubSecTime',
    'SubSecTimeDigitized', 'ISO', 'SubSecTimeOriginal', 'Description',
    'ModifyDate', 'UserComment', 'Subject', 'Software', 'ImageSize',
]
# Appended to EXIF_FIELDS unless thumbnail comparison is disabled
THUMBNAIL_FIELD = 'ThumbnailLength'

# Deny-list: filesystem noise that must never take part in a comparison.
OMIT_FIELDS = frozenset({
    'FileInodeChangeDate', 'FileModifyDate', 'FileAccessDate', 'SourceFile',
    'Directory', 'filepath', 'FileName', 'FilePermissions', 'MediaDataOffset',
})

# Advisory text; never part of a record's identity
WARNING_FIELD = 'Warning'

# exifread tag name -> allow-list name
EXIFREAD_TAG_MAP = {
    'EXIF DateTimeOriginal': 'DateTimeOriginal',
    'GPS GPSTimeStamp': 'GPSTimeStamp',
    'GPS GPSImgDirection': 'GPSImgDirection',
    'EXIF BrightnessValue': 'BrightnessValue',
    'EXIF ShutterSpeedValue': 'ShutterSpeedValue',
    'EXIF ExposureTime': 'ExposureTime',
    'EXIF SubSecTime': 'SubSecTime',
    'EXIF SubSecTimeDigitized': 'SubSecTimeDigitized',
    'EXIF SubSecTimeOriginal': 'SubSecTimeOriginal',
    'EXIF ISOSpeedRatings': 'ISO',
    'Image ImageDescription': 'Description',
    'Image DateTime': 'ModifyDate',
    'EXIF UserComment': 'UserComment',
    'Image Software': 'Software',
    'Thumbnail JPEGInterchangeFormatLength': 'ThumbnailLength',
}

# --- Partition Keys ---
UNDEFINED_KEY = 'undefined'
MIN_PLAUSIBLE_YEAR = 2000
MAX_PLAUSIBLE_YEAR = datetime.now().year
# Photos smaller than this get a dimension disambiguator in their key
SMALL_FILE_THRESHOLD = 200000

# --- Matching ---
MIN_FIELDS_CHECKED = 2
CLOSE_SIZE_RATIO = 0.001
# Largest size deficit tolerated when deleting a delete-preferred path
DELETE_SIZE_SLACK = 50

# --- Year Classification ---
ARCHIVE_ROOT = 'sortedByYear'
# Camera filename prefix known to carry no year
NO_YEAR_PREFIX = '/DSCN'
INCORRECT_TIME_WARNING = 'incorrect time'

# --- Relocation ---
MOVED_DIRNAME = 'moved'
PICASA_CREATOR = 'Picasa'
PICASA_FIELDS = ['DateTimeOriginal', 'Make', 'Model']
RECODE_ENCODER = 'Google'
RECODE_FIELDS = ['Duration', 'SourceImageWidth', 'SourceImageHeight', 'Megapixels']

# --- External Tool ---
EXIFTOOL_BIN = 'exiftool'
STRIP_MAX_BYTES = 40 * 1024 * 1024  # 40 MB payload cap when hashing

# --- Logging ---
TRACE = 5
VERBOSITY_NAMES = {
    'FATAL': 0,
    'ERROR': 1,
    'WARN': 2,
    'INFO': 3,
    'DEBUG': 4,
    'TRACE': 5,
    'ALL': 6,
}
DEFAULT_VERBOSITY = 3
