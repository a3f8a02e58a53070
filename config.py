#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Global constants for Subtitle OCR
All arbitrary values are centralized here for easy tracking and modification
"""

import configparser
from pathlib import Path
from typing import Optional

# =============================================================================
# APPLICATION METADATA
# =============================================================================

APP_NAME = "SubtitleOcr"                 # Used for the user data directory name
APP_VERSION = "0.3.0"                    # Application version

DEFAULT_VERBOSE = False                  # Default verbose logging flag for the CLI


# =============================================================================
# IMAGE COMPARE DATABASE
# =============================================================================

DATABASES_DIR_NAME = "ImageCompareDatabases"    # Folder under the user data dir holding all databases
DEFAULT_DATABASE_NAME = "Latin"                 # Database created when none exists yet
DESCRIPTOR_FILE_NAME = "CompareDescription.xml" # Shared descriptor document, one per database
DESCRIPTOR_ROOT_TAG = "OcrBitmaps"              # Root element of the descriptor document
DESCRIPTOR_ENTRY_TAG = "FileName"               # One element per template, text = template id
BITMAP_EXTENSION = ".bmp"                       # Lossless, so learnt bitmaps reload pixel-identical


# =============================================================================
# GLYPH MATCHING
# =============================================================================

# Accept thresholds (difference in percent of the target pixel area, strictly below)
DIFFERENCE_PERCENT_STRICT = 1.0          # High fidelity DVD (VobSub) sources
DIFFERENCE_PERCENT_LOOSE = 12.9          # Lower fidelity Blu-ray (sup) sources
THRESHOLD_PRESETS = {
    "vobsub": DIFFERENCE_PERCENT_STRICT,
    "bluray": DIFFERENCE_PERCENT_LOOSE,
}
DEFAULT_SOURCE_FORMAT = "vobsub"

MAX_DIFFERENCE = 10000                   # Running best starts here; larger differences never register
PIXEL_COLOR_TOLERANCE = 20               # Intensity delta under which two pixels count as equal

# Size jitter gates (target width must be strictly greater)
NARROW_GLYPH_MAX_WIDTH = 5               # 'i', 'l', 'I' and friends skip the size jitter probes
TRIM_RETRY_MIN_WIDTH = 12                # Edge-trimmed retries
AUTOCROP_RETRY_MIN_WIDTH = 15            # Edge-trimmed + vertically auto-cropped retries
TRIM_COLUMNS = 2                         # Columns removed per edge-trimmed retry
AUTOCROP_LEVELS = (0, 2)                 # Increasing aggressiveness for the auto-crop retries

BINARY_THRESHOLD = 127                   # Grayscale threshold used to binarize input images


# =============================================================================
# SEGMENTATION
# =============================================================================

DEFAULT_SPACE_PIXELS = 12                # Horizontal gap (px) that counts as a space
MIN_LINE_HEIGHT = 5                      # Thinner row bands (dots, accents) merge into a neighbour line
UNRESOLVED_GLYPH = "*"                   # Emitted for skipped glyphs


# =============================================================================
# LOGGING CONSTANTS
# =============================================================================

LOG_MAX_FILE_SIZE_MB_DEFAULT = 10        # Rotate the session log after this size
LOG_MAX_AGE_S = 24 * 60 * 60             # Log files older than this are removed at startup
LOG_FILE_PATTERN = "subtitle_ocr_*.log"  # Glob for log retention
LOG_TIMESTAMP_FORMAT = "%d-%m-%Y_%H-%M-%S"  # European format, Windows-compatible
LOG_SEPARATOR_WIDTH = 80                 # Width of separator lines in logs (e.g., "=" * 80)


# =============================================================================
# USER SETTINGS (config.ini)
# =============================================================================

CONFIG_FILE_NAME = "config.ini"
SETTINGS_SECTION = "ImageCompare"


def get_config_file_path() -> Path:
    """Path of the user settings file (inside the user data directory)"""
    from utils.core.paths import get_user_data_dir
    return get_user_data_dir() / CONFIG_FILE_NAME


def _read_config() -> configparser.ConfigParser:
    config = configparser.ConfigParser()
    config_path = get_config_file_path()
    if config_path.exists():
        try:
            config.read(config_path, encoding="utf-8")
        except configparser.Error:
            pass
    return config


def get_config_option(section: str, key: str, default: Optional[str] = None) -> Optional[str]:
    """Read one raw option from config.ini"""
    return _read_config().get(section, key, fallback=default)


def get_config_float(section: str, key: str, default: Optional[float] = None) -> Optional[float]:
    """Read a float option, falling back to default on missing or invalid values"""
    value = get_config_option(section, key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_config_int(section: str, key: str, default: int) -> int:
    value = get_config_option(section, key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_config_bool(section: str, key: str, default: bool) -> bool:
    value = get_config_option(section, key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def set_config_option(section: str, key: str, value: str) -> None:
    """Write one option to config.ini (creates the file and section if needed)"""
    config = _read_config()
    if not config.has_section(section):
        config.add_section(section)
    config.set(section, key, str(value))
    config_path = get_config_file_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as fh:
        config.write(fh)
