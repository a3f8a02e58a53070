#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Initialization setup (logging and user settings)
"""

import argparse
from dataclasses import dataclass
from typing import Optional

from config import (
    APP_VERSION,
    DEFAULT_DATABASE_NAME,
    DEFAULT_SOURCE_FORMAT,
    DEFAULT_SPACE_PIXELS,
    SETTINGS_SECTION,
    get_config_bool,
    get_config_float,
    get_config_int,
    get_config_option,
)
from utils.core.logging import cleanup_logs, get_logger, log_section, setup_logging

log = get_logger()


def setup_logging_and_cleanup(args: argparse.Namespace) -> None:
    """Setup logging and clean up old logs"""
    # Clean up old log files on startup
    cleanup_logs()

    # Determine log mode based on flags
    if args.debug:
        log_mode = 'debug'
    elif args.verbose:
        log_mode = 'verbose'
    else:
        log_mode = 'customer'

    setup_logging(log_mode, write_logs=not getattr(args, "no_log_file", False))

    if log_mode != 'customer':
        log_section(log, "Subtitle OCR Starting", "🚀", {
            "Version": APP_VERSION,
            "Command": args.command,
        })


@dataclass
class RecognitionSettings:
    """Effective settings: command line flags first, then config.ini, then defaults"""
    database: str = DEFAULT_DATABASE_NAME
    source_format: str = DEFAULT_SOURCE_FORMAT
    threshold_percent: Optional[float] = None
    space_pixels: int = DEFAULT_SPACE_PIXELS
    right_to_left: bool = False
    top_to_bottom: bool = True


def resolve_settings(args: argparse.Namespace) -> RecognitionSettings:
    """Merge command line arguments with the persisted user settings"""
    settings = RecognitionSettings()
    settings.database = (getattr(args, "database", None)
                         or get_config_option(SETTINGS_SECTION, "last_database", DEFAULT_DATABASE_NAME))

    source = getattr(args, "source", None)
    if source:
        settings.source_format = source

    threshold = getattr(args, "threshold", None)
    if threshold is None and not source:
        threshold = get_config_float(SETTINGS_SECTION, "allow_difference_percent")
    settings.threshold_percent = threshold

    space_pixels = getattr(args, "space_pixels", None)
    settings.space_pixels = (space_pixels if space_pixels is not None
                             else get_config_int(SETTINGS_SECTION, "pixels_are_space", DEFAULT_SPACE_PIXELS))

    rtl = getattr(args, "rtl", None)
    settings.right_to_left = rtl if rtl is not None else get_config_bool(SETTINGS_SECTION, "right_to_left", False)

    if getattr(args, "bottom_to_top", False):
        settings.top_to_bottom = False
    else:
        settings.top_to_bottom = get_config_bool(SETTINGS_SECTION, "top_to_bottom", True)
    return settings
