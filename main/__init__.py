#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Main entry point for Subtitle OCR
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .setup.arguments import setup_arguments
from .setup.initialization import resolve_settings, setup_logging_and_cleanup

from config import SETTINGS_SECTION, set_config_option
from image_compare import (
    ConsoleConfirmer,
    ImageCompareBackend,
    SkipConfirmer,
    TemplateManager,
    list_databases,
)
from utils.core.logging import get_logger, log_section, log_success

log = get_logger()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_ABORTED = 130


def run_recognize(args: argparse.Namespace) -> int:
    """Recognize the given images and print (or write) one text block per image"""
    settings = resolve_settings(args)
    confirmer = ConsoleConfirmer() if args.interactive else SkipConfirmer()

    try:
        backend = ImageCompareBackend(
            database=settings.database,
            source_format=settings.source_format,
            threshold_percent=settings.threshold_percent,
            confirmer=confirmer,
            space_threshold=settings.space_pixels,
            right_to_left=settings.right_to_left,
            top_to_bottom=settings.top_to_bottom,
        )
    except ValueError as e:
        log.error(str(e))
        return EXIT_USAGE

    try:
        result = backend.recognize_files(args.images, args.start)
    except OSError as e:
        log.error(f"Failed to read image: {e}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        log.info("Interrupted")
        return EXIT_ABORTED

    text = "\n\n".join(result.lines)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        log_success(log, f"Wrote {len(result.lines)} subtitles to {args.output}", "💾")
    else:
        print(text)

    try:
        set_config_option(SETTINGS_SECTION, "last_database", settings.database)
    except OSError as e:
        log.warning(f"Could not save settings: {e}")

    if result.aborted or result.cancelled:
        resume = backend.session.resume_index()
        if resume is not None:
            log.info(f"Resume with --start {resume}")
        return EXIT_ABORTED
    return EXIT_OK


def run_databases(args: argparse.Namespace) -> int:
    for name in list_databases():
        print(name)
    return EXIT_OK


def run_stats(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    stats = TemplateManager(settings.database).get_statistics()
    log_section(log, "Template database", "🗂️", stats)
    for key, value in stats.items():
        print(f"{key}: {value}")
    return EXIT_OK


COMMANDS = {
    "recognize": run_recognize,
    "databases": run_databases,
    "stats": run_stats,
}


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, set up logging and run one command; returns the exit code"""
    args = setup_arguments(argv)
    setup_logging_and_cleanup(args)
    return COMMANDS[args.command](args)


def main() -> None:
    """Program entry point"""
    sys.exit(run())


if __name__ == "__main__":
    main()
