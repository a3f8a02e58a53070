#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Command line argument parsing
"""

import argparse
from typing import Optional, Sequence

from config import APP_VERSION, DEFAULT_VERBOSE, THRESHOLD_PRESETS


def setup_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse and return command line arguments"""
    ap = argparse.ArgumentParser(
        prog="subtitle-ocr",
        description="Subtitle OCR - image compare recognition of subtitle images"
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")

    # General arguments
    ap.add_argument("--verbose", action="store_true", default=DEFAULT_VERBOSE,
                    help="Enable verbose logging (developer mode - shows all technical details)")
    ap.add_argument("--debug", action="store_true", default=False,
                    help="Enable ultra-detailed debug logging (includes per-glyph match traces)")
    ap.add_argument("--no-log-file", action="store_true", default=False,
                    help="Do not write a session log file")

    commands = ap.add_subparsers(dest="command", required=True)

    # Recognition
    rec = commands.add_parser("recognize", help="Recognize subtitle images")
    rec.add_argument("images", nargs="+", help="Subtitle image files, in display order")
    rec.add_argument("--database", type=str, default=None,
                     help="Image compare database (default: last used)")
    rec.add_argument("--source", choices=sorted(THRESHOLD_PRESETS), default=None,
                     help="Source format threshold preset (vobsub: strict, bluray: loose)")
    rec.add_argument("--threshold", type=float, default=None,
                     help="Explicit accept threshold in percent (overrides --source)")
    rec.add_argument("--space-pixels", type=int, default=None,
                     help="Horizontal gap in pixels that counts as a space")
    rec.add_argument("--rtl", action="store_true", default=None,
                     help="Right-to-left reading order")
    rec.add_argument("--bottom-to-top", action="store_true", default=False,
                     help="Read lines bottom to top")
    rec.add_argument("--interactive", action="store_true", default=False,
                     help="Ask on the console for unknown glyphs (and learn them)")
    rec.add_argument("--start", type=int, default=0,
                     help="Index of the first image to recognize")
    rec.add_argument("--output", type=str, default=None,
                     help="Write the recognized text to this file instead of stdout")

    # Database management
    commands.add_parser("databases", help="List image compare databases")
    stats = commands.add_parser("stats", help="Show template database statistics")
    stats.add_argument("--database", type=str, default=None,
                       help="Image compare database (default: last used)")

    return ap.parse_args(argv)
