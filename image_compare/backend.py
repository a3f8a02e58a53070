#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Image compare OCR backend.

Facade tying a template database, an accept threshold policy and a
recognition session together for callers that just have image files.
"""

from collections.abc import Sequence as SequenceABC
from pathlib import Path
from typing import List, Optional, Sequence, Union

from config import DEFAULT_DATABASE_NAME, DEFAULT_SOURCE_FORMAT, DEFAULT_SPACE_PIXELS, THRESHOLD_PRESETS
from utils.core.logging import get_logger, log_action, log_status
from .cancellation import CancellationToken
from .confirmation import Confirmer
from .imaging import load_image
from .models import BatchResult
from .recognizer import RecognitionSession
from .template_manager import TemplateManager

log = get_logger()


class ImageFiles(SequenceABC):
    """Image files of a batch, decoded only when the session reaches them"""

    def __init__(self, paths: Sequence[Union[str, Path]]):
        self.paths = list(paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ImageFiles(self.paths[index])
        return load_image(self.paths[index])


def resolve_threshold(source_format: str = DEFAULT_SOURCE_FORMAT,
                      threshold_percent: Optional[float] = None) -> float:
    """
    Accept threshold for a source format, unless an explicit value is given.

    Raises:
        ValueError: for unknown source formats or negative thresholds
    """
    if threshold_percent is not None:
        if threshold_percent < 0:
            raise ValueError(f"Threshold must be >= 0, got {threshold_percent}")
        return float(threshold_percent)
    try:
        return THRESHOLD_PRESETS[source_format]
    except KeyError:
        raise ValueError(f"Unknown source format: {source_format!r} "
                         f"(expected one of {', '.join(THRESHOLD_PRESETS)})") from None


class ImageCompareBackend:
    """Image compare OCR backend."""

    def __init__(self, database: str = DEFAULT_DATABASE_NAME,
                 source_format: str = DEFAULT_SOURCE_FORMAT,
                 threshold_percent: Optional[float] = None,
                 confirmer: Optional[Confirmer] = None,
                 space_threshold: int = DEFAULT_SPACE_PIXELS,
                 right_to_left: bool = False,
                 top_to_bottom: bool = True,
                 root_dir: Union[str, Path, None] = None,
                 measure_time: bool = True):
        """
        Initialize the backend.

        Args:
            database: Database name
            source_format: Threshold preset ('vobsub' strict, 'bluray' loose)
            threshold_percent: Explicit accept threshold, overrides the preset
            confirmer: Human confirmation collaborator (default: skip everything)
            space_threshold: Column gap in pixels that counts as a space
            right_to_left: Right-to-left reading order
            top_to_bottom: Line order
            root_dir: Directory holding all databases (default: user data dir)
            measure_time: Enable timing measurements
        """
        self.threshold_percent = resolve_threshold(source_format, threshold_percent)
        self.cancel_token = CancellationToken()
        self.template_manager = TemplateManager(database, root_dir)
        self.session = RecognitionSession(
            self.template_manager,
            self.threshold_percent,
            confirmer,
            space_threshold=space_threshold,
            right_to_left=right_to_left,
            top_to_bottom=top_to_bottom,
            cancel_token=self.cancel_token,
            measure_time=measure_time,
        )
        log_status(log, "Database", f"{database} ({len(self.template_manager)} templates)", "🗂️")
        log_status(log, "Accept threshold", f"{self.threshold_percent}%", "🎯")

    def recognize(self, img) -> str:
        """Recognize one image array"""
        return self.session.recognize(img)

    def recognize_files(self, paths: Sequence[Union[str, Path]], start_index: int = 0) -> BatchResult:
        """
        Recognize image files in order.

        Each file is decoded when the session reaches it, so files before
        start_index are never read.

        Raises:
            OSError: if an image cannot be read
        """
        images = ImageFiles(paths)
        log_action(log, f"Recognizing {max(len(images) - start_index, 0)} of {len(images)} image(s)", "🔎")
        return self.session.recognize_batch(images, start_index)

    def cancel(self):
        """Request cancellation of the running batch"""
        self.cancel_token.cancel()

    def get_timing_stats(self) -> dict:
        return self.session.get_timing_stats()

    def get_template_stats(self) -> dict:
        """
        Get template database statistics.

        Returns:
            Dictionary with template statistics
        """
        return self.template_manager.get_statistics()

    @property
    def recent_additions(self) -> List:
        return self.session.recent_additions
