#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Recognition session for the image compare OCR.

Drives one image (or a batch of images) through segmentation, glyph
matching and, for unresolved glyphs, human confirmation, learning every
confirmed glyph into the template database before assembling the
formatted text.
"""

import time
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from config import DEFAULT_SPACE_PIXELS, UNRESOLVED_GLYPH
from utils.core.logging import get_logger, log_event, log_section
from .assembler import assemble, reverse_digits
from .cancellation import CancellationToken, OcrCancelled
from .confirmation import Confirmer, SkipConfirmer
from .imaging import crop, pixel_difference, to_binary
from .matcher import DifferenceFn, match_glyph
from .models import (
    Accept,
    BatchResult,
    ConfirmationRequest,
    Glyph,
    RecentAddition,
    Slot,
    Template,
    Verdict,
    VerdictKind,
)
from .segmentation import split_to_slots
from .template_manager import TemplateManager

log = get_logger()

Segmenter = Callable[[np.ndarray, int, bool, bool], List[Slot]]


def expanded_region(selection: Sequence[Slot], source_image: np.ndarray) -> Slot:
    """
    Union of the bounding boxes of the selected slots, cut from the source.

    Works for either reading direction since only the extremes matter.
    """
    if len(selection) == 1:
        return selection[0]
    x1 = min(s.x for s in selection)
    y1 = min(s.y for s in selection)
    x2 = max(s.x + s.width for s in selection)
    y2 = max(s.y + s.height for s in selection)
    return Slot(x=x1, y=y1, bitmap=crop(source_image, x1, y1, x2 - x1, y2 - y1))


class RecognitionSession:
    """Recognizes subtitle images against one template database, learning as it goes."""

    def __init__(self, database: TemplateManager, threshold_percent: float,
                 confirmer: Optional[Confirmer] = None, *,
                 segmenter: Segmenter = split_to_slots,
                 difference: DifferenceFn = pixel_difference,
                 space_threshold: int = DEFAULT_SPACE_PIXELS,
                 right_to_left: bool = False,
                 top_to_bottom: bool = True,
                 cancel_token: Optional[CancellationToken] = None,
                 measure_time: bool = True):
        """
        Initialize a recognition session.

        Args:
            database: Loaded template database (receives learnt templates)
            threshold_percent: Accept threshold in percent of the glyph area
            confirmer: Human confirmation collaborator (default: skip everything)
            segmenter: split(image, space_threshold, right_to_left, top_to_bottom) -> slots
            difference: Pixel difference metric
            space_threshold: Column gap in pixels that counts as a space
            right_to_left: Right-to-left reading order
            top_to_bottom: Line order
            cancel_token: Cooperative cancellation token
            measure_time: Enable timing measurements
        """
        self.database = database
        self.threshold_percent = threshold_percent
        self.confirmer = confirmer or SkipConfirmer()
        self.segmenter = segmenter
        self.difference = difference
        self.space_threshold = space_threshold
        self.right_to_left = right_to_left
        self.top_to_bottom = top_to_bottom
        self.cancel_token = cancel_token or CancellationToken()
        self.measure_time = measure_time

        self.recent_additions: List[RecentAddition] = []
        self.italic_checked_last = False
        self.aborted = False
        self.counts = {'accepted': 0, 'confirmed': 0, 'skipped': 0, 'learn_failures': 0}

        # Timing statistics
        self.last_recognition_time = 0.0
        self.avg_recognition_time = 0.0
        self.recognition_call_count = 0

    def _check(self):
        self.cancel_token.raise_if_cancelled()

    def recognize(self, image: np.ndarray, line_index: int = 0) -> str:
        """
        Recognize the text of one subtitle image.

        If the confirmer aborts, the text recognized so far is returned and
        self.aborted is set.

        Args:
            image: Subtitle image (grayscale, BGR or BGRA)
            line_index: Index of the image in its batch (recorded with learnt templates)

        Returns:
            Formatted text with <i> markup

        Raises:
            OcrCancelled: if the cancellation token fires
        """
        start_time = time.perf_counter() if self.measure_time else 0
        self.aborted = False
        self._check()

        binary_img = to_binary(image)
        slots = self.segmenter(binary_img, self.space_threshold, self.right_to_left, self.top_to_bottom)
        if not slots:
            log.debug(f"No glyphs found in image {line_index}")

        glyphs: List[Glyph] = []
        index = 0
        while index < len(slots):
            self._check()
            slot = slots[index]
            if slot.is_special:
                glyphs.append(Glyph(slot.special))
                index += 1
                continue

            outcome = match_glyph(slot, binary_img, self.database, self.threshold_percent,
                                  difference=self.difference, cancel_token=self.cancel_token,
                                  right_to_left=self.right_to_left)
            if isinstance(outcome, Accept):
                glyphs.append(Glyph(outcome.text, outcome.italic))
                self.counts['accepted'] += 1
                index += max(outcome.ligature_span, 1)
                continue

            consumed, glyph = self._resolve(slots, index, binary_img, outcome.hint, line_index)
            if glyph is None:
                log.info(f"Recognition aborted at image {line_index}")
                self.aborted = True
                break
            glyphs.append(glyph)
            index += consumed

        text = assemble(glyphs)
        if self.right_to_left:
            text = reverse_digits(text)

        if self.measure_time:
            self._update_timing((time.perf_counter() - start_time) * 1000)
        log.debug(f"Image {line_index}: '{text}'")
        return text

    def _resolve(self, slots: Sequence[Slot], index: int, source_image: np.ndarray,
                 hint: Optional[Template], line_index: int) -> Tuple[int, Optional[Glyph]]:
        """
        Ask the confirmer about an unresolved glyph.

        Returns:
            Tuple of (slots_consumed, glyph); glyph is None on abort
        """
        selection = [slots[index]]
        while True:
            self._check()
            region = expanded_region(selection, source_image)
            request = ConfirmationRequest(
                bitmap=region.bitmap,
                hint=hint,
                can_shrink=len(selection) > 1,
                italic_checked_last=self.italic_checked_last,
                line_index=line_index,
                recent_additions=list(self.recent_additions),
            )
            verdict = self.confirmer.confirm(request)

            if verdict.kind is VerdictKind.CONFIRM:
                span = len(selection) if len(selection) > 1 else 0
                self.italic_checked_last = verdict.italic
                self.counts['confirmed'] += 1
                self._learn(region.bitmap, verdict, span, line_index)
                return len(selection), Glyph(verdict.text, verdict.italic)

            if verdict.kind is VerdictKind.EXPAND:
                next_index = index + len(selection)
                if next_index < len(slots) and not slots[next_index].is_special:
                    selection.append(slots[next_index])
                else:
                    log.debug("No following glyph to expand into")
                continue

            if verdict.kind is VerdictKind.SHRINK:
                if len(selection) > 1:
                    selection.pop()
                continue

            if verdict.kind is VerdictKind.SKIP:
                self.counts['skipped'] += 1
                return len(selection), Glyph(UNRESOLVED_GLYPH)

            return len(selection), None

    def _learn(self, bitmap: np.ndarray, verdict: Verdict, span: int, line_index: int):
        """Store a confirmed glyph; failures are reported, never raised"""
        try:
            template_id = self.database.add(bitmap, verdict.text, verdict.italic, span)
        except OSError as e:
            self.counts['learn_failures'] += 1
            log.error(f"Could not learn '{verdict.text}': {e}")
            self.confirmer.report_error(f"Could not save template '{verdict.text}': {e}")
            return

        self.recent_additions.append(RecentAddition(
            template_id=template_id,
            text=verdict.text,
            bitmap=bitmap,
            italic=verdict.italic,
            source_line_index=line_index,
        ))
        log_event(log, "Template learnt", "🧠",
                  {"Text": verdict.text, "Italic": verdict.italic, "Span": span, "Image": line_index})

    def recognize_batch(self, images: Sequence[np.ndarray], start_index: int = 0) -> BatchResult:
        """
        Recognize a batch of images in order, starting at start_index.

        Returns:
            BatchResult with one text per completed image. An aborted or
            cancelled image contributes no line.
        """
        result = BatchResult()
        for line_index in range(start_index, len(images)):
            try:
                text = self.recognize(images[line_index], line_index)
            except OcrCancelled:
                log.info(f"Recognition cancelled at image {line_index}")
                result.cancelled = True
                break
            if self.aborted:
                result.aborted = True
                break
            result.lines.append(text)

        log_section(log, "Batch finished", "🏁", {
            "Images": len(result.lines),
            "Accepted": self.counts['accepted'],
            "Learnt": len(self.recent_additions),
            "Skipped": self.counts['skipped'],
        })
        return result

    def resume_index(self) -> Optional[int]:
        """Image index of the most recent learning event, or None"""
        if not self.recent_additions:
            return None
        return self.recent_additions[-1].source_line_index

    def _update_timing(self, elapsed_ms: float):
        self.last_recognition_time = elapsed_ms
        self.recognition_call_count += 1
        self.avg_recognition_time = ((self.avg_recognition_time * (self.recognition_call_count - 1))
                                     + elapsed_ms) / self.recognition_call_count
        log.debug(f"[OCR:timing] Image recognized in {elapsed_ms:.2f}ms "
                  f"(avg: {self.avg_recognition_time:.2f}ms)")

    def get_timing_stats(self) -> dict:
        """
        Get recognition timing statistics.

        Returns:
            Dictionary with timing statistics
        """
        return {
            'last_recognition_time': self.last_recognition_time,
            'avg_recognition_time': self.avg_recognition_time,
            'recognition_call_count': self.recognition_call_count,
            'measure_time': self.measure_time,
        }
