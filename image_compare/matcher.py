#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Glyph matching module for the image compare OCR.

Finds the template closest to one segmented glyph by running an ordered
cascade of probes over the database (ligatures first, then exact size,
then a fixed table of size jitters, then edge-trimmed retries) and
applies a percentage threshold to the best pixel difference found.

The evaluation order matters: within a probe the first template in load
order wins ties, and every stage stops as soon as an exact (0) match is
known.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from config import (
    AUTOCROP_LEVELS,
    AUTOCROP_RETRY_MIN_WIDTH,
    MAX_DIFFERENCE,
    NARROW_GLYPH_MAX_WIDTH,
    TRIM_COLUMNS,
    TRIM_RETRY_MIN_WIDTH,
)
from utils.core.logging import get_logger
from .cancellation import CancellationToken
from .imaging import auto_crop_vertical, crop, pixel_difference, trim_columns
from .models import Accept, MatchOutcome, Reject, Slot, Template
from .template_manager import TemplateManager

log = get_logger()

DifferenceFn = Callable[[np.ndarray, np.ndarray], int]

# (template width - target width, template height - target height, target width must exceed)
SIZE_PROBES: Tuple[Tuple[int, int, int], ...] = (
    (0, -1, NARROW_GLYPH_MAX_WIDTH),
    (0, +1, NARROW_GLYPH_MAX_WIDTH),
    (+1, +1, NARROW_GLYPH_MAX_WIDTH),
    (-1, 0, NARROW_GLYPH_MAX_WIDTH),
    (-1, -1, NARROW_GLYPH_MAX_WIDTH),
    (-2, 0, 10),
    (-3, 0, 12),
    (0, -3, 12),
    (+1, 0, NARROW_GLYPH_MAX_WIDTH),
    (+2, 0, NARROW_GLYPH_MAX_WIDTH),
)


@dataclass(frozen=True)
class SearchState:
    """Running best of one search; index into the database load order (-1 = none)"""
    best_diff: int = MAX_DIFFERENCE
    best_index: int = -1

    @property
    def exact(self) -> bool:
        return self.best_diff == 0

    @property
    def found(self) -> bool:
        return self.best_index >= 0


def probe(state: SearchState, templates: Sequence[Template], target: np.ndarray,
          width_delta: int = 0, height_delta: int = 0,
          difference: DifferenceFn = pixel_difference) -> SearchState:
    """
    Compare target against every template of exactly the probed size.

    Args:
        state: Running best so far
        templates: Database templates in load order
        target: Glyph bitmap
        width_delta: Probed template width minus target width
        height_delta: Probed template height minus target height
        difference: Pixel difference metric

    Returns:
        Updated state (the same object if nothing improved)
    """
    if state.exact:
        return state

    width = target.shape[1] + width_delta
    height = target.shape[0] + height_delta
    best_diff, best_index = state.best_diff, state.best_index
    for index, template in enumerate(templates):
        if template.width != width or template.height != height:
            continue
        diff = difference(template.bitmap, target)
        if diff < best_diff:
            best_diff, best_index = diff, index
            if diff == 0:
                break

    if best_index == state.best_index and best_diff == state.best_diff:
        return state
    return SearchState(best_diff, best_index)


def ligature_probe(state: SearchState, templates: Sequence[Template], slot: Slot,
                   source_image: np.ndarray,
                   difference: DifferenceFn = pixel_difference,
                   right_to_left: bool = False) -> SearchState:
    """
    Compare ligature templates wider than the slot against the source region at the slot position.

    Right to left, the region is anchored at the slot's right edge and
    extends over the glyphs to its left.
    """
    if state.exact:
        return state

    best_diff, best_index = state.best_diff, state.best_index
    for index, template in enumerate(templates):
        if template.ligature_span <= 0 or template.width <= slot.width:
            continue
        x = slot.x + slot.width - template.width if right_to_left else slot.x
        region = crop(source_image, x, slot.y, template.width, template.height)
        diff = difference(template.bitmap, region)
        if diff < best_diff:
            best_diff, best_index = diff, index
            if diff == 0:
                break

    if best_index == state.best_index and best_diff == state.best_diff:
        return state
    return SearchState(best_diff, best_index)


def size_cascade(state: SearchState, templates: Sequence[Template], target: np.ndarray,
                 difference: DifferenceFn = pixel_difference) -> SearchState:
    """Exact-size probe followed by the size jitter table"""
    state = probe(state, templates, target, 0, 0, difference)
    width = target.shape[1]
    for width_delta, height_delta, min_width in SIZE_PROBES:
        if state.exact:
            break
        if width > min_width:
            state = probe(state, templates, target, width_delta, height_delta, difference)
    return state


def _check(cancel_token: Optional[CancellationToken]):
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()


def find_best_match(slot: Slot, source_image: np.ndarray, templates: Sequence[Template],
                    difference: DifferenceFn = pixel_difference,
                    cancel_token: Optional[CancellationToken] = None,
                    right_to_left: bool = False) -> SearchState:
    """
    Run the full search cascade for one glyph slot.

    Raises:
        OcrCancelled: if the token is cancelled between stages
    """
    target = slot.bitmap
    width = target.shape[1]

    state = ligature_probe(SearchState(), templates, slot, source_image, difference, right_to_left)
    _check(cancel_token)

    if not state.exact:
        state = size_cascade(state, templates, target, difference)

    if state.exact or width <= TRIM_RETRY_MIN_WIDTH:
        return state

    # Anti-aliasing bleed at the glyph edges
    _check(cancel_token)
    state = size_cascade(state, templates, trim_columns(target, right=TRIM_COLUMNS), difference)
    if state.exact:
        return state

    left_trimmed = trim_columns(target, left=TRIM_COLUMNS)
    state = size_cascade(state, templates, left_trimmed, difference)
    if state.exact or width <= AUTOCROP_RETRY_MIN_WIDTH:
        return state

    for level in AUTOCROP_LEVELS:
        if state.exact:
            break
        _check(cancel_token)
        cropped, _ = auto_crop_vertical(left_trimmed, level)
        if cropped.shape[0] != left_trimmed.shape[0]:
            state = size_cascade(state, templates, cropped, difference)
    return state


def match_glyph(slot: Slot, source_image: np.ndarray, database: TemplateManager,
                threshold_percent: float, *,
                difference: DifferenceFn = pixel_difference,
                cancel_token: Optional[CancellationToken] = None,
                right_to_left: bool = False) -> MatchOutcome:
    """
    Match one glyph slot against the database.

    Args:
        slot: Glyph slot (bitmap plus its offset in the source image)
        source_image: Binary source image the slot was cut from
        database: Loaded template database
        threshold_percent: Accept when the best difference is strictly below
            this percentage of the slot area
        difference: Pixel difference metric
        cancel_token: Optional cancellation token checked between stages
        right_to_left: Reading direction; anchors ligature regions at the
            slot's right edge

    Returns:
        Accept with the resolved template data, or Reject carrying the best
        template found as hint (None for an empty database)

    Raises:
        ValueError: for special slots (no bitmap)
        OcrCancelled: on cancellation
    """
    if slot.bitmap is None:
        raise ValueError("Special slots carry no bitmap to match")

    templates = database.templates
    if not templates:
        log.debug("Empty database - glyph rejected without hint")
        return Reject(None)

    area = slot.width * slot.height
    if area == 0:
        log.warning("Empty glyph bitmap provided to match_glyph")
        return Reject(None)

    state = find_best_match(slot, source_image, templates, difference, cancel_token, right_to_left)
    if not state.found:
        log.trace(f"No candidate for {slot.width}x{slot.height} glyph at ({slot.x}, {slot.y})")
        return Reject(None)

    best = templates[state.best_index]
    percent = state.best_diff * 100.0 / area
    if percent < threshold_percent:
        resolved = database.lookup(best.id)
        log.debug(f"Matched '{resolved.text}' (diff: {state.best_diff}, {percent:.2f}%)")
        return Accept(resolved.text, resolved.italic, resolved.ligature_span, resolved.id, percent)

    log.debug(f"No match below {threshold_percent}% (best: '{best.text}' at {percent:.2f}%)")
    return Reject(best)
