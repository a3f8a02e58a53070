#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Glyph segmentation module for the image compare OCR.

Splits a subtitle image into text lines (row projection) and each line
into glyph slots (column projection), inserting Space slots for wide
column gaps and LineBreak slots between lines.
"""

from typing import List, Tuple

import numpy as np

from config import DEFAULT_SPACE_PIXELS, MIN_LINE_HEIGHT
from utils.core.logging import get_logger
from .imaging import to_binary
from .models import Slot

log = get_logger()


def _runs(mask: np.ndarray) -> List[Tuple[int, int]]:
    """(start, end) pairs of consecutive True values, end exclusive"""
    padded = np.concatenate(([0], mask.astype(np.int8), [0]))
    edges = np.diff(padded)
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return [(int(s), int(e)) for s, e in zip(starts, ends)]


def find_lines(binary_img: np.ndarray, min_line_height: int = MIN_LINE_HEIGHT) -> List[Tuple[int, int]]:
    """
    Find text line bands in a binary image.

    Bands thinner than min_line_height (dots, accents, stray marks) are
    merged into the closest neighbouring band.

    Returns:
        List of (top, bottom) row ranges, bottom exclusive, top to bottom
    """
    bands = [list(b) for b in _runs(np.count_nonzero(binary_img, axis=1) > 0)]

    while len(bands) > 1:
        thin = next((i for i, (top, bottom) in enumerate(bands) if bottom - top < min_line_height), None)
        if thin is None:
            break
        if thin == 0:
            other = 1
        elif thin == len(bands) - 1:
            other = thin - 1
        else:
            gap_above = bands[thin][0] - bands[thin - 1][1]
            gap_below = bands[thin + 1][0] - bands[thin][1]
            other = thin - 1 if gap_above <= gap_below else thin + 1
        first, second = sorted((thin, other))
        bands[first] = [bands[first][0], bands[second][1]]
        del bands[second]

    return [(top, bottom) for top, bottom in bands]


def split_line(binary_img: np.ndarray, top: int, bottom: int,
               space_threshold: int = DEFAULT_SPACE_PIXELS) -> List[Slot]:
    """
    Split one line band into glyph and Space slots, left to right.

    Glyph bitmaps are cropped tight vertically; (x, y) is their offset in
    the full image.
    """
    band = binary_img[top:bottom]
    slots: List[Slot] = []
    previous_end = None
    for x1, x2 in _runs(np.count_nonzero(band, axis=0) > 0):
        if previous_end is not None and x1 - previous_end >= space_threshold:
            slots.append(Slot.space())
        glyph = band[:, x1:x2]
        rows = np.flatnonzero(np.count_nonzero(glyph, axis=1))
        glyph = glyph[rows[0]:rows[-1] + 1]
        slots.append(Slot(x=x1, y=top + int(rows[0]), bitmap=glyph.copy()))
        previous_end = x2
    return slots


def split_to_slots(image: np.ndarray,
                   space_threshold: int = DEFAULT_SPACE_PIXELS,
                   right_to_left: bool = False,
                   top_to_bottom: bool = True) -> List[Slot]:
    """
    Segment a subtitle image into an ordered slot sequence.

    Args:
        image: Subtitle image (binarized here if needed)
        space_threshold: Column gap in pixels that counts as a space
        right_to_left: Reverse glyph order within each line
        top_to_bottom: False reverses the line order

    Returns:
        Slots in reading order, LineBreak slots between lines
    """
    if image is None or image.size == 0:
        log.warning("Empty or None image provided to split_to_slots")
        return []

    binary_img = to_binary(image)
    lines = find_lines(binary_img)
    if not top_to_bottom:
        lines.reverse()

    slots: List[Slot] = []
    for index, (top, bottom) in enumerate(lines):
        line_slots = split_line(binary_img, top, bottom, space_threshold)
        if right_to_left:
            line_slots.reverse()
        if index > 0:
            slots.append(Slot.line_break())
        slots.extend(line_slots)

    log.debug(f"Segmented {len(lines)} lines into {len(slots)} slots")
    return slots
