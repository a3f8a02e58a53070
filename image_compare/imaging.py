#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Bitmap primitives for the image compare OCR.

Binarization, the pixel difference metric, exact-size cropping, vertical
auto-cropping and lossless bitmap file I/O. These are the default
collaborators of the matcher and the template store; each can be swapped
for another implementation with the same signature.
"""

from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

from config import BINARY_THRESHOLD, BITMAP_EXTENSION, PIXEL_COLOR_TOLERANCE


def to_binary(img: np.ndarray) -> np.ndarray:
    """
    Convert an image to a binary bitmap (0 or 255).

    Args:
        img: Grayscale, BGR or BGRA image

    Returns:
        2-D uint8 bitmap, white glyphs on black
    """
    if img.ndim == 3:
        code = cv2.COLOR_BGRA2GRAY if img.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        img = cv2.cvtColor(img, code)
    if img.dtype != np.uint8:
        img = img.astype(np.uint8)
    _, binary_img = cv2.threshold(img, BINARY_THRESHOLD, 255, cv2.THRESH_BINARY)
    return binary_img


def pixel_difference(a: np.ndarray, b: np.ndarray, tolerance: int = PIXEL_COLOR_TOLERANCE) -> int:
    """
    Count the pixels that differ between two bitmaps.

    Only the overlapping top-left region is compared, so the metric also
    works for the size-jittered probes of the matcher (equal-size inputs
    are compared in full).

    Args:
        a: First bitmap
        b: Second bitmap
        tolerance: Intensity delta up to which two pixels are considered equal

    Returns:
        Number of differing pixels (0 for identical bitmaps)
    """
    height = min(a.shape[0], b.shape[0])
    width = min(a.shape[1], b.shape[1])
    if height <= 0 or width <= 0:
        return 0
    delta = np.abs(a[:height, :width].astype(np.int16) - b[:height, :width].astype(np.int16))
    return int(np.count_nonzero(delta > tolerance))


def crop(image: np.ndarray, x: int, y: int, width: int, height: int) -> np.ndarray:
    """
    Cut a width x height rectangle out of image at (x, y).

    Parts of the rectangle outside the image are padded with background,
    so the result always has exactly the requested size.
    """
    out = np.zeros((max(height, 0), max(width, 0)), dtype=np.uint8)
    src_x1, src_y1 = max(x, 0), max(y, 0)
    src_x2 = min(x + width, image.shape[1])
    src_y2 = min(y + height, image.shape[0])
    if src_x2 <= src_x1 or src_y2 <= src_y1:
        return out
    out[src_y1 - y:src_y2 - y, src_x1 - x:src_x2 - x] = image[src_y1:src_y2, src_x1:src_x2]
    return out


def trim_columns(bitmap: np.ndarray, left: int = 0, right: int = 0) -> np.ndarray:
    """Drop columns from the left and/or right edge"""
    width = bitmap.shape[1]
    return bitmap[:, left:width - right]


def auto_crop_vertical(bitmap: np.ndarray, aggressiveness: int = 0) -> Tuple[np.ndarray, int]:
    """
    Remove near-empty rows from the top and bottom of a bitmap.

    Args:
        bitmap: Binary bitmap
        aggressiveness: Rows holding at most this many foreground pixels count as empty

    Returns:
        Tuple of (cropped_bitmap, rows_removed_from_top). The bitmap is
        returned unchanged if every row would be removed.
    """
    counts = np.count_nonzero(bitmap > BINARY_THRESHOLD, axis=1)
    rows = np.flatnonzero(counts > aggressiveness)
    if rows.size == 0:
        return bitmap, 0
    top, bottom = int(rows[0]), int(rows[-1])
    return bitmap[top:bottom + 1], top


def load_bitmap(path: Union[str, Path]) -> np.ndarray:
    """
    Load a bitmap file as a grayscale array.

    Reads through numpy so non-ASCII paths work on every platform.

    Raises:
        OSError: if the file is missing or cannot be decoded
    """
    data = np.fromfile(str(path), dtype=np.uint8)
    bitmap = cv2.imdecode(data, cv2.IMREAD_GRAYSCALE)
    if bitmap is None:
        raise OSError(f"Cannot decode bitmap: {path}")
    return bitmap


def load_image(path: Union[str, Path]) -> np.ndarray:
    """Load a subtitle frame image (any format OpenCV reads), keeping its colours"""
    data = np.fromfile(str(path), dtype=np.uint8)
    img = cv2.imdecode(data, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise OSError(f"Cannot decode image: {path}")
    return img


def save_bitmap(path: Union[str, Path], bitmap: np.ndarray) -> None:
    """
    Save a bitmap losslessly.

    Raises:
        OSError: if encoding or writing fails
    """
    ext = Path(path).suffix or BITMAP_EXTENSION
    ok, buffer = cv2.imencode(ext, np.ascontiguousarray(bitmap, dtype=np.uint8))
    if not ok:
        raise OSError(f"Failed to encode bitmap: {path}")
    buffer.tofile(str(path))
