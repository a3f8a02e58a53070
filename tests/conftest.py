#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Shared fixtures: isolated user data dir, template stores and synthetic glyphs
"""

from typing import List, Sequence, Tuple

import numpy as np
import pytest

from image_compare.template_manager import TemplateManager


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep settings, logs and databases inside the test's tmp dir"""
    home = tmp_path / "home"
    monkeypatch.setenv("SUBTITLE_OCR_HOME", str(home))
    return home


@pytest.fixture
def db_root(tmp_path):
    return tmp_path / "databases"


@pytest.fixture
def store(db_root):
    return TemplateManager("Test", root_dir=db_root)


def make_glyph(width: int, height: int, seed: int) -> np.ndarray:
    """
    Random binary glyph whose first and last rows are solid.

    Solid edge rows keep every column non-empty (one connected column run)
    and make the vertical tight crop a no-op.
    """
    rng = np.random.default_rng(seed)
    glyph = np.where(rng.random((height, width)) > 0.5, 255, 0).astype(np.uint8)
    glyph[0, :] = 255
    glyph[-1, :] = 255
    return glyph


def compose_line(glyphs: Sequence[np.ndarray], gaps: Sequence[int], margin: int = 3) -> Tuple[np.ndarray, List[int]]:
    """
    Place glyphs side by side on a black image.

    Args:
        glyphs: Glyph bitmaps (same height)
        gaps: Column gap after each glyph but the last

    Returns:
        Tuple of (image, x offsets of the glyphs)
    """
    height = max(g.shape[0] for g in glyphs)
    width = sum(g.shape[1] for g in glyphs) + sum(gaps) + 2 * margin
    image = np.zeros((height + 2 * margin, width), dtype=np.uint8)
    xs = []
    x = margin
    for index, glyph in enumerate(glyphs):
        image[margin:margin + glyph.shape[0], x:x + glyph.shape[1]] = glyph
        xs.append(x)
        x += glyph.shape[1]
        if index < len(gaps):
            x += gaps[index]
    return image, xs
