#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data types shared by the image compare OCR pipeline.

Bitmaps are 2-D uint8 numpy arrays, white glyph (255) on black (0).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Union

import numpy as np

# Special markers produced by segmentation (no bitmap attached)
SPACE = " "
LINE_BREAK = "\n"


@dataclass(frozen=True, eq=False)
class Template:
    """A persisted reference glyph owned by one database"""
    id: str
    bitmap: np.ndarray
    text: str
    italic: bool = False
    ligature_span: int = 0  # > 0: one template standing for that many slots

    @property
    def width(self) -> int:
        return self.bitmap.shape[1]

    @property
    def height(self) -> int:
        return self.bitmap.shape[0]


@dataclass(frozen=True, eq=False)
class Slot:
    """One segmentation unit: a glyph bitmap at (x, y) or a special marker"""
    x: int = 0
    y: int = 0
    bitmap: Optional[np.ndarray] = None
    special: Optional[str] = None

    @classmethod
    def space(cls) -> "Slot":
        return cls(special=SPACE)

    @classmethod
    def line_break(cls) -> "Slot":
        return cls(special=LINE_BREAK)

    @property
    def is_special(self) -> bool:
        return self.bitmap is None

    @property
    def width(self) -> int:
        return 0 if self.bitmap is None else self.bitmap.shape[1]

    @property
    def height(self) -> int:
        return 0 if self.bitmap is None else self.bitmap.shape[0]


@dataclass(frozen=True)
class Accept:
    text: str
    italic: bool = False
    ligature_span: int = 0
    template_id: Optional[str] = None
    difference_percent: float = 0.0


@dataclass(frozen=True)
class Reject:
    hint: Optional[Template] = None


MatchOutcome = Union[Accept, Reject]


class Glyph(NamedTuple):
    """Recognized text for one slot, the unit the text assembler consumes"""
    text: str
    italic: bool = False


@dataclass(frozen=True, eq=False)
class RecentAddition:
    """A template learnt during the current session"""
    template_id: str
    text: str
    bitmap: np.ndarray
    italic: bool
    source_line_index: int


class VerdictKind(Enum):
    CONFIRM = "confirm"
    EXPAND = "expand"
    SHRINK = "shrink"
    SKIP = "skip"
    ABORT = "abort"


@dataclass(frozen=True)
class Verdict:
    """Answer of the human confirmation collaborator"""
    kind: VerdictKind
    text: str = ""
    italic: bool = False

    @classmethod
    def confirm(cls, text: str, italic: bool = False) -> "Verdict":
        if not text:
            raise ValueError("A confirmed glyph needs a non-empty text")
        return cls(VerdictKind.CONFIRM, text, italic)

    @classmethod
    def expand(cls) -> "Verdict":
        return cls(VerdictKind.EXPAND)

    @classmethod
    def shrink(cls) -> "Verdict":
        return cls(VerdictKind.SHRINK)

    @classmethod
    def skip(cls) -> "Verdict":
        return cls(VerdictKind.SKIP)

    @classmethod
    def abort(cls) -> "Verdict":
        return cls(VerdictKind.ABORT)


@dataclass(frozen=True, eq=False)
class ConfirmationRequest:
    """What the confirmation collaborator gets to see for one unresolved glyph"""
    bitmap: np.ndarray
    hint: Optional[Template] = None
    can_shrink: bool = False
    italic_checked_last: bool = False
    line_index: int = 0
    recent_additions: List[RecentAddition] = field(default_factory=list)


@dataclass
class BatchResult:
    lines: List[str] = field(default_factory=list)
    aborted: bool = False
    cancelled: bool = False
