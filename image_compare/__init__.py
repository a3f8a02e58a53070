#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Image Compare OCR Module

Recognizes subtitle images glyph by glyph against a growable database of
reference bitmaps, learning unknown glyphs through human confirmation.
"""

from .assembler import assemble, reverse_digits
from .backend import ImageCompareBackend, resolve_threshold
from .cancellation import CancellationToken, OcrCancelled
from .confirmation import ConsoleConfirmer, SkipConfirmer
from .matcher import match_glyph
from .models import Accept, Glyph, Reject, Slot, Template, Verdict
from .recognizer import RecognitionSession
from .segmentation import split_to_slots
from .template_manager import TemplateManager, list_databases

__all__ = [
    'assemble',
    'reverse_digits',
    'ImageCompareBackend',
    'resolve_threshold',
    'CancellationToken',
    'OcrCancelled',
    'ConsoleConfirmer',
    'SkipConfirmer',
    'match_glyph',
    'Accept',
    'Glyph',
    'Reject',
    'Slot',
    'Template',
    'Verdict',
    'RecognitionSession',
    'split_to_slots',
    'TemplateManager',
    'list_databases',
]
