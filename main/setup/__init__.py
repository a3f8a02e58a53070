#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup subpackage
"""

from .arguments import setup_arguments
from .initialization import RecognitionSettings, resolve_settings, setup_logging_and_cleanup

__all__ = [
    'setup_arguments',
    'setup_logging_and_cleanup',
    'RecognitionSettings',
    'resolve_settings',
]
