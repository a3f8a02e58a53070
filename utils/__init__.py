#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utils Package - Utility functions and helpers

This package is organized into subpackages:
- core: Core utilities (logging, paths)
"""

# Import paths first (doesn't depend on the logging setup)
from utils.core.paths import (
    get_user_data_dir, get_databases_dir, get_logs_dir
)

# Lazy imports for logging (to avoid import cycles through config)
# These will be imported on first access via __getattr__
def __getattr__(name):
    """Lazy import for modules that may have circular dependencies"""
    if name in {
        'get_logger', 'setup_logging', 'log_section', 'log_success',
        'log_status', 'get_log_mode', 'log_event', 'log_action'
    }:
        from utils.core import logging as _logging
        return getattr(_logging, name)

    raise AttributeError(f"module 'utils' has no attribute '{name}'")

__all__ = [
    # Paths (eagerly imported)
    'get_user_data_dir', 'get_databases_dir', 'get_logs_dir',
    # Logging (lazy)
    'get_logger', 'setup_logging', 'log_section', 'log_success',
    'log_status', 'get_log_mode', 'log_event', 'log_action',
]
