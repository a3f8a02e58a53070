#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Path utilities for Subtitle OCR
Handles user data directories and permissions
"""

import os
from pathlib import Path

from config import APP_NAME, DATABASES_DIR_NAME


def get_user_data_dir() -> Path:
    """
    Get the user data directory where the application can write files.
    This ensures proper permissions regardless of where the app is installed.

    SUBTITLE_OCR_HOME overrides the platform default (handy for portable
    installs and for tests).
    """
    override = os.environ.get("SUBTITLE_OCR_HOME")
    if override:
        return Path(override)

    if os.name == "nt":  # Windows
        # Use %LOCALAPPDATA% for user-specific data (logs, databases, etc.)
        localappdata = os.environ.get("LOCALAPPDATA")
        if localappdata:
            return Path(localappdata) / APP_NAME
        else:
            # Fallback to user profile
            userprofile = os.environ.get("USERPROFILE")
            if userprofile:
                return Path(userprofile) / "AppData" / "Local" / APP_NAME
            else:
                # Last resort: current directory
                return Path.cwd() / APP_NAME
    else:  # Linux/macOS
        # Use XDG_DATA_HOME or fallback to ~/.local/share
        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        if xdg_data_home:
            return Path(xdg_data_home) / APP_NAME
        else:
            return Path.home() / ".local" / "share" / APP_NAME


def get_databases_dir() -> Path:
    """
    Get the root directory holding one sub-directory per image compare database.
    Creates the directory if it doesn't exist.
    """
    databases_dir = get_user_data_dir() / DATABASES_DIR_NAME
    databases_dir.mkdir(parents=True, exist_ok=True)
    return databases_dir


def get_logs_dir() -> Path:
    """
    Get the logs directory path.
    Creates the directory if it doesn't exist.
    """
    logs_dir = get_user_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def ensure_write_permissions(path: Path) -> bool:
    """
    Ensure that the given path is writable.
    Returns True if writable, False otherwise.
    """
    try:
        # Try to create a test file
        test_file = path / ".write_test"
        test_file.touch()
        test_file.unlink()
        return True
    except (OSError, PermissionError):
        return False
