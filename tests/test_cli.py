#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for the command line entry point, settings and the backend facade
"""

import logging

import pytest

from config import (
    DIFFERENCE_PERCENT_LOOSE,
    DIFFERENCE_PERCENT_STRICT,
    SETTINGS_SECTION,
    get_config_option,
    set_config_option,
)
from image_compare.backend import ImageCompareBackend, resolve_threshold
from image_compare.imaging import save_bitmap
from main import EXIT_OK, EXIT_USAGE, run
from main.setup.arguments import setup_arguments
from main.setup.initialization import resolve_settings
from tests.conftest import compose_line, make_glyph


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


class TestResolveThreshold:
    def test_presets(self):
        assert resolve_threshold("vobsub") == DIFFERENCE_PERCENT_STRICT
        assert resolve_threshold("bluray") == DIFFERENCE_PERCENT_LOOSE

    def test_explicit_value_wins(self):
        assert resolve_threshold("vobsub", 5) == 5.0

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            resolve_threshold("dvd")
        with pytest.raises(ValueError):
            resolve_threshold("vobsub", -1)


def test_backend_recognizes_files(tmp_path, db_root):
    image, _ = compose_line([make_glyph(6, 12, seed=1), make_glyph(7, 12, seed=2)], gaps=[1])
    path = tmp_path / "sub_0001.png"
    save_bitmap(path, image)

    backend = ImageCompareBackend("Test", root_dir=db_root)
    result = backend.recognize_files([path])

    assert result.lines == ["**"]
    assert backend.get_template_stats()['total_templates'] == 0
    assert backend.get_timing_stats()['recognition_call_count'] == 1


def test_backend_only_reads_files_from_start_index(tmp_path, db_root):
    image, _ = compose_line([make_glyph(6, 12, seed=1)], gaps=[])
    path = tmp_path / "sub_0002.png"
    save_bitmap(path, image)
    backend = ImageCompareBackend("Test", root_dir=db_root)

    result = backend.recognize_files([tmp_path / "missing.png", path], start_index=1)

    assert result.lines == ["*"]
    with pytest.raises(OSError):
        backend.recognize_files([tmp_path / "missing.png", path])


class TestSettings:
    def test_command_line_wins(self):
        set_config_option(SETTINGS_SECTION, "pixels_are_space", "20")
        args = setup_arguments(["recognize", "a.png", "--space-pixels", "9", "--database", "Greek"])
        settings = resolve_settings(args)
        assert settings.space_pixels == 9
        assert settings.database == "Greek"

    def test_config_ini_fallback(self):
        set_config_option(SETTINGS_SECTION, "last_database", "Hebrew")
        set_config_option(SETTINGS_SECTION, "right_to_left", "true")
        set_config_option(SETTINGS_SECTION, "allow_difference_percent", "7.5")
        settings = resolve_settings(setup_arguments(["recognize", "a.png"]))
        assert settings.database == "Hebrew"
        assert settings.right_to_left is True
        assert settings.threshold_percent == 7.5

    def test_invalid_stored_threshold_is_ignored(self):
        set_config_option(SETTINGS_SECTION, "allow_difference_percent", "lots")
        settings = resolve_settings(setup_arguments(["recognize", "a.png"]))
        assert settings.threshold_percent is None

    def test_source_preset_ignores_stored_threshold(self):
        set_config_option(SETTINGS_SECTION, "allow_difference_percent", "7.5")
        settings = resolve_settings(setup_arguments(["recognize", "a.png", "--source", "bluray"]))
        assert settings.source_format == "bluray"
        assert settings.threshold_percent is None


def test_recognize_command(tmp_path, capsys):
    image, _ = compose_line([make_glyph(6, 12, seed=1), make_glyph(7, 12, seed=2)], gaps=[20])
    path = tmp_path / "sub.png"
    save_bitmap(path, image)

    code = run(["--no-log-file", "recognize", str(path), "--database", "Latin"])

    assert code == EXIT_OK
    assert capsys.readouterr().out.strip() == "* *"
    assert get_config_option(SETTINGS_SECTION, "last_database") == "Latin"


def test_recognize_writes_output_file(tmp_path):
    image, _ = compose_line([make_glyph(6, 12, seed=1)], gaps=[])
    path = tmp_path / "sub.png"
    save_bitmap(path, image)
    out = tmp_path / "out.txt"

    assert run(["--no-log-file", "recognize", str(path), "--output", str(out)]) == EXIT_OK
    assert out.read_text(encoding="utf-8") == "*\n"


def test_recognize_rejects_negative_threshold(tmp_path):
    assert run(["--no-log-file", "recognize", str(tmp_path / "x.png"), "--threshold", "-3"]) == EXIT_USAGE


def test_databases_command(capsys):
    assert run(["--no-log-file", "databases"]) == EXIT_OK
    assert capsys.readouterr().out.split() == ["Latin"]


def test_stats_command(capsys):
    assert run(["--no-log-file", "stats", "--database", "Greek"]) == EXIT_OK
    assert "total_templates: 0" in capsys.readouterr().out
