#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for the shipped confirmation collaborators
"""

import io

import numpy as np
import pytest

from image_compare.confirmation import ConsoleConfirmer, SkipConfirmer, render_bitmap
from image_compare.models import ConfirmationRequest, Verdict, VerdictKind


def request(can_shrink=False):
    bitmap = np.zeros((3, 2), dtype=np.uint8)
    bitmap[1, 1] = 255
    return ConfirmationRequest(bitmap=bitmap, can_shrink=can_shrink)


def console(*answers):
    pending = list(answers)

    def fake_input(prompt):
        if not pending:
            raise EOFError
        return pending.pop(0)

    output = io.StringIO()
    return ConsoleConfirmer(input_fn=fake_input, output=output), output


def test_render_bitmap():
    assert render_bitmap(request().bitmap) == "..\n.#\n.."


def test_skip_confirmer_always_skips():
    assert SkipConfirmer().confirm(request()).kind is VerdictKind.SKIP


@pytest.mark.parametrize("answer, expected", [
    ("A", Verdict.confirm("A")),
    ("  rn ", Verdict.confirm("rn")),
    (":i Hi", Verdict.confirm("Hi", True)),
    (":e", Verdict.expand()),
    ("", Verdict.skip()),
    (":k", Verdict.skip()),
    (":q", Verdict.abort()),
])
def test_console_answers(answer, expected):
    confirmer, _ = console(answer)
    assert confirmer.confirm(request()) == expected


def test_shrink_only_when_possible():
    confirmer, output = console(":s", "x")
    assert confirmer.confirm(request(can_shrink=False)) == Verdict.confirm("x")
    assert ":e" in output.getvalue()

    confirmer, _ = console(":s")
    assert confirmer.confirm(request(can_shrink=True)) == Verdict.shrink()


def test_end_of_input_aborts():
    confirmer, _ = console()
    assert confirmer.confirm(request()).kind is VerdictKind.ABORT


def test_errors_are_shown():
    confirmer, output = console()
    confirmer.report_error("disk full")
    assert "disk full" in output.getvalue()


def test_empty_confirmation_is_invalid():
    with pytest.raises(ValueError):
        Verdict.confirm("")
