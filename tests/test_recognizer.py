#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for the recognition session (matching, confirmation and learning)
"""

import numpy as np
import pytest

from image_compare.cancellation import CancellationToken
from image_compare.models import Slot, Verdict
from image_compare.recognizer import RecognitionSession, expanded_region
from tests.conftest import compose_line, make_glyph

THRESHOLD = 1.0


class ScriptedConfirmer:
    """Answers with the given verdicts in order and records every request"""

    def __init__(self, *verdicts, on_confirm=None):
        self.verdicts = list(verdicts)
        self.requests = []
        self.errors = []
        self.on_confirm = on_confirm

    def confirm(self, request):
        self.requests.append(request)
        if self.on_confirm is not None:
            self.on_confirm()
        if not self.verdicts:
            raise AssertionError("Confirmer asked more often than expected")
        return self.verdicts.pop(0)

    def report_error(self, message):
        self.errors.append(message)


def three_glyph_line(gap=1):
    glyphs = [make_glyph(6, 12, seed=11), make_glyph(7, 12, seed=12), make_glyph(8, 12, seed=13)]
    image, _ = compose_line(glyphs, gaps=[gap, gap])
    return image


def two_glyph_line(gap=1):
    image, _ = compose_line([make_glyph(6, 12, seed=21), make_glyph(7, 12, seed=22)], gaps=[gap])
    return image


def test_empty_image_gives_empty_text(store):
    session = RecognitionSession(store, THRESHOLD, ScriptedConfirmer())
    assert session.recognize(np.zeros((20, 40), dtype=np.uint8)) == ""


def test_unknown_glyphs_are_skipped_by_default(store):
    session = RecognitionSession(store, THRESHOLD, space_threshold=5)
    assert session.recognize(two_glyph_line(gap=6)) == "* *"
    assert len(store) == 0


def test_confirmed_glyphs_are_learnt_and_reused(store):
    image = two_glyph_line()
    confirmer = ScriptedConfirmer(Verdict.confirm("A"), Verdict.confirm("B"))
    session = RecognitionSession(store, THRESHOLD, confirmer)

    assert session.recognize(image) == "AB"
    assert [t.text for t in store] == ["A", "B"]
    assert [r.text for r in session.recent_additions] == ["A", "B"]

    again = RecognitionSession(store, THRESHOLD, ScriptedConfirmer())
    assert again.recognize(image) == "AB"


def test_first_request_carries_no_hint_for_empty_database(store):
    confirmer = ScriptedConfirmer(Verdict.confirm("A"), Verdict.confirm("B"))
    RecognitionSession(store, THRESHOLD, confirmer).recognize(two_glyph_line())
    assert confirmer.requests[0].hint is None
    assert confirmer.requests[0].can_shrink is False


def test_italic_state_is_remembered(store):
    confirmer = ScriptedConfirmer(Verdict.confirm("A", italic=True), Verdict.confirm("B", italic=True))
    session = RecognitionSession(store, THRESHOLD, confirmer)
    assert session.recognize(two_glyph_line()) == "<i>AB</i>"
    assert confirmer.requests[1].italic_checked_last is True
    assert session.italic_checked_last is True


class TestExpand:
    def test_expanded_selection_learns_ligature(self, store):
        image = three_glyph_line()
        confirmer = ScriptedConfirmer(Verdict.expand(), Verdict.confirm("rn"), Verdict.confirm("c"))
        session = RecognitionSession(store, THRESHOLD, confirmer)

        assert session.recognize(image) == "rnc"
        first, expanded = confirmer.requests[0], confirmer.requests[1]
        assert expanded.bitmap.shape == (12, 6 + 1 + 7)
        assert expanded.can_shrink is True
        assert first.bitmap.shape == (12, 6)
        assert [(t.text, t.ligature_span) for t in store] == [("rn", 2), ("c", 0)]

    def test_ligature_advances_cursor_by_span(self, store):
        image = three_glyph_line()
        learn = ScriptedConfirmer(Verdict.expand(), Verdict.confirm("rn"), Verdict.confirm("c"))
        RecognitionSession(store, THRESHOLD, learn).recognize(image)

        session = RecognitionSession(store, THRESHOLD, ScriptedConfirmer())
        assert session.recognize(image) == "rnc"

    def test_shrink_back_to_single_slot(self, store):
        image = two_glyph_line()
        confirmer = ScriptedConfirmer(Verdict.expand(), Verdict.shrink(),
                                      Verdict.confirm("a"), Verdict.confirm("b"))
        session = RecognitionSession(store, THRESHOLD, confirmer)

        assert session.recognize(image) == "ab"
        assert confirmer.requests[2].bitmap.shape == (12, 6)
        assert confirmer.requests[2].can_shrink is False
        assert [t.ligature_span for t in store] == [0, 0]

    def test_shrink_drops_last_added_slot(self, store):
        image = three_glyph_line()
        confirmer = ScriptedConfirmer(Verdict.expand(), Verdict.expand(), Verdict.shrink(),
                                      Verdict.confirm("rn"), Verdict.confirm("c"))
        session = RecognitionSession(store, THRESHOLD, confirmer)

        assert session.recognize(image) == "rnc"
        assert confirmer.requests[2].bitmap.shape == (12, 6 + 1 + 7 + 1 + 8)
        assert confirmer.requests[3].bitmap.shape == (12, 6 + 1 + 7)

    def test_expand_does_not_cross_a_space(self, store):
        image = two_glyph_line(gap=20)
        confirmer = ScriptedConfirmer(Verdict.expand(), Verdict.confirm("a"), Verdict.confirm("b"))
        session = RecognitionSession(store, THRESHOLD, confirmer, space_threshold=10)

        assert session.recognize(image) == "a b"
        assert confirmer.requests[1].bitmap.shape == (12, 6)

    def test_skip_consumes_whole_selection(self, store):
        confirmer = ScriptedConfirmer(Verdict.expand(), Verdict.skip())
        session = RecognitionSession(store, THRESHOLD, confirmer)
        assert session.recognize(two_glyph_line()) == "*"
        assert len(store) == 0


def test_expanded_region_is_union_of_boxes():
    image = np.zeros((20, 30), dtype=np.uint8)
    image[2:10, 3:6] = 255
    image[5:15, 8:12] = 255
    slots = [Slot(3, 2, image[2:10, 3:6]), Slot(8, 5, image[5:15, 8:12])]
    for selection in (slots, slots[::-1]):
        region = expanded_region(selection, image)
        assert (region.x, region.y) == (3, 2)
        assert region.bitmap.shape == (13, 9)


def test_failed_learning_is_reported(store, monkeypatch):
    def broken_add(*args, **kwargs):
        raise OSError("read-only")

    monkeypatch.setattr(store, "add", broken_add)
    confirmer = ScriptedConfirmer(Verdict.confirm("A"), Verdict.skip())
    session = RecognitionSession(store, THRESHOLD, confirmer)

    assert session.recognize(two_glyph_line()) == "A*"
    assert len(confirmer.errors) == 1
    assert session.recent_additions == []


def test_segmenter_receives_configuration(store):
    calls = []

    def segmenter(image, space_threshold, right_to_left, top_to_bottom):
        calls.append((space_threshold, right_to_left, top_to_bottom))
        return [Slot.space()]

    session = RecognitionSession(store, THRESHOLD, segmenter=segmenter,
                                 space_threshold=17, right_to_left=True, top_to_bottom=False)
    session.recognize(np.zeros((5, 5), dtype=np.uint8))
    assert calls == [(17, True, False)]


def test_right_to_left_ligature_is_learnt_and_reused(store):
    image = two_glyph_line()
    learn = ScriptedConfirmer(Verdict.expand(), Verdict.confirm("rn"))

    assert RecognitionSession(store, THRESHOLD, learn, right_to_left=True).recognize(image) == "rn"
    assert [(t.text, t.ligature_span, t.bitmap.shape) for t in store] == [("rn", 2, (12, 14))]

    again = RecognitionSession(store, THRESHOLD, ScriptedConfirmer(), right_to_left=True)
    assert again.recognize(image) == "rn"


def test_right_to_left_digits_read_left_to_right(store):
    confirmer = ScriptedConfirmer(Verdict.confirm("1"), Verdict.confirm("2"))
    session = RecognitionSession(store, THRESHOLD, confirmer, right_to_left=True)
    assert session.recognize(two_glyph_line()) == "21"


class TestBatch:
    def test_batch_lines_and_resume_index(self, store):
        images = [np.zeros((10, 10), dtype=np.uint8), two_glyph_line()]
        confirmer = ScriptedConfirmer(Verdict.confirm("A"), Verdict.confirm("B"))
        session = RecognitionSession(store, THRESHOLD, confirmer)

        result = session.recognize_batch(images)

        assert result.lines == ["", "AB"]
        assert not result.aborted and not result.cancelled
        assert session.resume_index() == 1

    def test_start_index(self, store):
        images = [two_glyph_line(), np.zeros((10, 10), dtype=np.uint8)]
        session = RecognitionSession(store, THRESHOLD, ScriptedConfirmer())
        assert session.recognize_batch(images, start_index=1).lines == [""]
        assert session.resume_index() is None

    def test_abort_stops_batch(self, store):
        confirmer = ScriptedConfirmer(Verdict.abort())
        session = RecognitionSession(store, THRESHOLD, confirmer)

        result = session.recognize_batch([two_glyph_line(), two_glyph_line()])

        assert result.aborted
        assert result.lines == []
        assert len(confirmer.requests) == 1

    def test_cancelled_before_start(self, store):
        token = CancellationToken()
        token.cancel()
        session = RecognitionSession(store, THRESHOLD, cancel_token=token)
        result = session.recognize_batch([two_glyph_line()])
        assert result.cancelled
        assert result.lines == []

    def test_cancel_during_confirmation_keeps_store_consistent(self, store, db_root):
        token = CancellationToken()
        confirmer = ScriptedConfirmer(Verdict.confirm("A"), on_confirm=token.cancel)
        session = RecognitionSession(store, THRESHOLD, confirmer, cancel_token=token)

        result = session.recognize_batch([two_glyph_line(), two_glyph_line()])

        assert result.cancelled
        assert result.lines == []
        assert [t.text for t in store] == ["A"]
        assert len(list(store.directory.glob("*.bmp"))) == 1


def test_timing_stats(store):
    session = RecognitionSession(store, THRESHOLD)
    session.recognize(np.zeros((5, 5), dtype=np.uint8))
    stats = session.get_timing_stats()
    assert stats['recognition_call_count'] == 1
    assert stats['last_recognition_time'] >= 0
