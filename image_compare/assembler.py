#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Text assembly for the image compare OCR.

Turns the per-slot recognition results of one image into formatted text
with <i> markup. Italic is decided per word (by letter majority), then
per line (fully italic lines and short dialogue turns become one span),
then for the whole text (one outer span when every line was italic).
"""

import re
from typing import Iterable, List, Sequence, Tuple, Union

from .models import Glyph, LINE_BREAK, SPACE

ITALIC_OPEN = "<i>"
ITALIC_CLOSE = "</i>"
DIALOGUE_DASH = "-"

GlyphLike = Union[Glyph, str, Tuple[str, bool]]
# (text, italic letters, plain letters, separator)
Word = Tuple[str, int, int, str]

_DIGIT_RUN = re.compile(r"\d{2,}")


def strip_italic(text: str) -> str:
    """Remove all italic tags"""
    return text.replace(ITALIC_OPEN, "").replace(ITALIC_CLOSE, "")


def wrap_italic(text: str) -> str:
    """Wrap text in exactly one italic span"""
    return f"{ITALIC_OPEN}{strip_italic(text)}{ITALIC_CLOSE}"


def reverse_digits(text: str) -> str:
    """
    Reverse every run of two or more digits in place.

    Used after right-to-left recognition so numbers still read left to
    right; single digits are left alone.
    """
    return _DIGIT_RUN.sub(lambda m: m.group(0)[::-1], text)


def _as_glyph(item: GlyphLike) -> Glyph:
    if isinstance(item, Glyph):
        return item
    if isinstance(item, str):
        return Glyph(item)
    return Glyph(*item)


def _render(words: Sequence[Word]) -> Tuple[str, int, int]:
    """
    Render buffered words with per-word italic spans.

    A word is italic when its italic letters are at least its plain
    letters; consecutive italic words share one span.

    Returns:
        Tuple of (line, italic_words, plain_words)
    """
    line = ""
    in_italic = False
    italic_words = plain_words = 0
    for text, italic_letters, plain_letters, separator in words:
        if not text:
            line += separator
            continue
        if italic_letters >= plain_letters and italic_letters > 0:
            if not in_italic:
                line += ITALIC_OPEN
                in_italic = True
            italic_words += 1
        else:
            if in_italic:
                line += ITALIC_CLOSE
                in_italic = False
            plain_words += 1
        line += text + separator
    if in_italic:
        line += ITALIC_CLOSE
    return line, italic_words, plain_words


class TextAssembler:
    """
    Accumulates glyphs into words and lines.

    Feed glyphs with add() and call finish() once; assemble() does both.
    Words of the current line are buffered and rendered when the line
    closes, so a leading italic dash can be judged both as part of its
    word and as a dialogue marker of its own.
    """

    def __init__(self):
        self.lines: List[str] = []
        self.all_italic = True
        self.glyph_count = 0
        self._reset_line()
        self._reset_word()

    def _reset_word(self):
        self.word = ""
        self.word_italic_letters = 0
        self.word_plain_letters = 0

    def _reset_line(self):
        self.words: List[Word] = []
        self.leading_dash = False
        self.line_italic_letters = 0

    def add(self, item: GlyphLike):
        glyph = _as_glyph(item)
        self.glyph_count += 1

        if glyph.text == SPACE:
            self._close_word(SPACE)
        elif glyph.text == LINE_BREAK:
            self._close_word("")
            self._close_line()
        else:
            if not self.words and not self.word:
                self.leading_dash = glyph.italic and glyph.text == DIALOGUE_DASH
            self.word += glyph.text
            if glyph.italic:
                self.word_italic_letters += len(glyph.text)
                self.line_italic_letters += len(glyph.text)
            else:
                self.word_plain_letters += len(glyph.text)

    def _close_word(self, separator: str):
        self.words.append((self.word, self.word_italic_letters, self.word_plain_letters, separator))
        self._reset_word()

    def _split_leading_dash(self) -> List[Word]:
        """Line words with the opening italic dash counted as a word of its own"""
        text, italic_letters, plain_letters, separator = self.words[0]
        if text == DIALOGUE_DASH:
            return self.words
        rest = (text[len(DIALOGUE_DASH):], italic_letters - len(DIALOGUE_DASH), plain_letters, separator)
        return [(DIALOGUE_DASH, len(DIALOGUE_DASH), 0, "")] + [rest] + self.words[1:]

    def _is_dialogue_turn(self, line: str, italic_words: int, plain_words: int) -> bool:
        return (italic_words > 0 and plain_words < 2
                and self.line_italic_letters < 3
                and strip_italic(line).strip().startswith(DIALOGUE_DASH))

    def _close_line(self):
        line, italic_words, plain_words = _render(self.words)

        if italic_words > 0 and plain_words == 0:
            text = wrap_italic(line)
        elif self._is_dialogue_turn(line, italic_words, plain_words):
            text = wrap_italic(line)
        elif self.leading_dash and self._is_dialogue_turn(*_render(self._split_leading_dash())):
            text = wrap_italic(line)
        else:
            self.all_italic = False
            text = line
            if italic_words > 0:
                text = text.replace(f" {ITALIC_CLOSE}", f"{ITALIC_CLOSE} ")

        self.lines.append(text)
        self._reset_line()

    def finish(self) -> str:
        if self.word:
            self._close_word("")
        if self.words:
            self._close_line()

        text = "\n".join(self.lines)
        if self.all_italic and self.glyph_count > 0:
            text = wrap_italic(text)
        return text


def assemble(glyphs: Iterable[GlyphLike]) -> str:
    """
    Build the formatted text for one image.

    Args:
        glyphs: Glyph(text, italic) per slot in reading order; " " is a
            space, "\\n" a line break. Plain strings count as non-italic.

    Returns:
        Text with <i> markup, lines separated by "\\n"
    """
    assembler = TextAssembler()
    for glyph in glyphs:
        assembler.add(glyph)
    return assembler.finish()
