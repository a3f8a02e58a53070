#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Human confirmation collaborators.

The session asks a confirmer what an unresolved glyph is. A confirmer
answers with a Verdict (confirm, expand, shrink, skip or abort) and is
told when learning a confirmed glyph failed.
"""

import sys
from typing import Callable, Optional, Protocol, TextIO

import numpy as np

from utils.core.logging import get_logger
from .models import ConfirmationRequest, Verdict

log = get_logger()


class Confirmer(Protocol):
    def confirm(self, request: ConfirmationRequest) -> Verdict:
        ...

    def report_error(self, message: str) -> None:
        ...


class SkipConfirmer:
    """Non-interactive confirmer: every unresolved glyph is skipped"""

    def confirm(self, request: ConfirmationRequest) -> Verdict:
        return Verdict.skip()

    def report_error(self, message: str) -> None:
        log.warning(message)


def render_bitmap(bitmap: np.ndarray, on: str = "#", off: str = ".") -> str:
    """Text art of a binary bitmap, one text row per pixel row"""
    return "\n".join("".join(on if v else off for v in row) for row in (bitmap > 0))


HELP_TEXT = (
    "  <text>     confirm as <text>\n"
    "  :i <text>  confirm as italic <text>\n"
    "  :e         expand selection into the next glyph\n"
    "  :s         shrink selection\n"
    "  :k / Enter skip (emit '*')\n"
    "  :q         abort the batch"
)


class ConsoleConfirmer:
    """Asks on the terminal; one answer line per unresolved glyph"""

    def __init__(self, input_fn: Callable[[str], str] = input, output: Optional[TextIO] = None):
        self.input_fn = input_fn
        self.output = output or sys.stdout

    def _write(self, text: str):
        print(text, file=self.output)

    def confirm(self, request: ConfirmationRequest) -> Verdict:
        self._write("")
        self._write(render_bitmap(request.bitmap))
        hint = f"'{request.hint.text}'" if request.hint is not None else "none"
        self._write(f"Line {request.line_index + 1} | "
                    f"{request.bitmap.shape[1]}x{request.bitmap.shape[0]} | best guess: {hint}")

        while True:
            try:
                answer = self.input_fn("Glyph (:? for help): ")
            except EOFError:
                return Verdict.abort()
            verdict = self._parse(answer, request)
            if verdict is not None:
                return verdict
            self._write(HELP_TEXT)

    @staticmethod
    def _parse(answer: str, request: ConfirmationRequest) -> Optional[Verdict]:
        command = answer.strip()
        if command in ("", ":k"):
            return Verdict.skip()
        if command == ":q":
            return Verdict.abort()
        if command == ":e":
            return Verdict.expand()
        if command == ":s":
            return Verdict.shrink() if request.can_shrink else None
        if command == ":?":
            return None
        if command.startswith(":i "):
            text = command[3:].strip()
            return Verdict.confirm(text, True) if text else None
        return Verdict.confirm(command, False)

    def report_error(self, message: str) -> None:
        self._write(f"Error: {message}")
