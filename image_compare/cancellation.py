#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Cooperative cancellation for recognition batches
"""

import threading


class OcrCancelled(Exception):
    """Raised when a recognition batch is cancelled mid-search or mid-session"""


class CancellationToken:
    """Cancellation flag passed explicitly through the session and the matcher"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OcrCancelled("Recognition cancelled")
