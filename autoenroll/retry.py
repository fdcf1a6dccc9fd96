#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: retry.py

import threading


class RetryPolicy(object):
    """
    Fixed-interval retry. ``max_attempts=None`` keeps retrying until success
    or cancellation; an integer bounds the number of attempts.

    The waiter is called as ``waiter(cancel_event, seconds)`` and returns True
    when it was interrupted by a cancellation.
    """

    def __init__(self, interval=1.0, max_attempts=None, waiter=None):
        if interval < 0:
            raise ValueError("interval must be >= 0, got %r" % interval)
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be >= 1, got %r" % max_attempts)
        self.interval = float(interval)
        self.max_attempts = max_attempts
        self._waiter = waiter or _event_wait

    @property
    def unbounded(self):
        return self.max_attempts is None

    def exhausted(self, attempts):
        return self.max_attempts is not None and attempts >= self.max_attempts

    def sleep(self, cancel_event, seconds=None):
        seconds = self.interval if seconds is None else seconds
        if cancel_event is None:
            cancel_event = threading.Event()
        if cancel_event.is_set():
            return True
        return bool(self._waiter(cancel_event, seconds))

    def with_max_attempts(self, max_attempts):
        return RetryPolicy(self.interval, max_attempts, self._waiter)

    def __repr__(self):
        return "RetryPolicy(interval=%r, max_attempts=%r)" % (self.interval, self.max_attempts)


def _event_wait(cancel_event, seconds):
    return cancel_event.wait(seconds)
