#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import threading
import time
from urllib.parse import urlparse


class TokenBucket:
    def __init__(self, rate, burst):
        self.rate = max(0.0, float(rate))
        self.capacity = max(0.0, float(burst))
        self.tokens = self.capacity
        self.last = time.monotonic()
        self._lock = threading.Lock()

    def consume(self, tokens=1.0):
        if self.rate <= 0:
            return 0.0
        tokens = max(0.0, float(tokens))
        if tokens == 0.0:
            return 0.0
        waited = 0.0
        while True:
            with self._lock:
                now = time.monotonic()
                elapsed = max(0.0, now - self.last)
                self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
                self.last = now
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return waited
                wait = (tokens - self.tokens) / self.rate
                self.tokens = 0.0
            if wait > 0:
                time.sleep(wait)
                waited += wait


_enabled = False
_global_bucket = None
_host_buckets = {}
_portal_rate = (0.0, 0.0)
_lock = threading.Lock()
_stat_inc = None
_stat_set = None


def set_stat_hooks(stat_inc=None, stat_set=None):
    global _stat_inc, _stat_set
    _stat_inc = stat_inc
    _stat_set = stat_set


def _bucket(rate, burst):
    if rate is None or rate <= 0:
        return None
    if burst is None or burst <= 0:
        burst = max(1.0, float(rate))
    return TokenBucket(rate, burst)


def configure(config, hosts=()):
    """
    One global bucket plus one bucket per portal host. Hosts seen later by
    ``throttle`` get their own bucket lazily at the same portal rate.
    """
    global _enabled, _global_bucket, _host_buckets, _portal_rate
    _enabled = False
    _global_bucket = None
    _host_buckets = {}
    _portal_rate = (0.0, 0.0)

    if config is None or not config.rate_limit_enable:
        return

    _global_bucket = _bucket(config.rate_limit_global_rps, config.rate_limit_global_burst)
    _portal_rate = (config.rate_limit_portal_rps, config.rate_limit_portal_burst)
    for host in hosts:
        b = _bucket(*_portal_rate)
        if b is not None:
            _host_buckets[host] = b

    _enabled = True


def _host_bucket(host):
    with _lock:
        bucket = _host_buckets.get(host)
        if bucket is None:
            bucket = _bucket(*_portal_rate)
            if bucket is not None:
                _host_buckets[host] = bucket
        return bucket


def throttle(url):
    if not _enabled:
        return 0.0
    wait_total = 0.0
    try:
        if _global_bucket is not None:
            wait_total += _global_bucket.consume(1.0)
        bucket = _host_bucket(urlparse(url).hostname or "")
        if bucket is not None:
            wait_total += bucket.consume(1.0)
    finally:
        if wait_total > 0:
            if _stat_inc is not None:
                _stat_inc("rate_limit_sleep")
            if _stat_set is not None:
                _stat_set("rate_limit_last_sleep", round(wait_total, 4))
    return wait_total
