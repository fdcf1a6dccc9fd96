#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: environ.py

import threading
from collections import defaultdict
from .utils import Singleton


class Environ(object, metaclass=Singleton):

    def __init__(self):
        self.config_ini = None
        self.stats_interval = None
        self.runtime_stats = defaultdict(int)
        self.runtime_gauges = {}
        self._stats_lock = threading.Lock()

    def stat_inc(self, key, delta=1):
        if delta == 0:
            return
        with self._stats_lock:
            self.runtime_stats[key] += delta

    def stat_set(self, key, value):
        with self._stats_lock:
            self.runtime_gauges[key] = value

    def snapshot_stats(self):
        with self._stats_lock:
            return dict(self.runtime_stats), dict(self.runtime_gauges)
