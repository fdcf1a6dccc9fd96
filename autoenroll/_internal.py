#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: _internal.py

import os

_absdir = os.path.dirname(__file__)


def get_abs_path(*paths):
    return os.path.normpath(os.path.abspath(os.path.join(_absdir, *paths)))


def mkdir(path):
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)
