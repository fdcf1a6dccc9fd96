#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: utils.py

import time
import random
import string


class Singleton(type):
    """
    Singleton Metaclass
    @link https://github.com/jhao104/proxy_pool/blob/428359c8dada998481f038dbdc8d3923e5850c0e/Util/utilClass.py
    """
    _inst = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._inst:
            cls._inst[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        return cls._inst[cls]


def now_ms():
    return int(time.time() * 1000)


def random_suffix(length=9):
    return "".join(random.choice(string.ascii_lowercase + string.digits) for _ in range(length))


def make_task_id(prefix="task"):
    return "%s_%d_%s" % (prefix, now_ms(), random_suffix())
