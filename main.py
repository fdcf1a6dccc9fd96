#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: main.py

from autoenroll.cli import run

if __name__ == '__main__':
    run()
