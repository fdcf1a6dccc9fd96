#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import argparse
import configparser
import os
import sys
from pathlib import Path

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from autoenroll.config import AutoEnrollConfig
from autoenroll.environ import Environ
from autoenroll.exceptions import AutoEnrollException
from autoenroll.fixtures import redact_cookie
from autoenroll.preflight import run_preflight
from autoenroll.school import get_school
from autoenroll.utils import Singleton

EXIT_OK = 0
EXIT_WARN = 1
EXIT_ERROR = 2

_CONFIG_ERRORS = (AutoEnrollException, configparser.Error, ValueError)


def _describe_task(t) -> str:
    if t["keywords"]:
        target = "keywords=" + "|".join(t["keywords"])
    else:
        target = "courses=" + ",".join("%s/%s" % c.key for c in t["courses"])
    when = "scheduled" if t["scheduled_time"] is not None else "immediate"
    ceiling = t["max_attempts"] if t["max_attempts"] is not None else "unbounded"
    return "task:%s %s %s attempts=%s" % (t["id"], when, target, ceiling)


def _print_portal(config):
    try:
        school = get_school(config.school_id)
    except _CONFIG_ERRORS:
        school = None
    print("school:", school.id if school is not None else "(unknown)")
    print("index:", school.index_url if school is not None else "-")
    try:
        cookie = redact_cookie(config.cookie)
    except _CONFIG_ERRORS:
        cookie = ""
    print("cookie:", cookie or "(empty)")


def _print_tasks(config):
    try:
        tasks = config.tasks
    except _CONFIG_ERRORS:
        print("tasks: (unreadable)")
        return
    print("tasks (%d):" % len(tasks))
    for t in tasks:
        print(" -", _describe_task(t))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check an autoenroll config.ini without touching the portal.")
    parser.add_argument("-c", "--config", required=True, help="config.ini to check")
    parser.add_argument("--strict", action="store_true", help="exit 1 on warnings")
    parser.add_argument("--list-tasks", action="store_true", help="print the parsed [task:*] sections")
    args = parser.parse_args(argv)

    cfg = Path(args.config).expanduser().resolve()
    if not cfg.is_file():
        print("[ERROR] config not found:", cfg)
        return EXIT_ERROR

    Environ().config_ini = str(cfg)
    Singleton._inst.pop(AutoEnrollConfig, None)
    try:
        config = AutoEnrollConfig()
    except _CONFIG_ERRORS + (OSError,) as e:
        print("[ERROR] unable to load %s: %s" % (cfg, e))
        return EXIT_ERROR

    issues = run_preflight(config)

    print("=== autoenroll preflight: %s ===" % cfg)
    _print_portal(config)
    if args.list_tasks:
        _print_tasks(config)
    print("")
    for level in ("ERROR", "WARN"):
        found = [i for i in issues if i.level == level]
        print("%s (%d)" % (level, len(found)))
        for i in found:
            print("  %-28s %-24s %s" % (i.code, i.key_path or "-", i.message))

    if any(i.level == "ERROR" for i in issues):
        return EXIT_ERROR
    if args.strict and issues:
        return EXIT_WARN
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
