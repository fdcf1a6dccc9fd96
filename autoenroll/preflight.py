#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from .school import get_school, list_schools


@dataclass(frozen=True)
class PreflightIssue:
    level: str  # "ERROR" | "WARN"
    code: str
    message: str
    key_path: Optional[str] = None


def _is_blank(s) -> bool:
    return s is None or str(s).strip() == ""


def run_preflight(config, now: float | None = None) -> list[PreflightIssue]:
    """
    Run static config validation. This MUST NOT:
    - perform any network request
    - resolve parameters against the portal
    """
    issues: list[PreflightIssue] = []
    now = time.time() if now is None else now

    def _add(level: str, code: str, message: str, key_path: str | None = None):
        issues.append(PreflightIssue(level=level, code=code, message=message, key_path=key_path))

    # [user] credential and school
    try:
        cookie = config.cookie
        if _is_blank(cookie):
            _add("ERROR", "cookie_missing", "user.cookie is empty", "user.cookie")
        elif "JSESSIONID" not in cookie:
            _add("WARN", "cookie_no_session_id", "user.cookie has no JSESSIONID, the portal will likely reject it", "user.cookie")
    except Exception as e:
        _add("ERROR", "cookie_read_failed", f"Unable to read user.cookie: {e}", "user.cookie")

    try:
        config.register_schools()
        school_id = config.school_id
        if get_school(school_id) is None:
            known = ", ".join(s.id for s in list_schools())
            _add("ERROR", "school_unknown", f"Unknown school {school_id!r} (known: {known}). Declare it in a [school:{school_id}] section.", "user.school")
    except Exception as e:
        _add("ERROR", "school_read_failed", f"Unable to read schools: {e}", "user.school")

    # [task] tunables
    try:
        cap = config.max_concurrent_tasks
        if cap > 20:
            _add("WARN", "max_concurrent_tasks_high", f"task.max_concurrent_tasks is {cap}, the portal may throttle the session.", "task.max_concurrent_tasks")
    except Exception as e:
        _add("ERROR", "max_concurrent_tasks_read_failed", f"Unable to read task.max_concurrent_tasks: {e}", "task.max_concurrent_tasks")

    try:
        interval = config.retry_interval
        if interval < 0.5:
            _add("WARN", "retry_interval_low", f"task.retry_interval is {interval}s (< 0.5s). This may be too aggressive.", "task.retry_interval")
    except Exception as e:
        _add("ERROR", "retry_interval_read_failed", f"Unable to read task.retry_interval: {e}", "task.retry_interval")

    try:
        batch = config.catalog_batch_size
        if batch > 10:
            _add("WARN", "catalog_batch_size_high", f"task.catalog_batch_size is {batch}, pages past the end are wasted requests.", "task.catalog_batch_size")
    except Exception as e:
        _add("ERROR", "catalog_batch_size_read_failed", f"Unable to read task.catalog_batch_size: {e}", "task.catalog_batch_size")

    try:
        config.match_threshold
    except Exception as e:
        _add("ERROR", "match_threshold_invalid", f"Unable to read task.match_threshold: {e}", "task.match_threshold")

    # [task:*] definitions
    try:
        tasks = config.tasks
    except Exception as e:
        tasks = []
        _add("ERROR", "tasks_invalid", f"Unable to read task sections: {e}", "task:*")
    else:
        if not tasks:
            _add("WARN", "tasks_empty", "No [task:*] section is defined, nothing will be enrolled.", "task:*")

    try:
        max_delay = config.schedule_max_delay
    except Exception:
        max_delay = 24 * 3600
    for t in tasks:
        when = t.get("scheduled_time")
        if when is None:
            continue
        ts = when.timestamp()
        kp = "task:%s.scheduled_time" % t["id"]
        if ts <= now:
            _add("ERROR", "scheduled_time_past", f"{kp} ({when}) is not in the future", kp)
        elif ts - now > max_delay:
            _add("ERROR", "scheduled_time_too_far", f"{kp} ({when}) is more than {max_delay / 3600:.0f}h ahead", kp)

    # WARN: request dumps hold whole portal pages
    try:
        if config.is_debug_dump_request:
            _add("WARN", "debug_dump_enabled", "client.debug_dump_request=true writes portal pages under log/request/.", "client.debug_dump_request")
    except Exception as e:
        _add("ERROR", "debug_dump_read_failed", f"Unable to read client.debug_dump_request: {e}", "client.debug_dump_request")

    # WARN: rate limit safety net may slow down burst if misconfigured.
    try:
        if bool(config.rate_limit_enable):
            _add("WARN", "rate_limit_enabled", "rate_limit.enable=true may slow burst; enable only as a safety net.", "rate_limit.enable")
    except Exception as e:
        _add("ERROR", "rate_limit_enable_read_failed", f"Unable to read rate_limit.enable: {e}", "rate_limit.enable")

    return issues
