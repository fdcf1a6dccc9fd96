#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Redaction helpers for anything that may leave the process: request dumps,
log lines and task messages must never carry a session cookie or a student
number.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


_RE_JSESSIONID = re.compile(r"(?i)(JSESSIONID=)([^;\s&\"']+)")
_RE_ROUTE = re.compile(r"(?i)(\broute=)([^;\s&\"']+)")
_RE_SU_PARAM = re.compile(r"(?i)([?&]su=)([^&\s\"']+)")
_RE_XH_ID = re.compile(r"(?i)((?:name|id)=[\"']xh_id[\"'][^>]*?value=[\"'])([^\"']*)")

_SENSITIVE_QUERY_KEYS = {"su", "xh", "xh_id", "token"}


def sanitize_text(text: str, student_id: str | None = None) -> str:
    if text is None:
        return ""
    s = str(text)

    if student_id:
        s = s.replace(student_id, "STUDENT_ID")

    s = _RE_JSESSIONID.sub(r"\1JSESSIONID", s)
    s = _RE_ROUTE.sub(r"\1ROUTE", s)
    s = _RE_SU_PARAM.sub(r"\1STUDENT_ID", s)
    s = _RE_XH_ID.sub(r"\1STUDENT_ID", s)
    return s


def redact_cookie(cookie: str | None) -> str:
    """
    'JSESSIONID=abc; route=xyz' -> 'JSESSIONID=***; route=***'
    """
    if not cookie:
        return ""
    parts = []
    for item in str(cookie).split(";"):
        item = item.strip()
        if not item:
            continue
        name = item.split("=", 1)[0].strip()
        parts.append("%s=***" % name)
    return "; ".join(parts)


def redact_url(url: str, student_id: str | None = None) -> str:
    if not url:
        return ""
    try:
        parts = urlsplit(url)
        qs = parse_qsl(parts.query, keep_blank_values=True)
        new_qs = []
        for k, v in qs:
            if (k or "").lower() in _SENSITIVE_QUERY_KEYS:
                new_qs.append((k, "REDACTED"))
                continue
            if student_id and v == student_id:
                new_qs.append((k, "REDACTED"))
                continue
            new_qs.append((k, sanitize_text(v, student_id=student_id)))
        query = urlencode(new_qs, doseq=True)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))
    except ValueError:
        return sanitize_text(url, student_id=student_id)
