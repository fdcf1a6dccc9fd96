#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: matcher.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from .course import CourseRecord

DEFAULT_MATCH_THRESHOLD = 0.3
CONTAINS_BASE_SCORE = 0.9
CONTAINS_BONUS = 0.1


@dataclass(frozen=True)
class MatchResult:
    course: CourseRecord
    score: float
    keyword: str = ""


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    m, n = len(a), len(b)
    d = np.zeros((m + 1, n + 1), dtype=np.int32)
    d[:, 0] = np.arange(m + 1)
    d[0, :] = np.arange(n + 1)
    for i in range(1, m + 1):
        ca = a[i - 1]
        for j in range(1, n + 1):
            cost = 0 if ca == b[j - 1] else 1
            d[i, j] = min(d[i - 1, j] + 1, d[i, j - 1] + 1, d[i - 1, j - 1] + cost)
    return int(d[m, n])


def similarity(a: str, b: str) -> float:
    """
    Containment (case-insensitive) scores 0.9 + 0.1 * shorter / longer,
    anything else 1 - levenshtein / max length.
    """
    a = (a or "").strip().lower()
    b = (b or "").strip().lower()
    if not a or not b:
        return 1.0 if a == b and a else 0.0
    longer = max(len(a), len(b))
    if a in b or b in a:
        shorter = min(len(a), len(b))
        return CONTAINS_BASE_SCORE + CONTAINS_BONUS * (shorter / longer)
    return 1.0 - levenshtein(a, b) / longer


def score_course(course: CourseRecord, keywords: Iterable[str]):
    best, best_kw = 0.0, ""
    for kw in keywords:
        s = similarity(course.title, kw)
        if s > best:
            best, best_kw = s, kw
    return best, best_kw


def find_best_match(courses: Sequence[CourseRecord], keywords: Sequence[str],
                    threshold: float = DEFAULT_MATCH_THRESHOLD) -> Optional[MatchResult]:
    keywords = [k.strip() for k in keywords if k and k.strip()]
    if not courses or not keywords:
        return None
    best = None
    for c in courses:
        s, kw = score_course(c, keywords)
        if best is None or s > best.score:
            best = MatchResult(course=c, score=s, keyword=kw)
    if best is None or best.score < threshold:
        return None
    return best
