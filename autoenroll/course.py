#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: course.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .tokens import TokenSet
from .const import PAGE_SIZE


@dataclass(frozen=True)
class CategoryParams:
    """ 选课类别：kklxdm / xkkz_id / njdm_id / zyh_id """

    code: str
    window_id: str
    cohort_id: str
    major_id: str

    def as_form(self):
        return {
            "kklxdm": self.code,
            "xkkz_id": self.window_id,
            "njdm_id": self.cohort_id,
            "zyh_id": self.major_id,
        }

    def __str__(self):
        return "Category(%s, %s)" % (self.code, self.window_id)


@dataclass(frozen=True, eq=False)
class RequestParameters:
    """
    Tokens scraped for one category plus the computed fields, built once per
    category per session and shared by every page of that category.
    """

    category: CategoryParams
    tokens: TokenSet
    school_id: str = ""
    used_fallback: bool = False
    page_size: int = PAGE_SIZE

    def get(self, key, default=""):
        v = self.tokens.get(key)
        if v is None or v == "":
            return default
        return v

    def __getitem__(self, key):
        return self.tokens[key]

    def __contains__(self, key):
        return key in self.tokens

    @property
    def rwlx(self):
        return self.get("rwlx")

    @property
    def xklc(self):
        return self.get("xklc")

    def to_dict(self):
        return self.tokens.to_dict()


@dataclass(frozen=True)
class CourseRecord:

    course_id: str
    class_id: str
    do_id: str
    title: str = ""
    instructor: str = ""
    schedule: str = ""
    room: str = ""
    credit: str = ""
    capacity: Optional[int] = None
    taken: Optional[int] = None
    category_code: str = ""
    params: Optional[RequestParameters] = field(default=None, compare=False, repr=False)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self):
        return (self.course_id, self.class_id)

    @property
    def is_full(self):
        if self.capacity is None or self.taken is None:
            return False
        return self.taken >= self.capacity

    def with_params(self, params):
        return replace(self, params=params)

    def to_dict(self):
        return {
            "course_id": self.course_id,
            "class_id": self.class_id,
            "do_id": self.do_id,
            "title": self.title,
            "instructor": self.instructor,
            "schedule": self.schedule,
            "room": self.room,
            "credit": self.credit,
            "capacity": self.capacity,
            "taken": self.taken,
            "category": self.category_code,
            "is_full": self.is_full,
        }

    def __str__(self):
        return "%s(%s, %s)" % (self.title or self.course_id, self.course_id, self.class_id)
