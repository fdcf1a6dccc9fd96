#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: executor.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from requests.exceptions import RequestException

from .parser import load_json, get_selected_keys, get_enroll_id
from .catalog import build_catalog_form
from .logger import ConsoleLogger, FileLogger
from .const import SELECTED_LIST_FIELDS, DETAILS_EXTRA_FIELDS, FIRST_PAGE_CURSOR
from .exceptions import AutoEnrollException, OperationFailedError

cout = ConsoleLogger("executor")
ferr = FileLogger("executor.error")

SUCCESS_FLAG = "1"


@dataclass(frozen=True)
class RegistrationVerdict:
    """
    Outcome of one enrollment attempt. The portal flag alone is not trusted:
    success requires the flag and a confirmed membership in the selected list.
    """

    flag_ok: bool
    member_ok: bool
    flag: Optional[str] = None
    message: str = ""
    data: Any = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        return self.flag_ok and self.member_ok

    def describe(self):
        if self.success:
            return "enrolled"
        if self.flag_ok:
            return "flag claims success but the course is not in the selected list"
        if self.member_ok:
            return "course is in the selected list but the flag is %r" % (self.flag,)
        return self.message or "enrollment failed (flag=%r)" % (self.flag,)


def build_enroll_form(course):
    p = course.params
    get = p.get if p is not None else (lambda k, d="": d)
    code = course.category_code or get("kklxdm", "01")
    return {
        "jxb_ids": course.do_id,
        "kch_id": course.course_id,
        "kcmc": "(%s)%s" % (course.course_id, course.title),
        "rwlx": get("rwlx", "1"),
        "rlkz": get("rlkz", "0"),
        "rlzlkz": get("rlzlkz", "1"),
        "sxbj": get("sxbj", "1"),
        "xxkbj": get("xxkbj", "0"),
        "qz": "0",
        "cxbj": get("cxbj", "0"),
        "xkkz_id": get("xkkz_id"),
        "njdm_id": get("njdm_id"),
        "zyh_id": get("zyh_id"),
        "kklxdm": code,
        "xklc": get("xklc", "2"),
        "xkxnm": get("xkxnm"),
        "xkxqm": get("xkxqm"),
        "jcxx_id": "",
    }


def build_details_form(course):
    p = course.params
    form = build_catalog_form(p, FIRST_PAGE_CURSOR)
    del form["kspage"], form["jspage"]
    for k, v in DETAILS_EXTRA_FIELDS:
        form[k] = p.get(k, v)
    form["kch_id"] = course.course_id
    return form


def needs_enroll_id(course):
    return not course.do_id or course.do_id == course.class_id


def build_selected_form(params):
    if params is None:
        return {k: "" for k in SELECTED_LIST_FIELDS}
    return {k: params.get(k) for k in SELECTED_LIST_FIELDS}


class RegistrationExecutor(object):

    def lookup_enroll_id(self, client, course):
        """
        The class id shown in the catalog is not always accepted by the
        enrollment endpoint, which wants the encrypted do_jxb_id. Returns None
        when the portal does not tell.
        """
        if course.params is None:
            return None
        try:
            r = client.post_JxbWithKchZzxkYzb(build_details_form(course))
        except (AutoEnrollException, RequestException) as e:
            ferr.error(e)
            return None
        do_id = get_enroll_id(load_json(r.text), course.class_id)
        if do_id is None:
            cout.warning("No do_jxb_id for %s, submitting the class id" % course)
        return do_id

    def submit(self, client, course):
        """ -> (flag_ok, flag, message, data) """
        if needs_enroll_id(course):
            do_id = self.lookup_enroll_id(client, course)
            if do_id:
                course = replace(course, do_id=do_id)
        try:
            r = client.post_XkBcZyZzxkYzb(build_enroll_form(course))
        except (AutoEnrollException, RequestException) as e:
            ferr.error(e)
            return False, None, str(e), None
        data = load_json(r.text)
        if not isinstance(data, dict):
            return False, None, "unrecognizable enrollment response", None
        flag = data.get("flag")
        flag = None if flag is None else str(flag)
        return flag == SUCCESS_FLAG, flag, str(data.get("msg") or ""), data

    def is_member(self, client, course):
        try:
            r = client.post_ZzxkYzbChoosedDisplay(build_selected_form(course.params))
            payload = load_json(r.text)
            if payload is None:
                raise OperationFailedError(msg="selected list is not json", response=r)
        except (AutoEnrollException, RequestException) as e:
            ferr.error(e)
            return False
        return course.key in get_selected_keys(payload)

    def attempt(self, client, course):
        flag_ok, flag, message, data = self.submit(client, course)
        member_ok = self.is_member(client, course)
        verdict = RegistrationVerdict(flag_ok=flag_ok, member_ok=member_ok, flag=flag, message=message, data=data)
        if verdict.success:
            cout.info("Enrolled %s" % course)
        else:
            cout.warning("Attempt on %s failed: %s" % (course, verdict.describe()))
        return verdict
