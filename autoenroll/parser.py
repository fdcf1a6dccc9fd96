#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: parser.py

import re
from lxml import etree
from requests.compat import json
from .course import CategoryParams, CourseRecord
from .tokens import TokenSet
from .const import FIRST_CATEGORY_TOKENS, LOGIN_PAGE_MARKERS

_regexQueryCourseArgs = re.compile(r'queryCourse\s*\((?P<args>.*)\)', re.S)
_regexQuotes = re.compile(r'''['"]''')


def get_tree_from_response(r):
    return get_tree(r.text) # 不要用 r.content, 否则可能会以 latin-1 编码

def get_tree(content):
    if content is None:
        return None
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not content.strip():
        return None
    try:
        return etree.HTML(content)
    except ValueError:
        # str with an xml encoding declaration
        try:
            return etree.HTML(content.encode("utf-8"))
        except (etree.LxmlError, ValueError):
            return None
    except etree.LxmlError:
        return None

def _iter_inputs(tree):
    if tree is None:
        return []
    try:
        return tree.xpath('//input')
    except etree.LxmlError:
        return []

def extract_tokens_from_tree(tree):
    """
    Hidden inputs and inputs without a type, in document order. The first
    occurrence of a name wins.
    """
    data = {}
    for el in _iter_inputs(tree):
        t = (el.get("type") or "").strip().lower()
        if t not in ("", "hidden"):
            continue
        name = el.get("name")
        if not name or name in data:
            continue
        data[name] = el.get("value") or ""
    return TokenSet(data)

def extract_tokens(html):
    try:
        tree = get_tree(html)
    except (TypeError, AttributeError):
        return TokenSet()
    return extract_tokens_from_tree(tree)

def _strip_arg(s):
    return _regexQuotes.sub("", s.strip())

def parse_query_course_onclick(onclick):
    """
    queryCourse(this,'01','3EC3...','2024','088') -> CategoryParams
    """
    if not onclick:
        return None
    mat = _regexQueryCourseArgs.search(onclick)
    if mat is None:
        return None
    args = mat.group("args").split(",")
    if len(args) < 5:
        return None
    return CategoryParams(*(_strip_arg(a) for a in args[1:5]))

def get_category_candidates(tree, tokens=None):
    """
    Category tuples advertised on the index page. The portal's own "first*"
    hidden tokens override the corresponding field of every candidate; with
    no queryCourse markup at all they form the only candidate when complete.
    """
    candidates = []
    if tree is not None:
        try:
            elements = tree.xpath('//*[contains(@onclick, "queryCourse")]')
        except etree.LxmlError:
            elements = []
        for el in elements:
            c = parse_query_course_onclick(el.get("onclick"))
            if c is not None and c not in candidates:
                candidates.append(c)

    overrides = first_category_overrides(tokens)
    if candidates and overrides:
        overridden = []
        for c in candidates:
            c = apply_category_overrides(c, overrides)
            if c not in overridden:
                overridden.append(c)
        candidates = overridden
    elif not candidates and len(overrides) == len(FIRST_CATEGORY_TOKENS):
        candidates = [apply_category_overrides(CategoryParams("", "", "", ""), overrides)]
    return candidates

def first_category_overrides(tokens):
    if tokens is None:
        return {}
    overrides = {}
    for field, token in FIRST_CATEGORY_TOKENS:
        v = tokens.get(token)
        if v:
            overrides[field] = v
    return overrides

def apply_category_overrides(category, overrides):
    form = category.as_form()
    form.update(overrides)
    return CategoryParams(form["kklxdm"], form["xkkz_id"], form["njdm_id"], form["zyh_id"])

def is_login_page(text):
    if not text:
        return False
    return any(m in text for m in LOGIN_PAGE_MARKERS)

def load_json(text):
    if text is None:
        return None
    text = text.strip()
    if not text or text[0] not in "[{":
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None

def get_rows(payload):
    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if isinstance(payload, dict):
        rows = payload.get("tmpList")
        if isinstance(rows, list):
            return [r for r in rows if isinstance(r, dict)]
    return []

def _str(v):
    if v is None:
        return ""
    return str(v).strip()

def _to_int(v):
    v = _str(v)
    if not v:
        return None
    try:
        return int(float(v))
    except ValueError:
        return None

def _first(row, *keys):
    for k in keys:
        v = _str(row.get(k))
        if v:
            return v
    return ""

_KNOWN_ROW_KEYS = {
    "jxb_id", "do_jxb_id", "kch_id", "kch", "kcmc", "jsxx", "sksj", "jxdd",
    "xf", "jxbxf", "jxbrs", "krrl", "jxbrl", "yxzrs", "kklxdm",
}

def parse_course_row(row, params=None):
    class_id = _str(row.get("jxb_id"))
    if not class_id:
        return None
    capacity = None
    for k in ("jxbrs", "krrl", "jxbrl"):
        capacity = _to_int(row.get(k))
        if capacity is not None:
            break
    category_code = _str(row.get("kklxdm"))
    if not category_code and params is not None:
        category_code = params.category.code
    return CourseRecord(
        course_id=_first(row, "kch_id", "kch") or class_id,
        class_id=class_id,
        do_id=_first(row, "do_jxb_id") or class_id,
        title=_str(row.get("kcmc")),
        instructor=_str(row.get("jsxx")),
        schedule=_str(row.get("sksj")),
        room=_str(row.get("jxdd")),
        credit=_first(row, "xf", "jxbxf"),
        capacity=capacity,
        taken=_to_int(row.get("yxzrs")),
        category_code=category_code,
        params=params,
        extra={k: v for k, v in row.items() if k not in _KNOWN_ROW_KEYS},
    )

def get_courses(payload, params=None):
    courses = []
    for row in get_rows(payload):
        c = parse_course_row(row, params)
        if c is not None:
            courses.append(c)
    return courses

def get_selected_keys(payload):
    keys = set()
    for row in get_rows(payload):
        kch = _first(row, "kch_id", "kch")
        jxb = _str(row.get("jxb_id"))
        if kch and jxb:
            keys.add((kch, jxb))
    return keys

def get_enroll_id(payload, class_id):
    """ do_jxb_id of ``class_id`` in a cxJxbWithKchZzxkYzb response """
    rows = get_rows(payload)
    for row in rows:
        if _str(row.get("jxb_id")) == class_id:
            return _first(row, "do_jxb_id") or None
    if len(rows) == 1:
        return _first(rows[0], "do_jxb_id") or None
    return None
