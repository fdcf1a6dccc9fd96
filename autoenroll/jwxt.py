#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: jwxt.py

from .client import BaseClient
from .hook import get_hooks, merge_hooks, with_etree, check_status_code, check_login_page, \
    debug_print_request, debug_dump_request
from .const import USER_AGENT

_hooks_check_status_code = get_hooks(
    debug_print_request,
    check_status_code,
    debug_dump_request,
)

_hooks_check_page = merge_hooks(
    _hooks_check_status_code,
    get_hooks(
        check_login_page,
        with_etree,
    ),
)

_hooks_check_json = merge_hooks(
    _hooks_check_status_code,
    get_hooks(
        check_login_page,
    ),
)


class JwxtClient(BaseClient):
    """
    Client of the ZhengFang "jwglxt" self-service enrollment module. The
    session credential is an opaque cookie string forwarded verbatim.
    """

    default_headers = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Accept-Language": "zh-CN,zh;q=0.9",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "User-Agent": USER_AGENT,
    }

    def __init__(self, school, cookie, **kwargs):
        super().__init__(**kwargs)
        self._school = school
        self._cookie = cookie or ""
        self.block_cookies()

    @property
    def school(self):
        return self._school

    def _headers(self, referer=None, ajax=False):
        headers = {
            "Cookie": self._cookie,
            "Origin": self._school.base_url,
            "Referer": referer or self._school.index_url,
        }
        if ajax:
            headers["Accept"] = "application/json, text/javascript, */*; q=0.01"
            headers["X-Requested-With"] = "XMLHttpRequest"
        return headers

    def get_ZzxkYzbIndex(self, **kwargs):
        r = self._get(
            url=self._school.index_url,
            headers=self._headers(),
            hooks=_hooks_check_page,
            **kwargs
        )
        return r

    def post_ZzxkYzbDisplay(self, category, **kwargs):
        data = category.as_form()
        data.update({
            "xszxzt": "1",
            "kspage": "0",
            "jspage": "0",
        })
        r = self._post(
            url=self._school.display_url,
            data=data,
            headers=self._headers(referer=self._school.index_url),
            hooks=_hooks_check_page,
            **kwargs
        )
        return r

    def post_ZzxkYzbPartDisplay(self, form, **kwargs):
        r = self._post(
            url=self._school.catalog_url,
            data=form,
            headers=self._headers(ajax=True),
            hooks=_hooks_check_json,
            **kwargs
        )
        return r

    def post_ZzxkYzbChoosedDisplay(self, form, **kwargs):
        r = self._post(
            url=self._school.selected_url,
            data=form,
            headers=self._headers(ajax=True),
            hooks=_hooks_check_json,
            **kwargs
        )
        return r

    def post_XkBcZyZzxkYzb(self, form, **kwargs):
        r = self._post(
            url=self._school.enroll_url,
            data=form,
            headers=self._headers(ajax=True),
            hooks=_hooks_check_json,
            **kwargs
        )
        return r

    def post_JxbWithKchZzxkYzb(self, form, **kwargs):
        r = self._post(
            url=self._school.details_url,
            data=form,
            headers=self._headers(ajax=True),
            hooks=_hooks_check_json,
            **kwargs
        )
        return r
