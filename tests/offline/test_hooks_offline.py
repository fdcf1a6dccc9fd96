#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import configparser
import os
import tempfile
import unittest
from types import SimpleNamespace
from unittest import mock

from autoenroll import hook
from autoenroll.hook import (
    debug_dump_request,
    with_etree,
    check_status_code,
    check_login_page,
    get_hooks,
    merge_hooks,
)
from autoenroll.exceptions import (
    ServerError,
    StatusCodeError,
    SessionExpiredError,
)


REPO_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class FakeResponse(object):
    def __init__(self, text="", status_code=200, url="https://newjwc.tyust.edu.cn", reason="OK"):
        self.text = text
        self.content = text.encode("utf-8")
        self.status_code = status_code
        self.reason = reason
        self.url = url
        self.headers = {}
        self.request = SimpleNamespace(method="GET")
        self.history = []


class HookOfflineTest(unittest.TestCase):
    def test_status_code_ok(self):
        check_status_code(FakeResponse(status_code=200))
        check_status_code(FakeResponse(status_code=302))

    def test_status_code_server_error(self):
        r = FakeResponse(status_code=500, reason="Internal Server Error")
        with self.assertRaises(ServerError) as ctx:
            check_status_code(r)
        self.assertIs(ctx.exception.response, r)

    def test_status_code_not_found(self):
        with self.assertRaises(StatusCodeError):
            check_status_code(FakeResponse(status_code=404, reason="Not Found"))

    def test_session_expired_status(self):
        for code in (901, 910):
            with self.assertRaises(SessionExpiredError):
                check_status_code(FakeResponse(status_code=code))

    def test_login_page_detected(self):
        html = "<html><head><title>用户登录</title></head><body><form></form></body></html>"
        with self.assertRaises(SessionExpiredError):
            check_login_page(FakeResponse(text=html))

    def test_json_body_is_never_a_login_page(self):
        check_login_page(FakeResponse(text='{"flag": "0", "msg": "用户登录已过期"}'))
        check_login_page(FakeResponse(text='[]'))

    def test_with_etree(self):
        r = FakeResponse(text="<html><body><input type='hidden' name='a' value='1'></body></html>")
        with_etree(r)
        self.assertEqual(r._tree.xpath('//input/@name'), ["a"])

    def test_with_etree_blank_body(self):
        r = FakeResponse(text="")
        with_etree(r)
        self.assertIsNone(r._tree)

    def test_merge_hooks_keeps_order(self):
        def a(r, **kwargs):
            pass

        def b(r, **kwargs):
            pass

        hooks = merge_hooks(get_hooks(a), get_hooks(b, a))
        self.assertEqual(hooks["response"], [a, b, a])

class DebugDumpOfflineTest(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.patches = [
            mock.patch.object(hook, "_USER_REQUEST_LOG_DIR", self.tmpdir.name),
            mock.patch.object(hook, "_debug_dump", True),
        ]
        for p in self.patches:
            p.start()

    def tearDown(self):
        for p in self.patches:
            p.stop()
        self.tmpdir.cleanup()

    def _dumped(self):
        names = os.listdir(self.tmpdir.name)
        self.assertEqual(len(names), 1)
        with open(os.path.join(self.tmpdir.name, names[0]), "r", encoding="utf-8") as fp:
            return names[0], fp.read()

    def test_dump_is_sanitized(self):
        html = (
            "<html><body>"
            "<input type='hidden' name='xh_id' value='2024123456'>"
            "<script>document.cookie='JSESSIONID=ABCDEF0123; route=r1';</script>"
            "</body></html>"
        )
        r = FakeResponse(text=html, url="https://newjwc.tyust.edu.cn/jwglxt/xsxk/zzxkyzb_cxZzxkYzbIndex.html"
                                        "?gnmkdm=N253512&su=2024123456")
        debug_dump_request(r)
        name, body = self._dumped()
        self.assertIn("zzxkyzb_cxZzxkYzbIndex.html", name)
        self.assertNotIn("2024123456", body)
        self.assertNotIn("ABCDEF0123", body)
        self.assertNotIn("route=r1", body)
        self.assertIn("status: 200", body)

    def test_no_dump_unless_enabled(self):
        with mock.patch.object(hook, "_debug_dump", False):
            debug_dump_request(FakeResponse(text="JSESSIONID=ABCDEF0123"))
        self.assertEqual(os.listdir(self.tmpdir.name), [])

    def test_sample_config_keeps_dumps_off(self):
        sample = os.path.join(REPO_ROOT, "config.sample.ini")
        parser = configparser.RawConfigParser()
        parser.read(sample, encoding="utf-8-sig")
        self.assertFalse(parser.getboolean("client", "debug_dump_request"))
        self.assertFalse(parser.getboolean("client", "debug_print_request"))



if __name__ == "__main__":
    unittest.main()
