#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import unittest
from types import SimpleNamespace

from autoenroll.parser import get_tree
from autoenroll.school import get_school
from autoenroll.course import CategoryParams
from autoenroll.tokens import TokenSet
from autoenroll.resolver import ParameterResolver, derive_fields, default_fields
from autoenroll.const import REQUIRED_FIELDS, FALLBACK_CATEGORY
from autoenroll.exceptions import (
    MissingParameterError,
    UnrecognizablePageError,
    SessionExpiredError,
    ServerError,
)


def _hidden(**fields):
    return "".join("<input type='hidden' name='%s' value='%s'>" % kv for kv in fields.items())


def _page(body):
    html = "<html><body>%s</body></html>" % body
    return SimpleNamespace(text=html, _tree=get_tree(html))


_FULL = {k: "v_" + k for k in REQUIRED_FIELDS}


class FakeClient(object):
    def __init__(self, index, displays=None, default_display=""):
        self.school = get_school("tyust")
        self._index = index
        self._displays = displays or {}
        self._default_display = default_display
        self.display_calls = []

    def get_ZzxkYzbIndex(self):
        if isinstance(self._index, Exception):
            raise self._index
        return _page(self._index)

    def post_ZzxkYzbDisplay(self, category):
        self.display_calls.append(category)
        body = self._displays.get(category.code, self._default_display)
        if isinstance(body, Exception):
            raise body
        return _page(body)


def _onclick(code, window, cohort="2024", major="088"):
    return "<a onclick=\"queryCourse(this,'%s','%s','%s','%s')\">tab</a>" % (code, window, cohort, major)


class DerivedFieldsOfflineTest(unittest.TestCase):
    def test_derive_fields_table(self):
        self.assertEqual(derive_fields("01"), ("1", "2"))
        self.assertEqual(derive_fields("10"), ("2", "4"))
        self.assertEqual(derive_fields("05"), ("2", "3"))
        self.assertEqual(derive_fields("99"), ("1", "2"))

    def test_default_fields_makeup_track(self):
        makeup = default_fields("05")
        regular = default_fields("01")
        self.assertEqual(makeup["sfkcfx"], "1")
        self.assertEqual(makeup["tykczgxdcs"], "8")
        self.assertEqual(regular["sfkcfx"], "0")
        self.assertEqual(regular["tykczgxdcs"], "0")
        self.assertEqual(regular["jg_id"], "05")
        self.assertEqual(regular["kkbk"], "0")


class ResolverBuildOfflineTest(unittest.TestCase):
    def test_display_overrides_index_unless_blank(self):
        resolver = ParameterResolver(required_fields=["a", "b", "c"])
        category = CategoryParams("01", "W", "2024", "088")
        with self.assertRaises(MissingParameterError) as ctx:
            resolver.build(category, TokenSet({"a": "1", "b": ""}), TokenSet({"b": "2", "c": ""}))
        self.assertEqual(ctx.exception.missing, ["c"])

        params = resolver.build(category, TokenSet({"a": "1", "b": ""}), TokenSet({"b": "2", "c": "3"}))
        self.assertEqual(params["a"], "1")
        self.assertEqual(params["b"], "2")
        self.assertEqual(params["c"], "3")

        lenient = ParameterResolver(required_fields=["a", "b"])
        params = lenient.build(category, TokenSet({"a": "1", "b": ""}), TokenSet({"b": "2", "c": ""}))
        self.assertEqual((params["a"], params["b"], params["c"]), ("1", "2", ""))

    def test_computed_fields(self):
        resolver = ParameterResolver(required_fields=[])
        category = CategoryParams("10", "W10", "2024", "088")
        params = resolver.build(category, TokenSet({"kklxdm": "01", "xkkz_id": "stale"}), TokenSet())
        self.assertEqual(params["kklxdm"], "10")
        self.assertEqual(params["xkkz_id"], "W10")
        self.assertEqual(params.rwlx, "2")
        self.assertEqual(params.xklc, "4")

    def test_scraped_rwlx_is_kept(self):
        resolver = ParameterResolver(required_fields=[])
        params = resolver.build(CategoryParams("10", "W", "", ""), TokenSet({"rwlx": "9"}), TokenSet({"xklc": ""}))
        self.assertEqual(params.rwlx, "9")
        self.assertEqual(params.xklc, "4")

    def test_missing_lists_every_field(self):
        resolver = ParameterResolver()
        with self.assertRaises(MissingParameterError) as ctx:
            resolver.build(CategoryParams("01", "W", "", ""), TokenSet({"xqh_id": "1"}), TokenSet())
        self.assertEqual(set(ctx.exception.missing), set(REQUIRED_FIELDS) - {"xqh_id", "jg_id"})


class ResolverDiscoverOfflineTest(unittest.TestCase):
    def test_resolve_first_candidate(self):
        client = FakeClient(_hidden(**_FULL) + _onclick("01", "A") + _onclick("10", "B"))
        params = ParameterResolver().resolve(client)
        self.assertEqual(params.category.window_id, "A")
        self.assertFalse(params.used_fallback)
        self.assertEqual(client.display_calls, [CategoryParams("01", "A", "2024", "088")])

    def test_caller_category_rebound_by_first_tokens(self):
        client = FakeClient(_hidden(firstXkkzId="PORTAL", **_FULL) + _onclick("01", "A"))
        params = ParameterResolver().resolve(client, CategoryParams("10", "MINE", "2023", "077"))
        self.assertEqual(params.category, CategoryParams("10", "PORTAL", "2023", "077"))

    def test_fallback_when_no_category_is_advertised(self):
        client = FakeClient(_hidden(**_FULL))
        params = ParameterResolver().resolve(client)
        self.assertTrue(params.used_fallback)
        self.assertEqual(params.category, CategoryParams(*FALLBACK_CATEGORY))

    def test_fallback_rebound_by_first_tokens(self):
        client = FakeClient(_hidden(firstNjdmId="2025", **_FULL))
        params = ParameterResolver().resolve(client)
        self.assertTrue(params.used_fallback)
        self.assertEqual(params.category.cohort_id, "2025")
        self.assertEqual(params.category.code, FALLBACK_CATEGORY[0])

    def test_page_without_tokens_is_unrecognizable(self):
        client = FakeClient("<p>maintenance</p>")
        with self.assertRaises(UnrecognizablePageError):
            ParameterResolver().resolve(client)

    def test_login_page_is_unrecognizable(self):
        client = FakeClient(SessionExpiredError(msg="redirected to the login page"))
        with self.assertRaises(UnrecognizablePageError) as ctx:
            ParameterResolver().discover(client)
        self.assertIsInstance(ctx.exception.__cause__, SessionExpiredError)

    def test_resolve_all_skips_failing_category(self):
        client = FakeClient(
            _hidden(**_FULL) + _onclick("01", "A") + _onclick("10", "B"),
            displays={"01": ServerError(msg="500")},
        )
        params_list = ParameterResolver().resolve_all(client)
        self.assertEqual([p.category.code for p in params_list], ["10"])

    def test_resolve_all_raises_when_every_category_fails(self):
        client = FakeClient(
            _hidden(xqh_id="1") + _onclick("01", "A") + _onclick("10", "B"),
        )
        with self.assertRaises(MissingParameterError):
            ParameterResolver().resolve_all(client)


if __name__ == "__main__":
    unittest.main()
