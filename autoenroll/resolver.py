#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: resolver.py

from requests.exceptions import RequestException
from .course import CategoryParams, RequestParameters
from .tokens import merge_tokens
from .parser import extract_tokens_from_tree, get_category_candidates, first_category_overrides, \
    apply_category_overrides
from .logger import ConsoleLogger, FileLogger
from .const import FALLBACK_CATEGORY, REQUIRED_FIELDS, DERIVED_FIELDS_TABLE, DERIVED_FIELDS_DEFAULT, \
    MAKEUP_CATEGORY, ZERO_DEFAULT_FIELDS, MAKEUP_FLAG_FIELDS, BASE_FIELD_DEFAULTS, PAGE_SIZE
from .exceptions import AutoEnrollClientException, SessionExpiredError, UnrecognizablePageError, \
    MissingParameterError

cout = ConsoleLogger("resolver")
ferr = FileLogger("resolver.error")


def derive_fields(code):
    """ kklxdm -> (rwlx, xklc) """
    return DERIVED_FIELDS_TABLE.get(code, DERIVED_FIELDS_DEFAULT)


def default_fields(code):
    makeup = (code == MAKEUP_CATEGORY)
    d = {"jg_id": "05"}
    for k in ZERO_DEFAULT_FIELDS:
        d[k] = "0"
    for k in MAKEUP_FLAG_FIELDS:
        d[k] = "1" if makeup else "0"
    d["tykczgxdcs"] = "8" if makeup else "0"
    d.update(BASE_FIELD_DEFAULTS)
    return d


class IndexPage(object):

    __slots__ = ("tokens", "candidates", "used_fallback")

    def __init__(self, tokens, candidates, used_fallback=False):
        self.tokens = tokens
        self.candidates = candidates
        self.used_fallback = used_fallback


class ParameterResolver(object):
    """
    Assembles the RequestParameters of a category from two page fetches:
    the category index page, then the category display page.
    """

    def __init__(self, required_fields=REQUIRED_FIELDS, fallback_category=None, page_size=PAGE_SIZE):
        self._required = tuple(required_fields)
        self._fallback = fallback_category or CategoryParams(*FALLBACK_CATEGORY)
        self._page_size = page_size

    @property
    def required_fields(self):
        return self._required

    def discover(self, client):
        try:
            r = client.get_ZzxkYzbIndex()
        except SessionExpiredError as e:
            raise UnrecognizablePageError(msg="index page is a login page: %s" % e.msg, response=e.response) from e

        tree = getattr(r, "_tree", None)
        tokens = extract_tokens_from_tree(tree)
        candidates = get_category_candidates(tree, tokens)
        if tree is None or (not tokens and not candidates):
            raise UnrecognizablePageError(msg="index page carries no form tokens", response=r)

        used_fallback = False
        if not candidates:
            overrides = first_category_overrides(tokens)
            fallback = apply_category_overrides(self._fallback, overrides)
            cout.warning("No category advertised on the index page, falling back to %s" % fallback)
            candidates = [fallback]
            used_fallback = True

        return IndexPage(tokens, candidates, used_fallback)

    def fetch_display(self, client, category):
        try:
            r = client.post_ZzxkYzbDisplay(category)
        except SessionExpiredError as e:
            raise UnrecognizablePageError(msg="display page is a login page: %s" % e.msg, response=e.response) from e
        return extract_tokens_from_tree(getattr(r, "_tree", None))

    def build(self, category, index_tokens, display_tokens, school_id="", used_fallback=False):
        merged = merge_tokens(index_tokens, display_tokens)

        computed = {}
        rwlx, xklc = derive_fields(category.code)
        if merged.nonempty("rwlx") is None:
            computed["rwlx"] = rwlx
        if merged.nonempty("xklc") is None:
            computed["xklc"] = xklc
        computed["kklxdm"] = category.code
        computed["xkkz_id"] = category.window_id

        tokens = merged.with_values(computed).with_defaults(default_fields(category.code))

        missing = tokens.missing(self._required)
        if missing:
            raise MissingParameterError(missing)

        return RequestParameters(
            category=category,
            tokens=tokens,
            school_id=school_id,
            used_fallback=used_fallback,
            page_size=self._page_size,
        )

    def resolve(self, client, category=None):
        """
        Resolve one category. A caller-supplied category is still rebound by
        the "first*" tokens of the index page when the portal advertises them.
        """
        page = self.discover(client)
        used_fallback = page.used_fallback
        if category is not None:
            category = apply_category_overrides(category, first_category_overrides(page.tokens))
            used_fallback = False
        else:
            category = page.candidates[0]
        display = self.fetch_display(client, category)
        params = self.build(category, page.tokens, display,
                            school_id=client.school.id, used_fallback=used_fallback)
        cout.info("Resolved %d parameters for %s" % (len(params.tokens), category))
        return params

    def resolve_all(self, client):
        """
        Resolve every advertised category. A category whose display page fails
        is skipped; discovery errors of the index page propagate.
        """
        page = self.discover(client)
        results = []
        errors = []
        for category in page.candidates:
            try:
                display = self.fetch_display(client, category)
                params = self.build(category, page.tokens, display,
                                    school_id=client.school.id, used_fallback=page.used_fallback)
            except (AutoEnrollClientException, UnrecognizablePageError, MissingParameterError,
                    RequestException) as e:
                ferr.error(e)
                cout.warning("Skip %s" % category)
                errors.append(e)
                continue
            results.append(params)
        if not results and errors:
            raise errors[-1]
        return results
