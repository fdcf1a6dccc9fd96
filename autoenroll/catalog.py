#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: catalog.py

from concurrent.futures import ThreadPoolExecutor
from requests.exceptions import RequestException
from .parser import load_json, get_courses
from .logger import ConsoleLogger, FileLogger
from .const import DYNAMIC_FIELDS, BASE_FIELD_DEFAULTS, CATALOG_EXTRA_FIELDS, FIRST_PAGE_CURSOR
from .exceptions import AutoEnrollException, SessionExpiredError, CatalogFetchError
from .resolver import default_fields, derive_fields

cout = ConsoleLogger("catalog")
ferr = FileLogger("catalog.error")

DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_PAGES = 1000


def page_cursors(start=FIRST_PAGE_CURSOR, page_size=10):
    """
    (0, 10), (11, 20), (21, 30), ...
    """
    ks, js = start
    while True:
        yield (ks, js)
        ks, js = js + 1, js + page_size


def build_catalog_form(params, cursor):
    category = params.category
    rwlx, xklc = derive_fields(category.code)
    defaults = default_fields(category.code)

    form = {
        "rwlx": params.get("rwlx", rwlx),
        "xklc": params.get("xklc", xklc),
    }
    for k, v in BASE_FIELD_DEFAULTS:
        form[k] = params.get(k, v)
    for k in DYNAMIC_FIELDS:
        form[k] = params.get(k, defaults.get(k, ""))
    form["kklxdm"] = category.code
    form["xkkz_id"] = category.window_id
    form["kspage"] = str(cursor[0])
    form["jspage"] = str(cursor[1])
    form.update(CATALOG_EXTRA_FIELDS)
    return form


class PageResult(object):

    __slots__ = ("cursor", "courses", "error")

    def __init__(self, cursor, courses=None, error=None):
        self.cursor = cursor
        self.courses = courses or []
        self.error = error

    @property
    def is_end(self):
        return self.error is not None or not self.courses


class CatalogResult(object):

    def __init__(self):
        self.courses = []
        self.pages = 0
        self.categories = 0
        self.errors = []
        self.session_expired = False

    @property
    def failed(self):
        """ nothing fetched and at least one page or category errored """
        return not self.courses and bool(self.errors)

    def extend(self, other):
        self.courses.extend(other.courses)
        self.pages += other.pages
        self.categories += other.categories
        self.errors.extend(other.errors)
        self.session_expired = self.session_expired or other.session_expired

    def __len__(self):
        return len(self.courses)


class CatalogFetcher(object):
    """
    Fetches the catalog of one category in batches of concurrent page
    requests. The portal exposes no total count, so the first empty or
    errored page (in cursor order) marks the end of data.
    """

    def __init__(self, batch_size=DEFAULT_BATCH_SIZE, max_pages=DEFAULT_MAX_PAGES):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1, got %r" % batch_size)
        self._batch_size = batch_size
        self._max_pages = max_pages

    @property
    def batch_size(self):
        return self._batch_size

    def fetch_page(self, client, params, cursor):
        r = client.post_ZzxkYzbPartDisplay(build_catalog_form(params, cursor))
        payload = load_json(r.text)
        if payload is None:
            raise CatalogFetchError(msg="page %s: response is not json" % (cursor,), response=r)
        return get_courses(payload, params)

    def _fetch_page_safe(self, client, params, cursor):
        try:
            return PageResult(cursor, courses=self.fetch_page(client, params, cursor))
        except (AutoEnrollException, RequestException, ValueError) as e:
            return PageResult(cursor, error=e)

    def fetch(self, client, params):
        result = CatalogResult()
        result.categories = 1
        cursors = page_cursors(page_size=params.page_size)
        done = False

        with ThreadPoolExecutor(max_workers=self._batch_size, thread_name_prefix="catalog") as pool:
            while not done:
                batch = [next(cursors) for _ in range(self._batch_size)]
                futures = [pool.submit(self._fetch_page_safe, client, params, c) for c in batch]
                for fut in futures:
                    page = fut.result()
                    if page.is_end:
                        if page.error is not None:
                            self._record_error(result, params, page)
                        done = True
                        break
                    result.courses.extend(page.courses)
                    result.pages += 1
                    if self._max_pages is not None and result.pages >= self._max_pages:
                        cout.warning("Catalog of %s exceeds %d pages, stop" % (params.category, self._max_pages))
                        done = True
                        break

        cout.info("Fetched %d courses in %d pages for %s" % (len(result.courses), result.pages, params.category))
        return result

    def _record_error(self, result, params, page):
        e = page.error
        result.errors.append(e)
        if isinstance(e, SessionExpiredError):
            result.session_expired = True
            cout.warning("Session expired while fetching %s page %s" % (params.category, page.cursor))
        else:
            cout.warning("Catalog page %s of %s failed, treat as end of data" % (page.cursor, params.category))
        ferr.error(e)

    def fetch_all(self, client, resolver):
        """
        Resolve every category and fetch each of them. Discovery failures end
        up in ``errors`` rather than propagating.
        """
        result = CatalogResult()
        try:
            params_list = resolver.resolve_all(client)
        except (AutoEnrollException, RequestException) as e:
            ferr.error(e)
            result.errors.append(e)
            if isinstance(e, SessionExpiredError) or isinstance(getattr(e, "__cause__", None), SessionExpiredError):
                result.session_expired = True
            return result
        for params in params_list:
            result.extend(self.fetch(client, params))
        return result
