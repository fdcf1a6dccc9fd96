#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: hook.py

import os
import time
from urllib.parse import urlparse
from .parser import get_tree_from_response, is_login_page
from .fixtures import sanitize_text, redact_url
from .const import REQUEST_LOG_DIR, SESSION_EXPIRED_STATUS
from .exceptions import StatusCodeError, ServerError, SessionExpiredError
from ._internal import mkdir
from .logger import ConsoleLogger

cout = ConsoleLogger("hook")

_USER_REQUEST_LOG_DIR = REQUEST_LOG_DIR
_debug_print = False
_debug_dump = False


def configure_debug(print_request=False, dump_request=False, subpath=None):
    global _debug_print, _debug_dump, _USER_REQUEST_LOG_DIR
    _debug_print = bool(print_request)
    _debug_dump = bool(dump_request)
    _USER_REQUEST_LOG_DIR = REQUEST_LOG_DIR if not subpath else os.path.join(REQUEST_LOG_DIR, subpath)
    if _debug_dump:
        mkdir(_USER_REQUEST_LOG_DIR)


def get_hooks(*fn):
    return {"response": list(fn)}


def merge_hooks(*hooklist):
    return {"response": [fn for hooks in hooklist for fn in hooks["response"]]}


def with_etree(r, **kwargs):
    r._tree = get_tree_from_response(r)


def check_status_code(r, **kwargs):
    if r.status_code in SESSION_EXPIRED_STATUS:
        raise SessionExpiredError(response=r)
    if r.status_code != 200:
        if r.status_code in (301, 302, 304):
            pass
        elif r.status_code >= 500:
            raise ServerError(msg="%s %s" % (r.status_code, r.reason), response=r)
        else:
            raise StatusCodeError(msg="%s %s" % (r.status_code, r.reason), response=r)


def check_login_page(r, **kwargs):
    text = r.text or ""
    head = text.lstrip()[:1]
    if head in ("{", "["):
        return
    if is_login_page(text):
        raise SessionExpiredError(msg="redirected to the login page", response=r)


def debug_print_request(r, **kwargs):
    if not _debug_print:
        return
    cout.debug("> %s %s" % (r.request.method, redact_url(r.url)))
    cout.debug("< %s (%d bytes)" % (r.status_code, len(r.content or b"")))


def debug_dump_request(r, **kwargs):
    if not _debug_dump:
        return
    _dump_request(r)


def _dump_request(r):
    path = urlparse(r.url).path.rsplit("/", 1)[-1] or "index"
    timestamp = time.strftime("%Y%m%d_%H%M%S", time.localtime())
    filename = "%s.%s.%d.txt" % (timestamp, path, int(time.time() * 1000) % 1000)
    file = os.path.join(_USER_REQUEST_LOG_DIR, filename)
    mkdir(_USER_REQUEST_LOG_DIR)
    with open(file, "w", encoding="utf-8") as fp:
        fp.write("%s %s\n" % (r.request.method, redact_url(r.url)))
        fp.write("status: %s\n\n" % r.status_code)
        fp.write(sanitize_text(r.text))
    return file
