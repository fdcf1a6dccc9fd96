#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from typing import Tuple

from requests.exceptions import RequestException

from .exceptions import (
    AutoEnrollClientException,
    CatalogFetchError,
    ParameterDiscoveryError,
    ServerError,
    SessionExpiredError,
    StatusCodeError,
    TaskError,
    UserInputException,
)


def classify_error(exc: BaseException) -> Tuple[str, bool]:
    """
    Return (kind, terminal).

    - terminal=True: the condition ends a task as failed without retrying.
    - terminal=False: the caller retries or only logs it.
    """
    if isinstance(exc, ParameterDiscoveryError):
        cause = exc.__cause__
        if isinstance(cause, SessionExpiredError):
            return ("session", True)
        return ("discovery", True)

    if isinstance(exc, SessionExpiredError):
        return ("session", False)

    if isinstance(exc, CatalogFetchError):
        return ("catalog", False)

    if isinstance(exc, (ServerError, StatusCodeError)):
        return ("http_status", False)

    if isinstance(exc, RequestException):
        return ("network", False)

    if isinstance(exc, UserInputException):
        return ("input", True)

    if isinstance(exc, TaskError):
        return ("task", True)

    if isinstance(exc, AutoEnrollClientException):
        return ("client", False)

    return ("unknown", False)
