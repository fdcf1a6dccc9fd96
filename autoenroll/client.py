#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: client.py

import requests
from http.cookiejar import DefaultCookiePolicy
from . import rate_limit


class BaseClient(object):

    default_headers = {}
    default_client_timeout = 10

    def __init__(self, *args, **kwargs):
        if self.__class__ is __class__:
            raise NotImplementedError
        self._timeout = kwargs.get("timeout", self.__class__.default_client_timeout)
        self._session = requests.sessions.Session()
        self._session.headers.update(self.__class__.default_headers)

    @property
    def timeout(self):
        return self._timeout

    def _request(self, method, url, params=None, data=None, headers=None, hooks=None,
                 timeout=None, allow_redirects=True, **kwargs):
        if timeout is None:
            timeout = self._timeout
        rate_limit.throttle(url)
        return self._session.request(
            method, url,
            params=params,
            data=data,
            headers=headers,
            hooks=hooks,
            timeout=timeout,
            allow_redirects=allow_redirects,
            **kwargs
        )

    def _get(self, url, params=None, **kwargs):
        return self._request('GET', url, params=params, **kwargs)

    def _post(self, url, data=None, **kwargs):
        return self._request('POST', url, data=data, **kwargs)

    def block_cookies(self):
        """ Never store response cookies, the caller-supplied Cookie header is replayed as is. """
        self._session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))

    def close(self):
        self._session.close()
