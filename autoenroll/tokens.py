#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: tokens.py

"""
A small typed "token bag" for hidden form fields scraped from portal pages.

Every value is a string. A key that is present with an empty value is kept
as such, so callers can tell "advertised but blank" apart from "absent"; both
count as missing when a field is required.
"""

from collections.abc import Mapping

from .exceptions import MissingParameterError


class TokenSet(Mapping):

    __slots__ = ("_data",)

    def __init__(self, data=None):
        d = {}
        if data is not None:
            items = data.items() if isinstance(data, Mapping) else data
            for k, v in items:
                d[str(k)] = "" if v is None else str(v)
        self._data = d

    def __getitem__(self, key):
        return self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def __repr__(self):
        return "TokenSet(%r)" % (self._data,)

    def __eq__(self, other):
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other.items())
        return NotImplemented

    __hash__ = None

    def nonempty(self, key):
        """ Return the value of ``key`` if it is present and not blank, else None. """
        v = self._data.get(key)
        if v is None or v == "":
            return None
        return v

    def missing(self, required):
        return [k for k in required if self.nonempty(k) is None]

    def require(self, required):
        missing = self.missing(required)
        if missing:
            raise MissingParameterError(missing)
        return self

    def with_defaults(self, defaults):
        """ Fill keys that are absent. Keys present with a blank value stay blank. """
        d = dict(self._data)
        for k, v in dict(defaults).items():
            if k not in d:
                d[k] = v
        return TokenSet(d)

    def with_values(self, values):
        d = dict(self._data)
        d.update(dict(values))
        return TokenSet(d)

    def to_dict(self):
        return dict(self._data)


def merge_tokens(base, override):
    """
    Merge two token sets key by key. The override value wins unless it is the
    empty string, in which case the base value is used, even if that one is
    blank as well. Keys only in one side are copied through.
    """
    merged = dict(base.items())
    for k, v in override.items():
        if v != "" or k not in merged:
            merged[k] = v
    return TokenSet(merged)
