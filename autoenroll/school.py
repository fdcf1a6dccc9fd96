#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: school.py

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from .const import BUILTIN_SCHOOLS, DEFAULT_GNMKDM, DEFAULT_SCHOOL_ID, JwxtURL


@dataclass(frozen=True)
class School:
    id: str
    name: str
    domain: str
    protocol: str = "https"
    gnmkdm: str = DEFAULT_GNMKDM

    @property
    def base_url(self) -> str:
        return "%s://%s" % (self.protocol, self.domain)

    @property
    def host(self) -> str:
        return self.domain.split(":", 1)[0]

    def url(self, template: str) -> str:
        return self.base_url + template.format(gnmkdm=self.gnmkdm, domain=self.domain)

    @property
    def index_url(self):
        return self.url(JwxtURL.Index)

    @property
    def display_url(self):
        return self.url(JwxtURL.Display)

    @property
    def catalog_url(self):
        return self.url(JwxtURL.PartDisplay)

    @property
    def selected_url(self):
        return self.url(JwxtURL.ChoosedDisplay)

    @property
    def enroll_url(self):
        return self.url(JwxtURL.Enroll)

    @property
    def details_url(self):
        return self.url(JwxtURL.JxbWithKch)


_lock = threading.Lock()
_schools = {
    id_: School(id=id_, name=name, domain=domain, protocol=protocol)
    for id_, (name, domain, protocol) in BUILTIN_SCHOOLS.items()
}


def register_school(school: School) -> None:
    with _lock:
        _schools[school.id] = school


def get_school(school_id: Optional[str]) -> Optional[School]:
    key = (school_id or DEFAULT_SCHOOL_ID).strip().lower()
    with _lock:
        return _schools.get(key)


def list_schools():
    with _lock:
        return list(_schools.values())
