#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: config.py

import os
import re
from datetime import datetime
from configparser import RawConfigParser, DuplicateSectionError
from collections import OrderedDict
from .environ import Environ
from .course import CourseRecord
from .school import School, get_school, register_school
from .utils import Singleton
from .const import DEFAULT_CONFIG_INI, CONFIG_INI_ENV, DEFAULT_SCHOOL_ID, DEFAULT_GNMKDM
from .exceptions import UserInputException

_reNamespacedSection = re.compile(r'^\s*(?P<ns>[^:]+?)\s*:\s*(?P<id>[^,]+?)\s*$')
_reCommaSep = re.compile(r'\s*,\s*')

_SCHEDULE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S")

environ = Environ()


class BaseConfig(object):

    def __init__(self, config_file=None):
        if self.__class__ is __class__:
            raise NotImplementedError
        file = os.path.normpath(os.path.abspath(config_file))
        if not os.path.exists(file):
            raise FileNotFoundError("Config file was not found: %s" % file)
        self._config = RawConfigParser()
        self._config.read(file, encoding="utf-8-sig")

    def get(self, section, key):
        return self._config.get(section, key)

    def get_optional(self, section, key, default=None):
        if self._config.has_option(section, key):
            return self._config.get(section, key)
        return default

    def get_optional_bool(self, section, key, default=False):
        if not self._config.has_option(section, key):
            return default
        try:
            return self._config.getboolean(section, key)
        except ValueError:
            raise UserInputException(msg="Invalid boolean for %s.%s" % (section, key))

    def get_optional_float(self, section, key, default, minimum=None):
        v = self.get_optional(section, key)
        if v is None or v.strip() == "":
            return default
        try:
            v = float(v)
        except ValueError:
            raise UserInputException(msg="Invalid %s.%s: %r" % (section, key, v))
        if minimum is not None:
            v = max(minimum, v)
        return v

    def get_optional_int(self, section, key, default, minimum=None):
        v = self.get_optional(section, key)
        if v is None or v.strip() == "":
            return default
        try:
            v = int(v)
        except ValueError:
            raise UserInputException(msg="Invalid %s.%s: %r" % (section, key, v))
        if minimum is not None:
            v = max(minimum, v)
        return v

    def get_optional_list(self, section, key, default=None):
        if not self._config.has_option(section, key):
            return default if default is not None else []
        v = self._config.get(section, key)
        if v is None or v.strip() == "":
            return []
        return _reCommaSep.split(v.strip())

    def getdict(self, section, options):
        assert isinstance(options, (list, tuple, set))
        d = dict(self._config.items(section))
        if not all(k in d for k in options):
            raise UserInputException(msg="Incomplete section %r, %s must all exist." % (section, options))
        return d

    def ns_sections(self, ns):
        ns = ns.strip()
        ns_sects = OrderedDict()  # { id: str(section) }
        for s in self._config.sections():
            mat = _reNamespacedSection.match(s)
            if mat is None:
                continue
            if mat.group('ns') != ns:
                continue
            id_ = mat.group('id')
            if id_ in ns_sects:
                raise DuplicateSectionError("%s:%s" % (ns, id_))
            ns_sects[id_] = s
        return [(id_, s) for id_, s in ns_sects.items()]  # [ (id, str(section)) ]


class AutoEnrollConfig(BaseConfig, metaclass=Singleton):

    def __init__(self):
        super().__init__(environ.config_ini or os.environ.get(CONFIG_INI_ENV) or DEFAULT_CONFIG_INI)

    ## Constraints

    MAX_SCHEDULE_DELAY = 24 * 3600

    ## Model

    # [user]

    @property
    def owner_id(self):
        return self.get_optional("user", "owner_id", "default") or "default"

    @property
    def cookie(self):
        return self.get("user", "cookie").strip()

    @property
    def school_id(self):
        return (self.get_optional("user", "school", DEFAULT_SCHOOL_ID) or DEFAULT_SCHOOL_ID).strip().lower()

    # [client]

    @property
    def client_timeout(self):
        return self.get_optional_float("client", "timeout", 10.0, minimum=0.1)

    @property
    def is_debug_print_request(self):
        return self.get_optional_bool("client", "debug_print_request", False)

    @property
    def is_debug_dump_request(self):
        return self.get_optional_bool("client", "debug_dump_request", False)

    # [task]

    @property
    def max_concurrent_tasks(self):
        return self.get_optional_int("task", "max_concurrent_tasks", 5, minimum=1)

    @property
    def retry_interval(self):
        return self.get_optional_float("task", "retry_interval", 1.0, minimum=0.0)

    @property
    def start_poll_interval(self):
        return self.get_optional_float("task", "start_poll_interval", 1.0, minimum=0.01)

    @property
    def catalog_batch_size(self):
        return self.get_optional_int("task", "catalog_batch_size", 5, minimum=1)

    @property
    def catalog_fetch_retries(self):
        return self.get_optional_int("task", "catalog_fetch_retries", 5, minimum=1)

    @property
    def catalog_fetch_retry_delay(self):
        return self.get_optional_float("task", "catalog_fetch_retry_delay", 10.0, minimum=0.0)

    @property
    def match_threshold(self):
        v = self.get_optional_float("task", "match_threshold", 0.3)
        if not 0.0 <= v <= 1.0:
            raise UserInputException(msg="task.match_threshold must be within [0, 1], got %r" % v)
        return v

    @property
    def schedule_max_delay(self):
        v = self.get_optional_float("task", "schedule_max_delay", float(self.MAX_SCHEDULE_DELAY), minimum=1.0)
        return min(v, float(self.MAX_SCHEDULE_DELAY))

    @property
    def max_active_tasks_per_owner(self):
        return self.get_optional_int("task", "max_active_tasks_per_owner", 3, minimum=1)

    # [rate_limit]

    @property
    def rate_limit_enable(self):
        return self.get_optional_bool("rate_limit", "enable", False)

    @property
    def rate_limit_global_rps(self):
        return self.get_optional_float("rate_limit", "global_rps", 0.0, minimum=0.0)

    @property
    def rate_limit_global_burst(self):
        return self.get_optional_float("rate_limit", "global_burst", 0.0, minimum=0.0)

    @property
    def rate_limit_portal_rps(self):
        return self.get_optional_float("rate_limit", "portal_rps", 0.0, minimum=0.0)

    @property
    def rate_limit_portal_burst(self):
        return self.get_optional_float("rate_limit", "portal_burst", 0.0, minimum=0.0)

    # [school:{id}]

    @property
    def schools(self):
        ss = OrderedDict()
        for id_, s in self.ns_sections('school'):
            d = self.getdict(s, ("domain",))
            protocol = d.get("protocol", "https").strip().lower()
            if protocol not in ("http", "https"):
                raise UserInputException(msg="In %r, protocol must be http or https, got %r" % (s, protocol))
            ss[id_.lower()] = School(
                id=id_.lower(),
                name=d.get("name", id_),
                domain=d["domain"].strip(),
                protocol=protocol,
                gnmkdm=d.get("gnmkdm", DEFAULT_GNMKDM).strip() or DEFAULT_GNMKDM,
            )
        return ss

    def register_schools(self):
        for school in self.schools.values():
            register_school(school)

    @property
    def school(self):
        self.register_schools()
        school = get_school(self.school_id)
        if school is None:
            raise UserInputException(msg="Unknown school %r in [user]" % self.school_id)
        return school

    # [course:{id}]

    @property
    def courses(self):
        cs = OrderedDict()  # { id: CourseRecord }
        rcs = {}
        for id_, s in self.ns_sections('course'):
            d = self.getdict(s, ("kch_id", "jxb_id"))
            c = CourseRecord(
                course_id=d["kch_id"],
                class_id=d["jxb_id"],
                do_id=d.get("do_jxb_id") or d["jxb_id"],
                title=d.get("title", ""),
                instructor=d.get("instructor", ""),
            )
            key = (c.course_id, c.class_id)
            ocid = rcs.get(key)
            if ocid is not None:
                raise UserInputException(
                    msg="'course:%s' and 'course:%s' point to the same class" % (ocid, id_)
                )
            rcs[key] = id_
            cs[id_] = c
        return cs

    # [task:{id}]

    @property
    def tasks(self):
        cs = self.courses
        ts = []
        for id_, s in self.ns_sections('task'):
            keywords = self.get_optional_list(s, "keywords")
            cids = self.get_optional_list(s, "courses")
            if bool(keywords) == bool(cids):
                raise UserInputException(
                    msg="In 'task:%s', exactly one of 'keywords' and 'courses' must be given" % id_
                )
            records = []
            for cid in cids:
                if cid not in cs:
                    raise UserInputException(msg="In 'task:%s', course %r is not defined" % (id_, cid))
                records.append(cs[cid])
            max_attempts = self.get_optional_int(s, "max_attempts", None)
            if max_attempts is not None and max_attempts <= 0:
                max_attempts = None
            ts.append({
                "id": id_,
                "keywords": keywords,
                "courses": records,
                "category": (self.get_optional(s, "category", "") or "").strip() or None,
                "max_attempts": max_attempts,
                "scheduled_time": self.parse_schedule(self.get_optional(s, "scheduled_time")),
            })
        return ts

    @staticmethod
    def parse_schedule(text):
        if text is None or text.strip() == "":
            return None
        text = text.strip()
        for fmt in _SCHEDULE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        raise UserInputException(msg="Invalid scheduled_time: %r" % text)
