#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: service.py

"""
Service surface handed to the UI/API layer. Every method returns a
JSON-shaped envelope:

    {"success": True,  "data": ..., "message": "..."}
    {"success": False, "error": "<kind>", "message": "..."}

and never lets an exception escape.
"""

from datetime import datetime
from requests.exceptions import RequestException
from .task import Task, TaskKind, TaskPriority
from .course import CourseRecord
from .parser import parse_course_row
from .school import get_school
from .diagnose import classify_error
from .fixtures import redact_cookie
from .utils import make_task_id
from .logger import ConsoleLogger, FileLogger
from .exceptions import AutoEnrollException, UserInputException, MissingParameterError, TaskLimitError, \
    InvalidScheduleError, AdmissionDeniedError, TaskNotFoundError
from .const import DEFAULT_SCHOOL_ID

cout = ConsoleLogger("service")
ferr = FileLogger("service.error")

MAX_SCHEDULE_DELAY = 24 * 3600
MAX_ACTIVE_TASKS_PER_OWNER = 3
USER_TASKS_LIMIT = 100


def ok(data=None, message="ok"):
    return {"success": True, "data": data, "message": message}


def error(e):
    kind, _ = classify_error(e)
    env = {"success": False, "error": kind, "message": getattr(e, "msg", None) or str(e)}
    if isinstance(e, MissingParameterError):
        env["missing"] = list(e.missing)
    return env


def _to_timestamp(when):
    if when is None:
        return None
    if isinstance(when, datetime):
        return when.timestamp()
    try:
        return float(when)
    except (TypeError, ValueError):
        raise InvalidScheduleError(msg="unrecognized scheduled time %r" % (when,))


def _to_keywords(keywords):
    if keywords is None:
        return ()
    if isinstance(keywords, str) or not isinstance(keywords, (list, tuple, set, frozenset)):
        raise UserInputException(msg="keywords must be a list of strings, got %r" % (keywords,))
    out = []
    for k in keywords:
        if not isinstance(k, str):
            raise UserInputException(msg="invalid keyword %r" % (k,))
        if k.strip():
            out.append(k.strip())
    return tuple(out)


def _to_records(courses):
    if courses is None:
        return []
    if isinstance(courses, (str, bytes, dict, CourseRecord)) or not isinstance(courses, (list, tuple)):
        raise UserInputException(msg="courses must be a list, got %r" % (courses,))
    records = []
    for c in courses:
        if isinstance(c, CourseRecord):
            records.append(c)
            continue
        if isinstance(c, dict):
            r = parse_course_row(c)
            if r is not None:
                records.append(r)
                continue
        raise UserInputException(msg="invalid course %r" % (c,))
    return records


def _to_max_attempts(max_attempts):
    if max_attempts is None:
        return None
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, (int, str)):
        raise UserInputException(msg="invalid max_attempts %r" % (max_attempts,))
    try:
        n = int(max_attempts)
    except ValueError:
        raise UserInputException(msg="invalid max_attempts %r" % (max_attempts,))
    if n < 1:
        raise UserInputException(msg="max_attempts must be >= 1, got %r" % (max_attempts,))
    return n


class TaskService(object):

    def __init__(self, manager, admission=None, max_active_per_owner=MAX_ACTIVE_TASKS_PER_OWNER,
                 schedule_max_delay=MAX_SCHEDULE_DELAY, default_school_id=DEFAULT_SCHOOL_ID):
        self._manager = manager
        self._registry = manager.registry
        self._admission = admission
        self._max_active_per_owner = max_active_per_owner
        self._schedule_max_delay = min(float(schedule_max_delay), float(MAX_SCHEDULE_DELAY))
        self._default_school_id = default_school_id

    @property
    def manager(self):
        return self._manager

    def _clock(self):
        return self._manager.clock()

    ## creation

    def _new_task(self, prefix, owner_id, credential, courses, keywords, school_id, category,
                  max_attempts, priority, scheduled_time=None):
        if not isinstance(owner_id, str) or not owner_id:
            raise UserInputException(msg="owner id is required")
        if not isinstance(credential, str) or not credential.strip():
            raise UserInputException(msg="credential is required")
        keywords = _to_keywords(keywords)
        records = _to_records(courses)
        if bool(keywords) == bool(records):
            raise UserInputException(msg="exactly one of courses and keywords must be given")
        max_attempts = _to_max_attempts(max_attempts)
        if school_id is not None and not isinstance(school_id, str):
            raise UserInputException(msg="invalid school id %r" % (school_id,))
        if category is not None and not isinstance(category, str):
            raise UserInputException(msg="invalid category %r" % (category,))
        school_id = (school_id or self._default_school_id).strip().lower()
        if get_school(school_id) is None:
            raise UserInputException(msg="unknown school %r" % school_id)
        if self._admission is not None and not self._admission(owner_id):
            raise AdmissionDeniedError(msg="owner %r is not admitted" % owner_id)
        if self._registry.active_count(owner_id) >= self._max_active_per_owner:
            raise TaskLimitError(msg="owner %r already has %d active tasks" % (owner_id, self._max_active_per_owner))
        return Task(
            id=make_task_id(prefix),
            owner_id=owner_id,
            school_id=school_id,
            credential=credential.strip(),
            kind=TaskKind.KEYWORD if keywords else TaskKind.DIRECT,
            courses=tuple(records),
            keywords=keywords,
            category=category,
            priority=priority,
            max_attempts=max_attempts,
            scheduled_time=scheduled_time,
            created_at=self._clock(),
        )

    def _resolve_up_front(self, task):
        if task.kind is not TaskKind.DIRECT or all(c.params is not None for c in task.courses):
            return
        client = self._manager.client_factory(task)
        try:
            task.courses = tuple(self._manager.ensure_snapshots(task, client))
        finally:
            client.close()

    def create_task(self, owner_id, credential, courses=None, keywords=None, school_id=None,
                    category=None, max_attempts=None):
        """
        Create and start an immediate task. Direct tasks are resolved before
        admission, so a discovery failure means no task is created.
        """
        try:
            task = self._new_task("task", owner_id, credential, courses, keywords, school_id, category,
                                  max_attempts, TaskPriority.HIGH)
            self._resolve_up_front(task)
            self._manager.submit(task, owner_limit=self._max_active_per_owner)
        except (AutoEnrollException, RequestException, ValueError) as e:
            ferr.error(e)
            return error(e)
        cout.info("Task %s created for %s (cookie %s)" % (task.id, owner_id, redact_cookie(task.credential)))
        return ok({"task_id": task.id, "status": task.status.value}, "task created")

    def create_scheduled_task(self, owner_id, credential, scheduled_time, courses=None, keywords=None,
                              school_id=None, category=None, max_attempts=None):
        try:
            when = _to_timestamp(scheduled_time)
            if when is None:
                raise InvalidScheduleError(msg="scheduled time is required")
            now = self._clock()
            if when <= now:
                raise InvalidScheduleError(msg="scheduled time must be in the future")
            if when - now > self._schedule_max_delay:
                raise InvalidScheduleError(msg="scheduled time must be within %d hours" % (self._schedule_max_delay // 3600))
            task = self._new_task("scheduled", owner_id, credential, courses, keywords, school_id, category,
                                  max_attempts, TaskPriority.NORMAL, scheduled_time=when)
            self._manager.submit(task, owner_limit=self._max_active_per_owner)
        except (AutoEnrollException, RequestException, ValueError) as e:
            ferr.error(e)
            return error(e)
        cout.info("Scheduled task %s created for %s at %s" % (task.id, owner_id, datetime.fromtimestamp(when)))
        return ok({
            "task_id": task.id,
            "status": task.status.value,
            "scheduled_time": task.to_dict()["scheduled_time"],
        }, "scheduled task created")

    ## queries

    def get_task(self, task_id, owner_id=None):
        task = self._registry.get(task_id)
        if task is None or (owner_id is not None and task.owner_id != owner_id):
            return error(TaskNotFoundError(msg="task %r not found" % task_id))
        return ok(task.to_dict())

    def get_user_tasks(self, owner_id, limit=USER_TASKS_LIMIT):
        tasks = sorted(self._registry.by_owner(owner_id), key=lambda t: t.created_at, reverse=True)
        return ok([t.to_dict() for t in tasks[:limit]])

    def get_all_tasks(self, privileged=False):
        if not privileged:
            return error(AdmissionDeniedError(msg="listing all tasks requires privileges"))
        return ok([t.to_dict() for t in self._registry.all()])

    def cancel_task(self, task_id, owner_id=None):
        task = self._registry.get(task_id)
        if task is None or (owner_id is not None and task.owner_id != owner_id):
            return error(TaskNotFoundError(msg="task %r not found" % task_id))
        cancelled = self._registry.cancel(task_id)
        status = self._registry.status(task_id)
        return ok({"task_id": task_id, "cancelled": cancelled, "status": status.value},
                  "task cancelled" if cancelled else "task already finished")

    def get_stats(self):
        return ok(self._registry.stats())

    ## housekeeping

    def cleanup(self, now=None):
        now = self._clock() if now is None else now
        removed = self._registry.cleanup_old_tasks(now)
        removed += self._registry.cleanup_completed()
        return removed
