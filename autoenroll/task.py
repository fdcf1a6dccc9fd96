#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: task.py

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .course import CourseRecord


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self):
        return self in TERMINAL_STATUSES

    @property
    def is_active(self):
        return self in (TaskStatus.PENDING, TaskStatus.RUNNING)


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})


class TaskPriority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"

    @property
    def rank(self):
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {TaskPriority.HIGH: 0, TaskPriority.NORMAL: 1}


class TaskKind(str, Enum):
    DIRECT = "direct"
    KEYWORD = "keyword"


@dataclass
class TaskResult:
    success: bool
    message: str = ""
    course: Optional[CourseRecord] = None
    data: Any = None

    def to_dict(self):
        return {
            "success": self.success,
            "message": self.message,
            "course": self.course.to_dict() if self.course is not None else None,
            "data": self.data,
        }


class ScheduledActivation(object):
    """
    One-shot cancellable timer owned by a task. Cancelling after it fired is
    a no-op.
    """

    def __init__(self, when, callback, clock=time.time):
        self.when = when
        self._callback = callback
        self._lock = threading.Lock()
        self._fired = False
        self._cancelled = False
        delay = max(0.0, when - clock())
        self._timer = threading.Timer(delay, self._fire)
        self._timer.daemon = True

    @property
    def delay(self):
        return self._timer.interval

    @property
    def fired(self):
        return self._fired

    @property
    def cancelled(self):
        return self._cancelled

    def start(self):
        self._timer.start()
        return self

    def cancel(self):
        with self._lock:
            if self._fired or self._cancelled:
                return False
            self._cancelled = True
        self._timer.cancel()
        return True

    def _fire(self):
        with self._lock:
            if self._cancelled:
                return
            self._fired = True
        self._callback()


@dataclass(eq=False)
class Task:

    id: str
    owner_id: str
    school_id: str
    credential: str = field(repr=False)
    kind: TaskKind = TaskKind.DIRECT
    courses: Tuple[CourseRecord, ...] = ()
    keywords: Tuple[str, ...] = ()
    category: Optional[str] = None
    priority: TaskPriority = TaskPriority.HIGH
    status: TaskStatus = TaskStatus.PENDING
    created_at: float = field(default_factory=time.time)
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    last_attempt_at: Optional[float] = None
    attempt_count: int = 0
    max_attempts: Optional[int] = None
    scheduled_time: Optional[float] = None
    message: str = ""
    result: Optional[TaskResult] = None
    error: Optional[str] = None
    target: Optional[CourseRecord] = None
    awaiting_slot: bool = field(default=False, repr=False)
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)
    activation: Optional[ScheduledActivation] = field(default=None, repr=False)

    @property
    def is_terminal(self):
        return self.status.is_terminal

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "school_id": self.school_id,
            "kind": self.kind.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "courses": [c.to_dict() for c in self.courses],
            "keywords": list(self.keywords),
            "target": self.target.to_dict() if self.target is not None else None,
            "created_at": _iso(self.created_at),
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "last_attempt_at": _iso(self.last_attempt_at),
            "scheduled_time": _iso(self.scheduled_time),
            "attempt_count": self.attempt_count,
            "max_attempts": self.max_attempts,
            "message": self.message,
            "result": self.result.to_dict() if self.result is not None else None,
            "error": self.error,
        }


def _iso(ts):
    if ts is None:
        return None
    return datetime.fromtimestamp(ts).isoformat(timespec="seconds")


def sort_key(task: Task):
    return (task.priority.rank, task.created_at)


def count_by_status(tasks: List[Task]) -> Dict[str, int]:
    stats = {s.value: 0 for s in TaskStatus}
    for t in tasks:
        stats[t.status.value] += 1
    stats["total"] = len(tasks)
    return stats
