#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: registry.py

import time
import threading
from collections import OrderedDict, defaultdict
from .task import TaskStatus, TaskResult, count_by_status, sort_key
from .logger import ConsoleLogger
from .exceptions import TaskNotFoundError, TaskLimitError

cout = ConsoleLogger("registry")

DEFAULT_MAX_CONCURRENT = 5
COMPLETED_KEEP = 100
OLD_TASK_MAX_AGE = 7 * 24 * 3600
OLD_TASK_KEEP_PER_OWNER = 50


class TaskRegistry(object):
    """
    In-memory id -> Task store. Every state change goes through one of the
    transition methods below, each serialized by a single registry lock.
    Terminal tasks never change status again.
    """

    def __init__(self, max_concurrent=DEFAULT_MAX_CONCURRENT, clock=time.time):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1, got %r" % max_concurrent)
        self._tasks = OrderedDict()
        self._lock = threading.RLock()
        self._max_concurrent = max_concurrent
        self._clock = clock

    @property
    def max_concurrent(self):
        return self._max_concurrent

    ## queries

    def get(self, task_id):
        with self._lock:
            return self._tasks.get(task_id)

    def require(self, task_id):
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(msg="task %r not found" % task_id)
        return task

    def status(self, task_id):
        with self._lock:
            task = self._tasks.get(task_id)
            return None if task is None else task.status

    def is_running(self, task_id):
        return self.status(task_id) is TaskStatus.RUNNING

    def all(self):
        with self._lock:
            return list(self._tasks.values())

    def by_owner(self, owner_id):
        with self._lock:
            return [t for t in self._tasks.values() if t.owner_id == owner_id]

    def pending(self):
        with self._lock:
            ts = [t for t in self._tasks.values() if t.status is TaskStatus.PENDING]
        return sorted(ts, key=sort_key)

    def next_waiting(self):
        """ The pending task that gets the next free slot, if any is waiting. """
        with self._lock:
            ts = [t for t in self.pending() if t.awaiting_slot]
        return ts[0] if ts else None

    def running_count(self):
        with self._lock:
            return sum(1 for t in self._tasks.values() if t.status is TaskStatus.RUNNING)

    def active_count(self, owner_id=None):
        with self._lock:
            return sum(1 for t in self._tasks.values()
                       if t.status.is_active and (owner_id is None or t.owner_id == owner_id))

    def stats(self):
        with self._lock:
            stats = count_by_status(list(self._tasks.values()))
        stats["max_concurrent"] = self._max_concurrent
        return stats

    def __len__(self):
        with self._lock:
            return len(self._tasks)

    def __contains__(self, task_id):
        with self._lock:
            return task_id in self._tasks

    ## transitions

    def add(self, task, owner_limit=None):
        with self._lock:
            if task.id in self._tasks:
                raise ValueError("duplicated task id %r" % task.id)
            if owner_limit is not None and self.active_count(task.owner_id) >= owner_limit:
                raise TaskLimitError(msg="owner %r already has %d active tasks" % (task.owner_id, owner_limit))
            self._tasks[task.id] = task
        cout.info("Task %s added (%s, %s)" % (task.id, task.kind.value, task.priority.value))
        return task

    def attach_activation(self, task_id, activation):
        with self._lock:
            task = self.require(task_id)
            if task.is_terminal:
                return False
            task.activation = activation
            return True

    def start(self, task_id):
        """
        pending -> running, only while the running count is below the cap.
        Among the tasks waiting for a slot, the first by priority and then
        creation time starts first. Returns False when the task cannot start
        now; the caller re-polls.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status is not TaskStatus.PENDING:
                return False
            task.awaiting_slot = True
            if self.running_count() >= self._max_concurrent:
                return False
            head = self.next_waiting()
            if head is not None and head is not task:
                return False
            task.awaiting_slot = False
            task.status = TaskStatus.RUNNING
            task.started_at = self._clock()
            task.message = "running"
        cout.info("Task %s started" % task_id)
        return True

    def record_attempt(self, task_id, message=None):
        """
        Count one failed attempt of a running task. Returns False when the task
        is not running anymore, or when this attempt exhausted the ceiling and
        failed the task.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status is not TaskStatus.RUNNING:
                return False
            task.attempt_count += 1
            task.last_attempt_at = self._clock()
            if message is not None:
                task.message = message
            if task.max_attempts is not None and task.attempt_count >= task.max_attempts:
                self._finish(task, TaskStatus.FAILED, "gave up after %d attempts: %s" % (
                    task.attempt_count, task.message))
                task.result = TaskResult(success=False, message=task.message, course=task.target)
                cout.warning("Task %s failed: attempt ceiling reached" % task_id)
                return False
            return True

    def set_target(self, task_id, course):
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.is_terminal:
                return False
            task.target = course
            return True

    def set_courses(self, task_id, courses):
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.is_terminal:
                return False
            task.courses = tuple(courses)
            return True

    def set_message(self, task_id, message):
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.is_terminal:
                return False
            task.message = message
            return True

    def complete(self, task_id, success, message, course=None, data=None):
        """ running -> completed | failed """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status is not TaskStatus.RUNNING:
                return False
            self._finish(task, TaskStatus.COMPLETED if success else TaskStatus.FAILED, message)
            task.result = TaskResult(success=success, message=message, course=course, data=data)
            if not success:
                task.error = message
        if success:
            cout.info("Task %s completed: %s" % (task_id, message))
        else:
            cout.warning("Task %s failed: %s" % (task_id, message))
        return True

    def fail(self, task_id, message):
        return self.complete(task_id, False, message)

    def cancel(self, task_id, message="cancelled"):
        """
        pending | running -> cancelled. Cancelling a terminal task is a no-op
        and returns False. The scheduled timer, if any, is cancelled too.
        """
        with self._lock:
            task = self.require(task_id)
            if task.is_terminal:
                return False
            self._finish(task, TaskStatus.CANCELLED, message)
            task.cancel_event.set()
            activation = task.activation
        if activation is not None:
            activation.cancel()
        cout.info("Task %s cancelled" % task_id)
        return True

    def _finish(self, task, status, message):
        task.status = status
        task.message = message
        task.completed_at = self._clock()
        if status is not TaskStatus.CANCELLED:
            task.cancel_event.set()

    def remove(self, task_id):
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return False
            if not task.is_terminal:
                self.cancel(task_id, "removed")
            del self._tasks[task_id]
            return True

    ## housekeeping

    def cleanup_completed(self, keep=COMPLETED_KEEP):
        with self._lock:
            done = [t for t in self._tasks.values() if t.is_terminal]
            done.sort(key=lambda t: t.completed_at or t.created_at, reverse=True)
            drop = done[keep:]
            for t in drop:
                del self._tasks[t.id]
        if drop:
            cout.info("Removed %d completed tasks" % len(drop))
        return len(drop)

    def cleanup_old_tasks(self, now=None, max_age=OLD_TASK_MAX_AGE, keep_per_owner=OLD_TASK_KEEP_PER_OWNER):
        now = self._clock() if now is None else now
        removed = 0
        with self._lock:
            per_owner = defaultdict(list)
            for t in list(self._tasks.values()):
                if not t.is_terminal:
                    continue
                if now - t.created_at > max_age:
                    del self._tasks[t.id]
                    removed += 1
                    continue
                per_owner[t.owner_id].append(t)
            for ts in per_owner.values():
                ts.sort(key=lambda t: t.completed_at or t.created_at, reverse=True)
                for t in ts[keep_per_owner:]:
                    del self._tasks[t.id]
                    removed += 1
        if removed:
            cout.info("Removed %d old tasks" % removed)
        return removed
