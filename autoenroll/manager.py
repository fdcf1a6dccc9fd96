#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: manager.py

import time
import threading
from requests.exceptions import RequestException
from .task import TaskKind, ScheduledActivation
from .registry import TaskRegistry, DEFAULT_MAX_CONCURRENT
from .resolver import ParameterResolver
from .catalog import CatalogFetcher, DEFAULT_BATCH_SIZE
from .matcher import find_best_match, DEFAULT_MATCH_THRESHOLD
from .executor import RegistrationExecutor
from .retry import RetryPolicy
from .school import get_school
from .jwxt import JwxtClient
from .environ import Environ
from .logger import ConsoleLogger, FileLogger
from .exceptions import AutoEnrollException, UserInputException, ParameterDiscoveryError

environ = Environ()
cout = ConsoleLogger("manager")
ferr = FileLogger("manager.error")

CATALOG_FETCH_RETRIES = 5
CATALOG_FETCH_RETRY_DELAY = 10.0
START_POLL_INTERVAL = 1.0
RETRY_INTERVAL = 1.0


def default_client_factory(task, timeout=10):
    school = get_school(task.school_id)
    if school is None:
        raise UserInputException(msg="Unknown school %r" % task.school_id)
    return JwxtClient(school, task.credential, timeout=timeout)


class TaskManager(object):
    """
    Drives each admitted task on its own worker thread:

        wait for capacity -> (resolve | fetch + match) -> submit/verify/retry

    Cancellation is cooperative: the worker checks the task status before
    every attempt and sleeps on the task's cancel event between attempts.
    """

    def __init__(self, registry=None, resolver=None, fetcher=None, executor=None,
                 client_factory=None, retry_policy=None,
                 start_poll_interval=START_POLL_INTERVAL,
                 catalog_fetch_retries=CATALOG_FETCH_RETRIES,
                 catalog_fetch_retry_delay=CATALOG_FETCH_RETRY_DELAY,
                 match_threshold=DEFAULT_MATCH_THRESHOLD,
                 on_success=None, clock=time.time):
        self.registry = registry or TaskRegistry(DEFAULT_MAX_CONCURRENT, clock=clock)
        self.resolver = resolver or ParameterResolver()
        self.fetcher = fetcher or CatalogFetcher(DEFAULT_BATCH_SIZE)
        self.executor = executor or RegistrationExecutor()
        self.client_factory = client_factory or default_client_factory
        self.retry_policy = retry_policy or RetryPolicy(RETRY_INTERVAL)
        self.start_poll_interval = start_poll_interval
        self.catalog_fetch_retries = catalog_fetch_retries
        self.catalog_fetch_retry_delay = catalog_fetch_retry_delay
        self.match_threshold = match_threshold
        self.on_success = on_success
        self.clock = clock
        self._threads = {}
        self._threads_lock = threading.Lock()

    @classmethod
    def from_config(cls, config, **kwargs):
        timeout = config.client_timeout
        kwargs.setdefault("registry", TaskRegistry(config.max_concurrent_tasks))
        kwargs.setdefault("fetcher", CatalogFetcher(config.catalog_batch_size))
        kwargs.setdefault("retry_policy", RetryPolicy(config.retry_interval))
        kwargs.setdefault("client_factory", lambda task: default_client_factory(task, timeout=timeout))
        kwargs.setdefault("start_poll_interval", config.start_poll_interval)
        kwargs.setdefault("catalog_fetch_retries", config.catalog_fetch_retries)
        kwargs.setdefault("catalog_fetch_retry_delay", config.catalog_fetch_retry_delay)
        kwargs.setdefault("match_threshold", config.match_threshold)
        return cls(**kwargs)

    ## submission

    def submit(self, task, owner_limit=None):
        self.registry.add(task, owner_limit=owner_limit)
        if task.scheduled_time is not None and task.scheduled_time > self.clock():
            self.arm(task)
        else:
            self.launch(task.id)
        return task

    def arm(self, task):
        activation = ScheduledActivation(task.scheduled_time, lambda: self.launch(task.id), clock=self.clock)
        if self.registry.attach_activation(task.id, activation):
            activation.start()
            self.registry.set_message(task.id, "scheduled in %.0fs" % activation.delay)
            cout.info("Task %s armed, fires in %.1fs" % (task.id, activation.delay))
        return activation

    def launch(self, task_id):
        t = threading.Thread(target=self.run_task, args=(task_id,), name="Task-%s" % task_id)
        t.daemon = True
        with self._threads_lock:
            self._threads[task_id] = t
        t.start()
        return t

    def join(self, task_id, timeout=None):
        with self._threads_lock:
            t = self._threads.get(task_id)
        if t is not None:
            t.join(timeout)
            return not t.is_alive()
        return True

    def cancel(self, task_id):
        return self.registry.cancel(task_id)

    def cancel_all(self):
        n = 0
        for t in self.registry.all():
            if not t.is_terminal and self.registry.cancel(t.id, "cancelled on shutdown"):
                n += 1
        return n

    ## worker

    def wait_for_capacity(self, task):
        while True:
            if self.registry.start(task.id):
                return True
            status = self.registry.status(task.id)
            if status is None or not status.is_active:
                return False
            self.registry.set_message(task.id, "waiting for a free slot")
            if task.cancel_event.wait(self.start_poll_interval):
                return False

    def run_task(self, task_id):
        task = self.registry.get(task_id)
        if task is None or not self.wait_for_capacity(task):
            return
        environ.stat_inc("task_started")
        client = None
        try:
            client = self.client_factory(task)
            if task.kind is TaskKind.KEYWORD:
                self._run_keyword(task, client)
            else:
                self._run_direct(task, client)
        except Exception as e:
            ferr.exception(e)
            self.registry.fail(task_id, "unexpected error: %s" % e)
        finally:
            if client is not None:
                client.close()
            environ.stat_inc("task_finished")

    def ensure_snapshots(self, task, client):
        """
        Give records without a parameter snapshot the parameters of their
        category, resolved once per run.
        """
        if all(c.params is not None for c in task.courses):
            return list(task.courses)
        params_list = self.resolver.resolve_all(client)
        if not params_list:
            raise ParameterDiscoveryError(msg="no category could be resolved")
        by_code = {p.category.code: p for p in params_list}
        courses = []
        for c in task.courses:
            if c.params is None:
                code = c.category_code or task.category
                if code is None:
                    params = params_list[0]
                elif code in by_code:
                    params = by_code[code]
                else:
                    raise ParameterDiscoveryError(
                        msg="category %s of %s is not advertised by the portal (available: %s)"
                            % (code, c, ", ".join(by_code)))
                c = c.with_params(params)
            courses.append(c)
        self.registry.set_courses(task.id, courses)
        return courses

    def _run_direct(self, task, client):
        try:
            courses = self.ensure_snapshots(task, client)
        except (AutoEnrollException, RequestException) as e:
            ferr.error(e)
            self.registry.fail(task.id, "parameter discovery failed: %s" % e)
            return
        if not courses:
            self.registry.fail(task.id, "no course to enroll")
            return
        self._retry_loop(task, client, courses)

    def _run_keyword(self, task, client):
        courses = self._fetch_catalog(task, client)
        if courses is None:
            return
        if not courses:
            self.registry.fail(task.id, "catalog fetch failed %d times in a row" % self.catalog_fetch_retries)
            return
        match = find_best_match(courses, task.keywords, self.match_threshold)
        if match is None:
            self.registry.fail(task.id, "no course matches %s" % ", ".join(task.keywords))
            return
        cout.info("Task %s matched %s (score %.3f%s)" % (
            task.id, match.course, match.score, ", currently full" if match.course.is_full else ""))
        self.registry.set_target(task.id, match.course)
        self._retry_loop(task, client, [match.course])

    def _fetch_catalog(self, task, client):
        """ Returns the fetched courses, [] after exhausting retries, None if cancelled. """
        for i in range(1, self.catalog_fetch_retries + 1):
            if not self.registry.is_running(task.id):
                return None
            self.registry.set_message(task.id, "fetching catalog (%d/%d)" % (i, self.catalog_fetch_retries))
            result = self.fetcher.fetch_all(client, self.resolver)
            if result.courses:
                return result.courses
            environ.stat_inc("catalog_fetch_failure")
            if result.session_expired:
                reason = "session expired"
            elif result.failed:
                reason = "%d page errors" % len(result.errors)
            else:
                reason = "empty catalog"
            cout.warning("Task %s: catalog fetch %d/%d returned nothing (%s)" % (
                task.id, i, self.catalog_fetch_retries, reason))
            if i < self.catalog_fetch_retries:
                if not self.registry.is_running(task.id):
                    return None
                if task.cancel_event.wait(self.catalog_fetch_retry_delay):
                    return None
        if not self.registry.is_running(task.id):
            return None
        return []

    def _retry_loop(self, task, client, courses):
        policy = self.retry_policy
        if task.max_attempts is not None and task.max_attempts != policy.max_attempts:
            policy = policy.with_max_attempts(task.max_attempts)
        i = 0
        while True:
            if not self.registry.is_running(task.id):
                return
            course = courses[i % len(courses)]
            verdict = self.executor.attempt(client, course)
            environ.stat_inc("enroll_attempt")
            if verdict.success:
                if self.registry.complete(task.id, True, "enrolled in %s" % course, course=course, data=verdict.data):
                    environ.stat_inc("enroll_success")
                    self._notify_success(task)
                return
            if not self.registry.record_attempt(task.id, verdict.describe()):
                return
            if policy.exhausted(self.registry.get(task.id).attempt_count):
                self.registry.fail(task.id, "gave up after %d attempts" % policy.max_attempts)
                return
            if not self.registry.is_running(task.id):
                return
            if policy.sleep(task.cancel_event):
                return
            i += 1

    def _notify_success(self, task):
        if self.on_success is None:
            return
        try:
            self.on_success(task)
        except Exception as e:
            ferr.exception(e)
