#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import time
import unittest
from datetime import datetime, timedelta

from autoenroll.school import get_school
from autoenroll.course import CategoryParams, CourseRecord, RequestParameters
from autoenroll.tokens import TokenSet
from autoenroll.registry import TaskRegistry
from autoenroll.catalog import CatalogResult
from autoenroll.executor import RegistrationVerdict
from autoenroll.retry import RetryPolicy
from autoenroll.manager import TaskManager
from autoenroll.service import TaskService, ok, error
from autoenroll.exceptions import UnrecognizablePageError, MissingParameterError, ServerError

_PARAMS = RequestParameters(
    category=CategoryParams("01", "W01", "2024", "088"),
    tokens=TokenSet({"xkxnm": "2025", "xkxqm": "3"}),
    school_id="tyust",
)

_COURSE = CourseRecord(course_id="K001", class_id="J001", do_id="J001", title="篮球", category_code="01",
                       params=_PARAMS)

_COOKIE = "JSESSIONID=0123456789; route=abc"


class FakeClient(object):
    def __init__(self):
        self.school = get_school("tyust")

    def close(self):
        pass


class FailingExecutor(object):
    def attempt(self, client, course):
        return RegistrationVerdict(flag_ok=False, member_ok=False, flag="0", message="full")


class FakeFetcher(object):
    def fetch_all(self, client, resolver):
        result = CatalogResult()
        result.courses = [_COURSE]
        return result


class FakeResolver(object):
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def resolve_all(self, client):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [_PARAMS]


class ServiceOfflineTest(unittest.TestCase):
    def setUp(self):
        self.resolver = FakeResolver()
        self.manager = TaskManager(
            registry=TaskRegistry(5),
            resolver=self.resolver,
            fetcher=FakeFetcher(),
            executor=FailingExecutor(),
            client_factory=lambda task: FakeClient(),
            retry_policy=RetryPolicy(30.0),
            start_poll_interval=0.01,
        )
        self.admitted = True
        self.service = TaskService(self.manager, admission=lambda owner: self.admitted)

    def tearDown(self):
        self.manager.cancel_all()
        for t in self.manager.registry.all():
            self.manager.join(t.id, 5)

    def test_envelopes(self):
        self.assertEqual(ok({"a": 1}), {"success": True, "data": {"a": 1}, "message": "ok"})
        env = error(MissingParameterError(["xkxnm", "xkxqm"]))
        self.assertFalse(env["success"])
        self.assertEqual(env["error"], "discovery")
        self.assertEqual(env["missing"], ["xkxnm", "xkxqm"])
        self.assertEqual(error(ServerError(msg="502 Bad Gateway"))["message"], "502 Bad Gateway")

    def test_create_direct_task(self):
        r = self.service.create_task("u1", _COOKIE, courses=[_COURSE])
        self.assertTrue(r["success"], r)
        self.assertTrue(r["data"]["task_id"].startswith("task_"))
        t = self.service.get_task(r["data"]["task_id"])["data"]
        self.assertEqual(t["kind"], "direct")
        self.assertEqual(t["priority"], "high")
        self.assertEqual(t["owner_id"], "u1")
        self.assertNotIn("credential", t)

    def test_create_task_from_course_dict(self):
        r = self.service.create_task("u1", _COOKIE, courses=[{"kch_id": "K002", "jxb_id": "J002", "kcmc": "网球"}])
        self.assertTrue(r["success"], r)
        t = self.manager.registry.get(r["data"]["task_id"])
        self.assertEqual(t.courses[0].key, ("K002", "J002"))
        self.assertIs(t.courses[0].params, _PARAMS)
        self.assertEqual(self.resolver.calls, 1)

    def test_discovery_failure_creates_no_task(self):
        self.resolver.error = UnrecognizablePageError(msg="index page carries no form tokens")
        r = self.service.create_task("u1", _COOKIE, courses=[{"kch_id": "K002", "jxb_id": "J002"}])
        self.assertFalse(r["success"])
        self.assertEqual(r["error"], "discovery")
        self.assertEqual(len(self.manager.registry), 0)

    def test_unadvertised_category_creates_no_task(self):
        course = CourseRecord(course_id="K005", class_id="J005", do_id="J005", title="体育", category_code="05")
        r = self.service.create_task("u1", _COOKIE, courses=[course])
        self.assertFalse(r["success"])
        self.assertEqual(r["error"], "discovery")
        self.assertIn("05", r["message"])
        self.assertEqual(len(self.manager.registry), 0)

    def test_snapshot_follows_course_category(self):
        course = CourseRecord(course_id="K002", class_id="J002", do_id="J002", title="足球", category_code="01")
        r = self.service.create_task("u1", _COOKIE, courses=[course])
        self.assertTrue(r["success"])
        task = self.manager.registry.get(r["data"]["task_id"])
        self.assertEqual(task.courses[0].params.category.code, "01")

    def test_invalid_requests(self):
        cases = [
            dict(owner_id="u1", credential="", courses=[_COURSE]),
            dict(owner_id="", credential=_COOKIE, courses=[_COURSE]),
            dict(owner_id="u1", credential=_COOKIE),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], keywords=["篮球"]),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], school_id="nowhere"),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], max_attempts=0),
            dict(owner_id="u1", credential=_COOKIE, courses=["not a course"]),
            dict(owner_id="u1", credential=_COOKIE, keywords=[123]),
            dict(owner_id="u1", credential=_COOKIE, keywords="篮球"),
            dict(owner_id="u1", credential=_COOKIE, courses=5),
            dict(owner_id="u1", credential=_COOKIE, courses=_COURSE),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], school_id=7),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], category=1),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], max_attempts=[2]),
            dict(owner_id="u1", credential=_COOKIE, courses=[_COURSE], max_attempts="many"),
            dict(owner_id=42, credential=_COOKIE, courses=[_COURSE]),
            dict(owner_id="u1", credential=b"JSESSIONID=1", courses=[_COURSE]),
        ]
        for kwargs in cases:
            r = self.service.create_task(**kwargs)
            self.assertFalse(r["success"], kwargs)
            self.assertEqual(r["error"], "input", kwargs)
        self.assertEqual(len(self.manager.registry), 0)

    def test_admission_denied(self):
        self.admitted = False
        r = self.service.create_task("u1", _COOKIE, keywords=["篮球"])
        self.assertFalse(r["success"])
        self.assertEqual(r["error"], "task")

    def test_owner_limit(self):
        for _ in range(3):
            self.assertTrue(self.service.create_task("u1", _COOKIE, courses=[_COURSE])["success"])
        r = self.service.create_task("u1", _COOKIE, courses=[_COURSE])
        self.assertFalse(r["success"])
        self.assertEqual(r["error"], "task")
        self.assertTrue(self.service.create_task("u2", _COOKIE, courses=[_COURSE])["success"])

    def test_scheduled_time_window(self):
        now = datetime.now()
        past = self.service.create_scheduled_task("u1", _COOKIE, now - timedelta(seconds=5), courses=[_COURSE])
        far = self.service.create_scheduled_task("u1", _COOKIE, now + timedelta(hours=25), courses=[_COURSE])
        missing = self.service.create_scheduled_task("u1", _COOKIE, None, courses=[_COURSE])
        for r in (past, far, missing):
            self.assertFalse(r["success"])
            self.assertEqual(r["error"], "task")
        self.assertEqual(len(self.manager.registry), 0)

    def test_scheduled_task_is_armed(self):
        when = time.time() + 3600
        r = self.service.create_scheduled_task("u1", _COOKIE, when, keywords=["篮球"])
        self.assertTrue(r["success"], r)
        self.assertTrue(r["data"]["task_id"].startswith("scheduled_"))
        self.assertEqual(r["data"]["status"], "pending")
        task = self.manager.registry.get(r["data"]["task_id"])
        self.assertEqual(task.priority.value, "normal")
        self.assertIsNotNone(task.activation)
        c = self.service.cancel_task(task.id)
        self.assertTrue(c["data"]["cancelled"])
        self.assertTrue(task.activation.cancelled)

    def test_cancel_is_idempotent(self):
        tid = self.service.create_task("u1", _COOKIE, courses=[_COURSE])["data"]["task_id"]
        first = self.service.cancel_task(tid, owner_id="u1")
        second = self.service.cancel_task(tid, owner_id="u1")
        self.assertTrue(first["success"])
        self.assertTrue(first["data"]["cancelled"])
        self.assertTrue(second["success"])
        self.assertFalse(second["data"]["cancelled"])
        self.assertEqual(second["data"]["status"], "cancelled")

    def test_owner_scoping(self):
        tid = self.service.create_task("u1", _COOKIE, courses=[_COURSE])["data"]["task_id"]
        self.assertFalse(self.service.get_task(tid, owner_id="u2")["success"])
        self.assertFalse(self.service.cancel_task(tid, owner_id="u2")["success"])
        self.assertEqual(self.service.get_task("missing")["error"], "task")

    def test_listing(self):
        first = self.service.create_task("u1", _COOKIE, courses=[_COURSE])["data"]["task_id"]
        time.sleep(0.01)
        second = self.service.create_task("u1", _COOKIE, keywords=["篮球"])["data"]["task_id"]
        self.service.create_task("u2", _COOKIE, keywords=["网球"])
        mine = self.service.get_user_tasks("u1")["data"]
        self.assertEqual([t["id"] for t in mine], [second, first])
        self.assertFalse(self.service.get_all_tasks()["success"])
        self.assertEqual(len(self.service.get_all_tasks(privileged=True)["data"]), 3)
        stats = self.service.get_stats()["data"]
        self.assertEqual(stats["total"], 3)
        self.assertEqual(stats["max_concurrent"], 5)

    def test_cleanup_keeps_active_tasks(self):
        tid = self.service.create_task("u1", _COOKIE, courses=[_COURSE])["data"]["task_id"]
        self.assertEqual(self.service.cleanup(now=time.time() + 30 * 24 * 3600), 0)
        self.assertTrue(self.service.get_task(tid)["success"])


if __name__ == "__main__":
    unittest.main()
