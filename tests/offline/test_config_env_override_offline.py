#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import tempfile
import unittest
from datetime import datetime

from autoenroll.utils import Singleton
from autoenroll.config import AutoEnrollConfig
from autoenroll.const import CONFIG_INI_ENV
from autoenroll.exceptions import UserInputException


def _load_config(text):
    tmp = tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", suffix=".ini")
    old_env = os.environ.get(CONFIG_INI_ENV)
    try:
        tmp.write(text)
        tmp.flush()
        tmp.close()
        os.environ[CONFIG_INI_ENV] = tmp.name
        # Reset singleton cache
        Singleton._inst.pop(AutoEnrollConfig, None)
        return AutoEnrollConfig()
    finally:
        if os.path.exists(tmp.name):
            os.unlink(tmp.name)
        if old_env is None:
            os.environ.pop(CONFIG_INI_ENV, None)
        else:
            os.environ[CONFIG_INI_ENV] = old_env
        Singleton._inst.pop(AutoEnrollConfig, None)


class ConfigEnvOverrideOfflineTest(unittest.TestCase):
    def test_env_override_config_ini(self):
        c = _load_config("[user]\nowner_id=TEST_USER\ncookie=JSESSIONID=abc\n")
        self.assertEqual(c.owner_id, "TEST_USER")
        self.assertEqual(c.cookie, "JSESSIONID=abc")
        self.assertEqual(c.school_id, "tyust")

    def test_task_defaults(self):
        c = _load_config("[user]\ncookie=x\n")
        self.assertEqual(c.max_concurrent_tasks, 5)
        self.assertEqual(c.retry_interval, 1.0)
        self.assertEqual(c.catalog_batch_size, 5)
        self.assertEqual(c.catalog_fetch_retries, 5)
        self.assertEqual(c.catalog_fetch_retry_delay, 10.0)
        self.assertEqual(c.match_threshold, 0.3)
        self.assertEqual(c.schedule_max_delay, 24 * 3600)
        self.assertEqual(c.max_active_tasks_per_owner, 3)
        self.assertFalse(c.rate_limit_enable)

    def test_schedule_max_delay_is_capped(self):
        c = _load_config("[user]\ncookie=x\n\n[task]\nschedule_max_delay=999999\n")
        self.assertEqual(c.schedule_max_delay, 24 * 3600)

    def test_match_threshold_out_of_range(self):
        c = _load_config("[user]\ncookie=x\n\n[task]\nmatch_threshold=1.5\n")
        with self.assertRaises(UserInputException):
            c.match_threshold

    def test_custom_school_section(self):
        c = _load_config(
            "[user]\ncookie=x\nschool=Demo\n\n"
            "[school:demo]\nname=Demo University\ndomain=jw.demo.edu.cn\nprotocol=http\n"
        )
        school = c.school
        self.assertEqual(school.id, "demo")
        self.assertEqual(school.base_url, "http://jw.demo.edu.cn")
        self.assertIn("gnmkdm=N253512", school.index_url)
        self.assertIn("su=jw.demo.edu.cn", school.index_url)

    def test_tasks_sections(self):
        c = _load_config(
            "[user]\ncookie=x\n\n"
            "[course:math]\nkch_id=K001\njxb_id=J001\ntitle=Advanced Mathematics\n\n"
            "[task:math]\ncourses=math\nmax_attempts=20\n\n"
            "[task:pe]\nkeywords=Basketball, Tennis\nscheduled_time=2026-10-19 08:00\n"
        )
        tasks = c.tasks
        self.assertEqual([t["id"] for t in tasks], ["math", "pe"])
        self.assertEqual(tasks[0]["courses"][0].key, ("K001", "J001"))
        self.assertEqual(tasks[0]["courses"][0].do_id, "J001")
        self.assertEqual(tasks[0]["max_attempts"], 20)
        self.assertEqual(tasks[1]["keywords"], ["Basketball", "Tennis"])
        self.assertEqual(tasks[1]["scheduled_time"], datetime(2026, 10, 19, 8, 0))

    def test_task_needs_exactly_one_target(self):
        c = _load_config(
            "[user]\ncookie=x\n\n"
            "[course:math]\nkch_id=K001\njxb_id=J001\n\n"
            "[task:both]\ncourses=math\nkeywords=math\n"
        )
        with self.assertRaises(UserInputException):
            c.tasks

    def test_duplicated_course_rejected(self):
        c = _load_config(
            "[user]\ncookie=x\n\n"
            "[course:a]\nkch_id=K001\njxb_id=J001\n\n"
            "[course:b]\nkch_id=K001\njxb_id=J001\n"
        )
        with self.assertRaises(UserInputException):
            c.courses

    def test_invalid_schedule_format(self):
        with self.assertRaises(UserInputException):
            AutoEnrollConfig.parse_schedule("tomorrow morning")


if __name__ == "__main__":
    unittest.main()
