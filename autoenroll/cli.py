#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: cli.py

from optparse import OptionParser
import time
from . import __version__, __date__


def create_default_parser():

    parser = OptionParser(
        description='Course Auto-Enroll Tool v%s (%s)' % (__version__, __date__),
        version=__version__,
    )

    ## custom input files

    parser.add_option(
        '-c',
        '--config',
        dest='config_ini',
        metavar="FILE",
        help='custom config file encoded with utf8',
    )

    ## numeric options

    parser.add_option(
        '-i',
        '--stats-interval',
        dest='stats_interval',
        metavar="SECONDS",
        type='float',
        default=30.0,
        help='print task statistics every SECONDS seconds',
    )

    return parser


def setup_default_environ(options, args, environ):

    if options.config_ini:
        environ.config_ini = options.config_ini
    environ.stats_interval = options.stats_interval


def submit_config_tasks(service, config, cout):
    owner_id = config.owner_id
    cookie = config.cookie
    school_id = config.school_id
    ids = []
    for t in config.tasks:
        kwargs = dict(
            courses=t["courses"] or None,
            keywords=t["keywords"] or None,
            school_id=school_id,
            category=t["category"],
            max_attempts=t["max_attempts"],
        )
        if t["scheduled_time"] is not None:
            r = service.create_scheduled_task(owner_id, cookie, t["scheduled_time"], **kwargs)
        else:
            r = service.create_task(owner_id, cookie, **kwargs)
        if r["success"]:
            cout.info("task:%s -> %s (%s)" % (t["id"], r["data"]["task_id"], r["data"]["status"]))
            ids.append(r["data"]["task_id"])
        else:
            cout.error("task:%s rejected [%s] %s" % (t["id"], r["error"], r["message"]))
    return ids


def _format_stats(stats):
    return ", ".join("%s=%s" % (k, v) for k, v in stats.items())


def run_monitor_loop(service, task_ids, interval, cout, sleep=time.sleep):
    """
    Poll until every submitted task is terminal. Ctrl-C cancels all active
    tasks.
    """
    last_report = 0.0
    try:
        while True:
            sleep(1.0)
            tasks = [service.get_task(tid) for tid in task_ids]
            now = time.time()
            if now - last_report >= interval:
                cout.info("stats: %s" % _format_stats(service.get_stats()["data"]))
                for r in tasks:
                    if r["success"]:
                        d = r["data"]
                        cout.info("%s %s attempts=%d %s" % (d["id"], d["status"], d["attempt_count"], d["message"]))
                service.cleanup()
                last_report = now
            if all(not r["success"] or r["data"]["status"] in ("completed", "failed", "cancelled") for r in tasks):
                break
    except KeyboardInterrupt:
        n = service.manager.cancel_all()
        cout.warning("Interrupted, %d task(s) cancelled" % n)
    cout.info("stats: %s" % _format_stats(service.get_stats()["data"]))


def run():

    from .environ import Environ
    from .logger import ConsoleLogger

    environ = Environ()
    cout = ConsoleLogger("cli")

    parser = create_default_parser()
    options, args = parser.parse_args()

    setup_default_environ(options, args, environ)

    # Import modules that instantiate AutoEnrollConfig only after config path is set.
    # Otherwise `main.py -c xxx.ini` would be ignored due to early singleton init.
    from .config import AutoEnrollConfig
    from .manager import TaskManager
    from .service import TaskService
    from .hook import configure_debug
    from . import rate_limit

    config = AutoEnrollConfig()
    school = config.school

    rate_limit.configure(config, hosts=[school.host])
    rate_limit.set_stat_hooks(environ.stat_inc, environ.stat_set)
    configure_debug(config.is_debug_print_request, config.is_debug_dump_request, subpath=config.owner_id)

    manager = TaskManager.from_config(config)
    service = TaskService(
        manager,
        max_active_per_owner=config.max_active_tasks_per_owner,
        schedule_max_delay=config.schedule_max_delay,
        default_school_id=school.id,
    )

    cout.info("%s (%s), %d task section(s)" % (school.name, school.base_url, len(config.tasks)))
    task_ids = submit_config_tasks(service, config, cout)
    if not task_ids:
        cout.warning("No task was created")
        return

    run_monitor_loop(service, task_ids, environ.stats_interval, cout)

    counters, gauges = environ.snapshot_stats()
    cout.info("runtime: %s" % _format_stats(dict(counters, **gauges)))
