#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: logger.py

import os
import logging
from logging.handlers import TimedRotatingFileHandler
from ._internal import mkdir
from .const import ERROR_LOG_DIR

mkdir(ERROR_LOG_DIR)


class BaseLogger(object):

    default_level = logging.DEBUG
    default_format = logging.Formatter("[%(levelname)s] %(name)s, %(asctime)s, %(message)s", "%H:%M:%S")

    def __init__(self, name, level=None, format=None):
        if self.__class__ is __class__:
            raise NotImplementedError
        self._name = name
        self._level = level if level is not None else self.__class__.default_level
        self._format = format if format is not None else self.__class__.default_format
        self._logger = logging.getLogger(self._name)
        self._logger.setLevel(self._level)
        if not self._logger.handlers:
            self._logger.addHandler(self._get_handler())

    @property
    def name(self):
        return self._name

    @property
    def handlers(self):
        return self._logger.handlers

    def _get_handler(self):
        raise NotImplementedError

    def log(self, level, msg, *args, **kwargs):
        return self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        return self._logger.debug(msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        return self._logger.info(msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        return self._logger.warning(msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        return self._logger.error(msg, *args, **kwargs)

    def exception(self, msg, *args, exc_info=True, **kwargs):
        return self._logger.exception(msg, *args, exc_info=exc_info, **kwargs)

    def critical(self, msg, *args, **kwargs):
        return self._logger.critical(msg, *args, **kwargs)


class ConsoleLogger(BaseLogger):
    """ 控制台日志输出类 """

    default_level = logging.DEBUG

    def _get_handler(self):
        handler = logging.StreamHandler()
        handler.setLevel(self._level)
        handler.setFormatter(self._format)
        return handler


class FileLogger(BaseLogger):
    """ 文件日志输出类，按天滚动，同时输出到 console """

    default_level = logging.WARNING
    default_format = logging.Formatter("[%(levelname)s] %(name)s, %(asctime)s, %(message)s", "%Y-%m-%d %H:%M:%S")

    def __init__(self, name, level=None, format=None):
        super().__init__(name, level, format)
        self._logger.propagate = False
        if len(self._logger.handlers) == 1:
            console = logging.StreamHandler()
            console.setLevel(self._level)
            console.setFormatter(self._format)
            self._logger.addHandler(console)

    def _get_handler(self):
        file = os.path.join(ERROR_LOG_DIR, "%s.log" % self._name)
        handler = TimedRotatingFileHandler(file, when="d", interval=1, backupCount=7, encoding="utf-8", delay=True)
        handler.setLevel(self._level)
        handler.setFormatter(self._format)
        return handler
