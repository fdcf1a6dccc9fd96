#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# filename: exceptions.py

__all__ = [

    "AutoEnrollException",

        "UserInputException",

        "AutoEnrollClientException",

            "StatusCodeError",
            "ServerError",
            "OperationFailedError",
            "SessionExpiredError",

        "ParameterDiscoveryError",

            "UnrecognizablePageError",
            "MissingParameterError",

        "CatalogFetchError",

        "TaskError",

            "TaskNotFoundError",
            "TaskLimitError",
            "InvalidScheduleError",
            "AdmissionDeniedError",
    ]


class AutoEnrollException(Exception):
    """ Abstract Exception for AutoEnroll """

    code = -1
    desc = "AutoEnrollException"

    def __init__(self, *args, **kwargs):
        response = kwargs.pop("response", None)
        self.response = response
        self.msg = kwargs.pop("msg", self.__class__.desc)
        msg = "[%d] %s" % (self.__class__.code, self.msg)
        super().__init__(msg, *args, **kwargs)


class UserInputException(AutoEnrollException, ValueError):
    """ 由用户输入数据不当而引发的错误 """

    code = -10
    desc = "UserInputException"


class AutoEnrollClientException(AutoEnrollException):

    code = -1
    desc = "AutoEnrollClientException"


class StatusCodeError(AutoEnrollClientException):
    code = -2
    desc = "StatusCodeError"


class ServerError(AutoEnrollClientException):
    code = -3
    desc = "ServerError"


class OperationFailedError(AutoEnrollClientException):
    code = -4
    desc = "OperationFailedError"


class SessionExpiredError(AutoEnrollClientException):
    code = 901
    desc = "session expired, the cookie needs to be refreshed"


class ParameterDiscoveryError(AutoEnrollException):
    code = 1001
    desc = "ParameterDiscoveryError"


class UnrecognizablePageError(ParameterDiscoveryError):
    code = 1002
    desc = "the portal returned an unrecognizable page"


class MissingParameterError(ParameterDiscoveryError):
    code = 1003
    desc = "MissingParameterError"

    def __init__(self, missing, *args, **kwargs):
        self.missing = list(missing)
        kwargs.setdefault("msg", "missing required parameters: %s" % ", ".join(self.missing))
        super().__init__(*args, **kwargs)


class CatalogFetchError(AutoEnrollException):
    code = 1101
    desc = "CatalogFetchError"


class TaskError(AutoEnrollException):
    code = 1201
    desc = "TaskError"


class TaskNotFoundError(TaskError):
    code = 1202
    desc = "task not found"


class TaskLimitError(TaskError):
    code = 1203
    desc = "too many active tasks"


class InvalidScheduleError(TaskError):
    code = 1204
    desc = "invalid scheduled time"


class AdmissionDeniedError(TaskError):
    code = 1205
    desc = "admission denied"
