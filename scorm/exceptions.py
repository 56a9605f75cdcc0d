"""
Exceptions raised inside the SCORM run-time core

Errors raised on behalf of content carry the SCORM 1.2 error code the
LMS* functions report through LMSGetLastError; they never propagate into
the content frame.
"""


class ScormRuntimeError(Exception):
    """Base class; `code` is the SCORM 1.2 error code as a string"""

    code = '101'

    def __init__(self, message='', code=None):
        super().__init__(message)
        if code is not None:
            self.code = str(code)


class ProtocolError(ScormRuntimeError):
    """An LMS* function was called in a state where it is not legal"""


class ElementAccessError(ScormRuntimeError):
    """Read-only, write-only or wrongly typed access to a data model element"""


class PersistenceError(ScormRuntimeError):
    """The progress store could not be reached or refused a write"""


class UnknownCourseError(ScormRuntimeError):
    """No active course with the requested id"""
