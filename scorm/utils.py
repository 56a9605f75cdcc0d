"""
SCORM 1.2 value helpers
CMITimespan encoding and the lesson status vocabulary shared by the
content bridge, the data store and the eligibility checks
"""
import logging
import re

from django.db import models

logger = logging.getLogger(__name__)

_WHOLE_NUMBER = re.compile(r'^\d+$')
_SECONDS = re.compile(r'^(\d+)(?:\.\d*)?$')
_SEPARATORS = re.compile(r'[\s\-]+')
_TIMESPAN = re.compile(r'^\d{2,4}:\d{2}:\d{2}(\.\d{1,2})?$')

# 9999:59:59, the largest value a CMITimespan can carry
MAX_TIMESPAN_SECONDS = 9999 * 3600 + 59 * 60 + 59


def format_scorm_time(total_seconds) -> str:
    """
    Format a second count as a SCORM 1.2 timespan (HHHH:MM:SS)

    Hours are zero padded to four digits and grow beyond that when needed.
    """
    try:
        total_seconds = int(total_seconds)
    except (TypeError, ValueError):
        total_seconds = 0
    total_seconds = max(total_seconds, 0)

    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:04d}:{minutes:02d}:{seconds:02d}"


def parse_scorm_time(time_str) -> int:
    """
    Parse a colon delimited H:M:S(.fraction) timespan into whole seconds

    Missing or malformed components count as zero and fractions of a second
    are dropped. Text without any colon is not a timespan and yields 0.
    """
    if not time_str or not isinstance(time_str, str) or ':' not in time_str:
        return 0

    parts = [part.strip() for part in time_str.strip().split(':')]
    hours = _whole(parts[0]) if len(parts) > 0 else 0
    minutes = _whole(parts[1]) if len(parts) > 1 else 0

    seconds = 0
    if len(parts) > 2:
        match = _SECONDS.match(parts[2])
        if match:
            seconds = int(match.group(1))

    return hours * 3600 + minutes * 60 + seconds


def is_scorm_timespan(value) -> bool:
    """True for a well formed SCORM 1.2 CMITimespan (HH[HH]:MM:SS[.ss])"""
    return isinstance(value, str) and bool(_TIMESPAN.match(value))


def _whole(text):
    return int(text) if _WHOLE_NUMBER.match(text) else 0


class LessonStatus(models.TextChoices):
    PASSED = 'passed', 'Passed'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    INCOMPLETE = 'incomplete', 'Incomplete'
    BROWSED = 'browsed', 'Browsed'
    NOT_ATTEMPTED = 'not_attempted', 'Not attempted'

    @property
    def scorm_value(self):
        """Spelling used by cmi.core.lesson_status on the content side"""
        return self.value.replace('_', ' ')


FINISHED_STATUSES = frozenset({LessonStatus.COMPLETED, LessonStatus.PASSED})


def normalize_status(status) -> LessonStatus:
    """
    Map a content supplied status string onto LessonStatus

    'Completed', 'PASSED ', 'not attempted' and 'not-attempted' are all
    understood; anything outside the vocabulary is NOT_ATTEMPTED.
    """
    if isinstance(status, LessonStatus):
        return status
    if not status or not isinstance(status, str):
        return LessonStatus.NOT_ATTEMPTED

    normalized = _SEPARATORS.sub('_', status.strip().lower())
    try:
        return LessonStatus(normalized)
    except ValueError:
        logger.debug(f"Unrecognised lesson status '{status}', treating as not attempted")
        return LessonStatus.NOT_ATTEMPTED


def is_finished_status(status) -> bool:
    return normalize_status(status) in FINISHED_STATUSES
