"""
Certificate eligibility
A pure verdict over a CMI record and the course passing score. Issuing
the certificate is left to the caller; nothing here writes progress.
"""
from collections import namedtuple
from decimal import Decimal, InvalidOperation

from .utils import is_finished_status

NOT_STARTED = 'not started'
NOT_COMPLETED = 'not completed'
SCORE_BELOW_THRESHOLD = 'score below threshold'


class EligibilityVerdict(namedtuple('EligibilityVerdict', ['eligible', 'reason'])):
    __slots__ = ()

    def as_dict(self):
        return {'eligible': self.eligible, 'reason': self.reason}


def _as_decimal(value):
    if value is None or value == '':
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def evaluate_eligibility(record, passing_score):
    """
    Decide whether the learner behind `record` may receive a certificate

    The record may be a CMIRecord or None when the learner never launched
    the course. A missing score never meets the threshold.
    """

    if record is None:
        return EligibilityVerdict(False, NOT_STARTED)

    if not is_finished_status(record.lesson_status):
        return EligibilityVerdict(False, NOT_COMPLETED)

    score = _as_decimal(record.score_raw)
    threshold = _as_decimal(passing_score)
    if threshold is None:
        threshold = Decimal('0')
    if score is None or score < threshold:
        return EligibilityVerdict(False, SCORE_BELOW_THRESHOLD)

    return EligibilityVerdict(True, None)
