"""
Tests for the certificate eligibility verdict.
"""

from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from .eligibility import EligibilityVerdict, evaluate_eligibility


def record(status, score):
    return SimpleNamespace(lesson_status=status, score_raw=score)


class EligibilityTestCase(SimpleTestCase):

    def test_passed_above_threshold_is_eligible(self):
        verdict = evaluate_eligibility(record('passed', Decimal('85')), Decimal('80'))
        self.assertEqual(verdict.as_dict(), {'eligible': True, 'reason': None})

    def test_incomplete_is_not_completed(self):
        verdict = evaluate_eligibility(record('incomplete', Decimal('0')), Decimal('80'))
        self.assertEqual(verdict.as_dict(), {'eligible': False, 'reason': 'not completed'})

    def test_passed_below_threshold(self):
        verdict = evaluate_eligibility(record('passed', Decimal('75')), Decimal('80'))
        self.assertEqual(verdict.as_dict(), {'eligible': False, 'reason': 'score below threshold'})

    def test_no_record_is_not_started(self):
        verdict = evaluate_eligibility(None, Decimal('80'))
        self.assertEqual(verdict, EligibilityVerdict(False, 'not started'))

    def test_score_equal_to_threshold_is_eligible(self):
        self.assertTrue(evaluate_eligibility(record('completed', Decimal('80.00')), Decimal('80')).eligible)

    def test_missing_score_never_meets_threshold(self):
        verdict = evaluate_eligibility(record('completed', None), Decimal('80'))
        self.assertEqual(verdict.reason, 'score below threshold')

    def test_status_is_normalized(self):
        self.assertTrue(evaluate_eligibility(record('Passed', 90), 80).eligible)
        self.assertEqual(evaluate_eligibility(record('not attempted', 90), 80).reason, 'not completed')

    def test_verdict_is_repeatable(self):
        item = record('passed', Decimal('85'))
        self.assertEqual(evaluate_eligibility(item, 80), evaluate_eligibility(item, 80))
