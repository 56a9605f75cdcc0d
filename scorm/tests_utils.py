"""
Tests for SCORM timespan encoding and lesson status normalisation.
"""

from django.test import SimpleTestCase

from .utils import (
    LessonStatus,
    format_scorm_time,
    is_finished_status,
    is_scorm_timespan,
    normalize_status,
    parse_scorm_time,
)


class ScormTimeTestCase(SimpleTestCase):
    """Test CMITimespan formatting and parsing."""

    def test_format_pads_hours_to_four_digits(self):
        self.assertEqual(format_scorm_time(0), '0000:00:00')
        self.assertEqual(format_scorm_time(75), '0000:01:15')
        self.assertEqual(format_scorm_time(3 * 3600 + 5), '0003:00:05')

    def test_format_grows_beyond_four_hour_digits(self):
        self.assertEqual(format_scorm_time(12345 * 3600), '12345:00:00')

    def test_format_coerces_bad_input(self):
        self.assertEqual(format_scorm_time(-20), '0000:00:00')
        self.assertEqual(format_scorm_time(None), '0000:00:00')
        self.assertEqual(format_scorm_time(61.9), '0000:01:01')

    def test_parse_round_trips_format(self):
        for seconds in (0, 1, 59, 60, 3599, 3600, 86399, 86400 * 3 + 17, 99999 * 3600 + 59):
            self.assertEqual(parse_scorm_time(format_scorm_time(seconds)), seconds)

    def test_parse_truncates_fractional_seconds(self):
        self.assertEqual(parse_scorm_time('00:00:30.75'), 30)
        self.assertEqual(parse_scorm_time('0001:02:03.5'), 3723)

    def test_parse_without_colon_is_zero(self):
        self.assertEqual(parse_scorm_time('garbage'), 0)
        self.assertEqual(parse_scorm_time('3600'), 0)
        self.assertEqual(parse_scorm_time(''), 0)
        self.assertEqual(parse_scorm_time(None), 0)

    def test_parse_malformed_components_count_as_zero(self):
        self.assertEqual(parse_scorm_time('xx:10:05'), 605)
        self.assertEqual(parse_scorm_time('01:yy:05'), 3605)
        self.assertEqual(parse_scorm_time('01:02'), 3720)
        self.assertEqual(parse_scorm_time('01:02:zz'), 3720)

    def test_timespan_format(self):
        for value in ('00:00:00', '0000:01:15', '9999:59:59.99', '12:30:00.5'):
            self.assertTrue(is_scorm_timespan(value), value)
        for value in ('9999999999999999:00:00', '1:02:03', '01:02', '0000:00:00.123', '', None, 30):
            self.assertFalse(is_scorm_timespan(value), value)


class LessonStatusTestCase(SimpleTestCase):
    """Test normalisation of content supplied status strings."""

    def test_normalize_known_values(self):
        self.assertEqual(normalize_status('Completed'), LessonStatus.COMPLETED)
        self.assertEqual(normalize_status('PASSED '), LessonStatus.PASSED)
        self.assertEqual(normalize_status('failed'), LessonStatus.FAILED)
        self.assertEqual(normalize_status('Incomplete'), LessonStatus.INCOMPLETE)
        self.assertEqual(normalize_status('browsed'), LessonStatus.BROWSED)

    def test_normalize_separators(self):
        self.assertEqual(normalize_status('not attempted'), LessonStatus.NOT_ATTEMPTED)
        self.assertEqual(normalize_status('Not-Attempted'), LessonStatus.NOT_ATTEMPTED)
        self.assertEqual(normalize_status('not  attempted'), LessonStatus.NOT_ATTEMPTED)

    def test_normalize_unknown_and_empty(self):
        self.assertEqual(normalize_status(''), LessonStatus.NOT_ATTEMPTED)
        self.assertEqual(normalize_status(None), LessonStatus.NOT_ATTEMPTED)
        self.assertEqual(normalize_status('frobnicate'), LessonStatus.NOT_ATTEMPTED)

    def test_scorm_value_uses_spaces(self):
        self.assertEqual(LessonStatus.NOT_ATTEMPTED.scorm_value, 'not attempted')
        self.assertEqual(LessonStatus.PASSED.scorm_value, 'passed')

    def test_finished_statuses(self):
        self.assertTrue(is_finished_status('completed'))
        self.assertTrue(is_finished_status('Passed'))
        self.assertFalse(is_finished_status('failed'))
        self.assertFalse(is_finished_status('incomplete'))
        self.assertFalse(is_finished_status(''))
