"""
Tests for the SCORM 1.2 run-time API state machine and element access.
"""

from django.test import SimpleTestCase

from .api_handler import RteState, create_rte_api
from .exceptions import PersistenceError
from .sync import RteBackend

SEED = {
    'cmi.core.student_id': '7',
    'cmi.core.student_name': 'Ada Lovelace',
    'cmi.core.lesson_status': 'not attempted',
    'cmi.core.lesson_location': '',
    'cmi.core.score.raw': '',
    'cmi.core.score.min': '0',
    'cmi.core.score.max': '100',
    'cmi.core.total_time': '0000:00:00',
    'cmi.core.session_time': '',
    'cmi.core.entry': 'ab-initio',
    'cmi.core.credit': 'credit',
    'cmi.core.lesson_mode': 'normal',
    'cmi.core.exit': '',
    'cmi.suspend_data': '',
    'cmi.launch_data': '',
}


class RecordingBackend(RteBackend):
    """Backend double that records every call"""

    def __init__(self, fail_initialize=False):
        self.fail_initialize = fail_initialize
        self.calls = []

    def initialize(self, course_id):
        self.calls.append(('initialize', course_id))
        if self.fail_initialize:
            raise PersistenceError('store down')
        return {'sessionId': 42, 'scormData': dict(SEED)}

    def get_value(self, course_id, element):
        return ''

    def set_value(self, course_id, element, value):
        self.calls.append(('set_value', element, value))

    def commit(self, course_id, data):
        self.calls.append(('commit', data))

    def finish(self, course_id, session_id, data):
        self.calls.append(('finish', session_id, data))

    def record_interaction(self, course_id, interaction):
        self.calls.append(('record_interaction', interaction))

    def names(self):
        return [call[0] for call in self.calls]


def make_api(backend=None):
    backend = backend or RecordingBackend()
    api = create_rte_api(
        1,
        backend,
        executor=None,
        autosave_interval=0,
        high_value_elements=['cmi.core.lesson_status', 'cmi.core.score.raw', 'cmi.core.exit'],
    )
    return api, backend


class StateMachineTestCase(SimpleTestCase):

    def test_get_value_before_initialize(self):
        api, _ = make_api()
        self.assertEqual(api.LMSGetValue('cmi.core.lesson_status'), '')
        self.assertEqual(api.LMSGetLastError(), '301')

    def test_set_value_and_commit_before_initialize(self):
        api, backend = make_api()
        self.assertEqual(api.LMSSetValue('cmi.core.lesson_location', 'p1'), 'false')
        self.assertEqual(api.LMSGetLastError(), '301')
        self.assertEqual(api.LMSCommit(''), 'false')
        self.assertEqual(api.LMSGetLastError(), '301')
        self.assertEqual(backend.calls, [])

    def test_finish_before_initialize(self):
        api, _ = make_api()
        self.assertEqual(api.LMSFinish(''), 'false')
        self.assertEqual(api.LMSGetLastError(), '301')
        self.assertIs(api.state, RteState.UNINITIALIZED)

    def test_initialize_twice(self):
        api, backend = make_api()
        self.assertEqual(api.LMSInitialize(''), 'true')
        self.assertEqual(api.LMSGetLastError(), '0')
        self.assertEqual(api.LMSInitialize(''), 'false')
        self.assertEqual(api.LMSGetLastError(), '101')
        self.assertEqual(backend.names(), ['initialize'])

    def test_calls_after_finish(self):
        api, _ = make_api()
        api.LMSInitialize('')
        self.assertEqual(api.LMSFinish(''), 'true')
        self.assertIs(api.state, RteState.TERMINATED)

        self.assertEqual(api.LMSGetValue('cmi.core.lesson_status'), '')
        self.assertEqual(api.LMSGetLastError(), '101')
        self.assertEqual(api.LMSSetValue('cmi.core.lesson_status', 'passed'), 'false')
        self.assertEqual(api.LMSCommit(''), 'false')
        self.assertEqual(api.LMSFinish(''), 'false')
        self.assertEqual(api.LMSInitialize(''), 'false')
        self.assertEqual(api.LMSGetLastError(), '101')

    def test_initialize_failure_stays_uninitialized(self):
        api, _ = make_api(RecordingBackend(fail_initialize=True))
        self.assertEqual(api.LMSInitialize(''), 'false')
        self.assertEqual(api.LMSGetLastError(), '101')
        self.assertIs(api.state, RteState.UNINITIALIZED)

    def test_finish_sends_final_flush_with_session(self):
        api, backend = make_api()
        api.LMSInitialize('')
        api.LMSSetValue('cmi.core.session_time', '0000:02:00')
        api.LMSFinish('')
        name, session_id, data = backend.calls[-1]
        self.assertEqual(name, 'finish')
        self.assertEqual(session_id, 42)
        self.assertEqual(data['session_time'], '0000:02:00')

    def test_function_table(self):
        api, _ = make_api()
        table = api.function_table()
        self.assertEqual(set(table), {
            'LMSInitialize', 'LMSFinish', 'LMSGetValue', 'LMSSetValue',
            'LMSCommit', 'LMSGetLastError', 'LMSGetErrorString', 'LMSGetDiagnostic',
        })
        self.assertEqual(table['LMSInitialize'](''), 'true')


class ElementAccessTestCase(SimpleTestCase):

    def setUp(self):
        self.api, self.backend = make_api()
        self.api.LMSInitialize('')

    def test_set_then_get_lesson_status(self):
        self.assertEqual(self.api.LMSSetValue('cmi.core.lesson_status', 'passed'), 'true')
        self.assertEqual(self.api.LMSGetValue('cmi.core.lesson_status'), 'passed')
        self.assertEqual(self.api.LMSGetLastError(), '0')

    def test_seed_values_are_readable(self):
        self.assertEqual(self.api.LMSGetValue('cmi.core.student_name'), 'Ada Lovelace')
        self.assertEqual(self.api.LMSGetValue('cmi.core.entry'), 'ab-initio')
        self.assertEqual(self.api.LMSGetValue('cmi.core.total_time'), '0000:00:00')

    def test_high_value_elements_push_immediately(self):
        self.api.LMSSetValue('cmi.core.lesson_status', 'completed')
        self.api.LMSSetValue('cmi.core.score.raw', '90')
        self.api.LMSSetValue('cmi.core.exit', 'suspend')
        self.assertEqual(self.backend.calls[1:], [
            ('set_value', 'cmi.core.lesson_status', 'completed'),
            ('set_value', 'cmi.core.score.raw', '90'),
            ('set_value', 'cmi.core.exit', 'suspend'),
        ])

    def test_other_elements_wait_for_flush(self):
        self.api.LMSSetValue('cmi.core.lesson_location', 'slide-3')
        self.api.LMSSetValue('cmi.suspend_data', 'state')
        self.assertEqual(self.backend.names(), ['initialize'])

        self.assertEqual(self.api.LMSCommit(''), 'true')
        name, data = self.backend.calls[-1]
        self.assertEqual(name, 'commit')
        self.assertEqual(data['lesson_location'], 'slide-3')
        self.assertEqual(data['suspend_data'], 'state')

    def test_unknown_element(self):
        self.assertEqual(self.api.LMSGetValue('cmi.core.frobnicate'), '')
        self.assertEqual(self.api.LMSGetLastError(), '401')
        self.assertEqual(self.api.LMSSetValue('cmi.core.frobnicate', 'x'), 'true')
        self.assertEqual(self.api.LMSGetLastError(), '0')
        self.assertEqual(self.api.LMSGetValue('cmi.core.frobnicate'), '')

    def test_read_only_elements(self):
        for element in ('cmi.core.student_id', 'cmi.core.total_time', 'cmi.core.entry', 'cmi.core._children'):
            self.assertEqual(self.api.LMSSetValue(element, 'x'), 'false')
            self.assertEqual(self.api.LMSGetLastError(), '403')
        self.assertEqual(self.api.LMSGetValue('cmi.core.student_id'), '7')

    def test_write_only_elements(self):
        self.api.LMSSetValue('cmi.core.exit', 'suspend')
        self.assertEqual(self.api.LMSGetValue('cmi.core.exit'), '')
        self.assertEqual(self.api.LMSGetLastError(), '404')
        self.assertEqual(self.api.LMSGetValue('cmi.core.session_time'), '')
        self.assertEqual(self.api.LMSGetLastError(), '404')

    def test_incorrect_data_types(self):
        self.assertEqual(self.api.LMSSetValue('cmi.core.score.raw', 'ninety'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')
        self.assertEqual(self.api.LMSSetValue('cmi.core.lesson_status', 'done'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')
        self.assertEqual(self.api.LMSSetValue('cmi.core.exit', 'later'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')
        self.assertEqual(self.api.LMSSetValue('cmi.core.session_time', '120'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')

    def test_session_time_must_be_a_timespan(self):
        for value in ('9999999999999999:00:00', '0000:1:00', '00:00', '0000:00:00.123', ''):
            self.assertEqual(self.api.LMSSetValue('cmi.core.session_time', value), 'false')
            self.assertEqual(self.api.LMSGetLastError(), '405')
        for value in ('00:05:30', '0012:00:00', '9999:59:59.99'):
            self.assertEqual(self.api.LMSSetValue('cmi.core.session_time', value), 'true')

    def test_score_outside_range(self):
        for value in ('250', '-5', '100.01'):
            self.assertEqual(self.api.LMSSetValue('cmi.core.score.raw', value), 'false')
            self.assertEqual(self.api.LMSGetLastError(), '405')
        self.assertEqual(self.backend.names(), ['initialize'])

        self.assertEqual(self.api.LMSSetValue('cmi.core.score.raw', '0'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.core.score.raw', '100'), 'true')

    def test_score_range_follows_content_min_max(self):
        self.assertEqual(self.api.LMSSetValue('cmi.core.score.max', '200'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.core.score.raw', '150'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.core.score.min', '20'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.core.score.raw', '10'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')

    def test_interaction_latency_must_be_a_timespan(self):
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.latency', '12 seconds'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.latency', '0000:00:12'), 'true')

    def test_children_keywords(self):
        self.assertEqual(self.api.LMSGetValue('cmi.core.score._children'), 'raw,min,max')
        self.assertIn('lesson_status', self.api.LMSGetValue('cmi.core._children'))

    def test_interactions_are_buffered(self):
        self.assertEqual(self.api.LMSGetValue('cmi.interactions._count'), '0')
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.id', 'q1'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.type', 'choice'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.student_response', 'b'), 'true')
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.correct_responses.0.pattern', 'b'), 'true')
        self.assertEqual(self.api.LMSGetValue('cmi.interactions._count'), '1')
        self.assertEqual(self.api.LMSGetValue('cmi.interactions.0.id'), '')
        self.assertEqual(self.api.LMSGetLastError(), '404')

        self.api.LMSCommit('')
        name, interaction = self.backend.calls[-1]
        self.assertEqual(name, 'record_interaction')
        self.assertEqual(interaction, {
            'id': 'q1', 'type': 'choice', 'learner_response': 'b', 'correct_response': 'b',
        })

    def test_invalid_interaction_type(self):
        self.assertEqual(self.api.LMSSetValue('cmi.interactions.0.type', 'essay'), 'false')
        self.assertEqual(self.api.LMSGetLastError(), '405')


class ErrorStringTestCase(SimpleTestCase):

    def setUp(self):
        self.api, _ = make_api()

    def test_error_strings(self):
        self.assertEqual(self.api.LMSGetErrorString('0'), 'No error')
        self.assertEqual(self.api.LMSGetErrorString('101'), 'General exception')
        self.assertEqual(self.api.LMSGetErrorString('301'), 'Not initialized')
        self.assertEqual(self.api.LMSGetErrorString('403'), 'Element is read only')
        self.assertEqual(self.api.LMSGetErrorString(405), 'Incorrect data type')
        self.assertEqual(self.api.LMSGetErrorString('999'), 'Unknown error')

    def test_diagnostic_defaults_to_last_error(self):
        self.api.LMSGetValue('cmi.core.lesson_status')
        self.assertEqual(self.api.LMSGetDiagnostic(''), 'Not initialized')
        self.assertEqual(self.api.LMSGetDiagnostic('202'), 'Element cannot have children')


class TeardownTestCase(SimpleTestCase):

    def test_teardown_flushes_once_without_finishing(self):
        api, backend = make_api()
        api.LMSInitialize('')
        api.LMSSetValue('cmi.core.lesson_location', 'p9')
        api.teardown()
        self.assertEqual(backend.names(), ['initialize', 'commit'])
        self.assertIs(api.state, RteState.TERMINATED)

    def test_teardown_before_initialize_is_noop(self):
        api, backend = make_api()
        api.teardown()
        self.assertEqual(backend.calls, [])
