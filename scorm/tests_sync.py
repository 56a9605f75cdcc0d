"""
Tests for flush delivery: retry policy, session time reservation,
interaction buffering, the auto-save timer and the HTTP backend.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings

from courses.models import Course
from .api_handler import create_rte_api
from .exceptions import PersistenceError, UnknownCourseError
from .models import CMIRecord, SessionRecord
from .sync import (
    AutoSaveTimer,
    HttpBackend,
    LocalBackend,
    ProgressSynchronizer,
    RteBackend,
    build_commit_payload,
)

User = get_user_model()


class FlakyBackend(RteBackend):
    """Fails the next `failures` commits, then succeeds"""

    def __init__(self, failures=0, interaction_failures=0):
        self.failures = failures
        self.interaction_failures = interaction_failures
        self.attempts = 0
        self.commits = []
        self.finishes = []
        self.interactions = []

    def commit(self, course_id, data):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError('store down')
        self.commits.append(data)

    def finish(self, course_id, session_id, data):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError('store down')
        self.finishes.append((session_id, data))

    def set_value(self, course_id, element, value):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError('store down')

    def record_interaction(self, course_id, interaction):
        if self.interaction_failures > 0:
            self.interaction_failures -= 1
            raise PersistenceError('store down')
        self.interactions.append(interaction)


def mirror(session_time='', **extra):
    values = {'cmi.core.session_time': session_time}
    values.update(extra)
    return values


class RetryPolicyTestCase(SimpleTestCase):

    def test_flush_retries_once(self):
        backend = FlakyBackend(failures=1)
        sync = ProgressSynchronizer(backend, 1, executor=None, retries=1)
        self.assertTrue(sync.flush(mirror('0000:00:30')))
        self.assertEqual(backend.attempts, 2)
        self.assertEqual(backend.commits, [{'session_time': '0000:00:30'}])

    def test_flush_dropped_after_retry(self):
        backend = FlakyBackend(failures=2)
        sync = ProgressSynchronizer(backend, 1, executor=None, retries=1)
        with self.assertLogs('scorm.sync', level='ERROR'):
            self.assertFalse(sync.flush(mirror('0000:00:30')))
        self.assertEqual(backend.attempts, 2)
        self.assertEqual(backend.commits, [])

    def test_teardown_is_not_retried(self):
        backend = FlakyBackend(failures=1)
        sync = ProgressSynchronizer(backend, 1, executor=None, retries=1)
        self.assertFalse(sync.flush(mirror('0000:00:30'), trigger=ProgressSynchronizer.TEARDOWN))
        self.assertEqual(backend.attempts, 1)

    @override_settings(SCORM_FLUSH_RETRIES=0)
    def test_retries_come_from_settings(self):
        backend = FlakyBackend(failures=1)
        sync = ProgressSynchronizer(backend, 1, executor=None)
        self.assertFalse(sync.flush(mirror()))
        self.assertEqual(backend.attempts, 1)

    def test_high_value_push_is_retried(self):
        backend = FlakyBackend(failures=1)
        sync = ProgressSynchronizer(backend, 1, executor=None, retries=1)
        self.assertTrue(sync.push_element('cmi.core.lesson_status', 'passed'))
        self.assertEqual(backend.attempts, 2)


class SessionTimeReservationTestCase(SimpleTestCase):

    def test_successive_flushes_send_deltas(self):
        backend = FlakyBackend()
        sync = ProgressSynchronizer(backend, 1, executor=None)
        sync.flush(mirror('0000:00:30'))
        sync.flush(mirror('0000:01:15'))
        sync.flush(mirror('0000:01:15'))
        self.assertEqual(
            [payload.get('session_time') for payload in backend.commits],
            ['0000:00:30', '0000:00:45', None],
        )

    def test_failed_flush_is_superseded_by_larger_delta(self):
        backend = FlakyBackend(failures=2)
        sync = ProgressSynchronizer(backend, 1, executor=None, retries=1)
        sync.flush(mirror('0000:00:30'))
        self.assertEqual(sync.reserved_seconds, 0)

        sync.flush(mirror('0000:01:00'))
        self.assertEqual(backend.commits, [{'session_time': '0000:01:00'}])
        self.assertEqual(sync.reserved_seconds, 60)

    def test_overlapping_flushes_never_resend_seconds(self):
        release = threading.Event()
        sent = []

        class SlowBackend(RteBackend):
            def commit(self, course_id, data):
                sent.append(data)
                if data['session_time'] == '0000:00:30':
                    release.wait(5)

        pool = ThreadPoolExecutor(max_workers=2)
        self.addCleanup(pool.shutdown)
        sync = ProgressSynchronizer(SlowBackend(), 1, executor=pool, retries=0)
        first = sync.flush(mirror('0000:00:30'), trigger=ProgressSynchronizer.PERIODIC)
        second = sync.flush(mirror('0000:01:15'))
        self.assertTrue(second.result(timeout=5))
        release.set()
        self.assertTrue(first.result(timeout=5))

        self.assertEqual(sorted(payload['session_time'] for payload in sent), ['0000:00:30', '0000:00:45'])

    def test_periodic_flag_clears_after_delivery(self):
        sync = ProgressSynchronizer(FlakyBackend(), 1, executor=None)
        sync.flush(mirror(), trigger=ProgressSynchronizer.PERIODIC)
        self.assertFalse(sync.periodic_in_flight)

    def test_finish_goes_through_finish_endpoint(self):
        backend = FlakyBackend()
        sync = ProgressSynchronizer(backend, 1, executor=None)
        sync.session_id = 9
        sync.finish(mirror('0000:00:10', **{'cmi.core.lesson_status': 'completed'}))
        self.assertEqual(backend.finishes, [(9, {'session_time': '0000:00:10', 'lesson_status': 'completed'})])


class InteractionBufferTestCase(SimpleTestCase):

    def test_interactions_leave_buffer_after_append(self):
        backend = FlakyBackend()
        sync = ProgressSynchronizer(backend, 1, executor=None)
        sync.buffer_interaction(0, 'id', 'q1')
        sync.buffer_interaction(0, 'result', 'correct')
        sync.flush(mirror())
        self.assertEqual(backend.interactions, [{'id': 'q1', 'result': 'correct'}])
        self.assertEqual(sync.pending_interactions, 0)

        sync.flush(mirror())
        self.assertEqual(len(backend.interactions), 1)

    def test_failed_interaction_is_kept_for_next_flush(self):
        backend = FlakyBackend(interaction_failures=1)
        sync = ProgressSynchronizer(backend, 1, executor=None)
        sync.buffer_interaction(0, 'id', 'q1')
        sync.flush(mirror())
        self.assertEqual(sync.pending_interactions, 1)

        sync.flush(mirror())
        self.assertEqual(backend.interactions, [{'id': 'q1'}])
        self.assertEqual(sync.pending_interactions, 0)


class UnexpectedFailureTestCase(SimpleTestCase):

    class BrokenBackend(RteBackend):
        """Store raising errors that are not store outages"""

        def __init__(self):
            self.attempts = 0
            self.interaction_errors = 1
            self.interactions = []

        def commit(self, course_id, data):
            self.attempts += 1
            raise OverflowError('int too large to convert')

        def record_interaction(self, course_id, interaction):
            if self.interaction_errors > 0:
                self.interaction_errors -= 1
                raise ValueError('bad row')
            self.interactions.append(interaction)

    def test_flush_is_dropped_and_reservation_released(self):
        backend = self.BrokenBackend()
        sync = ProgressSynchronizer(backend, 1, executor=None, retries=1)
        sync.buffer_interaction(0, 'id', 'q1')
        with self.assertLogs('scorm.sync', level='ERROR'):
            self.assertFalse(sync.flush(mirror('0000:00:30')))

        self.assertEqual(backend.attempts, 1)
        self.assertEqual(sync.reserved_seconds, 0)
        self.assertEqual(sync.pending_interactions, 1)

        sync.flush(mirror('0000:00:30'))
        self.assertEqual(backend.interactions, [{'id': 'q1'}])
        self.assertEqual(sync.pending_interactions, 0)

    def test_threaded_flush_resolves_false(self):
        sync = ProgressSynchronizer(self.BrokenBackend(), 1)
        future = sync.flush(mirror('0000:00:30'), trigger=ProgressSynchronizer.PERIODIC)
        self.assertFalse(future.result(timeout=5))
        sync.shutdown()
        self.assertEqual(sync.reserved_seconds, 0)
        self.assertFalse(sync.periodic_in_flight)


class DeliveryOrderTestCase(SimpleTestCase):

    def test_pushes_and_finish_land_in_call_order(self):
        delivered = []

        class SlowStatusBackend(RteBackend):
            def initialize(self, course_id):
                return {'sessionId': 1, 'scormData': {}}

            def set_value(self, course_id, element, value):
                if value == 'incomplete':
                    time.sleep(0.2)
                delivered.append(('set_value', value))

            def finish(self, course_id, session_id, data):
                delivered.append(('finish', data.get('lesson_status')))

        api = create_rte_api(
            1, SlowStatusBackend(), autosave_interval=0, high_value_elements=['cmi.core.lesson_status']
        )
        api.LMSInitialize('')
        api.LMSSetValue('cmi.core.lesson_status', 'incomplete')
        api.LMSSetValue('cmi.core.lesson_status', 'passed')
        api.LMSFinish('')
        api.synchronizer.executor.shutdown(wait=True)

        self.assertEqual(delivered, [
            ('set_value', 'incomplete'),
            ('set_value', 'passed'),
            ('finish', 'passed'),
        ])


class CommitPayloadTestCase(SimpleTestCase):

    def test_payload_maps_elements_to_fields(self):
        payload = build_commit_payload({
            'cmi.core.lesson_status': 'incomplete',
            'cmi.core.lesson_location': 'p4',
            'cmi.core.score.raw': '55',
            'cmi.core.session_time': '0000:09:00',
            'cmi.core.student_name': 'Ada',
        }, 0)
        self.assertEqual(payload, {'lesson_status': 'incomplete', 'lesson_location': 'p4', 'score_raw': '55'})


class AutoSaveTimerTestCase(SimpleTestCase):

    def test_timer_ticks_until_stopped(self):
        ticked = threading.Event()
        timer = AutoSaveTimer(0.01, ticked.set)
        timer.start()
        self.assertTrue(ticked.wait(2))
        timer.stop()
        self.assertFalse(timer.running)

    def test_busy_tick_is_skipped(self):
        callback = mock.Mock()
        timer = AutoSaveTimer(30, callback, busy=lambda: True)
        timer._running = True
        with mock.patch.object(timer, '_schedule'):
            timer._tick()
        callback.assert_not_called()

    def test_zero_interval_disables_timer(self):
        timer = AutoSaveTimer(0, mock.Mock())
        timer.start()
        self.assertFalse(timer.running)


class HttpBackendTestCase(SimpleTestCase):

    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.backend = HttpBackend('https://lms.example.com/', session=self.session, timeout=3)

    def respond(self, status=200, body=None):
        response = mock.Mock()
        response.status_code = status
        response.content = b'{}'
        response.json.return_value = body if body is not None else {'success': True}
        if status >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(f'{status} error')
        else:
            response.raise_for_status.return_value = None
        self.session.request.return_value = response

    def test_commit_posts_json(self):
        self.respond()
        self.backend.commit(5, {'lesson_status': 'passed'})
        self.session.request.assert_called_once_with(
            method='POST',
            url='https://lms.example.com/scorm/commit/',
            json={'courseId': 5, 'data': {'lesson_status': 'passed'}},
            params=None,
            timeout=3,
        )

    def test_initialize_returns_seed(self):
        self.respond(body={'success': True, 'sessionId': 3, 'scormData': {'cmi.core.entry': 'resume'}})
        result = self.backend.initialize(5)
        self.assertEqual(result, {'sessionId': 3, 'scormData': {'cmi.core.entry': 'resume'}})

    def test_server_error_is_persistence_error(self):
        self.respond(status=503)
        with self.assertRaises(PersistenceError):
            self.backend.commit(5, {})

    def test_timeout_is_persistence_error(self):
        self.session.request.side_effect = requests.exceptions.Timeout('slow')
        with self.assertRaises(PersistenceError):
            self.backend.finish(5, 1, {})

    def test_unknown_course(self):
        self.respond(status=404)
        with self.assertRaises(UnknownCourseError):
            self.backend.initialize(99)

    def test_reported_failure(self):
        self.respond(body={'success': False, 'message': 'nope'})
        with self.assertRaises(PersistenceError):
            self.backend.set_value(5, 'cmi.core.exit', 'suspend')


class LocalBackendTestCase(TestCase):
    """A full launch against the database through the in-process backend"""

    def setUp(self):
        self.user = User.objects.create_user(username='learner', password='testpass123')
        self.course = Course.objects.create(title='Fire Safety', entry_point='index_lms.html')

    def test_launch_commit_finish(self):
        api = create_rte_api(self.course.id, LocalBackend(self.user, ip_address='10.0.0.1'), executor=None)
        self.assertEqual(api.LMSInitialize(''), 'true')
        self.assertEqual(api.LMSGetValue('cmi.core.entry'), 'ab-initio')

        api.LMSSetValue('cmi.core.lesson_location', 'p2')
        api.LMSSetValue('cmi.core.session_time', '0000:00:30')
        api.LMSCommit('')
        api.LMSSetValue('cmi.core.lesson_status', 'passed')
        api.LMSSetValue('cmi.core.score.raw', '92')
        api.LMSSetValue('cmi.core.session_time', '0000:01:15')
        self.assertEqual(api.LMSFinish(''), 'true')

        record = CMIRecord.objects.get(user=self.user, course=self.course)
        self.assertEqual(record.total_time, 75)
        self.assertEqual(record.lesson_status, 'passed')
        self.assertEqual(record.lesson_location, 'p2')
        self.assertEqual(record.completion_percentage, 100)
        self.assertFalse(SessionRecord.objects.get(user=self.user).is_open)

    def test_oversized_session_time_does_not_block_commit(self):
        api = create_rte_api(self.course.id, LocalBackend(self.user), executor=None)
        api.LMSInitialize('')
        api.LMSSetValue('cmi.core.lesson_location', 'page-3')
        self.assertEqual(api.LMSSetValue('cmi.core.session_time', '9999999999999999:00:00'), 'false')
        self.assertEqual(api.LMSGetLastError(), '405')
        self.assertEqual(api.LMSCommit(''), 'true')

        record = CMIRecord.objects.get(user=self.user, course=self.course)
        self.assertEqual(record.lesson_location, 'page-3')
        self.assertEqual(record.total_time, 0)
        self.assertEqual(api.synchronizer.reserved_seconds, 0)

    def test_unknown_course_fails_initialize(self):
        api = create_rte_api(9999, LocalBackend(self.user), executor=None)
        self.assertEqual(api.LMSInitialize(''), 'false')
        self.assertEqual(api.LMSGetLastError(), '101')
