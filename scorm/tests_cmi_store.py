"""
Tests for the CMI data store: record lifecycle and commit semantics.
"""

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase, override_settings

from courses.models import Course
from .cmi_data_handler import CMIDataHandler
from .exceptions import PersistenceError
from .models import CMIRecord, InteractionRecord

User = get_user_model()


class CMIStoreTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='learner',
            email='learner@example.com',
            password='testpass123',
            first_name='Ada',
            last_name='Lovelace',
        )
        self.course = Course.objects.create(title='Fire Safety', entry_point='index_lms.html')
        self.store = CMIDataHandler(self.user, self.course)

    def record(self):
        return CMIRecord.objects.get(user=self.user, course=self.course)


class OpenRecordTestCase(CMIStoreTestCase):

    def test_first_open_creates_record(self):
        record, created = self.store.open_record()
        self.assertTrue(created)
        self.assertEqual(record.access_count, 1)
        self.assertEqual(record.lesson_status, 'not_attempted')
        self.assertIsNotNone(record.first_accessed)

    def test_reopen_resumes_and_counts_access(self):
        first, _ = self.store.open_record()
        second, created = self.store.open_record()
        self.assertFalse(created)
        self.assertEqual(second.pk, first.pk)
        self.assertEqual(second.access_count, 2)
        self.assertEqual(second.first_accessed, first.first_accessed)
        self.assertEqual(CMIRecord.objects.count(), 1)

    def test_seed_for_new_record(self):
        record, created = self.store.open_record()
        seed = self.store.build_seed(record, created)
        self.assertEqual(seed['cmi.core.student_id'], str(self.user.pk))
        self.assertEqual(seed['cmi.core.student_name'], 'Ada Lovelace')
        self.assertEqual(seed['cmi.core.entry'], 'ab-initio')
        self.assertEqual(seed['cmi.core.lesson_status'], 'not attempted')
        self.assertEqual(seed['cmi.core.credit'], 'credit')
        self.assertEqual(seed['cmi.core.lesson_mode'], 'normal')
        self.assertEqual(seed['cmi.core.score.raw'], '')
        self.assertEqual(seed['cmi.core.score.min'], '0')
        self.assertEqual(seed['cmi.core.score.max'], '100')
        self.assertEqual(seed['cmi.core.total_time'], '0000:00:00')

    def test_seed_for_resumed_record(self):
        self.store.open_record()
        self.store.apply_commit({
            'lesson_location': 'slide-7',
            'suspend_data': 'a=1;b=2',
            'score_raw': '72.5',
            'session_time': '0000:10:00',
        })
        record, created = self.store.open_record()
        seed = self.store.build_seed(record, created)
        self.assertEqual(seed['cmi.core.entry'], 'resume')
        self.assertEqual(seed['cmi.core.lesson_location'], 'slide-7')
        self.assertEqual(seed['cmi.suspend_data'], 'a=1;b=2')
        self.assertEqual(seed['cmi.core.score.raw'], '72.5')
        self.assertEqual(seed['cmi.core.total_time'], '0000:10:00')

    def test_student_name_falls_back_to_username(self):
        user = User.objects.create_user(username='nameless', password='testpass123')
        store = CMIDataHandler(user, self.course)
        record, created = store.open_record()
        self.assertEqual(store.build_seed(record, created)['cmi.core.student_name'], 'nameless')


class ApplyCommitTestCase(CMIStoreTestCase):

    def setUp(self):
        super().setUp()
        self.store.open_record()

    def test_session_deltas_are_additive(self):
        self.store.apply_commit({'session_time': '0000:00:30'})
        self.store.apply_commit({'session_time': '0000:00:45'})
        self.assertEqual(self.record().total_time, 75)

    def test_session_deltas_in_reverse_order(self):
        self.store.apply_commit({'session_time': '0000:00:45'})
        self.store.apply_commit({'session_time': '0000:00:30'})
        record = self.record()
        self.assertEqual(record.total_time, 75)
        self.assertEqual(record.session_time, 30)

    def test_empty_delta_leaves_total_time(self):
        self.store.apply_commit({'session_time': '0000:01:00'})
        self.store.apply_commit({'session_time': '', 'lesson_location': 'p2'})
        self.assertEqual(self.record().total_time, 60)

    def test_oversized_or_malformed_delta_is_discarded(self):
        self.store.apply_commit({'session_time': '0000:01:00'})
        self.store.apply_commit({'session_time': '9999999999999999:00:00', 'lesson_location': 'page-3'})
        self.store.apply_commit({'session_time': 10 ** 12})
        self.store.apply_commit({'session_time': '1:2'})
        record = self.record()
        self.assertEqual(record.total_time, 60)
        self.assertEqual(record.lesson_location, 'page-3')

    def test_completion_percentage_never_regresses(self):
        self.store.apply_commit({'completion_percentage': 100})
        self.store.apply_commit({'completion_percentage': 40})
        self.assertEqual(self.record().completion_percentage, Decimal('100'))

    def test_completion_percentage_is_clamped(self):
        self.store.apply_commit({'completion_percentage': 250})
        self.assertEqual(self.record().completion_percentage, Decimal('100'))

    def test_finished_status_completes_record(self):
        self.store.apply_commit({'lesson_status': 'completed'})
        record = self.record()
        self.assertEqual(record.lesson_status, 'completed')
        self.assertEqual(record.completion_percentage, Decimal('100'))
        self.assertIsNotNone(record.completed_at)

    def test_completed_at_is_written_once(self):
        self.store.apply_commit({'lesson_status': 'completed'})
        completed_at = self.record().completed_at

        self.store.apply_commit({'lesson_status': 'passed', 'score_raw': '90'})
        self.store.apply_commit({'lesson_status': 'incomplete', 'completion_percentage': 10})

        record = self.record()
        self.assertEqual(record.completed_at, completed_at)
        self.assertEqual(record.completion_percentage, Decimal('100'))
        self.assertEqual(record.lesson_status, 'incomplete')

    def test_status_is_normalized(self):
        self.store.apply_commit({'lesson_status': 'Not Attempted'})
        self.assertEqual(self.record().lesson_status, 'not_attempted')
        self.store.apply_commit({'lesson_status': 'frobnicate'})
        self.assertEqual(self.record().lesson_status, 'not_attempted')

    def test_last_write_wins_fields(self):
        self.store.apply_commit({'lesson_location': 'a', 'score_raw': '60', 'exit': 'suspend'})
        self.store.apply_commit({'lesson_location': 'b', 'score_raw': '85', 'exit': ''})
        record = self.record()
        self.assertEqual(record.lesson_location, 'b')
        self.assertEqual(record.score_raw, Decimal('85'))
        self.assertEqual(record.exit_mode, '')

    def test_non_numeric_score_is_discarded(self):
        self.store.apply_commit({'score_raw': '70'})
        self.store.apply_commit({'score_raw': 'lots'})
        self.assertEqual(self.record().score_raw, Decimal('70'))

    @override_settings(SCORM_SUSPEND_DATA_MAX_LENGTH=10)
    def test_suspend_data_is_bounded(self):
        self.store.apply_commit({'suspend_data': 'x' * 25})
        self.assertEqual(self.record().suspend_data, 'x' * 10)

    def test_commit_before_open_creates_record(self):
        other = User.objects.create_user(username='other', password='testpass123')
        store = CMIDataHandler(other, self.course)
        self.assertTrue(store.apply_commit({'lesson_status': 'incomplete', 'session_time': '0000:00:05'}))
        record = CMIRecord.objects.get(user=other, course=self.course)
        self.assertEqual(record.total_time, 5)
        self.assertEqual(record.access_count, 0)

    def test_empty_payload_touches_nothing(self):
        self.assertFalse(self.store.apply_commit({}))

    def test_database_error_becomes_persistence_error(self):
        with mock.patch('django.db.models.query.QuerySet.update', side_effect=DatabaseError('down')):
            with self.assertRaises(PersistenceError):
                self.store.apply_commit({'lesson_location': 'x'})


class ElementAccessTestCase(CMIStoreTestCase):

    def setUp(self):
        super().setUp()
        self.store.open_record()

    def test_apply_element_maps_to_field(self):
        self.assertTrue(self.store.apply_element('cmi.core.lesson_status', 'passed'))
        self.assertTrue(self.store.apply_element('cmi.core.score.raw', '88'))
        record = self.record()
        self.assertEqual(record.lesson_status, 'passed')
        self.assertEqual(record.score_raw, Decimal('88'))

    def test_apply_element_ignores_session_time(self):
        self.assertFalse(self.store.apply_element('cmi.core.session_time', '0000:05:00'))
        self.assertEqual(self.record().total_time, 0)

    def test_apply_element_ignores_read_only(self):
        self.assertFalse(self.store.apply_element('cmi.core.student_id', '999'))

    def test_read_element(self):
        self.store.apply_commit({'lesson_status': 'failed', 'session_time': '0001:00:00'})
        self.assertEqual(self.store.read_element('cmi.core.lesson_status'), 'failed')
        self.assertEqual(self.store.read_element('cmi.core.total_time'), '0001:00:00')
        self.assertEqual(self.store.read_element('cmi.core.entry'), 'resume')
        self.assertEqual(self.store.read_element('cmi.unknown'), '')


class InteractionRecordTestCase(CMIStoreTestCase):

    def test_record_interaction(self):
        interaction = self.store.record_interaction({
            'id': 'q1',
            'type': 'choice',
            'student_response': 'b',
            'correct_response': 'b',
            'result': 'correct',
            'weighting': '1',
            'latency': '0000:00:12',
        })
        self.assertEqual(interaction.interaction_id, 'q1')
        self.assertEqual(interaction.learner_response, 'b')
        self.assertEqual(interaction.weighting, Decimal('1'))
        self.assertEqual(interaction.latency, 12)

    def test_malformed_latency_is_dropped(self):
        interaction = self.store.record_interaction({'id': 'q2', 'latency': '99999999999999:00:00'})
        self.assertIsNone(interaction.latency)

    def test_interactions_are_write_once(self):
        interaction = self.store.record_interaction({'id': 'q1', 'result': 'wrong'})
        interaction.result = 'correct'
        with self.assertRaises(ValueError):
            interaction.save()
        self.assertEqual(InteractionRecord.objects.get(pk=interaction.pk).result, 'wrong')
