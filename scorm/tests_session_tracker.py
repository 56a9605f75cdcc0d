"""
Tests for launch session bookkeeping.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from courses.models import Course
from .models import SessionRecord
from .session_tracker import SessionTracker

User = get_user_model()


class SessionTrackerTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='learner', password='testpass123')
        self.course = Course.objects.create(title='Fire Safety', entry_point='index_lms.html')
        self.tracker = SessionTracker(self.user, self.course)

    def test_open_records_request_details(self):
        session = self.tracker.open('10.0.0.5', 'Mozilla/5.0')
        self.assertTrue(session.is_open)
        self.assertEqual(session.ip_address, '10.0.0.5')
        self.assertEqual(session.user_agent, 'Mozilla/5.0')

    def test_close_computes_duration_on_server(self):
        session = self.tracker.open()
        SessionRecord.objects.filter(pk=session.pk).update(
            session_start=timezone.now() - timedelta(minutes=5)
        )
        self.assertTrue(self.tracker.close(session.pk))

        session.refresh_from_db()
        self.assertFalse(session.is_open)
        self.assertGreaterEqual(session.duration, 300)
        self.assertLess(session.duration, 360)

    def test_second_close_is_noop(self):
        session = self.tracker.open()
        self.assertTrue(self.tracker.close(session.pk))
        session.refresh_from_db()
        ended = session.session_end

        self.assertFalse(self.tracker.close(session.pk))
        session.refresh_from_db()
        self.assertEqual(session.session_end, ended)

    def test_close_unknown_or_foreign_session(self):
        other = User.objects.create_user(username='other', password='testpass123')
        foreign = SessionTracker(other, self.course).open()
        self.assertFalse(self.tracker.close(foreign.pk))
        self.assertFalse(self.tracker.close(123456))
        self.assertFalse(self.tracker.close('not-a-number'))
        foreign.refresh_from_db()
        self.assertTrue(foreign.is_open)

    def test_abandoned_session_does_not_block_open(self):
        abandoned = self.tracker.open()
        fresh = self.tracker.open()
        self.assertNotEqual(abandoned.pk, fresh.pk)
        self.assertEqual(self.tracker.open_sessions().count(), 2)

    def test_history_is_latest_first_and_limited(self):
        now = timezone.now()
        for minutes in range(5):
            SessionRecord.objects.create(
                user=self.user,
                course=self.course,
                session_start=now - timedelta(minutes=minutes),
            )
        history = self.tracker.history(limit=3)
        self.assertEqual(len(history), 3)
        self.assertEqual(
            [session.session_start for session in history],
            sorted((session.session_start for session in history), reverse=True),
        )
