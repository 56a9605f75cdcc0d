"""
Launch session tracking
Opens a SessionRecord when content initializes and closes it on finish.
Durations are measured from server timestamps only; a session whose page
went away without finishing simply stays open.
"""
import logging

from django.db import DatabaseError
from django.utils import timezone

from .exceptions import PersistenceError
from .models import SessionRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class SessionTracker:
    """Session bookkeeping for one learner in one course"""

    def __init__(self, user, course):
        self.user = user
        self.course = course

    def open(self, ip_address=None, user_agent=''):
        try:
            session = SessionRecord.objects.create(
                user=self.user,
                course=self.course,
                session_start=timezone.now(),
                ip_address=ip_address or None,
                user_agent=(user_agent or '')[:1000],
            )
        except DatabaseError as e:
            logger.error(f"Could not open session for user {self.user.pk}, course {self.course.pk}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Opened SCORM session {session.pk} for user {self.user.pk}, course {self.course.pk}")
        return session

    def close(self, session_id):
        """
        Close an open session

        Returns False when the session is unknown, belongs to someone else
        or was already closed.
        """
        try:
            session_id = int(session_id)
        except (TypeError, ValueError):
            logger.warning(f"Invalid session id {session_id!r}")
            return False

        now = timezone.now()
        try:
            sessions = SessionRecord.objects.filter(
                pk=session_id,
                user=self.user,
                course=self.course,
                session_end__isnull=True,
            )
            session = sessions.only('session_start').first()
            if session is None:
                logger.info(f"Session {session_id} for user {self.user.pk} is unknown or already closed")
                return False

            duration = max(int((now - session.session_start).total_seconds()), 0)
            # Conditional on session_end so a second finish cannot move the end time
            closed = sessions.update(session_end=now, duration=duration)
        except DatabaseError as e:
            logger.error(f"Could not close session {session_id}: {e}")
            raise PersistenceError(str(e)) from e

        if closed:
            logger.info(f"Closed SCORM session {session_id} after {duration}s")
        return bool(closed)

    def history(self, limit=DEFAULT_HISTORY_LIMIT):
        return list(
            SessionRecord.objects
            .filter(user=self.user, course=self.course)
            .order_by('-session_start')[:limit]
        )

    def open_sessions(self):
        return SessionRecord.objects.filter(
            user=self.user, course=self.course, session_end__isnull=True
        )
