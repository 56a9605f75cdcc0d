"""
SCORM run-time models
Per learner and course progress record, launch sessions and the
interaction log reported by content
"""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from .utils import LessonStatus, FINISHED_STATUSES, format_scorm_time


class CMIRecord(models.Model):
    """
    Authoritative progress of one learner in one course

    Written only through CMIDataHandler, which keeps total_time additive,
    completion_percentage monotonic and completed_at write-once.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cmi_records'
    )
    course = models.ForeignKey(
        'courses.Course',
        on_delete=models.CASCADE,
        related_name='cmi_records'
    )

    lesson_status = models.CharField(
        max_length=20,
        choices=LessonStatus.choices,
        default=LessonStatus.NOT_ATTEMPTED
    )
    lesson_location = models.TextField(
        blank=True,
        default='',
        help_text="Opaque bookmark set by the content"
    )
    score_raw = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    score_min = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('0'))
    score_max = models.DecimalField(max_digits=7, decimal_places=2, default=Decimal('100'))

    total_time = models.PositiveIntegerField(
        default=0,
        help_text="Accumulated time in the course, in seconds"
    )
    session_time = models.PositiveIntegerField(
        default=0,
        help_text="Last session time delta received, in seconds"
    )
    suspend_data = models.TextField(blank=True, default='')
    exit_mode = models.CharField(max_length=16, blank=True, default='')

    completion_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0')
    )

    first_accessed = models.DateTimeField(null=True, blank=True)
    last_accessed = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    access_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'CMI record'
        ordering = ['-last_accessed']
        constraints = [
            models.UniqueConstraint(fields=['user', 'course'], name='unique_cmi_record_per_learner'),
        ]
        indexes = [
            models.Index(fields=['lesson_status'], name='scorm_cmi_status_idx'),
            models.Index(fields=['course', 'lesson_status'], name='scorm_cmi_course_status_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.course_id} ({self.lesson_status})"

    @property
    def status(self):
        return LessonStatus(self.lesson_status)

    @property
    def is_finished(self):
        return self.status in FINISHED_STATUSES

    def as_progress_dict(self):
        return {
            'course_id': self.course_id,
            'lesson_status': self.lesson_status,
            'lesson_location': self.lesson_location,
            'score_raw': float(self.score_raw) if self.score_raw is not None else None,
            'score_min': float(self.score_min),
            'score_max': float(self.score_max),
            'total_time': self.total_time,
            'total_time_display': format_scorm_time(self.total_time),
            'completion_percentage': float(self.completion_percentage),
            'is_completed': self.is_finished,
            'first_accessed': self.first_accessed.isoformat() if self.first_accessed else None,
            'last_accessed': self.last_accessed.isoformat() if self.last_accessed else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'access_count': self.access_count,
        }


class SessionRecord(models.Model):
    """
    One launch of the content, from initialize to finish

    Analytics only. A session whose page was torn down without finishing
    keeps session_end empty forever.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='scorm_sessions'
    )
    course = models.ForeignKey(
        'courses.Course',
        on_delete=models.CASCADE,
        related_name='scorm_sessions'
    )
    session_start = models.DateTimeField(default=timezone.now)
    session_end = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(
        default=0,
        help_text="Server measured session length in seconds"
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')

    class Meta:
        ordering = ['-session_start']
        indexes = [
            models.Index(fields=['user', 'course', 'session_start'], name='scorm_session_lookup_idx'),
        ]

    def __str__(self):
        state = 'open' if self.is_open else f"{self.duration}s"
        return f"Session {self.pk} {self.user} - {self.course_id} ({state})"

    @property
    def is_open(self):
        return self.session_end is None

    def as_dict(self):
        return {
            'id': self.pk,
            'session_start': self.session_start.isoformat(),
            'session_end': self.session_end.isoformat() if self.session_end else None,
            'duration': self.duration,
            'ip_address': self.ip_address,
        }


class InteractionRecord(models.Model):
    """Append-only log of cmi.interactions reported by content"""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='scorm_interactions'
    )
    course = models.ForeignKey(
        'courses.Course',
        on_delete=models.CASCADE,
        related_name='scorm_interactions'
    )
    interaction_id = models.CharField(max_length=255, blank=True, default='')
    interaction_type = models.CharField(max_length=50, blank=True, default='')
    description = models.TextField(blank=True, default='')
    learner_response = models.TextField(blank=True, default='')
    correct_response = models.TextField(blank=True, default='')
    result = models.CharField(max_length=50, blank=True, default='')
    weighting = models.DecimalField(max_digits=7, decimal_places=2, null=True, blank=True)
    latency = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'course', 'timestamp'], name='scorm_interaction_lookup_idx'),
        ]

    def __str__(self):
        return f"{self.interaction_id or 'interaction'} ({self.result or 'no result'})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Interaction records are write-once")
        super().save(*args, **kwargs)

    def as_dict(self):
        return {
            'interaction_id': self.interaction_id,
            'interaction_type': self.interaction_type,
            'description': self.description,
            'learner_response': self.learner_response,
            'correct_response': self.correct_response,
            'result': self.result,
            'weighting': float(self.weighting) if self.weighting is not None else None,
            'latency': self.latency,
            'timestamp': self.timestamp.isoformat(),
        }
