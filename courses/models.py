"""
Course registry
Read-only lookup for the run-time core: passing score and launch entry point
"""
from decimal import Decimal

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class CourseQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)


class Course(models.Model):
    """A training package learners launch in the content frame"""

    SCORM_VERSION_CHOICES = [
        ('1.2', 'SCORM 1.2'),
    ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    scorm_version = models.CharField(
        max_length=16,
        choices=SCORM_VERSION_CHOICES,
        default='1.2',
    )
    entry_point = models.CharField(
        max_length=255,
        help_text="Launch file of the package, relative to its root (e.g. index_lms.html)"
    )
    passing_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('80.00'),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Raw score a learner must meet or exceed to be eligible for a certificate"
    )
    total_modules = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CourseQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'created_at'], name='courses_active_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} (SCORM {self.scorm_version})"

    def as_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'scorm_version': self.scorm_version,
            'entry_point': self.entry_point,
            'passing_score': float(self.passing_score),
            'total_modules': self.total_modules,
        }
