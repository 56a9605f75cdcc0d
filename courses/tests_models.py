"""
Tests for the course registry.
"""

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from .models import Course


class CourseTestCase(TestCase):

    def test_defaults(self):
        course = Course.objects.create(title='Fire Safety', entry_point='index_lms.html')
        self.assertEqual(course.scorm_version, '1.2')
        self.assertEqual(course.passing_score, Decimal('80.00'))
        self.assertTrue(course.is_active)

    def test_active_queryset(self):
        active = Course.objects.create(title='Active', entry_point='index.html')
        Course.objects.create(title='Retired', entry_point='index.html', is_active=False)
        self.assertEqual(list(Course.objects.active()), [active])

    def test_passing_score_is_a_percentage(self):
        course = Course(title='Too Hard', entry_point='index.html', passing_score=Decimal('120'))
        with self.assertRaises(ValidationError):
            course.full_clean()

    def test_as_dict(self):
        course = Course.objects.create(title='Fire Safety', entry_point='index_lms.html', passing_score=75)
        data = course.as_dict()
        self.assertEqual(data['passing_score'], 75.0)
        self.assertEqual(data['entry_point'], 'index_lms.html')
