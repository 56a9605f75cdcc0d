"""
Tests for the run-time JSON endpoints and the progress reads.
"""

import json
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse

from courses.models import Course
from .models import CMIRecord, InteractionRecord, SessionRecord

User = get_user_model()


class ScormEndpointTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='learner',
            email='learner@example.com',
            password='testpass123',
        )
        self.course = Course.objects.create(
            title='Fire Safety',
            entry_point='index_lms.html',
            passing_score=Decimal('80'),
        )
        self.client.force_login(self.user)

    def post(self, name, payload):
        return self.client.post(
            reverse(name),
            data=json.dumps(payload),
            content_type='application/json',
        )

    def initialize(self):
        response = self.post('scorm:initialize', {'courseId': self.course.id})
        self.assertEqual(response.status_code, 200)
        return response.json()


class RuntimeEndpointTestCase(ScormEndpointTestCase):

    def test_login_required(self):
        self.client.logout()
        response = self.post('scorm:initialize', {'courseId': self.course.id})
        self.assertEqual(response.status_code, 302)

    def test_course_lookup(self):
        response = self.client.get(reverse('scorm:course'), {'courseId': self.course.id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['course']['entry_point'], 'index_lms.html')

    def test_inactive_course_is_not_found(self):
        self.course.is_active = False
        self.course.save()
        response = self.client.get(reverse('scorm:course'), {'courseId': self.course.id})
        self.assertEqual(response.status_code, 404)

    def test_initialize_seeds_mirror_and_opens_session(self):
        body = self.initialize()
        self.assertTrue(body['success'])
        self.assertEqual(body['scormData']['cmi.core.entry'], 'ab-initio')
        self.assertEqual(body['scormData']['cmi.core.student_id'], str(self.user.pk))
        self.assertTrue(SessionRecord.objects.filter(pk=body['sessionId'], session_end__isnull=True).exists())

        again = self.initialize()
        self.assertEqual(again['scormData']['cmi.core.entry'], 'resume')
        self.assertEqual(CMIRecord.objects.get(user=self.user, course=self.course).access_count, 2)

    def test_initialize_unknown_course(self):
        response = self.post('scorm:initialize', {'courseId': 9999})
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()['success'])

    def test_malformed_json(self):
        response = self.client.post(
            reverse('scorm:commit'), data='{not json', content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_missing_course_id(self):
        response = self.post('scorm:commit', {'data': {}})
        self.assertEqual(response.status_code, 400)

    def test_set_value_and_get_value(self):
        self.initialize()
        response = self.post('scorm:set_value', {
            'courseId': self.course.id, 'element': 'cmi.core.lesson_status', 'value': 'incomplete',
        })
        self.assertEqual(response.status_code, 200)

        response = self.client.get(reverse('scorm:get_value'), {
            'courseId': self.course.id, 'element': 'cmi.core.lesson_status',
        })
        self.assertEqual(response.json()['value'], 'incomplete')

    def test_commit_adds_session_deltas(self):
        self.initialize()
        self.post('scorm:commit', {'courseId': self.course.id, 'data': {'session_time': '0000:00:30'}})
        self.post('scorm:commit', {'courseId': self.course.id, 'data': {'session_time': '0000:00:45'}})
        self.assertEqual(CMIRecord.objects.get(user=self.user, course=self.course).total_time, 75)

    def test_finish_closes_session(self):
        session_id = self.initialize()['sessionId']
        response = self.post('scorm:finish', {
            'courseId': self.course.id,
            'sessionId': session_id,
            'data': {'lesson_status': 'passed', 'score_raw': '85', 'session_time': '0000:05:00'},
        })
        self.assertEqual(response.status_code, 200)

        record = CMIRecord.objects.get(user=self.user, course=self.course)
        self.assertEqual(record.lesson_status, 'passed')
        self.assertEqual(record.total_time, 300)
        self.assertIsNotNone(record.completed_at)
        self.assertFalse(SessionRecord.objects.get(pk=session_id).is_open)

    def test_record_interaction(self):
        self.initialize()
        response = self.post('scorm:interaction', {
            'courseId': self.course.id,
            'interaction': {'id': 'q1', 'type': 'choice', 'result': 'correct'},
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(InteractionRecord.objects.get().interaction_id, 'q1')

    def test_store_failure_is_service_unavailable(self):
        self.initialize()
        with mock.patch('django.db.models.query.QuerySet.update', side_effect=DatabaseError('down')):
            response = self.post('scorm:commit', {'courseId': self.course.id, 'data': {'lesson_location': 'x'}})
        self.assertEqual(response.status_code, 503)

    def test_wrong_method(self):
        response = self.client.get(reverse('scorm:commit'))
        self.assertEqual(response.status_code, 405)


class ProgressEndpointTestCase(ScormEndpointTestCase):

    def test_progress_default_shape(self):
        response = self.client.get(reverse('progress:course', args=[self.course.id]))
        self.assertEqual(response.status_code, 200)
        progress = response.json()['progress']
        self.assertEqual(progress['lesson_status'], 'not_attempted')
        self.assertEqual(progress['total_time'], 0)

    def test_progress_list(self):
        self.initialize()
        response = self.client.get(reverse('progress:list'))
        progress = response.json()['progress']
        self.assertEqual(len(progress), 1)
        self.assertEqual(progress[0]['course_title'], 'Fire Safety')

    def test_history_and_interactions(self):
        self.initialize()
        self.post('scorm:interaction', {'courseId': self.course.id, 'interaction': {'id': 'q1'}})

        history = self.client.get(reverse('progress:history', args=[self.course.id])).json()
        self.assertEqual(len(history['sessions']), 1)
        self.assertEqual(history['open_sessions'], 1)

        interactions = self.client.get(reverse('progress:interactions', args=[self.course.id])).json()
        self.assertEqual(interactions['interactions'][0]['interaction_id'], 'q1')

    def test_finished_session_is_not_open(self):
        session_id = self.initialize()['sessionId']
        self.post('scorm:finish', {'courseId': self.course.id, 'sessionId': session_id, 'data': {}})
        history = self.client.get(reverse('progress:history', args=[self.course.id])).json()
        self.assertEqual(history['open_sessions'], 0)

    def test_malformed_session_time_is_discarded(self):
        self.initialize()
        response = self.post('scorm:commit', {
            'courseId': self.course.id,
            'data': {'session_time': '9999999999999999:00:00', 'lesson_location': 'page-3'},
        })
        self.assertEqual(response.status_code, 200)
        record = CMIRecord.objects.get(user=self.user, course=self.course)
        self.assertEqual(record.total_time, 0)
        self.assertEqual(record.lesson_location, 'page-3')

    def test_certificate_eligibility(self):
        url = reverse('progress:certificate_eligibility', args=[self.course.id])
        self.assertEqual(self.client.get(url).json()['reason'], 'not started')

        self.initialize()
        self.post('scorm:commit', {'courseId': self.course.id, 'data': {'lesson_status': 'passed', 'score_raw': '75'}})
        self.assertEqual(self.client.get(url).json()['reason'], 'score below threshold')

        self.post('scorm:commit', {'courseId': self.course.id, 'data': {'score_raw': '85'}})
        body = self.client.get(url).json()
        self.assertTrue(body['eligible'])
        self.assertIsNone(body['reason'])

    def test_unknown_course(self):
        response = self.client.get(reverse('progress:certificate_eligibility', args=[9999]))
        self.assertEqual(response.status_code, 404)
