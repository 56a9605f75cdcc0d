"""
Learner progress reads
Read-only views over CMI records, launch sessions and the interaction log,
plus the certificate eligibility verdict consumed by certificate issuance.
"""
import logging

from django.contrib.auth.decorators import login_required
from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from courses.models import Course

from .eligibility import evaluate_eligibility
from .models import CMIRecord, InteractionRecord
from .session_tracker import DEFAULT_HISTORY_LIMIT, SessionTracker
from .utils import LessonStatus, format_scorm_time

logger = logging.getLogger(__name__)


def _default_progress(course_id):
    """Shape returned for a course the learner never launched"""
    return {
        'course_id': course_id,
        'lesson_status': LessonStatus.NOT_ATTEMPTED.value,
        'lesson_location': '',
        'score_raw': None,
        'score_min': 0.0,
        'score_max': 100.0,
        'total_time': 0,
        'total_time_display': format_scorm_time(0),
        'completion_percentage': 0.0,
        'is_completed': False,
        'first_accessed': None,
        'last_accessed': None,
        'completed_at': None,
        'access_count': 0,
    }


def _active_course(course_id):
    return Course.objects.active().filter(pk=course_id).first()


def _not_found(course_id):
    return JsonResponse({'success': False, 'message': f'Course {course_id} not found'}, status=404)


def _unavailable(e):
    logger.error(f"Progress read failed: {e}")
    return JsonResponse({'success': False, 'message': 'Progress store unavailable'}, status=503)


@login_required
@require_http_methods(["GET"])
def progress_list(request):
    try:
        records = list(
            CMIRecord.objects.filter(user=request.user).select_related('course').order_by('-last_accessed')
        )
    except DatabaseError as e:
        return _unavailable(e)

    progress = []
    for record in records:
        item = record.as_progress_dict()
        item['course_title'] = record.course.title
        progress.append(item)
    return JsonResponse({'success': True, 'progress': progress})


@login_required
@require_http_methods(["GET"])
def course_progress(request, course_id):
    course = _active_course(course_id)
    if course is None:
        return _not_found(course_id)

    try:
        record = CMIRecord.objects.filter(user=request.user, course=course).first()
    except DatabaseError as e:
        return _unavailable(e)

    progress = record.as_progress_dict() if record else _default_progress(course.id)
    return JsonResponse({'success': True, 'progress': progress})


@login_required
@require_http_methods(["GET"])
def session_history(request, course_id):
    course = _active_course(course_id)
    if course is None:
        return _not_found(course_id)

    try:
        limit = min(max(int(request.GET.get('limit', DEFAULT_HISTORY_LIMIT)), 1), DEFAULT_HISTORY_LIMIT)
    except ValueError:
        limit = DEFAULT_HISTORY_LIMIT

    tracker = SessionTracker(request.user, course)
    try:
        sessions = tracker.history(limit=limit)
        # Launches that never reached LMSFinish, the current one included
        open_count = tracker.open_sessions().count()
    except DatabaseError as e:
        return _unavailable(e)
    return JsonResponse({
        'success': True,
        'sessions': [session.as_dict() for session in sessions],
        'open_sessions': open_count,
    })


@login_required
@require_http_methods(["GET"])
def interaction_log(request, course_id):
    course = _active_course(course_id)
    if course is None:
        return _not_found(course_id)

    try:
        interactions = list(
            InteractionRecord.objects.filter(user=request.user, course=course).order_by('-timestamp')
        )
    except DatabaseError as e:
        return _unavailable(e)
    return JsonResponse({'success': True, 'interactions': [item.as_dict() for item in interactions]})


@login_required
@require_http_methods(["GET"])
def certificate_eligibility(request, course_id):
    course = _active_course(course_id)
    if course is None:
        return _not_found(course_id)

    try:
        record = CMIRecord.objects.filter(user=request.user, course=course).first()
    except DatabaseError as e:
        return _unavailable(e)

    verdict = evaluate_eligibility(record, course.passing_score)
    return JsonResponse({
        'success': True,
        'course_id': course.id,
        'passing_score': float(course.passing_score),
        **verdict.as_dict(),
    })
