"""
SCORM run-time endpoints
JSON API used by the run-time bridge (sync.HttpBackend or the JavaScript
shim served with the course player) for the authenticated learner.
"""
import functools
import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from core.structured_logging import api_logger, get_client_ip
from courses.models import Course

from .exceptions import PersistenceError, UnknownCourseError
from .sync import LocalBackend

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    pass


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        raise BadRequest('Invalid JSON body')
    if not isinstance(data, dict):
        raise BadRequest('JSON body must be an object')
    return data


def _required(data, key):
    value = data.get(key)
    if value in (None, ''):
        raise BadRequest(f'{key} is required')
    return value


def _backend(request):
    return LocalBackend(
        request.user,
        ip_address=get_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
    )


def rte_endpoint(view):
    """Map bridge failures onto HTTP status codes"""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except BadRequest as e:
            return JsonResponse({'success': False, 'message': str(e)}, status=400)
        except UnknownCourseError as e:
            return JsonResponse({'success': False, 'message': str(e)}, status=404)
        except PersistenceError as e:
            api_logger.error(f"{view.__name__} could not reach the progress store", exception=e, request=request)
            return JsonResponse({'success': False, 'message': 'Progress store unavailable'}, status=503)

    return wrapper


@login_required
@require_http_methods(["GET"])
@rte_endpoint
def course_lookup(request):
    """Launch details of an active course"""
    course_id = request.GET.get('courseId') or request.GET.get('course_id')
    if not course_id:
        raise BadRequest('courseId is required')
    try:
        course = Course.objects.active().get(pk=course_id)
    except (Course.DoesNotExist, ValueError):
        raise UnknownCourseError(f"Course {course_id} not found")
    return JsonResponse({'success': True, 'course': course.as_dict()})


@csrf_exempt
@login_required
@require_http_methods(["POST"])
@rte_endpoint
def initialize(request):
    data = _json_body(request)
    course_id = _required(data, 'courseId')
    result = _backend(request).initialize(course_id)
    api_logger.info(
        'SCORM session initialized',
        request=request,
        extra_data={'course_id': course_id, 'session_id': result['sessionId']},
    )
    return JsonResponse({'success': True, **result})


@login_required
@require_http_methods(["GET"])
@rte_endpoint
def get_value(request):
    course_id = request.GET.get('courseId')
    element = request.GET.get('element')
    if not course_id or not element:
        raise BadRequest('courseId and element are required')
    value = _backend(request).get_value(course_id, element)
    return JsonResponse({'success': True, 'value': value})


@csrf_exempt
@login_required
@require_http_methods(["POST"])
@rte_endpoint
def set_value(request):
    data = _json_body(request)
    course_id = _required(data, 'courseId')
    element = _required(data, 'element')
    value = data.get('value', '')
    applied = _backend(request).set_value(course_id, element, '' if value is None else str(value))
    return JsonResponse({'success': True, 'applied': applied})


@csrf_exempt
@login_required
@require_http_methods(["POST"])
@rte_endpoint
def commit(request):
    data = _json_body(request)
    course_id = _required(data, 'courseId')
    payload = data.get('data') or {}
    if not isinstance(payload, dict):
        raise BadRequest('data must be an object')
    _backend(request).commit(course_id, payload)
    api_logger.debug('SCORM commit', request=request, extra_data={'course_id': course_id, 'fields': sorted(payload)})
    return JsonResponse({'success': True})


@csrf_exempt
@login_required
@require_http_methods(["POST"])
@rte_endpoint
def finish(request):
    data = _json_body(request)
    course_id = _required(data, 'courseId')
    payload = data.get('data') or {}
    if not isinstance(payload, dict):
        raise BadRequest('data must be an object')
    _backend(request).finish(course_id, data.get('sessionId'), payload)
    api_logger.info(
        'SCORM session finished',
        request=request,
        extra_data={'course_id': course_id, 'session_id': data.get('sessionId')},
    )
    return JsonResponse({'success': True})


@csrf_exempt
@login_required
@require_http_methods(["POST"])
@rte_endpoint
def record_interaction(request):
    data = _json_body(request)
    course_id = _required(data, 'courseId')
    interaction = data.get('interaction')
    if not isinstance(interaction, dict):
        raise BadRequest('interaction must be an object')
    record = _backend(request).record_interaction(course_id, interaction)
    return JsonResponse({'success': True, 'interaction': record.as_dict()})
