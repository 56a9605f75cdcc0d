"""
Progress synchronisation
Delivers the run-time mirror to the CMI store from three triggers: the
auto-save timer, an explicit commit (LMSCommit / LMSFinish) and page
teardown. All of them end in the same idempotent commit operation.

Session time is sent as a delta since the last delivered flush. The delta
is reserved under a lock before delivery so overlapping flushes never send
the same seconds twice; a failed delivery gives its seconds back and the
next flush sends them as part of a larger delta.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import requests
from django.conf import settings

from courses.models import Course

from .cmi_data_handler import CMIDataHandler
from .data_model import PAYLOAD_FIELDS
from .exceptions import PersistenceError, ScormRuntimeError, UnknownCourseError
from .session_tracker import SessionTracker
from .utils import format_scorm_time, parse_scorm_time

logger = logging.getLogger(__name__)

SESSION_TIME_ELEMENT = 'cmi.core.session_time'

# cmi.interactions.n.<field> -> InteractionRecord payload key
INTERACTION_FIELDS = {
    'id': 'id',
    'type': 'type',
    'student_response': 'learner_response',
    'result': 'result',
    'weighting': 'weighting',
    'latency': 'latency',
}


class RteBackend:
    """
    Endpoints the run-time bridge talks to

    Every method raises PersistenceError when the store cannot be reached.
    """

    def initialize(self, course_id):
        """Returns {'sessionId': ..., 'scormData': {element: value}}"""
        raise NotImplementedError

    def get_value(self, course_id, element):
        raise NotImplementedError

    def set_value(self, course_id, element, value):
        raise NotImplementedError

    def commit(self, course_id, data):
        raise NotImplementedError

    def finish(self, course_id, session_id, data):
        raise NotImplementedError

    def record_interaction(self, course_id, interaction):
        raise NotImplementedError


class LocalBackend(RteBackend):
    """In-process backend for one authenticated learner; also serves the JSON views"""

    def __init__(self, user, ip_address=None, user_agent=''):
        self.user = user
        self.ip_address = ip_address
        self.user_agent = user_agent

    def _course(self, course_id):
        try:
            return Course.objects.active().get(pk=course_id)
        except (Course.DoesNotExist, ValueError, TypeError):
            raise UnknownCourseError(f"Course {course_id} not found")

    def _store(self, course_id):
        return CMIDataHandler(self.user, self._course(course_id))

    def initialize(self, course_id):
        store = self._store(course_id)
        record, created = store.open_record()
        session = SessionTracker(self.user, store.course).open(self.ip_address, self.user_agent)
        return {
            'sessionId': session.pk,
            'scormData': store.build_seed(record, created),
        }

    def get_value(self, course_id, element):
        return self._store(course_id).read_element(element)

    def set_value(self, course_id, element, value):
        return self._store(course_id).apply_element(element, value)

    def commit(self, course_id, data):
        return self._store(course_id).apply_commit(data)

    def finish(self, course_id, session_id, data):
        store = self._store(course_id)
        committed = store.apply_commit(data)
        if session_id is not None:
            SessionTracker(self.user, store.course).close(session_id)
        return committed

    def record_interaction(self, course_id, interaction):
        return self._store(course_id).record_interaction(interaction)


class HttpBackend(RteBackend):
    """
    Backend reached over HTTP through the /scorm/ JSON endpoints

    `session` should already carry the learner's authentication (cookies
    or headers); one requests.Session is reused for every call.
    """

    def __init__(self, base_url, session=None, timeout=None):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        if timeout is None:
            timeout = getattr(settings, 'SCORM_HTTP_TIMEOUT', 10.0)
        self.timeout = timeout

    def _request(self, method, endpoint, data=None, params=None):
        url = f"{self.base_url}/scorm/{endpoint.strip('/')}/"
        try:
            response = self.session.request(
                method=method,
                url=url,
                json=data,
                params=params,
                timeout=self.timeout,
            )
            if response.status_code == 404:
                raise UnknownCourseError(f"{url} answered 404")
            response.raise_for_status()
            body = response.json() if response.content else {}
        except requests.exceptions.RequestException as e:
            logger.warning(f"SCORM backend request {method} {url} failed: {e}")
            raise PersistenceError(str(e)) from e
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON from {url}") from e

        if not body.get('success', False):
            raise PersistenceError(body.get('message') or f"{url} reported failure")
        return body

    def initialize(self, course_id):
        body = self._request('POST', 'initialize', {'courseId': course_id})
        return {'sessionId': body.get('sessionId'), 'scormData': body.get('scormData') or {}}

    def get_value(self, course_id, element):
        body = self._request('GET', 'get-value', params={'courseId': course_id, 'element': element})
        return body.get('value', '')

    def set_value(self, course_id, element, value):
        self._request('POST', 'set-value', {'courseId': course_id, 'element': element, 'value': value})
        return True

    def commit(self, course_id, data):
        self._request('POST', 'commit', {'courseId': course_id, 'data': data})
        return True

    def finish(self, course_id, session_id, data):
        self._request('POST', 'finish', {'courseId': course_id, 'sessionId': session_id, 'data': data})
        return True

    def record_interaction(self, course_id, interaction):
        self._request('POST', 'interaction', {'courseId': course_id, 'interaction': interaction})
        return True


def build_commit_payload(mirror, session_delta):
    """Partial record for a flush; session_time carries only the delta"""
    payload = {
        field: mirror[element]
        for element, field in PAYLOAD_FIELDS.items()
        if field != 'session_time' and element in mirror
    }
    if session_delta > 0:
        payload['session_time'] = format_scorm_time(session_delta)
    return payload


def build_interaction_payload(fields):
    payload = {key: fields[name] for name, key in INTERACTION_FIELDS.items() if name in fields}
    patterns = [
        value for name, value in sorted(fields.items())
        if name.startswith('correct_responses.')
    ]
    if patterns:
        payload['correct_response'] = ','.join(patterns)
    objectives = [
        value for name, value in sorted(fields.items())
        if name.startswith('objectives.')
    ]
    if objectives:
        payload['description'] = ','.join(objectives)
    return payload


class ProgressSynchronizer:
    """
    Outbound side of one content launch

    Deliveries run on a single background worker so content never waits on
    the network and pushes land in the order content made them; construct
    with executor=None to deliver inline.
    """

    PERIODIC = 'periodic'
    COMMIT = 'commit'
    FINISH = 'finish'
    TEARDOWN = 'teardown'

    OWN_EXECUTOR = object()

    def __init__(self, backend, course_id, executor=OWN_EXECUTOR, retries=None):
        self.backend = backend
        self.course_id = course_id
        self.session_id = None

        if executor is self.OWN_EXECUTOR:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='scorm-sync')
            self._owns_executor = True
        else:
            self._owns_executor = False
        self.executor = executor

        if retries is None:
            retries = getattr(settings, 'SCORM_FLUSH_RETRIES', 1)
        self.retries = max(int(retries), 0)

        self._lock = threading.Lock()
        self._reserved_seconds = 0
        self._periodic_in_flight = False
        # index -> {'fields': {...}, 'version': n}
        self._interactions = {}
        self._interactions_in_flight = set()

    @property
    def periodic_in_flight(self):
        return self._periodic_in_flight

    @property
    def reserved_seconds(self):
        return self._reserved_seconds

    def _dispatch(self, func, *args):
        if self.executor is None:
            return func(*args)
        return self.executor.submit(func, *args)

    def _with_retries(self, description, call, retry=True):
        attempts = 1 + self.retries if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                call()
                return True
            except ScormRuntimeError as e:
                if attempt < attempts:
                    logger.warning(f"{description} failed ({e}), retrying")
                else:
                    logger.error(f"{description} failed after {attempt} attempt(s), dropping: {e}")
            except Exception as e:
                # Only store outages are retried
                logger.error(f"{description} failed unexpectedly, dropping: {e}", exc_info=True)
                return False
        return False

    def initialize(self):
        """Open the launch on the backend and return the seed mirror"""
        result = self.backend.initialize(self.course_id)
        self.session_id = result.get('sessionId')
        return result.get('scormData') or {}

    def push_element(self, element, value):
        """Out-of-band delivery of a single high value element"""
        description = f"Push of {element} for course {self.course_id}"
        return self._dispatch(
            self._with_retries, description, lambda: self.backend.set_value(self.course_id, element, value)
        )

    def buffer_interaction(self, index, field, value):
        with self._lock:
            entry = self._interactions.setdefault(index, {'fields': {}, 'version': 0})
            entry['fields'][field] = value
            entry['version'] += 1

    @property
    def pending_interactions(self):
        with self._lock:
            return len(self._interactions)

    def _reserve(self, mirror, trigger):
        with self._lock:
            reported = parse_scorm_time(mirror.get(SESSION_TIME_ELEMENT, ''))
            delta = max(reported - self._reserved_seconds, 0)
            self._reserved_seconds += delta

            interactions = []
            for index, entry in sorted(self._interactions.items()):
                if index in self._interactions_in_flight:
                    continue
                self._interactions_in_flight.add(index)
                interactions.append((index, entry['version'], dict(entry['fields'])))

            if trigger == self.PERIODIC:
                self._periodic_in_flight = True
        return delta, interactions

    def flush(self, mirror, trigger=COMMIT):
        """
        Send the mirror as a partial record

        Returns the Future of the delivery, or its boolean outcome when
        running inline.
        """
        snapshot = dict(mirror)
        delta, interactions = self._reserve(snapshot, trigger)
        payload = build_commit_payload(snapshot, delta)
        return self._dispatch(self._deliver, payload, delta, interactions, trigger)

    def finish(self, mirror):
        """Final flush; the backend also closes the launch session"""
        result = self.flush(mirror, trigger=self.FINISH)
        self.shutdown()
        return result

    def shutdown(self):
        # Queued deliveries still run; only new submissions are refused
        if self._owns_executor:
            self.executor.shutdown(wait=False)

    def _send(self, payload, trigger):
        if trigger == self.FINISH:
            self.backend.finish(self.course_id, self.session_id, payload)
        else:
            self.backend.commit(self.course_id, payload)

    def _deliver(self, payload, delta, interactions, trigger):
        try:
            delivered = self._with_retries(
                f"{trigger.capitalize()} flush for course {self.course_id}",
                lambda: self._send(payload, trigger),
                retry=trigger != self.TEARDOWN,
            )
            if not delivered:
                with self._lock:
                    self._reserved_seconds = max(self._reserved_seconds - delta, 0)

            self._deliver_interactions(interactions)
            return delivered
        finally:
            if trigger == self.PERIODIC:
                self._periodic_in_flight = False

    def _deliver_interactions(self, interactions):
        for index, version, fields in interactions:
            appended = False
            try:
                self.backend.record_interaction(self.course_id, build_interaction_payload(fields))
                appended = True
            except ScormRuntimeError as e:
                logger.error(f"Interaction {index} for course {self.course_id} not recorded, keeping it: {e}")
            except Exception as e:
                logger.error(f"Interaction {index} for course {self.course_id} failed unexpectedly, keeping it: {e}",
                             exc_info=True)
            finally:
                with self._lock:
                    self._interactions_in_flight.discard(index)
                    entry = self._interactions.get(index)
                    if appended and entry is not None and entry['version'] == version:
                        del self._interactions[index]


class AutoSaveTimer:
    """
    Calls `callback` every `interval` seconds on a daemon threading.Timer chain

    A tick is skipped while the previous periodic flush is still being
    delivered. An interval of 0 or less disables the timer.
    """

    def __init__(self, interval, callback, busy=None):
        self.interval = interval
        self.callback = callback
        self.busy = busy
        self._timer = None
        self._running = False
        self._lock = threading.Lock()

    @property
    def running(self):
        return self._running

    def start(self):
        if not self.interval or self.interval <= 0:
            return
        with self._lock:
            self._running = True
            self._schedule()

    def _schedule(self):
        self._timer = threading.Timer(self.interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self):
        with self._lock:
            if not self._running:
                return
        try:
            if self.busy is not None and self.busy():
                logger.debug("Auto-save skipped, previous flush still in flight")
            else:
                self.callback()
        except Exception as e:
            logger.error(f"Auto-save tick failed: {e}", exc_info=True)
        finally:
            with self._lock:
                if self._running:
                    self._schedule()

    def stop(self):
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
