"""
SCORM API Handler
Implements the SCORM 1.2 run-time API (the eight LMS* functions) against an
in-memory mirror of the learner's CMI record.

Content only ever sees "true"/"false"/"" and error codes; persistence is
delegated to a ProgressSynchronizer and never blocks or fails a call.
"""
import logging
from decimal import Decimal
from enum import Enum

from django.conf import settings

from .cmi_data_handler import parse_decimal
from .data_model import (
    CHILDREN,
    INTERACTION_COUNT,
    INTERACTION_ELEMENT,
    INTERACTION_TYPES,
    READ,
    SCORM_12_ELEMENTS,
    WRITE,
)
from .exceptions import ElementAccessError, ProtocolError, ScormRuntimeError
from .sync import AutoSaveTimer, ProgressSynchronizer
from .utils import is_scorm_timespan

logger = logging.getLogger(__name__)

SCORE_RAW_ELEMENT = 'cmi.core.score.raw'
SCORE_MIN_ELEMENT = 'cmi.core.score.min'
SCORE_MAX_ELEMENT = 'cmi.core.score.max'
DEFAULT_SCORE_MIN = Decimal('0')
DEFAULT_SCORE_MAX = Decimal('100')


class RteState(Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZED = 'initialized'
    TERMINATED = 'terminated'


# Call groups checked against the transition table
INITIALIZE = 'initialize'
ACCESS = 'access'  # GetValue, SetValue, Commit
FINISH = 'finish'

# (state, call) -> (error code when refused, next state when allowed)
TRANSITIONS = {
    (RteState.UNINITIALIZED, INITIALIZE): (None, RteState.INITIALIZED),
    (RteState.UNINITIALIZED, ACCESS): ('301', None),
    (RteState.UNINITIALIZED, FINISH): ('301', None),
    (RteState.INITIALIZED, INITIALIZE): ('101', None),
    (RteState.INITIALIZED, ACCESS): (None, RteState.INITIALIZED),
    (RteState.INITIALIZED, FINISH): (None, RteState.TERMINATED),
    (RteState.TERMINATED, INITIALIZE): ('101', None),
    (RteState.TERMINATED, ACCESS): ('101', None),
    (RteState.TERMINATED, FINISH): ('101', None),
}


class ScormAPIHandler:
    """
    One content launch of one course

    Obtain instances through create_rte_api() and hand function_table() to
    the frame hosting the content.
    """

    # SCORM 1.2 Error codes
    SCORM_12_ERRORS = {
        '0': 'No error',
        '101': 'General exception',
        '201': 'Invalid argument error',
        '202': 'Element cannot have children',
        '203': 'Element not an array',
        '301': 'Not initialized',
        '401': 'Not implemented error',
        '402': 'Invalid set value',
        '403': 'Element is read only',
        '404': 'Element is write only',
        '405': 'Incorrect data type',
    }

    def __init__(self, course_id, synchronizer, autosave_interval=None, high_value_elements=None):
        self.course_id = course_id
        self.synchronizer = synchronizer
        self.state = RteState.UNINITIALIZED
        self.last_error = '0'
        self.mirror = {}
        self.interaction_indices = set()

        if high_value_elements is None:
            high_value_elements = getattr(settings, 'SCORM_HIGH_VALUE_ELEMENTS', ())
        self.high_value_elements = frozenset(high_value_elements)

        if autosave_interval is None:
            autosave_interval = getattr(settings, 'SCORM_AUTOSAVE_INTERVAL', 30.0)
        self.timer = AutoSaveTimer(
            autosave_interval,
            self._periodic_flush,
            busy=lambda: self.synchronizer.periodic_in_flight,
        )

    def _transition(self, call):
        """Apply the transition table; raises ProtocolError when the call is refused"""
        error, next_state = TRANSITIONS[(self.state, call)]
        if error is not None:
            raise ProtocolError(f"{call} not allowed while {self.state.value}", code=error)
        return next_state

    def function_table(self):
        """The content facing API keyed by SCORM function name"""
        return {
            'LMSInitialize': self.LMSInitialize,
            'LMSFinish': self.LMSFinish,
            'LMSGetValue': self.LMSGetValue,
            'LMSSetValue': self.LMSSetValue,
            'LMSCommit': self.LMSCommit,
            'LMSGetLastError': self.LMSGetLastError,
            'LMSGetErrorString': self.LMSGetErrorString,
            'LMSGetDiagnostic': self.LMSGetDiagnostic,
        }

    # LMS* entry points

    def LMSInitialize(self, param=''):
        try:
            next_state = self._transition(INITIALIZE)
            seed = self.synchronizer.initialize()
        except ScormRuntimeError as e:
            logger.warning(f"LMSInitialize refused for course {self.course_id}: {e}")
            self.last_error = e.code
            return 'false'

        self.mirror = dict(seed)
        self.state = next_state
        self.last_error = '0'
        self.timer.start()
        logger.info(f"SCORM API initialized for course {self.course_id}, session {self.synchronizer.session_id}")
        return 'true'

    def LMSFinish(self, param=''):
        try:
            self.state = self._transition(FINISH)
        except ProtocolError as e:
            logger.warning(f"LMSFinish refused for course {self.course_id}: {e}")
            self.last_error = e.code
            return 'false'

        self.timer.stop()
        self.synchronizer.finish(self.mirror)
        self.last_error = '0'
        logger.info(f"SCORM API terminated for course {self.course_id}")
        return 'true'

    def LMSGetValue(self, element):
        try:
            self._transition(ACCESS)
            value = self._get_value(str(element or ''))
        except ScormRuntimeError as e:
            self.last_error = e.code
            return ''
        self.last_error = '0'
        return value

    def LMSSetValue(self, element, value):
        try:
            self._transition(ACCESS)
            self._set_value(str(element or ''), '' if value is None else str(value))
        except ScormRuntimeError as e:
            logger.info(f"LMSSetValue({element}) rejected with {e.code}: {e}")
            self.last_error = e.code
            return 'false'
        self.last_error = '0'
        return 'true'

    def LMSCommit(self, param=''):
        try:
            self._transition(ACCESS)
        except ProtocolError as e:
            self.last_error = e.code
            return 'false'

        # Delivery problems are handled by the synchronizer, never reported to content
        self.synchronizer.flush(self.mirror, trigger=ProgressSynchronizer.COMMIT)
        self.last_error = '0'
        return 'true'

    def LMSGetLastError(self):
        return self.last_error

    def LMSGetErrorString(self, error_code):
        error_code = str(error_code) if error_code is not None else '0'
        return self.SCORM_12_ERRORS.get(error_code, 'Unknown error')

    def LMSGetDiagnostic(self, error_code=''):
        if error_code in (None, ''):
            error_code = self.last_error
        return self.LMSGetErrorString(error_code)

    # Element access

    def _get_value(self, element):
        if element in CHILDREN:
            return CHILDREN[element]
        if element == INTERACTION_COUNT:
            return str(len(self.interaction_indices))
        if INTERACTION_ELEMENT.match(element):
            raise ElementAccessError(f"{element} is write only", code='404')

        definition = SCORM_12_ELEMENTS.get(element)
        if definition is None:
            raise ElementAccessError(f"{element} is not implemented", code='401')
        if definition.access == WRITE:
            raise ElementAccessError(f"{element} is write only", code='404')
        return self.mirror.get(element, '')

    def _set_value(self, element, value):
        if element in CHILDREN or element == INTERACTION_COUNT:
            raise ElementAccessError(f"{element} is read only", code='403')

        match = INTERACTION_ELEMENT.match(element)
        if match:
            self._set_interaction(int(match.group(1)), match.group(2), value)
            return

        definition = SCORM_12_ELEMENTS.get(element)
        if definition is None:
            # Unknown elements are accepted and dropped so probing content keeps running
            logger.debug(f"Discarding value for unrecognised element {element}")
            return
        if definition.access == READ:
            raise ElementAccessError(f"{element} is read only", code='403')
        self._check_type(element, definition, value)

        self.mirror[element] = value
        if element in self.high_value_elements:
            self.synchronizer.push_element(element, value)

    def _check_type(self, element, definition, value):
        if definition.kind == 'decimal':
            if value == '':
                return
            number = parse_decimal(value)
            if number is None:
                raise ElementAccessError(f"{element} expects a number, got {value!r}", code='405')
            if element == SCORE_RAW_ELEMENT:
                low, high = self._score_bounds()
                if not low <= number <= high:
                    raise ElementAccessError(f"{element} must lie between {low} and {high}, got {value!r}",
                                             code='405')
        elif definition.kind == 'vocabulary':
            if value not in definition.values:
                raise ElementAccessError(f"{value!r} is not a valid {element}", code='405')
        elif definition.kind == 'timespan':
            if not is_scorm_timespan(value):
                raise ElementAccessError(f"{element} expects HHHH:MM:SS.SS, got {value!r}", code='405')

    def _score_bounds(self):
        low = parse_decimal(self.mirror.get(SCORE_MIN_ELEMENT, ''))
        high = parse_decimal(self.mirror.get(SCORE_MAX_ELEMENT, ''))
        low = DEFAULT_SCORE_MIN if low is None else low
        high = DEFAULT_SCORE_MAX if high is None else high
        return low, high

    def _set_interaction(self, index, field, value):
        if field == 'type' and value not in INTERACTION_TYPES:
            raise ElementAccessError(f"{value!r} is not an interaction type", code='405')
        if field == 'weighting' and parse_decimal(value) is None:
            raise ElementAccessError(f"Interaction weighting must be numeric, got {value!r}", code='405')
        if field == 'latency' and not is_scorm_timespan(value):
            raise ElementAccessError(f"Interaction latency expects HHHH:MM:SS.SS, got {value!r}", code='405')

        self.interaction_indices.add(index)
        self.synchronizer.buffer_interaction(index, field, value)

    # Flush triggers outside the content's control

    def _periodic_flush(self):
        if self.state is not RteState.INITIALIZED:
            return None
        return self.synchronizer.flush(self.mirror, trigger=ProgressSynchronizer.PERIODIC)

    def teardown(self):
        """
        Hosting page is going away

        Sends one best-effort flush and stops auto-save. The session record
        is left open, exactly as if the page had simply vanished.
        """
        self.timer.stop()
        if self.state is not RteState.INITIALIZED:
            return
        self.state = RteState.TERMINATED
        self.synchronizer.flush(self.mirror, trigger=ProgressSynchronizer.TEARDOWN)
        self.synchronizer.shutdown()
        logger.info(f"SCORM API torn down for course {self.course_id} without LMSFinish")


def create_rte_api(course_id, backend, executor=ProgressSynchronizer.OWN_EXECUTOR, autosave_interval=None,
                   retries=None, high_value_elements=None):
    """
    Build a session scoped SCORM API for one launch of `course_id`

    `backend` implements sync.RteBackend. Pass executor=None to deliver
    flushes inline on the calling thread.
    """
    synchronizer = ProgressSynchronizer(backend, course_id, executor=executor, retries=retries)
    return ScormAPIHandler(
        course_id,
        synchronizer,
        autosave_interval=autosave_interval,
        high_value_elements=high_value_elements,
    )
