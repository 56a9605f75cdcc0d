"""
CMI Data Store
Authoritative progress writes for one learner in one course.

Every write is a single conditional UPDATE built from database expressions,
so flushes arriving concurrently from the auto-save timer, an explicit
commit and session teardown can interleave freely:

* lesson status, location, suspend data, scores and exit mode are
  last-write-wins
* total_time is additive; a payload carries only the session time
  accumulated since the previous flush
* completion_percentage only ever rises and completed_at is set once
"""
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import DatabaseError, IntegrityError, models
from django.db.models import F, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone

from .data_model import PAYLOAD_FIELDS
from .exceptions import PersistenceError
from .models import CMIRecord, InteractionRecord
from .utils import (
    FINISHED_STATUSES,
    MAX_TIMESPAN_SECONDS,
    format_scorm_time,
    is_scorm_timespan,
    normalize_status,
    parse_scorm_time,
)

logger = logging.getLogger(__name__)

FULL_COMPLETION = Decimal('100')

PERCENTAGE_FIELD = models.DecimalField(max_digits=5, decimal_places=2)


def decimal_text(value):
    """Render a stored decimal the way content expects it ('85', '72.5')"""
    if value is None:
        return ''
    return format(Decimal(value).normalize(), 'f')


def parse_decimal(value):
    """Decimal from content supplied text; None when the text is not a number"""
    if value is None:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


class CMIDataHandler:
    """
    Store operations scoped to one (learner, course) key
    """

    def __init__(self, user, course):
        self.user = user
        self.course = course

    def _records(self):
        return CMIRecord.objects.filter(user=self.user, course=self.course)

    def get_record(self):
        return self._records().first()

    def open_record(self):
        """
        Create or resume the record for an initialize call

        Returns (record, created). access_count goes up by exactly one per call.
        """
        now = timezone.now()
        try:
            try:
                record, created = CMIRecord.objects.get_or_create(
                    user=self.user,
                    course=self.course,
                    defaults={'first_accessed': now, 'last_accessed': now},
                )
            except IntegrityError:
                # A parallel initialize won the insert
                record, created = self._records().get(), False
            self._records().update(
                access_count=F('access_count') + 1,
                last_accessed=now,
                first_accessed=Coalesce(F('first_accessed'), Value(now), output_field=models.DateTimeField()),
                updated_at=now,
            )
            record.refresh_from_db()
        except DatabaseError as e:
            logger.error(f"Could not open CMI record for user {self.user.pk}, course {self.course.pk}: {e}")
            raise PersistenceError(str(e)) from e

        if created:
            logger.info(f"Created CMI record {record.pk} for user {self.user.pk}, course {self.course.pk}")
        return record, created

    def build_seed(self, record, created):
        """Element to value map the content frame starts from"""
        return {
            'cmi.core.student_id': str(self.user.pk),
            'cmi.core.student_name': self.user.get_full_name() or self.user.get_username(),
            'cmi.core.lesson_status': record.status.scorm_value,
            'cmi.core.lesson_location': record.lesson_location or '',
            'cmi.core.score.raw': decimal_text(record.score_raw),
            'cmi.core.score.min': decimal_text(record.score_min),
            'cmi.core.score.max': decimal_text(record.score_max),
            'cmi.core.total_time': format_scorm_time(record.total_time),
            'cmi.core.session_time': '',
            'cmi.core.entry': 'ab-initio' if created else 'resume',
            'cmi.core.credit': 'credit',
            'cmi.core.lesson_mode': 'normal',
            'cmi.core.exit': '',
            'cmi.suspend_data': record.suspend_data or '',
            'cmi.launch_data': '',
        }

    def read_element(self, element):
        record = self.get_record()
        if record is None:
            return ''

        readers = {
            'cmi.core.student_id': lambda: str(self.user.pk),
            'cmi.core.student_name': lambda: self.user.get_full_name() or self.user.get_username(),
            'cmi.core.lesson_status': lambda: record.status.scorm_value,
            'cmi.core.lesson_location': lambda: record.lesson_location or '',
            'cmi.core.score.raw': lambda: decimal_text(record.score_raw),
            'cmi.core.score.min': lambda: decimal_text(record.score_min),
            'cmi.core.score.max': lambda: decimal_text(record.score_max),
            'cmi.core.total_time': lambda: format_scorm_time(record.total_time),
            'cmi.core.entry': lambda: 'resume',
            'cmi.core.credit': lambda: 'credit',
            'cmi.core.lesson_mode': lambda: 'normal',
            'cmi.suspend_data': lambda: record.suspend_data or '',
        }
        reader = readers.get(element)
        return reader() if reader else ''

    def apply_element(self, element, value):
        """
        Single element delta pushed by the content bridge

        Elements without a persisted field are ignored. Session time only
        travels inside flush payloads so it can never be counted twice.
        """
        field = PAYLOAD_FIELDS.get(element)
        if field is None or field == 'session_time':
            logger.info(f"Ignoring single element push for {element}")
            return False
        return self.apply_commit({field: value})

    def apply_commit(self, data):
        """
        Upsert a partial record in one atomic UPDATE

        Returns True when the record was touched.
        """
        updates = self._build_updates(data or {})
        if not updates:
            return False

        try:
            updated = self._records().update(**updates)
            if not updated:
                # Commit before initialize: create the row, then apply the same expressions
                CMIRecord.objects.get_or_create(
                    user=self.user,
                    course=self.course,
                    defaults={'first_accessed': timezone.now()},
                )
                updated = self._records().update(**updates)
        except DatabaseError as e:
            logger.error(f"CMI commit failed for user {self.user.pk}, course {self.course.pk}: {e}")
            raise PersistenceError(str(e)) from e

        logger.debug(f"CMI commit applied fields {sorted(updates)} for user {self.user.pk}, course {self.course.pk}")
        return bool(updated)

    def _build_updates(self, data):
        now = timezone.now()
        updates = {}
        percentage = None

        if 'lesson_status' in data:
            status = normalize_status(data['lesson_status'])
            updates['lesson_status'] = status.value
            if status in FINISHED_STATUSES:
                updates['completed_at'] = Coalesce(
                    F('completed_at'), Value(now), output_field=models.DateTimeField()
                )
                percentage = FULL_COMPLETION

        if 'lesson_location' in data:
            updates['lesson_location'] = str(data['lesson_location'] or '')

        if 'suspend_data' in data:
            updates['suspend_data'] = self._bounded_suspend_data(data['suspend_data'])

        if 'score_raw' in data:
            raw = data['score_raw']
            if raw in (None, ''):
                updates['score_raw'] = None
            else:
                score = parse_decimal(raw)
                if score is None:
                    logger.warning(f"Discarding non-numeric score_raw '{raw}' for user {self.user.pk}")
                else:
                    updates['score_raw'] = score

        for bound in ('score_min', 'score_max'):
            if bound in data and data[bound] not in (None, ''):
                score = parse_decimal(data[bound])
                if score is None:
                    logger.warning(f"Discarding non-numeric {bound} '{data[bound]}' for user {self.user.pk}")
                else:
                    updates[bound] = score

        if 'exit' in data:
            updates['exit_mode'] = str(data['exit'] or '')[:16]

        if 'session_time' in data:
            delta = data['session_time']
            if delta in (None, ''):
                delta = 0
            elif isinstance(delta, int):
                delta = delta if delta <= MAX_TIMESPAN_SECONDS else 0
            elif is_scorm_timespan(delta):
                delta = parse_scorm_time(delta)
            else:
                logger.warning(f"Discarding malformed session_time {delta!r} for user {self.user.pk}")
                delta = 0
            if delta > 0:
                updates['total_time'] = F('total_time') + delta
                updates['session_time'] = delta

        if data.get('completion_percentage') not in (None, ''):
            incoming = parse_decimal(data['completion_percentage'])
            if incoming is not None:
                incoming = min(max(incoming, Decimal('0')), FULL_COMPLETION)
                percentage = incoming if percentage is None else max(percentage, incoming)

        if percentage is not None:
            updates['completion_percentage'] = Greatest(
                F('completion_percentage'),
                Value(percentage, output_field=PERCENTAGE_FIELD),
                output_field=PERCENTAGE_FIELD,
            )

        if updates:
            updates['last_accessed'] = now
            updates['updated_at'] = now
        return updates

    def _bounded_suspend_data(self, value):
        value = str(value or '')
        limit = getattr(settings, 'SCORM_SUSPEND_DATA_MAX_LENGTH', 65536)
        if len(value) > limit:
            logger.warning(
                f"suspend_data of {len(value)} chars truncated to {limit} for user {self.user.pk}, "
                f"course {self.course.pk}"
            )
            return value[:limit]
        return value

    def record_interaction(self, payload):
        """Append one interaction; existing rows are never touched"""
        payload = payload or {}
        weighting = parse_decimal(payload.get('weighting'))
        latency = payload.get('latency')
        if isinstance(latency, int):
            latency = latency if 0 <= latency <= MAX_TIMESPAN_SECONDS else None
        elif latency is not None:
            latency = parse_scorm_time(latency) if is_scorm_timespan(latency) else None

        try:
            interaction = InteractionRecord.objects.create(
                user=self.user,
                course=self.course,
                interaction_id=str(payload.get('id') or '')[:255],
                interaction_type=str(payload.get('type') or '')[:50],
                description=str(payload.get('description') or ''),
                learner_response=str(payload.get('learner_response', payload.get('student_response')) or ''),
                correct_response=str(payload.get('correct_response') or ''),
                result=str(payload.get('result') or '')[:50],
                weighting=weighting,
                latency=latency,
            )
        except DatabaseError as e:
            logger.error(f"Could not record interaction for user {self.user.pk}, course {self.course.pk}: {e}")
            raise PersistenceError(str(e)) from e
        return interaction
