"""
SCORM 1.2 CMI data model elements supported by the run-time bridge
"""
import re
from collections import namedtuple

READ = 'r'
WRITE = 'w'
READ_WRITE = 'rw'

# kind: 'string' | 'decimal' | 'timespan' | 'vocabulary'
# field: key of the element in a commit payload, None when not persisted
Element = namedtuple('Element', ['access', 'kind', 'values', 'field'])

LESSON_STATUS_VOCABULARY = ('passed', 'completed', 'failed', 'incomplete', 'browsed', 'not attempted')
EXIT_VOCABULARY = ('time-out', 'suspend', 'logout', '')

SCORM_12_ELEMENTS = {
    'cmi.core.student_id': Element(READ, 'string', None, None),
    'cmi.core.student_name': Element(READ, 'string', None, None),
    'cmi.core.lesson_location': Element(READ_WRITE, 'string', None, 'lesson_location'),
    'cmi.core.credit': Element(READ, 'vocabulary', ('credit', 'no-credit'), None),
    'cmi.core.lesson_status': Element(READ_WRITE, 'vocabulary', LESSON_STATUS_VOCABULARY, 'lesson_status'),
    'cmi.core.entry': Element(READ, 'vocabulary', ('ab-initio', 'resume', ''), None),
    'cmi.core.score.raw': Element(READ_WRITE, 'decimal', None, 'score_raw'),
    'cmi.core.score.min': Element(READ_WRITE, 'decimal', None, 'score_min'),
    'cmi.core.score.max': Element(READ_WRITE, 'decimal', None, 'score_max'),
    'cmi.core.total_time': Element(READ, 'timespan', None, None),
    'cmi.core.lesson_mode': Element(READ, 'vocabulary', ('browse', 'normal', 'review'), None),
    'cmi.core.exit': Element(WRITE, 'vocabulary', EXIT_VOCABULARY, 'exit'),
    'cmi.core.session_time': Element(WRITE, 'timespan', None, 'session_time'),
    'cmi.suspend_data': Element(READ_WRITE, 'string', None, 'suspend_data'),
    'cmi.launch_data': Element(READ, 'string', None, None),
}

CHILDREN = {
    'cmi.core._children': (
        'student_id,student_name,lesson_location,credit,lesson_status,entry,'
        'score,total_time,lesson_mode,exit,session_time'
    ),
    'cmi.core.score._children': 'raw,min,max',
    'cmi.interactions._children': (
        'id,objectives,time,type,correct_responses,weighting,student_response,result,latency'
    ),
}

INTERACTION_COUNT = 'cmi.interactions._count'

# cmi.interactions.n.<field> is write-only in SCORM 1.2
INTERACTION_ELEMENT = re.compile(
    r'^cmi\.interactions\.(\d+)\.'
    r'(id|time|type|weighting|student_response|result|latency'
    r'|correct_responses\.\d+\.pattern|objectives\.\d+\.id)$'
)

INTERACTION_TYPES = (
    'true-false', 'choice', 'fill-in', 'matching', 'performance', 'sequencing', 'likert', 'numeric',
)

# Element to commit payload key for everything content may persist
PAYLOAD_FIELDS = {
    name: element.field
    for name, element in SCORM_12_ELEMENTS.items()
    if element.field is not None
}
