"""
Structured logging utilities for the RTE endpoints
"""

import logging
import json
import traceback
from typing import Dict, Any, Optional
from django.http import HttpRequest


class StructuredLogger:
    """Logger that appends a JSON context block describing learner and request"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _create_context(self,
                        request: Optional[HttpRequest] = None,
                        extra_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        context = {}

        if request is not None:
            user = getattr(request, 'user', None)
            if user is not None and user.is_authenticated:
                context.update({
                    'user_id': user.id,
                    'username': user.get_username(),
                })
            context.update({
                'request_method': request.method,
                'request_path': request.path,
                'request_ip': get_client_ip(request),
            })

        if extra_data:
            context.update(extra_data)

        return context

    def _emit(self, level: int, message: str, context: Dict[str, Any]):
        self.logger.log(level, f"{message} | Context: {json.dumps(context, default=str)}")

    def info(self, message: str,
             request: Optional[HttpRequest] = None,
             extra_data: Optional[Dict[str, Any]] = None):
        self._emit(logging.INFO, message, self._create_context(request, extra_data))

    def warning(self, message: str,
                request: Optional[HttpRequest] = None,
                extra_data: Optional[Dict[str, Any]] = None):
        self._emit(logging.WARNING, message, self._create_context(request, extra_data))

    def error(self, message: str,
              exception: Optional[Exception] = None,
              request: Optional[HttpRequest] = None,
              extra_data: Optional[Dict[str, Any]] = None):
        """Log error message with context and exception details"""
        context = self._create_context(request, extra_data)

        if exception is not None:
            context.update({
                'exception_type': type(exception).__name__,
                'exception_message': str(exception),
                'traceback': traceback.format_exc(),
            })

        self._emit(logging.ERROR, message, context)

    def debug(self, message: str,
              request: Optional[HttpRequest] = None,
              extra_data: Optional[Dict[str, Any]] = None):
        self._emit(logging.DEBUG, message, self._create_context(request, extra_data))


def get_client_ip(request: HttpRequest) -> Optional[str]:
    """Client IP, honouring the first X-Forwarded-For hop behind the load balancer"""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


api_logger = StructuredLogger('api')
