"""
Custom middleware for the tutoring CRM.
"""
import logging
from typing import Optional
from django.http import HttpRequest, HttpResponse
from django.utils.deprecation import MiddlewareMixin

from core.exceptions import CRMError, ConsistencyViolation
from core.utils import json_response

logger = logging.getLogger(__name__)


class CRMErrorMiddleware(MiddlewareMixin):
    """
    Translate domain errors raised by views into JSON responses.

    ValidationError -> 400, ReferenceNotFound -> 404, StateConflict -> 409,
    ConsistencyViolation -> 500. Anything else is left to Django.
    """

    def process_exception(self, request: HttpRequest, exception: Exception) -> Optional[HttpResponse]:
        if not isinstance(exception, CRMError):
            return None

        if isinstance(exception, ConsistencyViolation):
            logger.error(f"Consistency violation on {request.method} {request.path}: {exception.message}")
        else:
            logger.info(f"{exception.code} on {request.method} {request.path}: {exception.message}")

        return json_response(exception.to_dict(), status=exception.status_code)
