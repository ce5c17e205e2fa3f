"""
Utility functions shared by the JSON views.
"""
import json
from decimal import Decimal
from typing import Any, Dict
from uuid import UUID
from django.core.serializers.json import DjangoJSONEncoder
from django.http import HttpRequest, JsonResponse

from core.exceptions import ValidationError


class CRMJSONEncoder(DjangoJSONEncoder):
    """Serialize Decimal amounts as numbers rather than strings."""

    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, UUID):
            return str(o)
        return super().default(o)


def parse_json_body(request: HttpRequest) -> Dict[str, Any]:
    """Decode a JSON object from the request body."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError('Request body is not valid JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def json_response(data: Any, status: int = 200) -> JsonResponse:
    return JsonResponse(data, status=status, encoder=CRMJSONEncoder, safe=False)


def form_errors(form) -> Dict[str, Any]:
    """Flatten Django form errors into a plain dict of message lists."""
    return {field: [str(e) for e in errors] for field, errors in form.errors.items()}


def clean_form(form, message: str = '') -> Dict[str, Any]:
    """Return the form's cleaned data or raise a ValidationError listing its errors."""
    if not form.is_valid():
        raise ValidationError(message, errors=form_errors(form))
    return form.cleaned_data
