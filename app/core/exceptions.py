"""
Error taxonomy shared by the CRM apps.

Every error raised by a service carries a stable ``code`` so the HTTP layer
can map it to a status without inspecting messages.
"""
from typing import Any, Dict, Optional


class CRMError(Exception):
    """Base class for domain errors."""

    code = 'error'
    status_code = 500

    def __init__(self, message: str = '', details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': self.code,
            'message': self.message,
            'details': self.details,
        }


class ValidationError(CRMError):
    """Input is missing or malformed. Raised before any write."""

    code = 'validation_error'
    status_code = 400

    def __init__(self, message: str = '', errors: Optional[Dict[str, Any]] = None):
        self.errors = errors or {}
        super().__init__(message or 'Invalid input', details={'errors': self.errors})


class ReferenceNotFound(CRMError):
    """A referenced record does not exist."""

    code = 'not_found'
    status_code = 404

    def __init__(self, model: str, identifier: Any):
        self.model = model
        self.identifier = identifier
        super().__init__(
            f"{model} {identifier} not found",
            details={'model': model, 'id': str(identifier)},
        )


class StateConflict(CRMError):
    """The requested transition is not allowed from the current state."""

    code = 'state_conflict'
    status_code = 409

    def __init__(self, message: str = '', current_state: Optional[str] = None,
                 attempted: Optional[str] = None):
        self.current_state = current_state
        self.attempted = attempted
        super().__init__(
            message or f"Cannot {attempted} from state {current_state}",
            details={'current_state': current_state, 'attempted': attempted},
        )


class ConsistencyViolation(CRMError):
    """A cross-record invariant failed; the enclosing unit is rolled back."""

    code = 'consistency_violation'
    status_code = 500
