"""
Domain errors raised by the orchestration and participation services.

Request handlers translate these into HTTP responses (see app.utils.responses);
services never raise transport-level exceptions themselves.
"""


class EventEngineError(Exception):
    """Base class for domain errors"""

    error_code = "event_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EventEngineError):
    """Event, participant, pair or user document is missing"""

    error_code = "not_found"


class InvalidStateError(EventEngineError):
    """Requested transition is not allowed from the current status"""

    error_code = "invalid_state"


class InvalidInputError(EventEngineError):
    """Caller supplied a value that does not belong to the target entity"""

    error_code = "invalid_input"


class ForbiddenError(EventEngineError):
    """Caller is banned or not assigned to the event"""

    error_code = "forbidden"
