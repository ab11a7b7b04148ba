"""Error types raised by the engine services.

Each error carries a stable ``code`` for the JSON envelope and the HTTP
status the API layer answers with.
"""


class EngineError(Exception):
    code = "engine_error"
    status = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(EngineError):
    code = "validation_error"
    status = 400


class InvalidCredentials(EngineError):
    code = "invalid_credentials"
    status = 401


class Forbidden(EngineError):
    code = "forbidden"
    status = 403


class NotFound(EngineError):
    code = "not_found"
    status = 404


class Conflict(EngineError):
    code = "conflict"
    status = 409


class DuplicateEmail(Conflict):
    code = "duplicate_email"


class InvalidInviteCode(EngineError):
    code = "invalid_invite_code"
    status = 400


class ExhaustedRetries(EngineError):
    """No free invite code was found within the attempt ceiling."""

    code = "exhausted_retries"
    status = 500
