# fixhub/core/errors.py
"""
Typed failures raised by the marketplace core.

Every error carries an HTTP status and a short machine code so the client can
tell "you already applied" apart from "this job is no longer open". The
handlers in fixhub.main translate them into JSON responses; the chat socket
turns them into ``error`` events.
"""


class FixHubError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code}


class ValidationError(FixHubError):
    status_code = 422
    code = "validation_error"


class UnauthorizedError(FixHubError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(FixHubError):
    status_code = 403
    code = "forbidden"


class NotFoundError(FixHubError):
    status_code = 404
    code = "not_found"


class InvalidStateError(FixHubError):
    status_code = 409
    code = "invalid_state"


class ConflictError(InvalidStateError):
    # job kept changing under a compare-and-swap; safe for the client to retry
    code = "conflict"


class DuplicateError(FixHubError):
    status_code = 409
    code = "duplicate"
