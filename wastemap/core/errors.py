# wastemap/core/errors.py
"""
Error taxonomy raised by the lifecycle service and the auth gate.

Routers never build HTTPException for these; the handlers registered in
wastemap.main render every WasteMapError as {"detail": ..., "kind": ...}.
"""


class WasteMapError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ValidationError(WasteMapError):
    kind = "validation_error"
    status_code = 400


class Unauthorized(WasteMapError):
    kind = "unauthorized"
    status_code = 401


class Forbidden(WasteMapError):
    kind = "forbidden"
    status_code = 403


class NotFound(WasteMapError):
    kind = "not_found"
    status_code = 404


class InvalidTransition(WasteMapError):
    kind = "invalid_transition"
    status_code = 409


class Conflict(WasteMapError):
    kind = "conflict"
    status_code = 409


class PreconditionFailed(WasteMapError):
    kind = "precondition_failed"
    status_code = 400
