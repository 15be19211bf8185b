"""
Error Taxonomy

Every failure the service reports to a caller is one of these kinds.
The API layer turns them into a structured response carrying a
machine-readable ``error`` kind and a human-readable ``message``.

Author: Khalil Bannouri
Version: 1.0.0
"""

from typing import Any, Optional


class RestroError(Exception):
    """Base class for all domain errors."""

    kind: str = "internal_error"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.kind,
            "message": self.message,
        }


class ValidationError(RestroError):
    """Malformed or missing input. Carries every violation, not just the first."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, errors: list[dict[str, str]], message: str = "Invalid input data"):
        super().__init__(message)
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Build from a pydantic ``ValidationError`` or FastAPI ``RequestValidationError``."""
        errors = []
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part != "body"]
            errors.append({"field": ".".join(loc) or "__root__", "message": err.get("msg", "")})
        return cls(errors)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class AuthError(RestroError):
    """Missing, invalid or expired session, or insufficient role (403)."""

    kind = "auth_error"
    status_code = 401


class NotFoundError(RestroError):
    kind = "not_found"
    status_code = 404


class ConflictError(RestroError):
    """Duplicate identifier on create, or a lost compare-and-swap."""

    kind = "conflict"
    status_code = 409


class InternalError(RestroError):
    kind = "internal_error"
    status_code = 500


class StoreUnavailableError(InternalError):
    """Store timeout or connectivity failure. Safe to retry."""

    kind = "store_unavailable"
    status_code = 503
    retryable = True
