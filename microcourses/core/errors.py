"""Domain errors and their HTTP rendering.

Every error the API can return derives from AppError, which carries the
HTTP status and a stable machine-readable code.  main.py registers one
exception handler that renders them as::

    {"error": {"code": "LESSON_NOT_FOUND", "message": "..."}}

Services raise these directly; routers never build error bodies by hand.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation failed"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "The requested resource was not found"


class LessonNotFoundError(NotFoundError):
    """Lesson missing, course unpublished, or learner not enrolled.

    The three cases share one error so the response never reveals
    whether an unpublished course exists.
    """

    code = "LESSON_NOT_FOUND"
    message = "Lesson not found or access denied"


class CourseNotFoundError(NotFoundError):
    code = "COURSE_NOT_FOUND"
    message = "Course not found or not available"


class EnrollmentNotFoundError(NotFoundError):
    code = "ENROLLMENT_NOT_FOUND"
    message = "Enrollment not found"


class CertificateNotFoundError(NotFoundError):
    code = "CERTIFICATE_NOT_FOUND"
    message = "Certificate not found"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class AlreadyEnrolledError(ConflictError):
    code = "ALREADY_ENROLLED"
    message = "User is already enrolled in this course"


class StoreUnavailableError(AppError):
    """The data store could not be reached.  Clients may retry."""

    status_code = 503
    code = "STORE_UNAVAILABLE"
    message = "Data store temporarily unavailable, please retry"
    retry_after_seconds = 1


class CertificateAlreadyIssuedError(Exception):
    """Raised by certificate repos when (learner, course) already has a row.

    Internal signal only: the issuer converts it into an "already issued"
    outcome.  Not an AppError, so the API error handler never renders it.
    """
