"""
Domain error taxonomy.

Each error carries the HTTP status it maps to and a short machine code,
rendered by the exception handler registered in app.main.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from app.utils.response import error_response


class LMSError(Exception):
    status_code = 400
    code = "lms_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class TaskNotFound(LMSError):
    status_code = 404
    code = "task_not_found"

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidAssignment(LMSError):
    status_code = 422
    code = "invalid_assignment"

    def __init__(self, task_id: str, student_id: str):
        super().__init__(f"Student {student_id} is not assigned to task {task_id}")
        self.task_id = task_id
        self.student_id = student_id


class NoRubric(LMSError):
    status_code = 422
    code = "no_rubric"

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} has no structured rubric to grade against")


class NoStudentsSelected(LMSError):
    status_code = 422
    code = "no_students_selected"

    def __init__(self):
        super().__init__("Select at least one student to grade")


class InvalidTransition(LMSError):
    status_code = 409
    code = "invalid_transition"


class MissingSubmissionContent(LMSError):
    status_code = 422
    code = "missing_submission_content"

    def __init__(self, student_id: str):
        super().__init__(f"No submission content to grade for student {student_id}")


class OracleFailure(LMSError):
    """Grading call failed (network, timeout, API error)."""

    status_code = 502
    code = "oracle_failure"

    def __init__(self, message: str, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class OracleMalformedResponse(LMSError):
    """Grading call succeeded but its payload broke the response contract."""

    status_code = 502
    code = "oracle_malformed_response"


class PersistenceFailure(LMSError):
    status_code = 503
    code = "persistence_failure"


class NotificationFailure(LMSError):
    status_code = 502
    code = "notification_failure"


async def lms_error_handler(request: Request, exc: LMSError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=exc.message, code=exc.code),
    )
