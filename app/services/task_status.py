"""
Task status state machine.

    pending -> in-progress            (manual start)
    pending/in-progress/submitted/graded -> submitted    (submission accepted)
    any non-plagiarized -> plagiarized                   (hash collision)
    submitted/graded -> graded        (explicit grade commit)
    any -> pending                    (administrative reset)

plagiarized only leaves through an administrative reset.
"""

from enum import Enum

from app.core.errors import InvalidTransition
from app.schemas.tasks import TaskStatus


class TaskEvent(str, Enum):
    START = "start"
    SUBMISSION_ACCEPTED = "submission_accepted"
    PLAGIARISM_DETECTED = "plagiarism_detected"
    GRADE_COMMITTED = "grade_committed"
    ADMIN_RESET = "admin_reset"


_TRANSITIONS = {
    TaskEvent.START: {
        TaskStatus.PENDING: TaskStatus.IN_PROGRESS,
    },
    TaskEvent.SUBMISSION_ACCEPTED: {
        TaskStatus.PENDING: TaskStatus.SUBMITTED,
        TaskStatus.IN_PROGRESS: TaskStatus.SUBMITTED,
        TaskStatus.SUBMITTED: TaskStatus.SUBMITTED,
        TaskStatus.GRADED: TaskStatus.SUBMITTED,
        TaskStatus.PLAGIARIZED: TaskStatus.PLAGIARIZED,
    },
    TaskEvent.PLAGIARISM_DETECTED: {
        status: TaskStatus.PLAGIARIZED for status in TaskStatus
    },
    TaskEvent.GRADE_COMMITTED: {
        TaskStatus.SUBMITTED: TaskStatus.GRADED,
        TaskStatus.GRADED: TaskStatus.GRADED,
    },
    TaskEvent.ADMIN_RESET: {
        status: TaskStatus.PENDING for status in TaskStatus
    },
}


def next_status(current: TaskStatus, event: TaskEvent) -> TaskStatus:
    try:
        return _TRANSITIONS[event][TaskStatus(current)]
    except KeyError:
        raise InvalidTransition(f"Cannot apply '{event.value}' to a task in status '{TaskStatus(current).value}'") from None
