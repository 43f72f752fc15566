"""
Pydantic schemas for tasks, rubrics, submissions and grading reports.

Task and Submission map to the `tasks` and `task_submissions` rows through
from_record / to_record; the remaining models are request/response bodies.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from dateutil import parser
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


DEFAULT_MAX_SCORE = 100


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO strings (with or without a trailing Z)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return parser.isoparse(value)


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    GRADED = "graded"
    PLAGIARIZED = "plagiarized"


class TaskType(str, Enum):
    COLLECTIVE = "collective"
    GROUP = "group"
    INDIVIDUAL = "individual"


# ---- Rubric ----
class RubricCriterion(BaseModel):
    id: str
    description: str = ""
    points: float = 0


# ---- Task ----
class Task(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    type: TaskType = TaskType.INDIVIDUAL
    group_id: Optional[str] = None
    rubric: List[RubricCriterion] = Field(default_factory=list)
    assigned_student_ids: List[str] = Field(default_factory=list)
    status: TaskStatus = TaskStatus.PENDING
    allow_late_submissions: bool = True
    due_date: Optional[datetime] = None
    max_score: int = DEFAULT_MAX_SCORE
    created_by: Optional[str] = None

    @property
    def original_max_score(self) -> float:
        """Natural scale of the rubric; 100 when the criteria add up to nothing."""
        total = sum(criterion.points or 0 for criterion in self.rubric)
        return total if total > 0 else DEFAULT_MAX_SCORE

    def is_assigned(self, student_id: str) -> bool:
        return student_id in self.assigned_student_ids

    @classmethod
    def from_record(cls, row: dict) -> "Task":
        return cls(
            id=row["id"],
            title=row.get("title", ""),
            description=row.get("description"),
            type=row.get("type") or TaskType.INDIVIDUAL,
            group_id=row.get("group_id"),
            rubric=row.get("rubric_structured") or [],
            assigned_student_ids=row.get("assigned_to") or [],
            status=row.get("status") or TaskStatus.PENDING,
            allow_late_submissions=row.get("allow_late_submissions", True),
            due_date=parse_timestamp(row.get("due_date")),
            max_score=row.get("max_score") or DEFAULT_MAX_SCORE,
            created_by=row.get("created_by"),
        )

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "group_id": self.group_id,
            "rubric_structured": [c.model_dump() for c in self.rubric],
            "assigned_to": list(self.assigned_student_ids),
            "status": self.status.value,
            "allow_late_submissions": self.allow_late_submissions,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "max_score": self.max_score,
            "created_by": self.created_by,
        }


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    type: TaskType = TaskType.INDIVIDUAL
    group_id: Optional[str] = None
    rubric: List[RubricCriterion] = Field(default_factory=list)
    assigned_student_ids: List[str] = Field(default_factory=list)
    allow_late_submissions: bool = True
    due_date: Optional[datetime] = None
    max_score: int = DEFAULT_MAX_SCORE


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    rubric: Optional[List[RubricCriterion]] = None
    assigned_student_ids: Optional[List[str]] = None
    status: Optional[TaskStatus] = None
    allow_late_submissions: Optional[bool] = None
    due_date: Optional[datetime] = None
    max_score: Optional[int] = None


# ---- Submission ----
class Submission(BaseModel):
    id: str
    task_id: str
    student_id: str
    submitted_at: datetime
    content: Optional[str] = None
    content_hash: Optional[str] = None
    raw_score: Optional[float] = None
    scaled_score: Optional[int] = None
    per_criterion_scores: Dict[str, float] = Field(default_factory=dict)
    feedback: Optional[str] = None

    @classmethod
    def from_record(cls, row: dict) -> "Submission":
        return cls(
            id=row["id"],
            task_id=row["task_id"],
            student_id=row["student_id"],
            submitted_at=parse_timestamp(row.get("submitted_at")),
            content=row.get("content"),
            content_hash=row.get("submission_hash"),
            raw_score=row.get("raw_score"),
            scaled_score=row.get("total_score"),
            per_criterion_scores=row.get("score_details") or {},
            feedback=row.get("teacher_feedback"),
        )

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "student_id": self.student_id,
            "submitted_at": self.submitted_at.isoformat(),
            "content": self.content,
            "submission_hash": self.content_hash,
            "raw_score": self.raw_score,
            "total_score": self.scaled_score,
            "score_details": dict(self.per_criterion_scores),
            "teacher_feedback": self.feedback,
        }


class SubmissionFields(BaseModel):
    """Partial update for a submission. Only fields that were set are applied."""

    submitted_at: Optional[datetime] = None
    content: Optional[str] = None
    raw_score: Optional[float] = None
    scaled_score: Optional[int] = None
    per_criterion_scores: Optional[Dict[str, float]] = None
    feedback: Optional[str] = None


class SubmissionCreate(BaseModel):
    content: str


# ---- Grading ----
class GradeRequest(BaseModel):
    student_ids: List[str]
    max_score: Optional[int] = Field(default=None, gt=0)
    contents: Optional[Dict[str, str]] = None


class OracleResponse(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", allow_inf_nan=False)

    score_details: Dict[str, Union[StrictInt, StrictFloat]]
    total_score: Union[StrictInt, StrictFloat]
    feedback: StrictStr


class StudentGradingError(BaseModel):
    code: str
    message: str


class GradingReport(BaseModel):
    task_id: str
    succeeded: int = 0
    failed: int = 0
    per_student_errors: Dict[str, StudentGradingError] = Field(default_factory=dict)
    submissions: Dict[str, Submission] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def summary(self) -> str:
        return f"Graded {self.succeeded} of {self.total} selected students"


# ---- Progress ----
class StudentProgress(BaseModel):
    student_id: str
    group_id: Optional[str] = None
    completed_tasks: int
    total_tasks: int
    grade: float
