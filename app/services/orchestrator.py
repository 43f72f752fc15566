"""
Grading orchestrator — batch AI grading of selected students on one task.

Each student is graded independently and concurrently; failures are collected
into the report instead of aborting the batch. Task status follows from the
ledger's per-submission side effects.
"""

import asyncio
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Mapping, Optional

from app.core.errors import (
    InvalidAssignment,
    LMSError,
    MissingSubmissionContent,
    NoRubric,
    NoStudentsSelected,
    OracleFailure,
)
from app.schemas.tasks import (
    GradingReport,
    OracleResponse,
    RubricCriterion,
    StudentGradingError,
    Submission,
    SubmissionFields,
    Task,
)
from app.services.grading_oracle import GradingOracle
from app.services.ledger import SubmissionLedger

logger = logging.getLogger(__name__)


def scale_score(raw_total: float, original_max_score: float, configured_max_score: float) -> int:
    """
    Rescale a rubric total to the task's configured weight.

    Rounds half away from zero (0.5 -> 1, 1.5 -> 2, -0.5 -> -1), in decimal
    arithmetic so binary float error cannot move a value across a .5 boundary.
    """
    if not original_max_score:
        original_max_score = 100
    scaled = Decimal(str(raw_total)) * Decimal(str(configured_max_score)) / Decimal(str(original_max_score))
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class GradingOrchestrator:
    def __init__(
        self,
        ledger: SubmissionLedger,
        oracle: GradingOracle,
        timeout_seconds: Optional[float] = 60.0,
        max_retries: int = 1,
    ):
        self.ledger = ledger
        self.oracle = oracle
        self.timeout_seconds = timeout_seconds
        self.max_retries = min(max(max_retries, 0), 1)

    async def grade_students(
        self,
        task: Task,
        student_ids: Iterable[str],
        configured_max_score: Optional[float] = None,
        contents: Optional[Mapping[str, str]] = None,
    ) -> GradingReport:
        if not task.rubric:
            raise NoRubric(task.id)
        selected = list(dict.fromkeys(student_ids))
        if not selected:
            raise NoStudentsSelected()

        max_score = task.max_score if configured_max_score is None else configured_max_score
        contents = contents or {}

        results = await asyncio.gather(
            *(self._grade_student(task, sid, max_score, contents.get(sid)) for sid in selected),
            return_exceptions=True,
        )

        report = GradingReport(task_id=task.id)
        for student_id, result in zip(selected, results):
            if isinstance(result, Submission):
                report.succeeded += 1
                report.submissions[student_id] = result
                continue

            report.failed += 1
            if isinstance(result, LMSError):
                error = StudentGradingError(code=result.code, message=result.message)
                logger.warning(f"Grading failed for student {student_id} on task {task.id}: {result.message}")
            else:
                error = StudentGradingError(code="unexpected_error", message=str(result))
                logger.error(
                    f"Unexpected error grading student {student_id} on task {task.id}",
                    exc_info=result,
                )
            report.per_student_errors[student_id] = error

        logger.info(f"Task {task.id}: {report.summary()}")
        return report

    async def _grade_student(
        self, task: Task, student_id: str, max_score: float, content: Optional[str]
    ) -> Submission:
        if not task.is_assigned(student_id):
            raise InvalidAssignment(task.id, student_id)
        if content is None:
            existing = await self.ledger.get_submission(task.id, student_id)
            content = existing.content if existing else None
        if not content:
            raise MissingSubmissionContent(student_id)

        response = await self._call_oracle(task.rubric, content)
        self._check_criterion_bounds(task, student_id, response)

        scaled = scale_score(response.total_score, task.original_max_score, max_score)
        fields = SubmissionFields(
            content=content,
            raw_score=response.total_score,
            scaled_score=scaled,
            per_criterion_scores=dict(response.score_details),
            feedback=response.feedback,
        )
        return await self.ledger.upsert_submission(task.id, student_id, fields)

    async def _call_oracle(self, rubric: List[RubricCriterion], content: str) -> OracleResponse:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(self.oracle.grade(rubric, content), self.timeout_seconds)
            except asyncio.TimeoutError:
                error = OracleFailure(f"Grading timed out after {self.timeout_seconds}s", transient=True)
            except OracleFailure as e:
                error = e
            # OracleMalformedResponse is deterministic and propagates without a retry

            if not error.transient or attempt > self.max_retries:
                raise error
            logger.info(f"Retrying grading call after transient failure: {error.message}")

    @staticmethod
    def _check_criterion_bounds(task: Task, student_id: str, response: OracleResponse):
        limits = {criterion.id: criterion.points for criterion in task.rubric}
        for criterion_id, score in response.score_details.items():
            limit = limits.get(criterion_id)
            if limit is not None and score > limit:
                logger.warning(
                    f"Task {task.id}, student {student_id}: criterion '{criterion_id}' "
                    f"scored {score} above its maximum {limit}"
                )
