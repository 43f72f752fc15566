"""
Submission ledger — one submission per (task, student), plagiarism detection
and ownership of the task status.

Mutations for a task are serialized by a per-task asyncio.Lock; different
tasks never share a lock. The record store is the source of truth: every
operation writes to it first and only then updates the in-memory mirror.
When a write fails the mirror for that task is dropped and reloaded from the
store on next access.
"""

import asyncio
import hashlib
import logging
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Dict, List, Optional, Set

from starlette.concurrency import run_in_threadpool

from app.core.errors import InvalidAssignment, PersistenceFailure, TaskNotFound
from app.schemas.tasks import Submission, SubmissionFields, Task
from app.services.record_store import RecordStore
from app.services.task_status import TaskEvent, next_status

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
SUBMISSIONS_TABLE = "task_submissions"


def compute_content_hash(content: Optional[str]) -> Optional[str]:
    """
    Fingerprint of the raw submission text (no whitespace normalization).
    Returns None when there is no content to fingerprint.
    """
    if not content:
        return None
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class _TaskState:
    """In-memory mirror of one task and its submissions."""

    def __init__(self, task: Task, submissions: List[Submission]):
        self.task = task
        self.by_student: Dict[str, Submission] = {}
        self.hash_index: Dict[str, Set[str]] = {}
        for submission in submissions:
            self.put(submission)

    def put(self, submission: Submission):
        previous = self.by_student.get(submission.student_id)
        if previous is not None and previous.content_hash:
            owners = self.hash_index.get(previous.content_hash)
            if owners is not None:
                owners.discard(submission.student_id)
                if not owners:
                    del self.hash_index[previous.content_hash]
        self.by_student[submission.student_id] = submission
        if submission.content_hash:
            self.hash_index.setdefault(submission.content_hash, set()).add(submission.student_id)

    def collides(self, student_id: str, content_hash: str) -> bool:
        owners = self.hash_index.get(content_hash, set())
        return any(owner != student_id for owner in owners)


class SubmissionLedger:
    def __init__(self, store: RecordStore):
        self._store = store
        self._states: Dict[str, _TaskState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, task_id: str) -> asyncio.Lock:
        lock = self._locks.get(task_id)
        if lock is None:
            lock = self._locks[task_id] = asyncio.Lock()
        return lock

    async def _state(self, task_id: str) -> _TaskState:
        state = self._states.get(task_id)
        if state is not None:
            return state

        row = await run_in_threadpool(self._store.get, TASKS_TABLE, task_id)
        if row is None:
            raise TaskNotFound(task_id)
        rows = await run_in_threadpool(self._store.list, SUBMISSIONS_TABLE, task_id=task_id)
        state = _TaskState(Task.from_record(row), [Submission.from_record(r) for r in rows])
        self._states[task_id] = state
        return state

    def invalidate(self, task_id: str):
        """Forget the mirror for a task edited or deleted outside the ledger."""
        self._states.pop(task_id, None)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_task(self, task_id: str) -> Task:
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            return state.task.model_copy(deep=True)

    async def get_submission(self, task_id: str, student_id: str) -> Optional[Submission]:
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            submission = state.by_student.get(student_id)
            return submission.model_copy(deep=True) if submission else None

    async def list_submissions(self, task_id: str) -> List[Submission]:
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            return [s.model_copy(deep=True) for s in state.by_student.values()]

    async def detect_plagiarism(self, task_id: str, student_id: str, content_hash: Optional[str]) -> bool:
        """True when another student already submitted content with this hash to the task."""
        if not content_hash:
            return False
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            return state.collides(student_id, content_hash)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def upsert_submission(self, task_id: str, student_id: str, fields: SubmissionFields) -> Submission:
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            task = state.task
            if not task.is_assigned(student_id):
                raise InvalidAssignment(task_id, student_id)

            changes = fields.model_dump(exclude_unset=True)
            if changes.get("submitted_at") is None:
                changes.pop("submitted_at", None)
            if "per_criterion_scores" in changes and changes["per_criterion_scores"] is None:
                changes["per_criterion_scores"] = {}

            plagiarized = False
            if "content" in changes:
                content_hash = compute_content_hash(changes["content"])
                changes["content_hash"] = content_hash
                plagiarized = content_hash is not None and state.collides(student_id, content_hash)

            existing = state.by_student.get(student_id)
            if existing is not None:
                submission = existing.model_copy(update=changes, deep=True)
                record = submission.to_record()
                del record["id"]
                write = partial(self._store.update, SUBMISSIONS_TABLE, submission.id, record)
            else:
                changes.setdefault("submitted_at", datetime.now(timezone.utc))
                submission = Submission(
                    id=str(uuid.uuid4()), task_id=task_id, student_id=student_id, **changes
                )
                write = partial(self._store.insert, SUBMISSIONS_TABLE, submission.to_record())

            event = TaskEvent.PLAGIARISM_DETECTED if plagiarized else TaskEvent.SUBMISSION_ACCEPTED
            status = next_status(task.status, event)

            await self._write(task_id, write)
            if status != task.status:
                await self._write(
                    task_id, partial(self._store.update, TASKS_TABLE, task_id, {"status": status.value})
                )

            state.put(submission)
            if plagiarized:
                logger.warning(f"Plagiarism detected for task {task_id} (student {student_id})")
            if status != task.status:
                logger.info(f"Task {task_id} status {task.status.value} -> {status.value}")
                task.status = status
            return submission.model_copy(deep=True)

    async def edit_task(self, task_id: str, changes: dict) -> Task:
        """Administrative edit of task fields, status included."""
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            task = Task.model_validate({**state.task.model_dump(), **changes})
            record = task.to_record()
            del record["id"]
            await self._write(task_id, partial(self._store.update, TASKS_TABLE, task_id, record))
            state.task = task
            return task.model_copy(deep=True)

    async def delete_task(self, task_id: str):
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            for submission in state.by_student.values():
                await self._write(task_id, partial(self._store.delete, SUBMISSIONS_TABLE, submission.id))
            await self._write(task_id, partial(self._store.delete, TASKS_TABLE, task_id))
            self.invalidate(task_id)
            self._locks.pop(task_id, None)

    async def mark_in_progress(self, task_id: str) -> Task:
        return await self._apply(task_id, TaskEvent.START)

    async def commit_grades(self, task_id: str) -> Task:
        return await self._apply(task_id, TaskEvent.GRADE_COMMITTED)

    async def reset_status(self, task_id: str) -> Task:
        return await self._apply(task_id, TaskEvent.ADMIN_RESET)

    async def _apply(self, task_id: str, event: TaskEvent) -> Task:
        async with self._lock_for(task_id):
            state = await self._state(task_id)
            status = next_status(state.task.status, event)
            await self._write(
                task_id, partial(self._store.update, TASKS_TABLE, task_id, {"status": status.value})
            )
            if status != state.task.status:
                logger.info(f"Task {task_id} status {state.task.status.value} -> {status.value} ({event.value})")
            state.task.status = status
            return state.task.model_copy(deep=True)

    async def _write(self, task_id: str, write):
        try:
            return await run_in_threadpool(write)
        except PersistenceFailure:
            self.invalidate(task_id)
            raise
