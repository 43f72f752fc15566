"""
Shared fixtures: in-memory record store seeded with one user per role,
a scripted grading oracle, a recording notifier and an API client whose
current user is switched with `login`.
Zero network calls.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.email import EmailNotifier
from app.core.errors import NotificationFailure
from app.core.security import get_current_user, profile_to_user
from app.core.services import build_services
from app.main import create_app
from app.schemas.tasks import Task
from app.services.grading_oracle import GradingOracle, parse_oracle_response
from app.services.ledger import SubmissionLedger
from app.services.record_store import InMemoryRecordStore

PROFILES = [
    {"id": "admin-1", "email": "admin@kenova.edu", "name": "Ada Admin", "role": "admin", "status": "active"},
    {"id": "teacher-1", "email": "teacher@kenova.edu", "name": "Tom Teacher", "role": "teacher", "status": "active"},
    {"id": "tutor-1", "email": "tutor@kenova.edu", "name": "Tess Tutor", "role": "tutor", "status": "active"},
    {"id": "parent-1", "email": "parent@kenova.edu", "name": "Pat Parent", "role": "parent", "status": "active"},
    {"id": "student-1", "email": "juan@kenova.edu", "name": "Juan", "role": "student", "status": "active",
     "parent_id": "parent-1"},
    {"id": "student-2", "email": "maria@kenova.edu", "name": "Maria", "role": "student", "status": "active"},
    {"id": "student-3", "email": "luis@kenova.edu", "name": "Luis", "role": "student", "status": "active"},
    {"id": "pending-1", "email": "new@kenova.edu", "name": "Nina New", "role": "student", "status": "pending"},
]

RUBRIC = [
    {"id": "html_structure", "description": "HTML structure", "points": 30},
    {"id": "css_styles", "description": "CSS styles", "points": 40},
    {"id": "responsiveness", "description": "Responsiveness", "points": 20},
    {"id": "creativity", "description": "Creativity", "points": 10},
]


class FakeOracle(GradingOracle):
    """
    Scripted oracle. `script[content]` is a payload dict, an exception, or a
    list of those consumed one per call. Unscripted content scores full marks.
    """

    def __init__(self):
        self.calls = []
        self.script = {}

    async def grade(self, rubric, content):
        self.calls.append(content)
        outcome = self.script.get(content)
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if outcome is None:
            details = {c.id: c.points for c in rubric}
            outcome = {"score_details": details, "total_score": sum(details.values()), "feedback": "Great work"}
        if isinstance(outcome, Exception):
            raise outcome
        return parse_oracle_response(outcome, rubric)


class RecordingNotifier(EmailNotifier):
    def __init__(self):
        super().__init__(api_key="test-key", from_email="Portal <test@kenova.edu>", portal_url="https://portal.test")
        self.sent = []
        self.fail = False

    async def send(self, to_email, subject, body_html):
        if self.fail:
            raise NotificationFailure("Email provider rejected the message (500)")
        self.sent.append({"to": to_email, "subject": subject, "html": body_html})
        return {"sent": True, "id": f"email-{len(self.sent)}"}


@pytest.fixture
def store():
    return InMemoryRecordStore(seed={"profiles": PROFILES})


@pytest.fixture
def ledger(store):
    return SubmissionLedger(store)


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_task(store):
    """Insert a task row and return it as a Task."""

    def _make_task(**overrides):
        record = {
            "id": str(uuid.uuid4()),
            "title": "Final HTML/CSS project",
            "type": "collective",
            "group_id": None,
            "rubric_structured": RUBRIC,
            "assigned_to": ["student-1", "student-2", "student-3"],
            "status": "pending",
            "allow_late_submissions": True,
            "due_date": None,
            "max_score": 100,
        }
        record.update(overrides)
        return Task.from_record(store.insert("tasks", record))

    return _make_task


@pytest.fixture
def services(store, oracle, notifier):
    return build_services(settings, store=store, oracle=oracle, notifier=notifier)


@pytest.fixture
def current_user():
    return {"user": None}


@pytest.fixture
def client(services, current_user):
    app = create_app(services)
    app.dependency_overrides[get_current_user] = lambda: current_user["user"]
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(store, current_user):
    def _login(profile_id):
        current_user["user"] = profile_to_user(store.get("profiles", profile_id))
        return current_user["user"]

    return _login
