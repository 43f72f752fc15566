"""
Service container — the collaborators one application instance works with.

Built once in app.main.create_app and stored on app.state; routers reach
them through the dependencies below.
"""

from dataclasses import dataclass

from fastapi import Request

from app.core.config import Settings
from app.core.database import get_supabase
from app.core.email import EmailNotifier
from app.services.grading_oracle import GradingOracle, OpenAIGradingOracle
from app.services.ledger import SubmissionLedger
from app.services.orchestrator import GradingOrchestrator
from app.services.record_store import InMemoryRecordStore, RecordStore, SupabaseRecordStore


@dataclass
class Services:
    store: RecordStore
    ledger: SubmissionLedger
    orchestrator: GradingOrchestrator
    notifier: EmailNotifier


def build_services(
    settings: Settings,
    store: RecordStore | None = None,
    oracle: GradingOracle | None = None,
    notifier: EmailNotifier | None = None,
) -> Services:
    if store is None:
        if settings.RECORD_STORE == "memory":
            store = InMemoryRecordStore()
        else:
            store = SupabaseRecordStore(get_supabase)
    if oracle is None:
        oracle = OpenAIGradingOracle(api_key=settings.OPENAI_API_KEY, model=settings.GRADING_MODEL)
    if notifier is None:
        notifier = EmailNotifier(
            api_key=settings.RESEND_API_KEY,
            from_email=settings.EMAIL_FROM,
            portal_url=settings.PORTAL_URL,
        )

    ledger = SubmissionLedger(store)
    orchestrator = GradingOrchestrator(
        ledger,
        oracle,
        timeout_seconds=settings.GRADING_TIMEOUT_SECONDS,
        max_retries=settings.GRADING_MAX_RETRIES,
    )
    return Services(store=store, ledger=ledger, orchestrator=orchestrator, notifier=notifier)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_store(request: Request) -> RecordStore:
    return get_services(request).store


def get_ledger(request: Request) -> SubmissionLedger:
    return get_services(request).ledger


def get_orchestrator(request: Request) -> GradingOrchestrator:
    return get_services(request).orchestrator


def get_notifier(request: Request) -> EmailNotifier:
    return get_services(request).notifier
