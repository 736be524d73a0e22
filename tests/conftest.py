"""
Pytest configuration and shared fixtures.

Unit and service tests run against an in-memory SQLite database built from
the ORM metadata. Tests marked ``db`` need a real PostgreSQL reachable through
DATABASE_URL and are skipped unless RUN_DB_TESTS=1.
"""

import os
import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.funnel import OfferStatus, Stage, StageStatus
from app.db.base import Base
from app.db.session import get_db
from app.main import app as fastapi_app
from app.models.application import Application
from app.schemas.application import ApplicationCreate, StageTransitionRequest
from app.services.pipeline_service import PipelineService
from app.utils.time import utc_now

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: requires PostgreSQL")


def pytest_collection_modifyitems(config, items):
    run_db = os.environ.get("RUN_DB_TESTS") == "1"
    skip_db = pytest.mark.skip(reason="db tests skipped by default; set RUN_DB_TESTS=1 to enable")

    for item in items:
        if "db" in item.keywords and not run_db:
            item.add_marker(skip_db)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client bound to the app with get_db pointed at the test database."""

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://testserver") as http:
        yield http
    fastapi_app.dependency_overrides.clear()


def new_application_data(job_id=None) -> ApplicationCreate:
    return ApplicationCreate(
        candidate_id=uuid.uuid4(),
        job_id=job_id or uuid.uuid4(),
        resume_url="https://files.example.com/resumes/cv.pdf",
        source="careers-page",
    )


async def create_application(db, job_id=None):
    """Create and commit a fresh application (lands at HR_REVIEW/PENDING)."""
    service = PipelineService(db)
    application = await service.create_application(new_application_data(job_id))
    await db.commit()
    return application


async def advance_to(db, application_id, target: Stage, actor: str = "recruiter-1"):
    """Step an application forward one stage at a time until it reaches ``target``."""
    service = PipelineService(db)
    application = await service.get_application(application_id)
    order = list(Stage)
    while Stage(application.current_stage) != target:
        upcoming = order[order.index(Stage(application.current_stage)) + 1]
        change = StageTransitionRequest(
            to_stage=upcoming,
            status=StageStatus.PENDING,
            offer_status=OfferStatus.PENDING_TO_SEND if upcoming is Stage.OFFER else None,
        )
        application = await service.transition(application_id, change, actor=actor)
        await db.commit()
    return application


def make_orphan_application(stage: Stage, status: StageStatus, age: timedelta = timedelta(days=3), **fields) -> Application:
    """An application row written without any ledger, as legacy code paths did."""
    created_at = utc_now() - age
    return Application(
        id=uuid.uuid4(),
        candidate_id=uuid.uuid4(),
        job_id=uuid.uuid4(),
        current_stage=stage.value,
        current_stage_status=status.value,
        version=1,
        created_at=created_at,
        updated_at=created_at,
        **fields,
    )
