"""
Test configuration and shared fixtures for the LMS report service test suite.
Provides database setup, fake LMS collaborators and compilation helpers.
"""

import os

# Keep the app factory away from the on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from typing import Dict, List, Optional, Set, Tuple
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.app import create_app
from app.core.database import Base, get_db
from app.core.dependencies import get_integrations_factory
from app.reports.compiler import ReportCompiler
from app.reports.constants import AdditionalFieldEntity, UserLevel
from app.reports.interfaces import IdSelection
from app.reports.registry import get_report_type_config
from app.reports.schemas import AdditionalField, PlatformFeatures, ReportDefinition, SessionContext
from app.reports.translations import StaticTranslationService


# ===== FAKE COLLABORATORS =====


class FakeCatalogue:
    """In-memory additional-field catalogue counting its calls."""

    def __init__(
        self,
        fields: Optional[Dict[AdditionalFieldEntity, List[AdditionalField]]] = None,
        missing: Optional[Set[Tuple[AdditionalFieldEntity, int]]] = None,
    ):
        self.fields = fields or {}
        self.missing = missing or set()
        self.field_calls: List[AdditionalFieldEntity] = []
        self.exists_calls: List[Tuple[AdditionalFieldEntity, int]] = []

    async def get_additional_fields(self, entity):
        self.field_calls.append(entity)
        return list(self.fields.get(entity, []))

    async def additional_field_exists(self, entity, field_id):
        self.exists_calls.append((entity, field_id))
        return (entity, field_id) not in self.missing


class FakeVisibility:
    """Visibility resolver returning fixed selections, everything by default."""

    def __init__(self, **selections: IdSelection):
        self.selections = selections
        self.calls: List[str] = []

    async def _resolve(self, entity):
        self.calls.append(entity)
        return self.selections.get(entity, IdSelection.everything())

    async def resolve_users(self, definition, check_visibility):
        return await self._resolve("users")

    async def resolve_courses(self, definition, check_visibility):
        return await self._resolve("courses")

    async def resolve_groups(self, definition, check_visibility):
        return await self._resolve("groups")

    async def resolve_certifications(self, definition, check_visibility):
        return await self._resolve("certifications")

    async def resolve_learning_plans(self, definition, check_visibility):
        return await self._resolve("learning_plans")


# ===== DATABASE SETUP =====


@pytest.fixture(scope="session")
def db_engine():
    """Create in-memory SQLite engine for the report store"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from app.reports.models import LegacyReport, LegacyVisibilityRule, StoredReportDefinition  # noqa: F401
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session, emptied after each test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=db_engine)
        Base.metadata.create_all(bind=db_engine)


# ===== LMS FIXTURES =====


@pytest.fixture
def user_fields() -> List[AdditionalField]:
    return [
        AdditionalField(id=1, title="Department", type="dropdown", options={"10": "Sales", "11": "Support"}),
        AdditionalField(id=2, title="Hired On", type="date"),
        AdditionalField(id=3, title="Badge Number", type="textfield"),
    ]


@pytest.fixture
def catalogue(user_fields) -> FakeCatalogue:
    return FakeCatalogue(
        fields={
            AdditionalFieldEntity.USER: user_fields,
            AdditionalFieldEntity.COURSE: [AdditionalField(id=7, title="Cost Center", type="textfield")],
            AdditionalFieldEntity.LEARNING_PLAN: [AdditionalField(id=4, title="Track", type="textfield")],
        }
    )


@pytest.fixture
def visibility() -> FakeVisibility:
    return FakeVisibility()


@pytest.fixture
def session_context() -> SessionContext:
    """God admin session with every plugin enabled"""
    return SessionContext(
        platform="acme.lms.test",
        user_id=12301,
        user_level=UserLevel.GOD_ADMIN,
        features=PlatformFeatures(
            certification=True,
            ecommerce=True,
            e_signature=True,
            flow=True,
            flow_ms_teams=True,
            content_partners=True,
            datalake_v3=True,
            lp_statistics_report=True,
        ),
    )


@pytest.fixture
def translations() -> StaticTranslationService:
    return StaticTranslationService()


@pytest.fixture
def make_definition(session_context):
    """Default definition of a report type with the given fields"""

    def _make(report_type, fields=None, **updates) -> ReportDefinition:
        config = get_report_type_config(report_type, session_context)
        definition = config.default_definition(session_context, title="Test report")
        if fields is not None:
            definition.fields = fields
        for key, value in updates.items():
            setattr(definition, key, value)
        return definition

    return _make


@pytest.fixture
def compile_sql(session_context, catalogue, visibility, translations):
    """Compile a definition with the fake collaborators"""

    async def _compile(definition, dialect="athena", session=None, **options) -> str:
        session = session or session_context
        config = get_report_type_config(definition.type, session)
        compiler = ReportCompiler(
            config,
            definition,
            session,
            options.pop("catalogue", catalogue),
            options.pop("visibility", visibility),
            translations,
        )
        return await compiler.compile(dialect, **options)

    return _compile


# ===== API CLIENT =====


@pytest.fixture
def client(db_session, catalogue, visibility):
    """Create FastAPI test client with database and LMS overrides"""
    app = create_app()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    def override_get_integrations_factory():
        return lambda session: (catalogue, visibility)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_integrations_factory] = override_get_integrations_factory

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def api_headers():
    """Standard API headers for testing"""
    return {
        "Content-Type": "application/json",
        "Accept": "application/json"
    }
