"""Shared test configuration and fixtures for MediCore Forms tests

Database and Redis tests run against real Postgres and Redis containers. The
schema comes from the Alembic migrations, not from SQLModel metadata.
"""

import logging
import os
import subprocess
import sys
import uuid
from pathlib import Path

# medicore_forms.models.database refuses to import without a URL. Every test
# goes through the container-backed fixtures below instead of this engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlmodel import Session, create_engine
from testcontainers.postgres import PostgresContainer
from testcontainers.redis import RedisContainer

from medicore_forms.auth.dependencies import get_current_doctor
from medicore_forms.auth.models import Doctor
from medicore_forms.exceptions import StorageError
from medicore_forms.main import app
from medicore_forms.models.database import get_db, get_redis
from medicore_forms.models.field_type import build_field_type_registry
from medicore_forms.routers.dependencies import get_email_service
from medicore_forms.services.builder_state_manager import BuilderStateManager
from medicore_forms.services.form_builder import FormBuilder
from medicore_forms.services.form_service import FormService
from medicore_forms.services.storage_service import get_blob_client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PROJECT_DIR = Path(__file__).parent.parent
TABLES = ("form_submissions", "form_fields", "forms")


class InMemoryBlobClient:
    """Object store double recording uploads; names in fail_on make upload fail"""

    def __init__(self, fail_on=()):
        self.objects = {}
        self.deleted = []
        self.fail_on = set(fail_on)

    def public_url(self, path):
        return f"http://blobs.test/form-attachments/{path}"

    def upload(self, path, data, content_type):
        if any(path.endswith(name) for name in self.fail_on):
            raise StorageError(f"Failed to upload file: {path}")
        self.objects[path] = (data, content_type)
        return self.public_url(path)

    def delete(self, path):
        self.objects.pop(path, None)
        self.deleted.append(path)


@pytest.fixture(scope="session")
def postgres_container():
    """Create a PostgreSQL test container for the test session"""
    with PostgresContainer("postgres:16") as postgres:
        _run_migrations(postgres.get_connection_url())
        yield postgres


def _run_migrations(database_url: str):
    """Run Alembic migrations on the test database"""
    env = os.environ.copy()
    env["DATABASE_URL"] = database_url

    result = subprocess.run(
        [
            sys.executable,
            "-m",
            "alembic",
            "-c",
            str(PROJECT_DIR / "alembic.ini"),
            "upgrade",
            "head",
        ],
        cwd=PROJECT_DIR,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    if result.returncode != 0:
        logger.error(f"Alembic migration failed: {result.stderr}")
        raise RuntimeError(f"Failed to run migrations: {result.stderr}")
    logger.info("Database schema setup completed successfully")


@pytest.fixture(scope="session")
def redis_container():
    with RedisContainer("redis:7") as container:
        yield container


@pytest.fixture
def registry():
    return build_field_type_registry()


@pytest.fixture(scope="session")
def engine(postgres_container):
    test_engine = create_engine(postgres_container.get_connection_url())
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def _db_session(engine):
    """Private DB session for fixtures only.

    Prefer the service fixtures below in tests. Every table is emptied
    afterwards so tests can reuse slugs and count rows.
    """
    session = Session(engine)
    yield session
    session.rollback()
    session.close()
    with engine.begin() as connection:
        connection.execute(text(f"TRUNCATE {', '.join(TABLES)} CASCADE"))


@pytest.fixture
def doctor_id():
    return f"doctor-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def form_service(_db_session, doctor_id):
    return FormService(_db_session, doctor_id)


@pytest.fixture
def redis_client(redis_container):
    """Client for the test Redis; the database is flushed after each test"""
    client = redis_container.get_client(decode_responses=True)
    yield client
    client.flushdb()
    client.close()


@pytest.fixture
def blob_client_factory():
    return InMemoryBlobClient


@pytest.fixture
def blob_client(blob_client_factory):
    return blob_client_factory()


@pytest.fixture
def state_manager(redis_client, registry, doctor_id):
    return BuilderStateManager(redis_client, registry, doctor_id, ttl_seconds=1800)


@pytest.fixture
def make_form(registry, form_service):
    """Build and save a form through the builder.

    Each field is a dict of draft changes that must include field_type.
    """

    def _make_form(title="Patient Intake", fields=None, **settings):
        builder = FormBuilder(registry)
        builder.set_title(title)
        if settings:
            builder.update_settings(settings)
        for changes in fields or [{"field_type": "text", "label": "Full Name"}]:
            changes = dict(changes)
            index = len(builder.fields)
            builder.add_field(changes.pop("field_type"))
            if changes:
                builder.update_field(index, changes)
        form = builder.save(form_service)
        return form, form_service.get_fields(form.id)

    return _make_form


@pytest.fixture
def authenticated_client(_db_session, redis_client, blob_client, doctor_id):
    """Test client with the doctor, database, Redis and object store overridden"""

    # Store original overrides to restore them later
    original_overrides = app.dependency_overrides.copy()

    async def mock_get_current_doctor():
        return Doctor(doctor_id=doctor_id)

    def get_test_db():
        return _db_session

    app.dependency_overrides.clear()
    app.dependency_overrides[get_current_doctor] = mock_get_current_doctor
    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_redis] = lambda: redis_client
    app.dependency_overrides[get_blob_client] = lambda: blob_client
    app.dependency_overrides[get_email_service] = lambda: None

    client = TestClient(app)

    yield client

    # Completely restore original state
    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)
