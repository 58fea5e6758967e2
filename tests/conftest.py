"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. The API client runs the
FastAPI app in-process with the database, object storage and evidence
analyzer dependencies overridden.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret")

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Set

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.exceptions import PersistenceError
from app.core.security import create_access_token
from app.core.storage import StorageBackend, get_storage
from app.database import Base, get_db
from app.main import app
from app.models.courier import Courier, Delivery, DeliveryStatus
from app.services.evidence_service import EvidenceAnalyzer, get_evidence_analyzer


# =============================================================================
# COLLABORATOR DOUBLES
# =============================================================================

class FakeStorage(StorageBackend):
    """In-memory object storage. Uploads of a photo type in fail_on raise."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail_on: Set[str] = set()

    async def put(self, path: str, content: bytes, content_type: str = "image/jpeg") -> str:
        filename = path.rsplit("/", 1)[-1]
        for photo_type in self.fail_on:
            if filename.startswith(f"{photo_type}_"):
                raise PersistenceError(f"Upload of {path} rejected by storage")
        self.objects[path] = content
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"https://storage.test/delivery-proofs/{path}"


class FixedAnalyzer(EvidenceAnalyzer):
    """Analyzer returning the same confidence for every photo."""

    def __init__(self, confidence: float = 0.9):
        self.confidence = confidence
        self.calls = []

    async def analyze(self, photo_url: str, photo_type: str) -> Dict[str, Any]:
        self.calls.append((photo_url, photo_type))
        return {"has_package": True, "has_person": False, "confidence": self.confidence}


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def analyzer():
    return FixedAnalyzer()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def make_courier(db):
    async def _make(
        full_name: str = "Awa Kone",
        phone: Optional[str] = "+225 07 00 00 00 01",
        avatar_url: Optional[str] = "https://cdn.test/awa.jpg",
        is_identity_verified: bool = False,
        joined_days_ago: int = 0,
    ) -> Courier:
        courier = Courier(
            full_name=full_name,
            phone=phone,
            avatar_url=avatar_url,
            is_identity_verified=is_identity_verified,
            created_at=datetime.now(timezone.utc) - timedelta(days=joined_days_ago),
        )
        db.add(courier)
        await db.commit()
        return courier
    return _make


@pytest.fixture
def make_delivery(db):
    async def _make(
        courier: Courier,
        status: DeliveryStatus = DeliveryStatus.IN_TRANSIT,
        is_late: bool = False,
        customer_rating: Optional[int] = None,
        **fields,
    ) -> Delivery:
        delivery = Delivery(
            courier_id=courier.id,
            status=status.value,
            is_late=is_late,
            customer_rating=customer_rating,
            **fields,
        )
        db.add(delivery)
        await db.commit()
        return delivery
    return _make


@pytest.fixture
def auth_headers():
    def _headers(courier_id: uuid.UUID) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(courier_id)}"}
    return _headers


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
async def client(session_factory, storage, analyzer):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_evidence_analyzer] = lambda: analyzer

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
