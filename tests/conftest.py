import os
import uuid
from decimal import Decimal

# Settings are read on import, so the environment must be ready first.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from storefront.core.config import get_settings
from storefront.core.identity import OwnerRef
from storefront.database import get_session
from storefront.main import app
from storefront.models.test_kit import TestKit as Kit
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.test_kit_repo import TestKitRepository as KitRepository
from storefront.services.cart_store import CartStore

settings = get_settings()


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    app.dependency_overrides[get_session] = lambda: session
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def add_kit(session):
    """Insert a catalog row; returns the TestKit."""

    def _add_kit(
        name: str = "Basic Water Test",
        price: str = "49.99",
        stock: int = 10,
        is_active: bool = True,
        image_url: str | None = "https://cdn.example.com/kits/basic.png",
    ) -> Kit:
        kit = Kit(
            name=name,
            description=f"{name} kit",
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
            image_url=image_url,
        )
        session.add(kit)
        session.commit()
        session.refresh(kit)
        return kit

    return _add_kit


@pytest.fixture
def add_user(session):
    def _add_user(email: str = "river@example.com") -> User:
        user = User(id=uuid.uuid4(), email=email, full_name=email.split("@")[0])
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _add_user


@pytest.fixture
def make_store(session):
    """Build a CartStore with its own repository instances."""

    def _make_store(owner: OwnerRef | None = None) -> CartStore:
        return CartStore(
            session,
            owner or OwnerRef.anonymous(uuid.uuid4()),
            CartRepository(),
            KitRepository(),
        )

    return _make_store


def make_token(user_id: uuid.UUID, email: str) -> str:
    return jwt.encode(
        {"sub": str(user_id), "email": email, "aud": "authenticated"},
        settings.SUPABASE_JWT_SECRET,
        algorithm=settings.SUPABASE_JWT_ALG,
    )


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    """Authorization header carrying a freshly signed Supabase-style JWT."""

    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user.id, user.email)}"}

    return _auth_headers
