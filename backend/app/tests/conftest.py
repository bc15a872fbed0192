from collections.abc import Generator
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app import crud
from app.api.deps import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import Municipality, User, UserCreate, UserRole


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
def session_fixture(engine) -> Generator[Session, None, None]:
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine) -> Generator[TestClient, None, None]:
    def get_db_override() -> Generator[Session, None, None]:
        with Session(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_db] = get_db_override
    # No context manager: the lifespan would try to seed the real database.
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(session: Session, email: str, **kwargs) -> User:
    return crud.create_user(
        session=session,
        user_create=UserCreate(email=email, password="password123", **kwargs),
    )


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def municipality(session: Session) -> Municipality:
    row = Municipality(name_en="Riyadh", name_ar="الرياض", region="Riyadh")
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


@pytest.fixture
def other_municipality(session: Session) -> Municipality:
    row = Municipality(name_en="Jeddah", region="Makkah")
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


@pytest.fixture
def superuser(session: Session) -> User:
    return make_user(session, "admin@example.com", is_superuser=True)


@pytest.fixture
def staff_user(session: Session, municipality: Municipality) -> User:
    user = make_user(session, "staff@riyadh.gov.sa", municipality_id=municipality.id)
    session.add(
        UserRole(
            user_id=user.id,
            user_email=user.email,
            role="municipality_staff",
            municipality_id=municipality.id,
        )
    )
    session.commit()
    return user


@pytest.fixture
def citizen(session: Session) -> User:
    return make_user(session, "citizen@example.com", full_name="Sara")


@pytest.fixture
def superuser_headers(superuser: User) -> dict[str, str]:
    return auth_headers(superuser)


@pytest.fixture
def staff_headers(staff_user: User) -> dict[str, str]:
    return auth_headers(staff_user)


@pytest.fixture
def citizen_headers(citizen: User) -> dict[str, str]:
    return auth_headers(citizen)
