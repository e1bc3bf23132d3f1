import os

# La configuración se lee al importar app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "clave-de-pruebas"
os.environ["RESEND_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["FIREBASE_SERVICE_ACCOUNT_JSON"] = ""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.main import app
from app.api.routes.auth import get_password_reset_service
from app.core.database import Base, SessionLocal, engine, get_db
from app.core.security import security
from app.models.user import User
from app.services.notification_service import NotificationDispatcher
from app.services.password_reset_service import PasswordResetService


class FrozenClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 1, 15, 10, 0, 0))


class RecordingDispatcher(NotificationDispatcher):
    """Guarda los códigos en lugar de enviarlos"""

    def __init__(self):
        self.sent = []
        self.message_id = "msg-123"

    def dispatch(self, channel, identifier, code, name=None):
        self.sent.append((channel, identifier, code))
        return self.message_id

    @property
    def last_code(self):
        return self.sent[-1][2]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def password_mirror():
    return MagicMock(return_value=False)


@pytest.fixture
def make_user(db):
    def _make(
        email="user@example.com",
        phone=None,
        password="OldPass123!",
        role="client",
        is_active=True,
        name="Usuario Prueba",
    ):
        user = User(
            name=name,
            email=email,
            phone=phone,
            hashed_password=security.hash_password(password),
            role_name=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def service(db, dispatcher, clock, password_mirror):
    return PasswordResetService(db, dispatcher=dispatcher, clock=clock, password_mirror=password_mirror)


@pytest.fixture
def client(dispatcher, clock, password_mirror):
    def override_service(db: Session = Depends(get_db)):
        return PasswordResetService(db, dispatcher=dispatcher, clock=clock, password_mirror=password_mirror)

    app.dependency_overrides[get_password_reset_service] = override_service
    with TestClient(app) as test_client:
        yield test_client
