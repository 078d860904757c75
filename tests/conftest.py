from datetime import datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from barbearia.core.security import get_password_hash
from barbearia.database import create_db_and_tables, get_session
from barbearia.main import app
from barbearia.models.business_hours import BusinessHours
from barbearia.models.service import Service
from barbearia.models.user import User
from barbearia.scheduling.clock import business_tz

PASSWORD = "123456"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def shop(session):
    """Barbeiro (08-18 todos os dias), cliente, admin e dois serviços."""
    users = {
        "barber": User(name="Barbeiro", email="barbeiro@x.com", role="barber", password_hash=get_password_hash(PASSWORD)),
        "client": User(name="Cliente", email="cliente@x.com", role="client", password_hash=get_password_hash(PASSWORD)),
        "other": User(name="Outro", email="outro@x.com", role="client", password_hash=get_password_hash(PASSWORD)),
        "admin": User(name="Admin", email="admin@x.com", role="admin", password_hash=get_password_hash(PASSWORD)),
    }
    session.add_all(users.values())
    session.commit()
    ids = {key: user.id for key, user in users.items()}

    for weekday in range(7):
        session.add(BusinessHours(barber_id=ids["barber"], weekday=weekday, open_time=time(8, 0), close_time=time(18, 0)))
    corte = Service(name="Corte", duration_minutes=30, price=40.0, barber_id=ids["barber"])
    combo = Service(name="Corte + Barba", duration_minutes=60, price=65.0, category="combo")
    session.add_all([corte, combo])
    session.commit()
    ids["corte"] = corte.id
    ids["combo"] = combo.id
    return ids


def login(client, email):
    response = client.post("/auth/login", data={"username": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def headers(client, shop):
    return {
        "barber": login(client, "barbeiro@x.com"),
        "client": login(client, "cliente@x.com"),
        "other": login(client, "outro@x.com"),
        "admin": login(client, "admin@x.com"),
    }


@pytest.fixture
def day():
    """Dia civil uma semana à frente."""
    return (datetime.now(business_tz()) + timedelta(days=7)).date()
