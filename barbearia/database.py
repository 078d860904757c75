import logging

from sqlmodel import Session, SQLModel, create_engine

from barbearia.core.config import DATABASE_URL, DB_STATEMENT_TIMEOUT_MS

# registra as tabelas no metadata
from barbearia.models import appointment, barber_settings, business_hours, holiday, payment, service, time_block, user  # noqa: F401

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": DB_STATEMENT_TIMEOUT_MS / 1000}
    if url.startswith("postgresql"):
        return {"options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}"}
    return {}


engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL), pool_pre_ping=True)


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)
    logger.info("Tabelas verificadas/criadas")


def get_session():
    with Session(engine) as session:
        yield session
