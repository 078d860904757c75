import os
from datetime import time
from pathlib import Path

from dotenv import load_dotenv

# .env na raiz do projeto
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _time(name: str, default: str) -> time:
    return time.fromisoformat(os.getenv(name, default))


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barbearia.db")
# PostgreSQL: statement_timeout; SQLite: busy timeout
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

# =========================
# JWT
# =========================
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# =========================
# AGENDA
# =========================
# fuso civil da barbearia (horário comercial é interpretado nele)
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Sao_Paulo")
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))

# janela exibida ao cliente
DISPLAY_WINDOW_START = _time("DISPLAY_WINDOW_START", "08:00")
DISPLAY_WINDOW_END = _time("DISPLAY_WINDOW_END", "18:00")

# grade de contingência quando a leitura falha
AVAILABILITY_FALLBACK_ENABLED = _bool("AVAILABILITY_FALLBACK_ENABLED", "true")
FALLBACK_SLOT_MINUTES = int(os.getenv("FALLBACK_SLOT_MINUTES", "30"))

# política padrão do barbeiro (sem linha em BarberSettings)
DEFAULT_AUTO_CONFIRM = _bool("DEFAULT_AUTO_CONFIRM", "false")
DEFAULT_CANCELLATION_CUTOFF_MINUTES = int(os.getenv("DEFAULT_CANCELLATION_CUTOFF_MINUTES", "120"))
DEFAULT_RESCHEDULE_CUTOFF_MINUTES = int(os.getenv("DEFAULT_RESCHEDULE_CUTOFF_MINUTES", "720"))

# =========================
# LOGS
# =========================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE")  # vazio = stderr
