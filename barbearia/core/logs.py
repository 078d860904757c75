"""
Configuração de logging da API.

- logs de aplicação (texto) em ``%(levelname)s:%(asctime)s:%(name)s:%(message)s``
- logger ``audit``: um documento JSON por evento de negócio (agendamento
  criado, status alterado, reagendado, pagamento registrado)
"""

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from barbearia.core import config

audit_logger = logging.getLogger("audit")

_configured = False


def configure_logging(level: Optional[str] = None, audit_file: Optional[str] = None) -> None:
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(levelname)s:%(asctime)s:%(name)s:%(message)s",
    )

    audit_file = audit_file or config.AUDIT_LOG_FILE
    if audit_file:
        handler: logging.Handler = RotatingFileHandler(audit_file, maxBytes=5 * 1024 * 1024, backupCount=2)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(logging.INFO)
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False

    _configured = True


def audit(event_type: str, **details: Any) -> None:
    """Grava um evento de auditoria (JSON) para rastreabilidade de negócio."""
    payload: Dict[str, Any] = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "level": "AUDIT",
        "event_type": event_type,
        "service": "barbearia-agenda",
        "details": details,
    }
    audit_logger.info(json.dumps(payload, default=str))
