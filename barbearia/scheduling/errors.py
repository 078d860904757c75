"""
Erros do domínio de agendamento.

Cada erro tem um ``kind`` estável (usado pela API para escolher o status
HTTP) e ``retryable`` indicando se o chamador pode simplesmente tentar de
novo. ``SlotConflict``/``SlotUnavailable`` carregam a disponibilidade atual
para o chamador reapresentar os horários.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    kind = "scheduling_error"
    retryable = False

    def __init__(self, message: str, availability: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.availability = availability


class SlotConflict(SchedulingError):
    kind = "slot_conflict"
    retryable = True


class SlotUnavailable(SchedulingError):
    """Fora do expediente, na pausa, em bloqueio, feriado ou no passado."""

    kind = "slot_unavailable"
    retryable = True


class InvalidTransition(SchedulingError):
    kind = "invalid_transition"


class TransitionForbidden(SchedulingError):
    kind = "transition_forbidden"


class ProviderIncapable(SchedulingError):
    kind = "provider_incapable"


class DataSourceUnavailable(SchedulingError):
    kind = "data_source_unavailable"
    retryable = True


class NotFound(SchedulingError):
    kind = "not_found"


class InvalidInput(SchedulingError):
    kind = "invalid_input"
