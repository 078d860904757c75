from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    ADVANCE = "advance"  # pago antecipado
    LOCAL = "local"
    CASH = "cash"
    CARD = "card"
    PIX = "pix"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"
    REFUNDED = "refunded"


class DisplayPaymentState(str, Enum):
    UNPAID = "UNPAID"
    PAID_ADVANCE = "PAID_ADVANCE"
    PAID = "PAID"
    PENDING = "PENDING"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    PAY_AT_LOCATION = "PAY_AT_LOCATION"
    PAID_AT_LOCATION = "PAID_AT_LOCATION"
    CANCELLED = "CANCELLED"


class ActorRole(str, Enum):
    CLIENT = "client"
    BARBER = "barber"
    ADMIN = "admin"


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})

# pending -> confirmed -> in_progress -> completed; cancelled a partir de pending/confirmed
ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED}),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

# o que cada papel pode pedir (dentro das transições legais)
ROLE_TARGETS = {
    ActorRole.CLIENT: frozenset({AppointmentStatus.CANCELLED}),
    ActorRole.BARBER: frozenset(AppointmentStatus),
    ActorRole.ADMIN: frozenset(AppointmentStatus),
}

RESCHEDULABLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]
