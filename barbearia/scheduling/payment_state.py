"""
Estado de pagamento exibido para um agendamento.

Única fonte dessa regra: telas e relatórios chamam ``resolve_payment_state``
em vez de recalcular. A ordem das regras é contrato (a primeira que casar
vence); por exemplo, pago antecipado + concluído é ``PAID_ADVANCE``, não
``PAID_AT_LOCATION``.
"""

from barbearia.models.appointment import Appointment
from barbearia.scheduling.states import AppointmentStatus, DisplayPaymentState, PaymentMethod, PaymentStatus

LABELS = {
    DisplayPaymentState.UNPAID: "Pagamento pendente",
    DisplayPaymentState.PAID_ADVANCE: "Pago antecipado",
    DisplayPaymentState.PAID: "Pago",
    DisplayPaymentState.PENDING: "Aguardando pagamento",
    DisplayPaymentState.FAILED: "Pagamento falhou",
    DisplayPaymentState.REFUNDED: "Reembolsado",
    DisplayPaymentState.PAY_AT_LOCATION: "Pagar no local",
    DisplayPaymentState.PAID_AT_LOCATION: "Pago no local",
    DisplayPaymentState.CANCELLED: "Cancelado",
}

_EXPLICIT = {
    PaymentStatus.PAID.value: DisplayPaymentState.PAID,
    PaymentStatus.PENDING.value: DisplayPaymentState.PENDING,
    PaymentStatus.FAILED.value: DisplayPaymentState.FAILED,
    PaymentStatus.REFUNDED.value: DisplayPaymentState.REFUNDED,
}


def resolve_payment_state(appointment: Appointment) -> DisplayPaymentState:
    status = appointment.status
    method = appointment.payment_method
    payment_status = appointment.payment_status

    if (
        status == AppointmentStatus.COMPLETED.value
        and payment_status is None
        and method != PaymentMethod.ADVANCE.value
    ):
        return DisplayPaymentState.UNPAID

    if method == PaymentMethod.ADVANCE.value:
        return DisplayPaymentState.PAID_ADVANCE

    if payment_status in _EXPLICIT:
        return _EXPLICIT[payment_status]

    if status in (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value):
        return DisplayPaymentState.PAY_AT_LOCATION
    if status == AppointmentStatus.COMPLETED.value:
        return DisplayPaymentState.PAID_AT_LOCATION
    if status == AppointmentStatus.CANCELLED.value:
        return DisplayPaymentState.CANCELLED

    return DisplayPaymentState.PAY_AT_LOCATION


def payment_state_label(state: DisplayPaymentState) -> str:
    return LABELS[state]
