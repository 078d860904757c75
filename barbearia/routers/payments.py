from fastapi import APIRouter, Depends, HTTPException

from barbearia.models.appointment import AppointmentRead
from barbearia.models.payment import PaymentCreate
from barbearia.models.user import User
from barbearia.core.security import get_current_staff
from barbearia.routers.appointments import get_scheduling, unwrap
from barbearia.scheduling.facade import SchedulingFacade


router = APIRouter(prefix="/payments", tags=["payments"])


# =========================
# REGISTRAR PAGAMENTO (manual)
# barbeiro da agenda ou admin
# =========================
@router.post("/{appointment_id}", response_model=AppointmentRead)
def record_payment(
    appointment_id: int,
    payload: PaymentCreate,
    scheduling: SchedulingFacade = Depends(get_scheduling),
    current_user: User = Depends(get_current_staff),
):
    appt = unwrap(scheduling.get_appointment(appointment_id))

    if current_user.role == "barber" and appt.barber_id != current_user.id:
        raise HTTPException(status_code=403, detail="Sem permissão")

    return unwrap(
        scheduling.record_payment(
            appointment_id,
            method=payload.method,
            status=payload.status,
            amount=payload.amount,
        )
    )
