from datetime import date, datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from barbearia.database import get_session
from barbearia.models.appointment import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentReschedule,
    AppointmentStatusUpdate,
)
from barbearia.models.user import User
from barbearia.core.security import get_current_user
from barbearia.scheduling.availability import AvailabilityResult
from barbearia.scheduling.clock import as_utc, business_tz
from barbearia.scheduling.facade import OperationResult, SchedulingFacade
from barbearia.scheduling.sql_store import SqlSchedulingStore


router = APIRouter(prefix="/appointments", tags=["appointments"])


ERROR_STATUS = {
    "slot_conflict": status.HTTP_409_CONFLICT,
    "slot_unavailable": status.HTTP_409_CONFLICT,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "transition_forbidden": status.HTTP_403_FORBIDDEN,
    "provider_incapable": 422,
    "invalid_input": 422,
    "not_found": status.HTTP_404_NOT_FOUND,
    "data_source_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_scheduling(session: Session = Depends(get_session)) -> SchedulingFacade:
    return SchedulingFacade(SqlSchedulingStore(session))


def unwrap(result: OperationResult):
    """Devolve ``result.data`` ou levanta HTTPException com o erro tipado."""
    if result.ok:
        return result.data
    error = result.error
    raise HTTPException(
        status_code=ERROR_STATUS.get(error.kind, status.HTTP_400_BAD_REQUEST),
        detail=error.model_dump(mode="json"),
    )


def to_instant(value: datetime) -> datetime:
    """Sem fuso = horário civil da barbearia."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=business_tz())
    return as_utc(value)


def _check_can_read(appt: AppointmentRead, user: User) -> None:
    if user.role == "admin":
        return
    if user.role == "client" and appt.client_id == user.id:
        return
    if user.role == "barber" and appt.barber_id == user.id:
        return
    raise HTTPException(status_code=403, detail="Sem permissão")


# =========================
# HORÁRIOS DISPONÍVEIS (barbeiro + serviço + dia)
# GET /appointments/available?barber_id=2&service_id=1&day=2026-02-14
# =========================
@router.get("/available", response_model=AvailabilityResult)
def get_available_slots(
    barber_id: int,
    service_id: int,
    day: date,
    scheduling: SchedulingFacade = Depends(get_scheduling),
):
    return unwrap(scheduling.list_available_times(barber_id, service_id, day))


# =========================
# CRIAR AGENDAMENTO (CLIENTE)
# =========================
@router.post("/", status_code=status.HTTP_201_CREATED, response_model=AppointmentRead)
def create_appointment(
    payload: AppointmentCreate,
    scheduling: SchedulingFacade = Depends(get_scheduling),
    current_user: User = Depends(get_current_user),
):
    # Somente cliente agenda
    if current_user.role != "client":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas clientes podem criar agendamentos",
        )

    return unwrap(
        scheduling.book_appointment(
            client_id=current_user.id,
            service_id=payload.service_id,
            instant=to_instant(payload.appointment_time),
            barber_id=payload.barber_id,
            payment_method=payload.payment_method,
            observations=payload.observations,
        )
    )


# =========================
# LISTAR AGENDAMENTOS
# - cliente: só os próprios
# - barbeiro: só os da agenda dele
# - admin: todos
# =========================
@router.get("/", response_model=List[AppointmentRead])
def list_appointments(
    scheduling: SchedulingFacade = Depends(get_scheduling),
    current_user: User = Depends(get_current_user),
):
    if current_user.role == "client":
        return unwrap(scheduling.list_appointments(client_id=current_user.id))

    if current_user.role == "barber":
        return unwrap(scheduling.list_appointments(barber_id=current_user.id))

    if current_user.role == "admin":
        return unwrap(scheduling.list_appointments())

    raise HTTPException(status_code=403, detail="Sem permissão")


@router.get("/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: int,
    scheduling: SchedulingFacade = Depends(get_scheduling),
    current_user: User = Depends(get_current_user),
):
    appt = unwrap(scheduling.get_appointment(appointment_id))
    _check_can_read(appt, current_user)
    return appt


# =========================
# MUDAR STATUS
# confirmar / iniciar / finalizar / cancelar
# =========================
@router.patch("/{appointment_id}/status", response_model=AppointmentRead)
def change_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    scheduling: SchedulingFacade = Depends(get_scheduling),
    current_user: User = Depends(get_current_user),
):
    return unwrap(
        scheduling.change_appointment_status(
            appointment_id,
            payload.status,
            actor_role=current_user.role,
            actor_id=current_user.id,
            reason=payload.reason,
        )
    )


# =========================
# REAGENDAR
# =========================
@router.patch("/{appointment_id}/reschedule", response_model=AppointmentRead)
def reschedule(
    appointment_id: int,
    payload: AppointmentReschedule,
    scheduling: SchedulingFacade = Depends(get_scheduling),
    current_user: User = Depends(get_current_user),
):
    return unwrap(
        scheduling.reschedule_appointment(
            appointment_id,
            to_instant(payload.appointment_time),
            actor_role=current_user.role,
            actor_id=current_user.id,
        )
    )
