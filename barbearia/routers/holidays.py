from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from barbearia.database import get_session
from barbearia.models.holiday import Holiday, HolidayCreate
from barbearia.models.user import User
from barbearia.core.security import get_current_staff

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.get("/")
def list_holidays(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_staff),
):
    query = select(Holiday).order_by(Holiday.day)
    if current_user.role == "barber":
        query = query.where((Holiday.barber_id == None) | (Holiday.barber_id == current_user.id))  # noqa: E711
    return session.exec(query).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_holiday(
    holiday: HolidayCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_staff),
):
    # barbeiro só fecha a própria agenda; admin pode fechar a casa toda
    if current_user.role == "barber":
        holiday.barber_id = current_user.id

    db_holiday = Holiday(day=holiday.day, name=holiday.name, barber_id=holiday.barber_id)
    session.add(db_holiday)
    session.commit()
    session.refresh(db_holiday)
    return db_holiday


@router.delete("/{holiday_id}")
def delete_holiday(
    holiday_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_staff),
):
    holiday = session.get(Holiday, holiday_id)
    if not holiday:
        raise HTTPException(status_code=404, detail="Feriado não encontrado")

    if current_user.role == "barber" and holiday.barber_id != current_user.id:
        raise HTTPException(status_code=403, detail="Sem permissão")

    session.delete(holiday)
    session.commit()
    return {"message": "Feriado removido"}
