from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barbearia.database import get_session
from barbearia.models.business_hours import BusinessHours, BusinessHoursUpdate
from barbearia.models.user import User
from barbearia.core.security import get_current_barber

router = APIRouter(prefix="/business-hours", tags=["business-hours"])


@router.get("/")
def list_business_hours(
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    return session.exec(
        select(BusinessHours)
        .where(BusinessHours.barber_id == current_barber.id)
        .order_by(BusinessHours.weekday)
    ).all()


@router.put("/{weekday}")
def upsert_business_hours(
    weekday: int,
    payload: BusinessHoursUpdate,
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    """
    weekday: 0=segunda ... 6=domingo
    """
    if weekday < 0 or weekday > 6:
        raise HTTPException(status_code=400, detail="weekday deve ser 0..6")

    error = payload.validation_error()
    if error:
        raise HTTPException(status_code=400, detail=error)

    existing = session.exec(
        select(BusinessHours).where(
            BusinessHours.barber_id == current_barber.id,
            BusinessHours.weekday == weekday,
        )
    ).first()

    row = existing or BusinessHours(barber_id=current_barber.id, weekday=weekday)
    row.is_closed = payload.is_closed
    row.open_time = payload.open_time
    row.close_time = payload.close_time
    row.break_start = payload.break_start
    row.break_end = payload.break_end

    session.add(row)
    session.commit()
    session.refresh(row)
    return row
