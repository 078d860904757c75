from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbearia.core import config
from barbearia.database import get_session
from barbearia.models.barber_settings import BarberSettings, BarberSettingsBase, BarberSettingsUpdate
from barbearia.models.user import User
from barbearia.core.security import get_current_barber

router = APIRouter(prefix="/barber-settings", tags=["barber-settings"])


@router.get("/", response_model=BarberSettingsBase)
def get_settings(
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    settings = session.get(BarberSettings, current_barber.id)
    if settings is None:
        return BarberSettingsBase(
            auto_confirm=config.DEFAULT_AUTO_CONFIRM,
            cancellation_cutoff_minutes=config.DEFAULT_CANCELLATION_CUTOFF_MINUTES,
            reschedule_cutoff_minutes=config.DEFAULT_RESCHEDULE_CUTOFF_MINUTES,
        )
    return settings


@router.put("/", response_model=BarberSettingsBase)
def update_settings(
    payload: BarberSettingsUpdate,
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    settings = session.get(BarberSettings, current_barber.id) or BarberSettings(barber_id=current_barber.id)
    settings.auto_confirm = payload.auto_confirm
    settings.cancellation_cutoff_minutes = payload.cancellation_cutoff_minutes
    settings.reschedule_cutoff_minutes = payload.reschedule_cutoff_minutes

    session.add(settings)
    session.commit()
    session.refresh(settings)
    return settings
