from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from barbearia.database import get_session
from barbearia.models.service import Service
from barbearia.models.user import User
from barbearia.core.security import get_current_staff


router = APIRouter(
    prefix="/services",
    tags=["services"]
)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_service(
    service: Service,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_staff),
):
    if service.duration_minutes is None or service.duration_minutes <= 0:
        raise HTTPException(status_code=400, detail="duration_minutes deve ser maior que zero")

    # barbeiro cadastra para si; admin pode criar serviço da casa (barber_id=None)
    barber_id = current_user.id if current_user.role == "barber" else service.barber_id

    db_service = Service(
        name=service.name,
        duration_minutes=service.duration_minutes,
        price=service.price,
        active=service.active,
        category=service.category,
        barber_id=barber_id,
    )

    session.add(db_service)
    session.commit()
    session.refresh(db_service)

    return db_service


@router.get("/")
def list_services(
    barber_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    query = select(Service).where(Service.active == True)  # noqa: E712
    if barber_id is not None:
        query = query.where((Service.barber_id == barber_id) | (Service.barber_id == None))  # noqa: E711

    return session.exec(query.order_by(Service.category, Service.name)).all()
