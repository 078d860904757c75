import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barbearia.database import get_session
from barbearia.models.user import User, UserCreate
from barbearia.core.security import get_password_hash

router = APIRouter(prefix="/users", tags=["users"])

logger = logging.getLogger(__name__)

# admin só via seed / banco
PUBLIC_ROLES = ("client", "barber")


@router.post("/")
def create_user(user: UserCreate, session: Session = Depends(get_session)):

    if user.role not in PUBLIC_ROLES:
        raise HTTPException(status_code=400, detail="role deve ser 'client' ou 'barber'")

    existing_user = session.exec(
        select(User).where(User.email == user.email)
    ).first()

    if existing_user:
        raise HTTPException(status_code=400, detail="Email já cadastrado")

    db_user = User(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
        role=user.role,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    logger.info("Usuário %s criado (role=%s)", db_user.id, db_user.role)

    return {
        "id": db_user.id,
        "name": db_user.name,
        "email": db_user.email,
        "role": db_user.role,
    }
