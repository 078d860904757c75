from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from barbearia.database import get_session
from barbearia.models.time_block import TimeBlock, TimeBlockCreate
from barbearia.models.user import User
from barbearia.core.security import get_current_barber
from barbearia.routers.appointments import to_instant
from barbearia.scheduling.clock import to_db

router = APIRouter(prefix="/time-blocks", tags=["time-blocks"])


@router.get("/")
def list_time_blocks(
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    return session.exec(
        select(TimeBlock)
        .where(TimeBlock.barber_id == current_barber.id)
        .order_by(TimeBlock.start_time)
    ).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_time_block(
    block: TimeBlockCreate,
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    # sem fuso = horário civil; grava em UTC
    start = to_instant(block.start_time)
    end = to_instant(block.end_time)
    if end <= start:
        raise HTTPException(status_code=400, detail="end_time deve ser maior que start_time")

    db_block = TimeBlock(
        barber_id=current_barber.id,  # força ownership
        start_time=to_db(start),
        end_time=to_db(end),
        reason=block.reason,
    )

    session.add(db_block)
    session.commit()
    session.refresh(db_block)
    return db_block


@router.delete("/{block_id}")
def delete_time_block(
    block_id: int,
    session: Session = Depends(get_session),
    current_barber: User = Depends(get_current_barber),
):
    block = session.get(TimeBlock, block_id)
    if not block:
        raise HTTPException(status_code=404, detail="Bloqueio não encontrado")

    if block.barber_id != current_barber.id:
        raise HTTPException(status_code=403, detail="Sem permissão")

    session.delete(block)
    session.commit()
    return {"message": "Bloqueio removido"}
