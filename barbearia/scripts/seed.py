from datetime import time, timedelta

from sqlmodel import Session, select

from barbearia.core.logs import configure_logging
from barbearia.core.security import get_password_hash
from barbearia.database import create_db_and_tables, engine
from barbearia.models.barber_settings import BarberSettings
from barbearia.models.business_hours import BusinessHours
from barbearia.models.service import Service
from barbearia.models.time_block import TimeBlock
from barbearia.models.user import User
from barbearia.scheduling.clock import civil_to_utc, to_db, utcnow, business_tz


BARBER_EMAIL = "barbeiro@gmail.com"
ADMIN_EMAIL = "admin@gmail.com"
DEFAULT_PASSWORD = "123456"

# seg-sáb 08-18 com almoço 12-13; domingo fechado
OPEN_DAY = dict(is_closed=False, open_time=time(8, 0), close_time=time(18, 0), break_start=time(12, 0), break_end=time(13, 0))
CLOSED_DAY = dict(is_closed=True, open_time=None, close_time=None, break_start=None, break_end=None)


def _get_or_create_user(session: Session, email: str, name: str, role: str) -> User:
    user = session.exec(select(User).where(User.email == email)).first()
    if user:
        if user.role != role:
            raise RuntimeError(f"Usuário {email} existe mas role != '{role}'")
        return user
    user = User(name=name, email=email, role=role, password_hash=get_password_hash(DEFAULT_PASSWORD))
    session.add(user)
    session.flush()
    return user


def seed(session: Session) -> User:
    """Popula barbeiro, admin, horários, serviços e um bloqueio de exemplo. Idempotente."""
    barber = _get_or_create_user(session, BARBER_EMAIL, "Barbeiro", "barber")
    _get_or_create_user(session, ADMIN_EMAIL, "Admin", "admin")

    for weekday in range(7):
        cfg = CLOSED_DAY if weekday == 6 else OPEN_DAY
        row = session.exec(
            select(BusinessHours).where(
                BusinessHours.barber_id == barber.id,
                BusinessHours.weekday == weekday,
            )
        ).first()
        row = row or BusinessHours(barber_id=barber.id, weekday=weekday)
        for field, value in cfg.items():
            setattr(row, field, value)
        session.add(row)

    if not session.get(BarberSettings, barber.id):
        session.add(BarberSettings(barber_id=barber.id))

    existing_service = session.exec(
        select(Service).where(Service.barber_id == barber.id)
    ).first()

    if not existing_service:
        session.add_all(
            [
                Service(name="Corte", duration_minutes=30, price=40.0, category="cabelo", barber_id=barber.id),
                Service(name="Barba", duration_minutes=30, price=30.0, category="barba", barber_id=barber.id),
                Service(name="Corte + Barba", duration_minutes=60, price=65.0, category="combo", barber_id=barber.id),
            ]
        )

    # bloqueio de exemplo: amanhã 15:00-16:00 (horário local)
    tz = business_tz()
    tomorrow = (utcnow().astimezone(tz) + timedelta(days=1)).date()
    block_start = to_db(civil_to_utc(tomorrow, time(15, 0), tz))
    block_end = to_db(civil_to_utc(tomorrow, time(16, 0), tz))

    exists_block = session.exec(
        select(TimeBlock).where(
            TimeBlock.barber_id == barber.id,
            TimeBlock.start_time == block_start,
        )
    ).first()

    if not exists_block:
        session.add(TimeBlock(barber_id=barber.id, start_time=block_start, end_time=block_end, reason="Teste"))

    session.commit()
    return barber


def main():
    configure_logging()
    create_db_and_tables()
    with Session(engine) as session:
        barber = seed(session)
        barber_id = barber.id

    print("✅ Seed concluído!")
    print(f"Barber: {barber_id} ({BARBER_EMAIL}) / Admin: {ADMIN_EMAIL} / senha: {DEFAULT_PASSWORD}")
    print("Horários: seg-sáb 08-18 almoço 12-13; domingo fechado")
    print("Serviços: Corte/Barba/Corte+Barba (se não existiam)")
    print("Bloqueio: amanhã 15:00-16:00 (se não existia)")


if __name__ == "__main__":
    main()
