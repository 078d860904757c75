from fastapi import FastAPI

from barbearia.core.logs import configure_logging
from barbearia.database import create_db_and_tables
from barbearia.routers import users
from barbearia.routers import auth
from barbearia.routers import services
from barbearia.routers import appointments, payments
from barbearia.routers import business_hours, time_blocks, holidays, barber_settings

configure_logging()

app = FastAPI(title="barbearia-agenda")
app.include_router(users.router)
app.include_router(auth.router)
app.include_router(services.router)
app.include_router(appointments.router)
app.include_router(payments.router)
app.include_router(business_hours.router)
app.include_router(time_blocks.router)
app.include_router(holidays.router)
app.include_router(barber_settings.router)


@app.on_event("startup")
def on_startup():
    create_db_and_tables()


@app.get("/")
def root():
    return {"message": "API barbearia-agenda funcionando 🚀"}
