import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import CORS_ORIGINS, LOG_LEVEL
from app.db import SessionLocal, init_database
from app.routers import auth, bookings, organizations, rooms, users
from app.services.accounts import seed_system_admin
from app.utils.errors import BookingError

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    "lifespan for initing database and seeding the system admin"
    init_database()
    db = SessionLocal()
    try:
        seed_system_admin(db)
    finally:
        db.close()

    yield


app = FastAPI(
    lifespan=lifespan,
    title="Conference room booker",
    description="Multi-tenant conference room booking with conflict checks and approvals, based on FastAPI.",
    version="0.1.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    logger.debug(f"{request.method} {request.url.path} failed: {exc.error_code}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth.router)
app.include_router(organizations.router)
app.include_router(users.router)
app.include_router(rooms.router)
app.include_router(bookings.router)
