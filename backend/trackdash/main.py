import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .db import init_db
from .seed import ensure_default_admin, ensure_demo_data
from .routers import auth, config, persistence, programs, students
from .services.control_channel import build_control_channel, listen_for_resets


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.is_production:
        ensure_default_admin(force_password_reset=True)
    else:
        ensure_demo_data()

    channel = build_control_channel()
    if channel is not None:
        listen_for_resets(channel)
    app.state.control_channel = channel
    try:
        yield
    finally:
        if channel is not None:
            channel.close()


app = FastAPI(title="TrackDash API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth.router)
app.include_router(persistence.router)
app.include_router(config.router)
app.include_router(programs.router)
app.include_router(students.router)


@app.get("/")
def root():
    return {"status": "ok", "service": "TrackDash API"}
