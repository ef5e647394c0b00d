# gameservers/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gameservers.core.config import settings
from gameservers.core.db import Base, SessionLocal, engine

from gameservers.models.user import User  # noqa: F401
from gameservers.models.game import Game  # noqa: F401
from gameservers.models.listing import Listing  # noqa: F401
from gameservers.models.vote import Vote  # noqa: F401

from gameservers.routers.health import router as health_router
from gameservers.routers.auth import router as auth_router
from gameservers.routers.servers import router as servers_router
from gameservers.routers.votes import router as votes_router
from gameservers.routers.admin import router as admin_router
from gameservers.services.games import seed_games

logger = logging.getLogger("gameservers")


def setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_games(db)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Database backend: %s", engine.url.get_backend_name())
    init_db()
    yield


app = FastAPI(title="GameServers API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

routers = [
    health_router,
    auth_router,
    servers_router,
    votes_router,
    admin_router,
]

for r in routers:
    app.include_router(r)
