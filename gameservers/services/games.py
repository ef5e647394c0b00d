import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gameservers.models.game import Game

logger = logging.getLogger(__name__)

DEFAULT_GAMES = [
    {"name": "Counter-Strike 2", "short_name": "cs2"},
    {"name": "Minecraft", "short_name": "minecraft"},
    {"name": "Rust", "short_name": "rust"},
    {"name": "GTA V", "short_name": "gta5"},
    {"name": "Valheim", "short_name": "valheim"},
]


def seed_games(db: Session) -> int:
    """Insert the default catalog when the games table is empty. Returns rows added."""
    if db.scalar(select(func.count(Game.id))):
        return 0
    db.add_all(Game(**row) for row in DEFAULT_GAMES)
    db.commit()
    logger.info("Seeded %d games", len(DEFAULT_GAMES))
    return len(DEFAULT_GAMES)


def list_games(db: Session) -> List[Game]:
    return list(db.execute(select(Game).order_by(Game.id)).scalars().all())


def get_game_by_short_name(db: Session, short_name: str) -> Optional[Game]:
    return db.execute(select(Game).where(Game.short_name == short_name)).scalar_one_or_none()
