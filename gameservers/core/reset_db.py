from gameservers.core.db import Base, SessionLocal, engine
from gameservers.main import setup_logging
from gameservers.services.games import seed_games


# one-off script: drops every table, recreates the schema and reseeds the game catalog
def reset_db():
    setup_logging()
    Base.metadata.drop_all(bind=engine, checkfirst=True)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_games(db)
    finally:
        db.close()


if __name__ == "__main__":
    reset_db()
