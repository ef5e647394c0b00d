from sqlalchemy import Column, Integer, String
from gameservers.core.db import Base


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    short_name = Column(String(30), unique=True, nullable=False, index=True)
