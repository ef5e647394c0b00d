from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, func,
)
from sqlalchemy.orm import relationship
from gameservers.core.db import Base

MIN_PORT = 1
MAX_PORT = 65535

REGIONS = ("na", "sa", "eu", "asia", "oceania", "africa")


class Listing(Base):
    """A submitted game server."""

    __tablename__ = "servers"
    __table_args__ = (
        CheckConstraint(f"port >= {MIN_PORT} AND port <= {MAX_PORT}", name="ck_servers_port_range"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # owner never changes after submission
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    game = Column(String(30), ForeignKey("games.short_name"), nullable=False, index=True)
    ip = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False)
    region = Column(String(20), nullable=False, index=True)

    # moderation
    is_approved = Column(Boolean, nullable=False, default=False, index=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    # written by the status refresher
    is_online = Column(Boolean, nullable=False, default=False)
    current_players = Column(Integer, nullable=False, default=0)
    max_players = Column(Integer, nullable=False, default=0)
    current_map = Column(String(100), nullable=True)

    last_updated = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    owner = relationship("User", back_populates="servers")
    votes = relationship("Vote", back_populates="server", cascade="all, delete-orphan", passive_deletes=True)
