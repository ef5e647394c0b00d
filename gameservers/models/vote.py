from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from gameservers.core.db import Base


class Vote(Base):
    __tablename__ = "votes"
    # one vote per (user, server); toggle_vote relies on this constraint
    __table_args__ = (UniqueConstraint("user_id", "server_id", name="uq_votes_user_server"),)

    id = Column(Integer, primary_key=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    server_id = Column(Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    server = relationship("Listing", back_populates="votes")
