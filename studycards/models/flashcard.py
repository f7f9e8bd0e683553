"""Flashcard model definitions."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from studycards.database import Base, utcnow


class Flashcard(Base):
    """A two-sided card owned by exactly one user, with its review schedule."""
    __tablename__ = "flashcards"

    id = Column(Integer, primary_key=True, index=True)
    front = Column(String(500), nullable=False)
    back = Column(String(500), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    level = Column(Integer, nullable=False, default=0)
    next_review = Column(DateTime, nullable=True, default=utcnow)
    ease_factor = Column(Float, nullable=False, default=2.5)
    repetitions = Column(Integer, nullable=False, default=0)
    last_interval = Column(Integer, nullable=False, default=0)  # days
    review_count = Column(Integer, nullable=False, default=0)
    last_reviewed = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="flashcards")
