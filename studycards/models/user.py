"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from studycards.database import Base, utcnow


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"
    # Ids are never reused, so tokens of a deleted account cannot match a new one.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_USER)  # user/admin
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    flashcards = relationship(
        "Flashcard",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
