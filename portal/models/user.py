"""Admin user model (schema only; authentication lives outside the portal core)."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from portal.config.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.username}>"
