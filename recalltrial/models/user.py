# recalltrial/models/user.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recalltrial.models.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)

    # IANA zone name; trial end dates are civil dates in this zone
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Asia/Qatar")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    trials = relationship("Trial", back_populates="user")

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} tz={self.timezone}>"
