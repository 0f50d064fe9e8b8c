from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recalltrial.models.base import Base
from recalltrial.models.enums import TrialStatus


class Trial(Base):
    __tablename__ = "trials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)

    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    service_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    cancel_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)

    # civil dates, interpreted in the owner's timezone
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    renewal_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")

    status: Mapped[TrialStatus] = mapped_column(
        Enum(TrialStatus, name="trial_status"),
        nullable=False,
        default=TrialStatus.ACTIVE,
        index=True,
    )
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    user = relationship("User", back_populates="trials")
    reminders = relationship("Reminder", back_populates="trial", order_by="Reminder.remind_at")

    @property
    def cancel_link(self) -> str:
        return self.cancel_url or self.service_url

    def __repr__(self) -> str:
        return f"<Trial id={self.id} user_id={self.user_id} service={self.service_name} end={self.end_date} status={self.status}>"
