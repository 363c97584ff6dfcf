from datetime import date, datetime
from typing import Optional

from sqlalchemy import TIMESTAMP, Boolean, Date, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cissp_mastery.db.base import Base, new_id

USER_ROLES = ("user", "admin")
PLAN_TYPES = ("free", "pro_monthly", "pro_yearly", "lifetime")
SUBSCRIPTION_STATUSES = ("active", "canceled", "past_due", "trialing", "inactive")


# ---------------- Users ----------------
class User(Base):
    __tablename__ = "users"

    # Identity reference issued by the auth provider
    auth_user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(Enum(*USER_ROLES, name="user_role"), nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    subscription: Mapped[Optional["Subscription"]] = relationship(back_populates="user", uselist=False)
    stats: Mapped[Optional["UserStats"]] = relationship(back_populates="user", uselist=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ---------------- Subscriptions ----------------
class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.auth_user_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    plan_type: Mapped[str] = mapped_column(Enum(*PLAN_TYPES, name="plan_type"), nullable=False, default="free")
    status: Mapped[str] = mapped_column(
        Enum(*SUBSCRIPTION_STATUSES, name="subscription_status"), nullable=False, default="active"
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    current_period_start: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP, nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP, nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    user: Mapped["User"] = relationship(back_populates="subscription")


# ---------------- Study Stats ----------------
class UserStats(Base):
    __tablename__ = "user_stats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.auth_user_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    total_cards_studied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    study_streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_study_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # in seconds
    daily_cards_studied_today: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_reset_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    user: Mapped["User"] = relationship(back_populates="stats")
