"""
Database Models (SQLAlchemy ORM)
Predictions are never deleted; evaluation only moves them forward.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime,
    Boolean, ForeignKey, Enum as SQLEnum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
import enum

from predictarena.infrastructure.db.database import Base
from predictarena.utils.time import now_utc_naive


# Enums
class DirectionEnum(str, enum.Enum):
    UP = "up"
    DOWN = "down"


class PredictionStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    EVALUATED = "evaluated"


class PredictionResultEnum(str, enum.Enum):
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


# Tables

class UserModel(Base):
    """Account owned by the auth collaborator; read-only here"""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)

    profile = relationship("UserProfileModel", back_populates="user", uselist=False)


class AssetModel(Base):
    """Tradable asset"""
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    asset_type = Column(String(32), nullable=False, default="crypto")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=now_utc_naive)


class SlotConfigModel(Base):
    """Per (duration, slot) labels and point values - seeded once"""
    __tablename__ = "slot_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    duration = Column(String(8), nullable=False)
    slot_number = Column(Integer, nullable=False)
    start_time = Column(String(32), nullable=False)
    end_time = Column(String(32), nullable=False)
    points_if_correct = Column(Integer, nullable=False)
    penalty_if_wrong = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("duration", "slot_number", name="uq_slot_configs_duration_slot"),
    )


class PredictionModel(Base):
    """One directional bet"""
    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=False)

    direction = Column(SQLEnum(DirectionEnum), nullable=False)
    duration = Column(String(8), nullable=False)
    slot_number = Column(Integer, nullable=False)
    slot_start = Column(DateTime, nullable=False)
    slot_end = Column(DateTime, nullable=False)

    created_at = Column(DateTime, nullable=False, default=now_utc_naive)
    expires_at = Column(DateTime, nullable=False)
    evaluated_at = Column(DateTime, nullable=True)

    status = Column(
        SQLEnum(PredictionStatusEnum), nullable=False, default=PredictionStatusEnum.ACTIVE
    )
    result = Column(
        SQLEnum(PredictionResultEnum), nullable=False, default=PredictionResultEnum.PENDING
    )
    points_awarded = Column(Integer, nullable=True)
    price_start = Column(Numeric(20, 8), nullable=False)
    price_end = Column(Numeric(20, 8), nullable=True)

    asset = relationship("AssetModel")

    __table_args__ = (
        # Closes the check-then-insert race on concurrent submissions
        UniqueConstraint(
            "user_id", "asset_id", "duration", "slot_number", "slot_start",
            name="uq_predictions_user_asset_slot",
        ),
        Index("ix_predictions_status_expires", "status", "expires_at"),
        Index("ix_predictions_user_created", "user_id", "created_at"),
        Index("ix_predictions_asset_duration", "asset_id", "duration"),
    )


class UserProfileModel(Base):
    """Running score totals per user"""
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, unique=True)
    total_predictions = Column(Integer, nullable=False, default=0)
    correct_predictions = Column(Integer, nullable=False, default=0)
    monthly_score = Column(Integer, nullable=False, default=0)
    total_score = Column(Integer, nullable=False, default=0)

    user = relationship("UserModel", back_populates="profile")
