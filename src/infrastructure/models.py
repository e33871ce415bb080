"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``ride_charges``     -- extra charges posted against a ride after drop-off
  (wait time, tip), one row per kind per ride
* ``ride_settlements`` -- the payout breakdown computed when a ride is paid

Indexes
-------
* **B-Tree** on ``ride_id`` and ``kind`` for the per-ride look-ups made by the
  payment route, unique ``idempotency_key`` to stop double-posting.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    func,
)

from .database import Base
from src.domain.enums import ChargeKind, VehicleType


class RideChargeModel(Base):
    __tablename__ = "ride_charges"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, nullable=False)
    kind = Column(Enum(ChargeKind), nullable=False)
    # whole currency units, as the ride API stores them
    amount = Column(Integer, nullable=False)
    wait_minutes = Column(Integer, nullable=True)
    idempotency_key = Column(String(64), unique=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_ride_charges_ride", "ride_id"),
        Index("idx_ride_charges_kind", "kind"),
    )


class RideSettlementModel(Base):
    __tablename__ = "ride_settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, unique=True, nullable=False)
    vehicle_type = Column(Enum(VehicleType), nullable=True)
    base_fare = Column(Float, nullable=False, default=0.0)
    wait_minutes = Column(Integer, nullable=False, default=0)
    wait_charge = Column(Float, nullable=False, default=0.0)
    tip = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False)
    driver_compensation = Column(Float, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_ride_settlements_ride", "ride_id"),)
