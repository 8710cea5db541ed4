import datetime

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vantrack.models.base import Base


class Route(Base):
    __tablename__ = "routes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    stops: Mapped[list["Stop"]] = relationship(back_populates="route", order_by="Stop.order")


class Stop(Base):
    __tablename__ = "stops"
    __table_args__ = (
        UniqueConstraint("route_id", "order", name="uq_stop_route_order"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    route_id: Mapped[str] = mapped_column(String(64), ForeignKey("routes.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)  # traversal order within the route

    route: Mapped["Route"] = relationship(back_populates="stops")


class Van(Base):
    __tablename__ = "vans"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    van_number: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    route_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("routes.id"), nullable=True)

    route: Mapped["Route | None"] = relationship()


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # auth uid, doubles as bus id
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    van_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("vans.id"), nullable=True)

    van: Mapped["Van | None"] = relationship()
