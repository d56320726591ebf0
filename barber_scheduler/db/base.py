from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .session import Base


class Barbershop(Base):
    """Barbershop with its opening hours"""

    __tablename__ = "barbershops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    opening_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    closing_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    barbers: Mapped[List["Barber"]] = relationship(back_populates="barbershop")

    def __repr__(self):
        return f"<Barbershop(id={self.id}, name='{self.name}')>"


class Barber(Base):
    """Barber (provider) with working days and daily hours"""

    __tablename__ = "barbers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    barbershop_id: Mapped[int] = mapped_column(
        ForeignKey("barbershops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    # ISO weekday numbers, e.g. [1, 2, 3, 4, 5]; decoded by the repository
    working_days: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    barbershop: Mapped[Barbershop] = relationship(back_populates="barbers")

    def __repr__(self):
        return f"<Barber(id={self.id}, name='{self.name}')>"


class Client(Base):
    """Client who books appointments"""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Service(Base):
    """Bookable service offered by a barbershop"""

    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_services_price_non_negative"),
        CheckConstraint(
            "duration_minutes BETWEEN 1 AND 480", name="ck_services_duration_range"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    barbershop_id: Mapped[int] = mapped_column(
        ForeignKey("barbershops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', price={self.price})>"


class Product(Base):
    """Retail product with stock control"""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        Index("ix_products_barbershop_active", "barbershop_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    barbershop_id: Mapped[int] = mapped_column(
        ForeignKey("barbershops.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # NULL falls back to the configured low-stock threshold
    min_stock: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock_quantity})>"


class Appointment(Base):
    """Booking of one or more services with a barber"""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_time_order"),
        Index("ix_appointments_barber_start", "barber_id", "start_time"),
        Index("ix_appointments_client_start", "client_id", "start_time"),
        Index("ix_appointments_barbershop_start", "barbershop_id", "start_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    barbershop_id: Mapped[int] = mapped_column(
        ForeignKey("barbershops.id", ondelete="CASCADE"), nullable=False
    )
    barber_id: Mapped[int] = mapped_column(
        ForeignKey("barbers.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    barber: Mapped[Barber] = relationship()
    barbershop: Mapped[Barbershop] = relationship()
    client: Mapped[Client] = relationship()
    service_lines: Mapped[List["AppointmentService"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentService.id",
    )
    product_lines: Mapped[List["AppointmentProduct"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentProduct.id",
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, barber_id={self.barber_id}, "
            f"start_time={self.start_time}, status='{self.status}')>"
        )


class AppointmentService(Base):
    """Service line item with price/duration snapshot"""

    __tablename__ = "appointment_services"
    __table_args__ = (
        UniqueConstraint(
            "appointment_id", "service_id", name="uq_appointment_services_pair"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[int] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    appointment: Mapped[Appointment] = relationship(back_populates="service_lines")
    service: Mapped[Service] = relationship()


class AppointmentProduct(Base):
    """Product line item with quantity and price snapshot"""

    __tablename__ = "appointment_products"
    __table_args__ = (
        UniqueConstraint(
            "appointment_id", "product_id", name="uq_appointment_products_pair"
        ),
        CheckConstraint("quantity >= 1", name="ck_appointment_products_quantity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    appointment: Mapped[Appointment] = relationship(back_populates="product_lines")
    product: Mapped[Product] = relationship()
