from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    func,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Users(Base):
    __tablename__ = 'users'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    email = Column(Text, unique=True)
    timezone = Column(Text, nullable=False, server_default=text("'UTC'"))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    services = relationship('Services', back_populates='provider')
    availability_windows = relationship('AvailabilityWindows', back_populates='provider')


class Services(Base):
    __tablename__ = 'services'
    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='ck_services_duration_positive'),
    )

    provider_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, server_default=text('0'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    description = Column(Text)
    deleted_at = Column(DateTime)

    provider = relationship('Users', back_populates='services')
    bookings = relationship('Bookings', back_populates='service')


class AvailabilityWindows(Base):
    """
    Provider-declared window.

    kind = 'recurring': week_day 0-6 (Sunday = 0), start/end are UTC "HH:MM".
    kind = 'once':      start/end are UTC "YYYY-MM-DD HH:MM";
                        active = 1 opens extra time, active = 0 is a blackout.
    """
    __tablename__ = 'availability_windows'
    __table_args__ = (
        CheckConstraint("kind IN ('recurring', 'once')", name='ck_windows_kind'),
        CheckConstraint(
            "kind = 'once' OR (week_day BETWEEN 0 AND 6)",
            name='ck_windows_week_day',
        ),
        Index('ix_windows_provider_kind', 'provider_id', 'kind'),
    )

    provider_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    kind = Column(Text, nullable=False)
    start = Column(Text, nullable=False)
    end = Column(Text, nullable=False)
    active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    week_day = Column(Integer)
    deleted_at = Column(DateTime)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    provider = relationship('Users', back_populates='availability_windows')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        # At most one live booking may start at a given instant per provider
        Index(
            'uq_bookings_provider_start_live',
            'provider_id',
            'date_start',
            unique=True,
            sqlite_where=text("status != 'cancelled' AND deleted_at IS NULL"),
            postgresql_where=text("status != 'cancelled' AND deleted_at IS NULL"),
        ),
        Index('ix_bookings_provider_range', 'provider_id', 'date_start', 'date_end'),
        Index('ix_bookings_customer_range', 'customer_id', 'date_start', 'date_end'),
    )

    provider_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    service_id = Column(ForeignKey('services.id'), nullable=False)
    customer_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    date_start = Column(DateTime, nullable=False)  # UTC
    date_end = Column(DateTime, nullable=False)    # UTC, date_start + duration
    duration_minutes = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    version = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(
        Text,
        nullable=False,
        server_default=text('CURRENT_TIMESTAMP'),
        onupdate=func.current_timestamp(),
    )
    id = Column(Integer, primary_key=True)
    slot_id = Column(ForeignKey('availability_windows.id', ondelete='SET NULL'))
    notes = Column(Text)
    cancelled_by = Column(Text)
    deleted_at = Column(DateTime)

    service = relationship('Services', back_populates='bookings')
    slot = relationship('AvailabilityWindows')

    __mapper_args__ = {'version_id_col': version}


class ScheduleLocks(Base):
    """One row per lock key ("provider:<id>", "customer:<id>")."""
    __tablename__ = 'schedule_locks'

    key = Column(Text, primary_key=True)
    version = Column(Integer, nullable=False, server_default=text('0'))
