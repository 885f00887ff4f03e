from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone

# ride status values, in lifecycle order
BOOKING_OPEN = "booking_open"
BOOKING_CLOSED = "booking_closed"
STARTED = "started"
COMPLETED = "completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Member(SQLModel, table=True):
    # one identity may hold both roles
    id: str = Field(primary_key=True)
    is_driver: bool = False
    is_passenger: bool = False
    driver_has_ride: bool = False
    passenger_has_ride: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Ride(SQLModel, table=True):
    # index in creation order, from 0; see db.next_id
    id: Optional[int] = Field(default=None, primary_key=True, sa_column_kwargs={"autoincrement": False})
    driver: str = Field(index=True)
    departure_time: int
    seats_total: int
    seats_consumed: int = 0
    price_per_seat: int
    origin: int = Field(index=True)
    destination: int = Field(index=True)
    revenue_escrowed: int = 0  # owed to the driver, released at completion
    status: str = Field(default=BOOKING_OPEN, index=True)
    created_at: datetime = Field(default_factory=utcnow)


class Booking(SQLModel, table=True):
    """A passenger seated on a ride by direct booking."""

    id: Optional[int] = Field(default=None, primary_key=True)
    ride_id: int = Field(foreign_key="ride.id", index=True)
    passenger: str = Field(index=True)
    amount_paid: int
    created_at: datetime = Field(default_factory=utcnow)


class WaitlistEntry(SQLModel, table=True):
    # the id is the entry's index in insertion order, from 0
    id: Optional[int] = Field(default=None, primary_key=True, sa_column_kwargs={"autoincrement": False})
    passenger: str = Field(index=True)
    origin: int = Field(index=True)
    destination: int = Field(index=True)
    requested_time: int
    deposit: int
    resolved: bool = Field(default=False, index=True)
    ride_id: Optional[int] = Field(default=None, foreign_key="ride.id")
    refund: Optional[int] = None
    cost: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None


class Balance(SQLModel, table=True):
    """Funds a member may withdraw: refunds and released ride revenue."""

    member_id: str = Field(primary_key=True)
    amount: int = 0
    total_withdrawn: int = 0


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    kind: str = Field(index=True)
    ride_id: Optional[int] = None
    waitlist_index: Optional[int] = None
    member_id: Optional[str] = None
    amount: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
