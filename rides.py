"""Direct ride lifecycle: creation, lookup, booking, start and completion."""
import logging
from typing import List

from sqlmodel import select

import ledger
import notifications
import settlement
from db import get_lock
from models import Booking, Member, Ride, WaitlistEntry, BOOKING_OPEN, BOOKING_CLOSED, STARTED, COMPLETED
from registry import require_driver, require_passenger
from route_key import route_of
from errors import ActiveRideExists, InvalidPayment, InvalidRideState, NotRideDriver

logger = logging.getLogger(__name__)


def create_ride(session, driver: str, departure_time: int, seats: int, price_per_seat: int,
                origin: int, destination: int) -> Ride:
    member = require_driver(session, driver)
    with get_lock("ride:index"):
        ride = ledger.register(session, Ride(
            driver=driver,
            departure_time=departure_time,
            seats_total=seats,
            price_per_seat=price_per_seat,
            origin=origin,
            destination=destination,
        ))
        member.driver_has_ride = True
        session.add(member)
        notifications.emit(session, notifications.RIDE_CREATED, ride_id=ride.id, member_id=driver,
                           amount=price_per_seat)
        session.commit()
    session.refresh(ride)
    return ride


def find_rides(session, origin: int, destination: int) -> List[int]:
    stmt = select(Ride.id).where(Ride.origin == origin, Ride.destination == destination)
    return list(session.exec(stmt.order_by(Ride.id)).all())


def ride_snapshot(session, ride: Ride) -> dict:
    bookings = session.exec(select(Booking).where(Booking.ride_id == ride.id).order_by(Booking.id)).all()
    coordinated = session.exec(
        select(WaitlistEntry.id).where(WaitlistEntry.ride_id == ride.id).order_by(WaitlistEntry.id)
    ).all()
    return {
        "id": ride.id,
        "driver": ride.driver,
        "departure_time": ride.departure_time,
        "seats": ride.seats_total,
        "consumed": ride.seats_consumed,
        "price": ride.price_per_seat,
        "origin": ride.origin,
        "destination": ride.destination,
        "status": ride.status,
        "revenue_escrowed": ride.revenue_escrowed,
        "passengers": [b.passenger for b in bookings],
        "waitlist_entries": list(coordinated),
    }


def join_ride(session, passenger: str, ride_id: int, payment: int) -> Booking:
    member = require_passenger(session, passenger)
    if member.passenger_has_ride:
        raise ActiveRideExists(f"{passenger} already has a booked ride")
    ride = ledger.get(session, ride_id)
    if ride.status != BOOKING_OPEN:
        raise InvalidRideState(f"ride {ride_id} is {ride.status}")
    if payment != ride.price_per_seat:
        raise InvalidPayment(f"ride {ride_id} costs {ride.price_per_seat}, got {payment}")

    with get_lock(route_of(ride).lock_name):
        ledger.consume(session, ride, 1)
        booking = Booking(ride_id=ride.id, passenger=passenger, amount_paid=payment)
        ride.revenue_escrowed += payment
        member.passenger_has_ride = True
        session.add_all([booking, ride, member])
        notifications.emit(session, notifications.PASSENGER_JOINED, ride_id=ride.id, member_id=passenger,
                           amount=payment)
        session.commit()
    session.refresh(booking)
    return booking


def _driven_ride(session, driver: str, ride_id: int) -> Ride:
    ride = ledger.get(session, ride_id)
    if ride.driver != driver:
        raise NotRideDriver(f"{driver} does not drive ride {ride_id}")
    return ride


def start_ride(session, driver: str, ride_id: int) -> Ride:
    ride = _driven_ride(session, driver, ride_id)
    if ride.status not in (BOOKING_OPEN, BOOKING_CLOSED):
        raise InvalidRideState(f"ride {ride_id} is {ride.status}")
    ride.status = STARTED
    session.add(ride)
    notifications.emit(session, notifications.RIDE_STARTED, ride_id=ride.id, member_id=driver)
    session.commit()
    session.refresh(ride)
    return ride


def complete_ride(session, driver: str, ride_id: int) -> Ride:
    """Finish a started ride and release its revenue to the driver's balance."""
    ride = _driven_ride(session, driver, ride_id)
    if ride.status != STARTED:
        raise InvalidRideState(f"ride {ride_id} is {ride.status}")
    ride.status = COMPLETED
    released = settlement.release_revenue(session, ride)

    for booking in session.exec(select(Booking).where(Booking.ride_id == ride.id)).all():
        passenger = session.get(Member, booking.passenger)
        if passenger is not None:
            passenger.passenger_has_ride = False
            session.add(passenger)
    session.add(ride)
    session.flush()

    still_driving = session.exec(
        select(Ride.id).where(Ride.driver == driver, Ride.status != COMPLETED)
    ).first()
    if still_driving is None:
        member = session.get(Member, driver)
        member.driver_has_ride = False
        session.add(member)

    notifications.emit(session, notifications.RIDE_COMPLETED, ride_id=ride.id, member_id=driver,
                       amount=released)
    session.commit()
    session.refresh(ride)
    logger.info("ride %s completed, %s released to %s", ride.id, released, driver)
    return ride
