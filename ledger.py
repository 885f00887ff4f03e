"""Ride capacity ledger: seats, prices and departure times per ride."""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from sqlmodel import select

import config
from db import next_id
from models import Ride, BOOKING_OPEN, BOOKING_CLOSED
from route_key import RouteKey, route_of
from errors import CapacityExceeded, InvalidRideParameters, RideNotFound

logger = logging.getLogger(__name__)


def register(session, ride: Ride) -> Ride:
    """Add a ride to the ledger under its route key and assign its id.

    Callers hold the ``ride:index`` lock until they commit.
    """
    if ride.seats_total <= 0 or ride.price_per_seat <= 0:
        raise InvalidRideParameters("seats and price per seat must be positive")
    if not 0 <= ride.departure_time <= config.MAX_TIME:
        raise InvalidRideParameters(f"departure time must lie in [0, {config.MAX_TIME}]")
    ride.id = next_id(session, Ride)
    session.add(ride)
    session.flush()
    logger.debug("registered ride %s on route %s", ride.id, route_of(ride))
    return ride


def get(session, ride_id: int) -> Ride:
    ride = session.get(Ride, ride_id)
    if ride is None:
        raise RideNotFound(f"ride {ride_id} not found")
    return ride


def remaining_seats(ride: Ride) -> int:
    return ride.seats_total - ride.seats_consumed


def consume(session, ride: Ride, n: int = 1) -> Ride:
    """Take ``n`` seats of ``ride``, checking against its current stored state."""
    session.refresh(ride)
    # seats are only on sale while booking is open
    if ride.status != BOOKING_OPEN or n > remaining_seats(ride):
        raise CapacityExceeded(
            f"ride {ride.id} ({ride.status}) has {remaining_seats(ride)} seats left, {n} requested"
        )
    ride.seats_consumed += n
    if remaining_seats(ride) == 0 and ride.status == BOOKING_OPEN:
        ride.status = BOOKING_CLOSED
    session.add(ride)
    session.flush()
    return ride


def open_rides(session, route: Optional[RouteKey] = None) -> Dict[RouteKey, List[Ride]]:
    """Open rides with seats left, bucketed by route and ordered by id."""
    stmt = select(Ride).where(Ride.status == BOOKING_OPEN)
    if route is not None:
        stmt = stmt.where(Ride.origin == route.origin, Ride.destination == route.destination)
    buckets = defaultdict(list)
    for ride in session.exec(stmt.order_by(Ride.id)).all():
        if remaining_seats(ride) > 0:
            buckets[route_of(ride)].append(ride)
    return dict(buckets)
