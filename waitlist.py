"""Waitlist store for coordinated booking requests.

An entry's id is its index in insertion order, counting from 0. Entries are
resolved exactly once, by the settlement step of an assignment batch, and
never deleted.
"""
from collections import defaultdict
from typing import Dict, List, Optional

from sqlmodel import select

import config
from db import next_id
from models import WaitlistEntry, utcnow
from route_key import RouteKey, route_of
from errors import AlreadyResolved, EntryNotFound, InvalidDeposit, InvalidRequestedTime


def submit(session, passenger: str, origin: int, destination: int, requested_time: int,
           deposit: int) -> WaitlistEntry:
    if deposit <= 0:
        raise InvalidDeposit("deposit must be positive")
    if not 0 <= requested_time <= config.MAX_TIME:
        raise InvalidRequestedTime(f"requested time must lie in [0, {config.MAX_TIME}]")
    entry = WaitlistEntry(
        id=next_id(session, WaitlistEntry),
        passenger=passenger,
        origin=origin,
        destination=destination,
        requested_time=requested_time,
        deposit=deposit,
    )
    session.add(entry)
    session.flush()
    return entry


def get(session, index: int) -> WaitlistEntry:
    entry = session.get(WaitlistEntry, index)
    if entry is None:
        raise EntryNotFound(f"waitlist entry {index} not found")
    return entry


def resolve(session, index: int, ride_id: Optional[int], refund: int,
            cost: Optional[int] = None) -> WaitlistEntry:
    entry = get(session, index)
    if entry.resolved:
        raise AlreadyResolved(f"waitlist entry {index} is already resolved")
    if refund < 0 or refund > entry.deposit:
        raise ValueError(f"refund {refund} outside [0, {entry.deposit}] for entry {index}")
    entry.resolved = True
    entry.ride_id = ride_id
    entry.refund = refund
    entry.cost = cost if ride_id is not None else None
    entry.resolved_at = utcnow()
    session.add(entry)
    session.flush()
    return entry


def pending(session, route: Optional[RouteKey] = None) -> Dict[RouteKey, List[WaitlistEntry]]:
    """Unresolved entries bucketed by route, each bucket in insertion order."""
    stmt = select(WaitlistEntry).where(WaitlistEntry.resolved == False)  # noqa: E712
    if route is not None:
        stmt = stmt.where(
            WaitlistEntry.origin == route.origin,
            WaitlistEntry.destination == route.destination,
        )
    buckets = defaultdict(list)
    for entry in session.exec(stmt.order_by(WaitlistEntry.id)).all():
        buckets[route_of(entry)].append(entry)
    return dict(buckets)


def snapshot(entry: WaitlistEntry) -> dict:
    return {
        "index": entry.id,
        "passenger": entry.passenger,
        "origin": entry.origin,
        "destination": entry.destination,
        "requested_time": entry.requested_time,
        "deposit": entry.deposit,
        "resolved": entry.resolved,
        "ride_id": entry.ride_id,
        "refund": entry.refund,
        "cost": entry.cost,
    }
