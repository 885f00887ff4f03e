"""Coordinated booking: waitlist submission and the assignment batch.

A batch snapshots every unresolved waitlist entry and every open ride,
solves each route bucket exactly, then settles the results in one
transaction. Buckets are serialized through named locks so independent
routes may be processed by concurrent batches.
"""
import logging
from typing import Dict, List, Optional

import ledger
import waitlist
from assignment import Assignment, Demand, RideSlot, assign_buckets, total_cost
from config import LOCK_TIMEOUT
from db import get_session, get_lock
from models import Ride, WaitlistEntry
from registry import require_passenger
from route_key import RouteKey
from settlement import SettlementSummary, apply_assignments

logger = logging.getLogger(__name__)


def submit_coordination_request(session, passenger: str, origin: int, destination: int,
                                requested_time: int, deposit: int) -> WaitlistEntry:
    require_passenger(session, passenger)
    with get_lock("waitlistentry:index"):
        entry = waitlist.submit(session, passenger, origin, destination, requested_time, deposit)
        session.commit()
    session.refresh(entry)
    logger.info("waitlist entry %s: %s requests %s->%s at %s with deposit %s",
                entry.id, passenger, origin, destination, requested_time, deposit)
    return entry


def demand_of(entry: WaitlistEntry) -> Demand:
    return Demand(index=entry.id, requested_time=entry.requested_time, deposit=entry.deposit)


def slot_of(ride: Ride) -> RideSlot:
    return RideSlot(
        ride_id=ride.id,
        departure_time=ride.departure_time,
        seats=ledger.remaining_seats(ride),
        price=ride.price_per_seat,
    )


def compute_plan(session, routes: Optional[List[RouteKey]] = None) -> Dict[RouteKey, List[Assignment]]:
    """Snapshot pending entries and open rides and solve every bucket. Writes nothing."""
    pending = waitlist.pending(session)
    if routes is not None:
        pending = {route: entries for route, entries in pending.items() if route in routes}
    rides = ledger.open_rides(session)
    demands = {route: [demand_of(e) for e in entries] for route, entries in pending.items()}
    slots = {route: [slot_of(r) for r in rides.get(route, [])] for route in demands}
    return assign_buckets(demands, slots)


def _acquire(routes: List[RouteKey], timeout: float):
    held = []
    for route in sorted(routes):
        lock = get_lock(route.lock_name)
        if not lock.acquire(timeout=timeout):
            for other in reversed(held):
                other.release()
            return None
        held.append(lock)
    return held


def run_assignment_batch(route: Optional[RouteKey] = None, lock_timeout: Optional[float] = None) -> dict:
    """Assign and settle every pending waitlist entry, or only those on ``route``.

    Either every snapshotted entry is resolved and committed, or, when the
    engine rejects a bucket, nothing is written and the error propagates.
    """
    if lock_timeout is None:
        lock_timeout = LOCK_TIMEOUT
    with get_session() as session:
        routes = sorted(waitlist.pending(session, route))
    if not routes:
        return {"status": "ok", "buckets": 0, **SettlementSummary().as_dict()}

    held = _acquire(routes, lock_timeout)
    if held is None:
        logger.info("assignment batch skipped: a route bucket is locked")
        return {"status": "locked"}
    try:
        with get_session() as session:
            try:
                plan = compute_plan(session, routes)
                summary = SettlementSummary()
                for key in sorted(plan):
                    summary.merge(apply_assignments(session, plan[key]))
                session.commit()
            except Exception:
                session.rollback()
                raise
    finally:
        for lock in reversed(held):
            lock.release()

    deviation = sum(total_cost(assignments) for assignments in plan.values())
    logger.info("assignment batch over %d buckets: %s, total deviation %d",
                len(plan), summary.as_dict(), deviation)
    return {"status": "ok", "buckets": len(plan), "total_deviation": deviation, **summary.as_dict()}
