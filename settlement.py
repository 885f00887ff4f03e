"""Settlement and escrow.

Turns engine assignments into seat consumption, immutable refunds and ride
revenue. Refunds and released revenue sit in per-member balances until the
member withdraws them.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from sqlalchemy import func
from sqlmodel import select

import ledger
import waitlist
import notifications
from assignment import Assignment
from db import get_lock
from models import Balance, Ride, WaitlistEntry
from route_key import route_of
from errors import CapacityExceeded, InsufficientDeposit, NothingToWithdraw

logger = logging.getLogger(__name__)


@dataclass
class SettlementSummary:
    assigned: List[int] = field(default_factory=list)
    unassigned: List[int] = field(default_factory=list)
    recovered: List[int] = field(default_factory=list)  # engine choice discarded at apply time
    refunded: int = 0
    revenue: int = 0

    def merge(self, other: "SettlementSummary") -> None:
        self.assigned.extend(other.assigned)
        self.unassigned.extend(other.unassigned)
        self.recovered.extend(other.recovered)
        self.refunded += other.refunded
        self.revenue += other.revenue

    def as_dict(self) -> dict:
        return {
            "assigned": len(self.assigned),
            "unassigned": len(self.unassigned),
            "recovered": sorted(self.recovered),
            "refunded": self.refunded,
            "revenue": self.revenue,
        }


def _balance_for_update(session, member_id: str):
    # re-read even when the row is already in the session; FOR UPDATE holds it until commit
    return session.get(Balance, member_id, with_for_update=True, populate_existing=True)


def credit(session, member_id: str, amount: int) -> Balance:
    bal = _balance_for_update(session, member_id)
    if bal is None:
        bal = Balance(member_id=member_id, amount=amount)
    else:
        # relative update, so credits and withdrawals from other sessions are kept
        bal.amount = Balance.amount + amount
    session.add(bal)
    session.flush()
    return bal


def balance_of(session, member_id: str) -> int:
    bal = session.get(Balance, member_id)
    return bal.amount if bal else 0


def withdraw(session, member_id: str) -> int:
    """Pay out and zero the member's balance."""
    with get_lock(f"balance:{member_id}"):
        bal = _balance_for_update(session, member_id)
        if bal is None or bal.amount == 0:
            raise NothingToWithdraw(f"{member_id} has no funds to withdraw")
        amount = bal.amount
        # a credit committed after the read above stays in the balance
        bal.amount = Balance.amount - amount
        bal.total_withdrawn = Balance.total_withdrawn + amount
        session.add(bal)
        notifications.emit(session, notifications.FUNDS_WITHDRAWN, member_id=member_id, amount=amount)
        session.commit()
    return amount


def settle_entry(session, assignment: Assignment, summary: SettlementSummary) -> WaitlistEntry:
    entry = waitlist.get(session, assignment.index)
    ride = None
    if assignment.assigned:
        ride = ledger.get(session, assignment.ride_id)
        if route_of(ride) != route_of(entry):
            raise ValueError(f"entry {entry.id} and ride {ride.id} are on different routes")
        try:
            if entry.deposit < ride.price_per_seat:
                raise InsufficientDeposit(
                    f"deposit {entry.deposit} below seat price {ride.price_per_seat}"
                )
            ledger.consume(session, ride, 1)
        except (CapacityExceeded, InsufficientDeposit) as exc:
            logger.warning("entry %s not seated on ride %s: %s", entry.id, ride.id, exc)
            summary.recovered.append(entry.id)
            ride = None

    if ride is not None:
        refund = entry.deposit - ride.price_per_seat
        ride.revenue_escrowed += ride.price_per_seat
        session.add(ride)
        waitlist.resolve(session, entry.id, ride.id, refund, assignment.cost)
        notifications.emit(session, notifications.PASSENGER_ASSIGNED, ride_id=ride.id,
                           waitlist_index=entry.id, member_id=entry.passenger, amount=ride.price_per_seat)
        summary.assigned.append(entry.id)
        summary.revenue += ride.price_per_seat
    else:
        refund = entry.deposit
        waitlist.resolve(session, entry.id, None, refund)
        notifications.emit(session, notifications.PASSENGER_UNASSIGNED,
                           waitlist_index=entry.id, member_id=entry.passenger)
        summary.unassigned.append(entry.id)

    if refund > 0:
        credit(session, entry.passenger, refund)
    notifications.emit(session, notifications.REFUND_SETTLED, ride_id=entry.ride_id,
                       waitlist_index=entry.id, member_id=entry.passenger, amount=refund)
    summary.refunded += refund
    return entry


def apply_assignments(session, assignments: Iterable[Assignment]) -> SettlementSummary:
    """Settle every assignment in ``session`` without committing."""
    summary = SettlementSummary()
    for assignment in assignments:
        settle_entry(session, assignment, summary)
    return summary


def release_revenue(session, ride: Ride) -> int:
    amount = ride.revenue_escrowed
    if amount:
        credit(session, ride.driver, amount)
        ride.revenue_escrowed = 0
        session.add(ride)
    return amount


def escrow_total(session) -> int:
    """Funds held: unresolved deposits, withdrawable balances and unreleased revenue."""
    deposits = session.exec(
        select(func.sum(WaitlistEntry.deposit)).where(WaitlistEntry.resolved == False)  # noqa: E712
    ).one()
    balances = session.exec(select(func.sum(Balance.amount))).one()
    revenue = session.exec(select(func.sum(Ride.revenue_escrowed))).one()
    return (deposits or 0) + (balances or 0) + (revenue or 0)
