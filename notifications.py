"""Notifications for external bookkeeping.

Each notification is written in the caller's session so it commits (or rolls
back) together with the state change it describes.
"""
import logging
from typing import List, Optional

from sqlmodel import select

from models import Notification

logger = logging.getLogger(__name__)

RIDE_CREATED = "ride_created"
PASSENGER_JOINED = "passenger_joined"
PASSENGER_ASSIGNED = "passenger_assigned"
PASSENGER_UNASSIGNED = "passenger_unassigned"
REFUND_SETTLED = "refund_settled"
RIDE_STARTED = "ride_started"
RIDE_COMPLETED = "ride_completed"
FUNDS_WITHDRAWN = "funds_withdrawn"


def emit(session, kind: str, ride_id: Optional[int] = None, waitlist_index: Optional[int] = None,
         member_id: Optional[str] = None, amount: Optional[int] = None) -> Notification:
    note = Notification(
        kind=kind,
        ride_id=ride_id,
        waitlist_index=waitlist_index,
        member_id=member_id,
        amount=amount,
    )
    session.add(note)
    logger.info("%s ride=%s entry=%s member=%s amount=%s", kind, ride_id, waitlist_index, member_id, amount)
    return note


def list_notifications(session, kind: Optional[str] = None) -> List[Notification]:
    stmt = select(Notification)
    if kind is not None:
        stmt = stmt.where(Notification.kind == kind)
    return list(session.exec(stmt.order_by(Notification.id)).all())
