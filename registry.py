from typing import Dict

from models import Member
from errors import AlreadyRegistered, NotRegistered


def _member(session, member_id: str) -> Member:
    member = session.get(Member, member_id)
    if member is None:
        member = Member(id=member_id)
    return member


def register_driver(session, member_id: str) -> Member:
    member = _member(session, member_id)
    if member.is_driver:
        raise AlreadyRegistered(f"{member_id} is already a driver")
    member.is_driver = True
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def register_passenger(session, member_id: str) -> Member:
    member = _member(session, member_id)
    if member.is_passenger:
        raise AlreadyRegistered(f"{member_id} is already a passenger")
    member.is_passenger = True
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def is_registered_driver(session, member_id: str) -> bool:
    member = session.get(Member, member_id)
    return bool(member and member.is_driver)


def is_registered_passenger(session, member_id: str) -> bool:
    member = session.get(Member, member_id)
    return bool(member and member.is_passenger)


def require_driver(session, member_id: str) -> Member:
    member = session.get(Member, member_id)
    if not member or not member.is_driver:
        raise NotRegistered(f"{member_id} is not a registered driver")
    return member


def require_passenger(session, member_id: str) -> Member:
    member = session.get(Member, member_id)
    if not member or not member.is_passenger:
        raise NotRegistered(f"{member_id} is not a registered passenger")
    return member


def get_driver(session, member_id: str) -> Dict[str, bool]:
    member = session.get(Member, member_id)
    return {
        "is_registered": bool(member and member.is_driver),
        "has_ride": bool(member and member.driver_has_ride),
    }


def get_passenger(session, member_id: str) -> Dict[str, bool]:
    member = session.get(Member, member_id)
    return {
        "is_registered": bool(member and member.is_passenger),
        "has_ride": bool(member and member.passenger_has_ride),
    }
