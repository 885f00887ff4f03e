import contextlib
import logging

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse
from starlette.requests import Request
from starlette.routing import Route

import ledger
import rides
import registry
import settlement
import waitlist
from config import LOG_LEVEL
from coordination import run_assignment_batch, submit_coordination_request
from db import init_db, get_session
from errors import CarpoolError
from route_key import RouteKey

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app):
    logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
    init_db()
    yield


async def carpool_error(request: Request, exc: CarpoolError):
    return JSONResponse({"error": str(exc), "code": exc.code}, status_code=exc.status_code)


def _bad_request(message):
    return JSONResponse({"error": message, "code": "bad_request"}, status_code=400)


async def _read_ints(request: Request, keys):
    """Return (values, error_response) for the integer fields ``keys`` of the JSON body."""
    try:
        payload = await request.json()
    except ValueError:
        return None, _bad_request("body must be JSON")
    if not isinstance(payload, dict):
        return None, _bad_request("body must be a JSON object")
    out = {}
    for k in keys:
        if k not in payload:
            return None, _bad_request(f"missing {k}")
        value = payload[k]
        if isinstance(value, bool) or not isinstance(value, int):
            return None, _bad_request(f"{k} must be an integer")
        out[k] = value
    out["member_id"] = payload.get("member_id")
    if not isinstance(out["member_id"], str) or not out["member_id"]:
        return None, _bad_request("missing member_id")
    return out, None


async def register_driver(request: Request):
    member_id = request.path_params["member_id"]
    with get_session() as session:
        registry.register_driver(session, member_id)
        return JSONResponse({"member_id": member_id, "driver": registry.get_driver(session, member_id)})


async def register_passenger(request: Request):
    member_id = request.path_params["member_id"]
    with get_session() as session:
        registry.register_passenger(session, member_id)
        return JSONResponse({"member_id": member_id, "passenger": registry.get_passenger(session, member_id)})


async def get_member(request: Request):
    member_id = request.path_params["member_id"]
    with get_session() as session:
        return JSONResponse({
            "member_id": member_id,
            "driver": registry.get_driver(session, member_id),
            "passenger": registry.get_passenger(session, member_id),
        })


async def create_ride(request: Request):
    data, error = await _read_ints(
        request, ["departure_time", "seats", "price_per_seat", "origin", "destination"]
    )
    if error:
        return error
    with get_session() as session:
        ride = rides.create_ride(
            session,
            data["member_id"],
            departure_time=data["departure_time"],
            seats=data["seats"],
            price_per_seat=data["price_per_seat"],
            origin=data["origin"],
            destination=data["destination"],
        )
        return JSONResponse({"ride_id": ride.id}, status_code=201)


async def find_rides(request: Request):
    try:
        origin = int(request.query_params["origin"])
        destination = int(request.query_params["destination"])
    except (KeyError, ValueError):
        return _bad_request("origin and destination query parameters are required integers")
    with get_session() as session:
        return JSONResponse({"ride_ids": rides.find_rides(session, origin, destination)})


async def get_ride(request: Request):
    ride_id = int(request.path_params["ride_id"])
    with get_session() as session:
        ride = ledger.get(session, ride_id)
        return JSONResponse(rides.ride_snapshot(session, ride))


async def join_ride(request: Request):
    ride_id = int(request.path_params["ride_id"])
    data, error = await _read_ints(request, ["payment"])
    if error:
        return error
    with get_session() as session:
        booking = rides.join_ride(session, data["member_id"], ride_id, data["payment"])
        return JSONResponse({"ride_id": ride_id, "booking_id": booking.id, "passenger": booking.passenger})


async def start_ride(request: Request):
    ride_id = int(request.path_params["ride_id"])
    data, error = await _read_ints(request, [])
    if error:
        return error
    with get_session() as session:
        ride = rides.start_ride(session, data["member_id"], ride_id)
        return JSONResponse({"ride_id": ride.id, "status": ride.status})


async def complete_ride(request: Request):
    ride_id = int(request.path_params["ride_id"])
    data, error = await _read_ints(request, [])
    if error:
        return error
    with get_session() as session:
        ride = rides.complete_ride(session, data["member_id"], ride_id)
        return JSONResponse({"ride_id": ride.id, "status": ride.status})


async def submit_request(request: Request):
    data, error = await _read_ints(request, ["origin", "destination", "requested_time", "deposit"])
    if error:
        return error
    with get_session() as session:
        entry = submit_coordination_request(
            session,
            data["member_id"],
            origin=data["origin"],
            destination=data["destination"],
            requested_time=data["requested_time"],
            deposit=data["deposit"],
        )
        return JSONResponse({"index": entry.id}, status_code=201)


async def pending_requests(request: Request):
    with get_session() as session:
        out = []
        for route, entries in sorted(waitlist.pending(session).items()):
            out.extend(waitlist.snapshot(e) for e in entries)
        return JSONResponse(out)


async def get_waitlist_entry(request: Request):
    index = int(request.path_params["index"])
    with get_session() as session:
        return JSONResponse(waitlist.snapshot(waitlist.get(session, index)))


async def trigger_batch(request: Request):
    route = None
    if "origin" in request.query_params or "destination" in request.query_params:
        try:
            route = RouteKey(int(request.query_params["origin"]), int(request.query_params["destination"]))
        except (KeyError, ValueError):
            return _bad_request("origin and destination must both be integers")
    # the solve and its lock waits are blocking work
    res = await run_in_threadpool(run_assignment_batch, route)
    return JSONResponse(res)


async def get_balance(request: Request):
    member_id = request.path_params["member_id"]
    with get_session() as session:
        return JSONResponse({"member_id": member_id, "amount": settlement.balance_of(session, member_id)})


async def withdraw(request: Request):
    member_id = request.path_params["member_id"]
    with get_session() as session:
        amount = settlement.withdraw(session, member_id)
        return JSONResponse({"member_id": member_id, "withdrawn": amount})


routes = [
    Route("/members/{member_id}", get_member, methods=["GET"]),
    Route("/members/{member_id}/driver", register_driver, methods=["POST"]),
    Route("/members/{member_id}/passenger", register_passenger, methods=["POST"]),
    Route("/rides", create_ride, methods=["POST"]),
    Route("/rides", find_rides, methods=["GET"]),
    Route("/rides/{ride_id:int}", get_ride, methods=["GET"]),
    Route("/rides/{ride_id:int}/join", join_ride, methods=["POST"]),
    Route("/rides/{ride_id:int}/start", start_ride, methods=["POST"]),
    Route("/rides/{ride_id:int}/complete", complete_ride, methods=["POST"]),
    Route("/waitlist", submit_request, methods=["POST"]),
    Route("/waitlist/pending", pending_requests, methods=["GET"]),
    Route("/waitlist/{index:int}", get_waitlist_entry, methods=["GET"]),
    Route("/coordination/trigger", trigger_batch, methods=["POST"]),
    Route("/balances/{member_id}", get_balance, methods=["GET"]),
    Route("/balances/{member_id}/withdraw", withdraw, methods=["POST"]),
]

app = Starlette(
    debug=False,
    routes=routes,
    lifespan=lifespan,
    exception_handlers={CarpoolError: carpool_error},
)
