from db import init_db, get_session
from registry import register_driver, register_passenger
from rides import create_ride
from coordination import submit_coordination_request
import random


def seed(drivers=5, passengers=20, routes=((0, 1), (1, 2)), rng=None):
    """Register members, open rides on each route and fill the waitlist."""
    rng = rng or random.Random()
    init_db()
    session = get_session()
    suffix = rng.randrange(1 << 30)
    driver_ids = [f"driver{i}-{suffix}" for i in range(1, drivers + 1)]
    passenger_ids = [f"passenger{i}-{suffix}" for i in range(1, passengers + 1)]
    for d in driver_ids:
        register_driver(session, d)
    for p in passenger_ids:
        register_passenger(session, p)
    for i, d in enumerate(driver_ids):
        origin, destination = routes[i % len(routes)]
        create_ride(
            session,
            d,
            departure_time=rng.randrange(6, 22),
            seats=rng.choice([1, 2, 3, 4]),
            price_per_seat=10,
            origin=origin,
            destination=destination,
        )
    for i, p in enumerate(passenger_ids):
        origin, destination = routes[i % len(routes)]
        submit_coordination_request(
            session,
            p,
            origin=origin,
            destination=destination,
            requested_time=rng.randrange(6, 22),
            deposit=rng.choice([10, 15, 20]),
        )
    session.close()
    print("Seeded sample data")


if __name__ == "__main__":
    seed()
