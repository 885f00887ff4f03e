from typing import NamedTuple


class RouteKey(NamedTuple):
    """A directed origin -> destination pair.

    Rides and waitlist entries are only ever compared inside the bucket of
    their route key.
    """

    origin: int
    destination: int

    @property
    def lock_name(self) -> str:
        return f"route:{self.origin}->{self.destination}"

    def __str__(self) -> str:
        return f"{self.origin}->{self.destination}"


def route_of(item) -> RouteKey:
    return RouteKey(item.origin, item.destination)
