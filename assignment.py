"""Exact assignment of waitlist entries to rides, one route bucket at a time.

The bucket is a transportation problem: every open ride offers ``seats``
identical seat-units at the same cost, every waiting entry asks for one unit.
The cost of seating an entry on a ride is the absolute difference between
the requested time and the ride's departure time. Each entry also gets an
"unassigned" column priced above any achievable total deviation, so the
solver first seats as many entries as capacity allows and only then
minimizes the summed deviation.

The rectangular matrix is solved once with
``scipy.optimize.linear_sum_assignment`` (shortest augmenting path, an exact
Hungarian-style method). Among all optimal answers the lexicographically
smallest one is returned: entries are taken in index order and each is moved
to the lowest ride id that still admits an optimal completion of the rest,
with "unassigned" ranked after every ride. Whether such a move exists is read
off the zero reduced-cost arcs of the solved problem, so tie-breaking costs a
graph search per entry rather than another solve.

Nothing here touches the database or moves money.
"""
import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.optimize import linear_sum_assignment

import config
from errors import ComputationOverflow, ScaleExceeded
from route_key import RouteKey

logger = logging.getLogger(__name__)

# float64 holds every integer below this exactly
MAX_EXACT_COST = 2 ** 53


@dataclass(frozen=True)
class RideSlot:
    ride_id: int
    departure_time: int
    seats: int
    price: int


@dataclass(frozen=True)
class Demand:
    index: int
    requested_time: int
    deposit: int


@dataclass(frozen=True)
class Assignment:
    index: int
    ride_id: Optional[int] = None
    cost: Optional[int] = None

    @property
    def assigned(self) -> bool:
        return self.ride_id is not None


def deviation(demand: Demand, ride: RideSlot) -> int:
    return abs(demand.requested_time - ride.departure_time)


def total_cost(assignments: Sequence[Assignment]) -> int:
    return sum(a.cost for a in assignments if a.assigned)


class _Bucket:
    """One route bucket as a min-cost flow.

    Nodes are the entries, the rides, an "unassigned" pool ``U`` and a sink
    ``T``. Each entry sends one unit to a ride it can afford (cost: its
    deviation) or to ``U`` (cost: the penalty); rides forward at most their
    seat count to ``T``, ``U`` forwards without limit.
    """

    def __init__(self, demands: Sequence[Demand], rides: Sequence[RideSlot]):
        self.demands = list(demands)
        self.rides = list(rides)
        n, m = len(self.demands), len(self.rides)
        self.unassigned = m

        # deposit below the seat price makes the pair infeasible
        costs: List[List[Optional[int]]] = [
            [deviation(d, r) if d.deposit >= r.price else None for r in self.rides]
            for d in self.demands
        ]
        max_cost = max((c for row in costs for c in row if c is not None), default=0)
        self.penalty = n * max_cost + 1
        if n * self.penalty >= MAX_EXACT_COST:
            raise ComputationOverflow(
                f"summed deviation for {n} entries (max deviation {max_cost}) exceeds exact range"
            )

        self.cost = np.zeros((n, m), dtype=np.int64)
        self.feasible = np.zeros((n, m), dtype=bool)
        for i, row in enumerate(costs):
            for j, c in enumerate(row):
                if c is not None:
                    self.cost[i, j] = c
                    self.feasible[i, j] = True
        self.seats = np.array([r.seats for r in self.rides], dtype=np.int64)

    def solve(self) -> np.ndarray:
        """Option per entry of one optimal assignment."""
        n, m = self.cost.shape
        # more seat-units than entries can never be used
        columns = np.repeat(np.arange(m), np.minimum(self.seats, n))
        table = np.where(self.feasible, self.cost.astype(float), np.inf)
        matrix = np.full((n, len(columns) + n), float(self.penalty))
        matrix[:, :len(columns)] = table[:, columns]
        rows, cols = linear_sum_assignment(matrix)

        choices = np.full(n, self.unassigned, dtype=np.int64)
        seated = cols < len(columns)
        choices[rows[seated]] = columns[cols[seated]]
        return choices

    def certify(self, choices: np.ndarray) -> None:
        """Compute node potentials for the optimal ``choices`` and mark zero reduced-cost arcs.

        With optimal potentials every optimal assignment uses only arcs whose
        reduced cost is zero, so two optimal assignments differ by cycles made
        of such arcs. Potentials are shortest distances in the residual graph
        (Bellman-Ford from a virtual root joined to every node).
        """
        n, m = self.cost.shape
        pool, sink = n + m, n + m + 1
        rows = np.arange(n)
        on_ride = choices < m
        assigned = np.zeros((n, m), dtype=bool)
        assigned[rows[on_ride], choices[on_ride]] = True
        loads = np.bincount(choices, minlength=m + 1)

        free_i, free_j = np.nonzero(self.feasible & ~assigned)
        taken_i, taken_j = np.nonzero(assigned)
        seated, waiting = rows[on_ride], rows[~on_ride]
        open_rides = np.nonzero(loads[:m] < self.seats)[0]
        used_rides = np.nonzero(loads[:m] > 0)[0]

        def arcs(tail, head, weight):
            size = len(tail)
            return (np.broadcast_to(np.asarray(tail, dtype=np.int64), (size,)),
                    np.broadcast_to(np.asarray(head, dtype=np.int64), (size,)),
                    np.broadcast_to(np.asarray(weight, dtype=np.int64), (size,)))

        parts = [
            arcs(free_i, n + free_j, self.cost[free_i, free_j]),
            arcs(n + taken_j, taken_i, -self.cost[taken_i, taken_j]),
            arcs(seated, np.full(len(seated), pool), self.penalty),
            arcs(np.full(len(waiting), pool), waiting, -self.penalty),
            arcs(n + open_rides, np.full(len(open_rides), sink), 0),
            arcs(np.full(len(used_rides), sink), n + used_rides, 0),
            arcs([pool], [sink], 0),
        ]
        if len(waiting):
            parts.append(arcs([sink], [pool], 0))
        tail, head, weight = (np.concatenate(p) for p in zip(*parts))
        order = np.argsort(head, kind="stable")
        tail, head, weight = tail[order], head[order], weight[order]
        starts = np.flatnonzero(np.r_[True, head[1:] != head[:-1]])
        targets = head[starts]

        dist = np.zeros(n + m + 2, dtype=np.int64)
        for _ in range(n + m + 3):
            relaxed = dist.copy()
            relaxed[targets] = np.minimum(dist[targets], np.minimum.reduceat(dist[tail] + weight, starts))
            if np.array_equal(relaxed, dist):
                break
            dist = relaxed
        else:
            raise RuntimeError("solver returned a non-optimal assignment")

        self.tight = self.feasible & (self.cost + dist[:n, None] - dist[None, n:pool] == 0)
        self.tight_pool = self.penalty + dist[:n] - dist[pool] == 0
        self.tight_sink = dist[n:pool] == dist[sink]
        self.pool_sink = bool(dist[pool] == dist[sink])

    def paths_to(self, k: int, choices: np.ndarray) -> Dict[int, Optional[int]]:
        """Next hop towards entry ``k`` for every node joined to it by zero reduced-cost arcs.

        Entries before ``k`` are fixed and take no part.
        """
        n, m = self.cost.shape
        pool, sink = n + m, n + m + 1
        loads = np.bincount(choices, minlength=m + 1)
        later = choices[k:]
        nxt: Dict[int, Optional[int]] = {k: None}
        queue = deque([k])
        while queue:
            node = queue.popleft()
            if node < n:
                # only the option an entry holds now leads back into it
                option = int(choices[node])
                if option == m:
                    preds = [pool] if self.tight_pool[node] else []
                else:
                    preds = [n + option] if self.tight[node, option] else []
            elif node < pool:
                j = node - n
                preds = list(np.nonzero(self.tight[k:, j] & (later != j))[0] + k)
                if loads[j] > 0 and self.tight_sink[j]:
                    preds.append(sink)
            elif node == pool:
                preds = list(np.nonzero(self.tight_pool[k:] & (later != m))[0] + k)
                if loads[m] > 0 and self.pool_sink:
                    preds.append(sink)
            else:
                preds = list(n + np.nonzero((loads[:m] < self.seats) & self.tight_sink)[0])
                if self.pool_sink:
                    preds.append(pool)
            for pred in preds:
                pred = int(pred)
                if pred not in nxt:
                    nxt[pred] = node
                    queue.append(pred)
        return nxt

    def assign(self) -> List[Assignment]:
        n, m = self.cost.shape
        choices = self.solve()
        self.certify(choices)

        for k in range(n):
            lower = np.nonzero(self.tight[k, :choices[k]])[0]
            if not len(lower):
                continue
            nxt = self.paths_to(k, choices)
            reachable = [int(j) for j in lower if n + int(j) in nxt]
            if not reachable:
                continue
            # move k to the lowest ride and shift everyone along the cycle
            choices[k] = reachable[0]
            node = n + reachable[0]
            while node != k:
                step = nxt[node]
                if node < n:
                    choices[node] = step - n
                node = step

        out = []
        for demand, option in zip(self.demands, choices):
            if option == self.unassigned:
                out.append(Assignment(demand.index))
            else:
                ride = self.rides[int(option)]
                out.append(Assignment(demand.index, ride.ride_id, deviation(demand, ride)))
        return out


def assign_bucket(demands: Sequence[Demand], rides: Sequence[RideSlot],
                  max_entries: Optional[int] = None, max_seats: Optional[int] = None) -> List[Assignment]:
    """Assign one route bucket. Results come back in entry index order."""
    if max_entries is None:
        max_entries = config.MAX_BUCKET_ENTRIES
    if max_seats is None:
        max_seats = config.MAX_BUCKET_SEATS

    demands = sorted(demands, key=lambda d: d.index)
    rides = sorted((r for r in rides if r.seats > 0), key=lambda r: r.ride_id)
    if not demands:
        return []
    if not rides:
        return [Assignment(d.index) for d in demands]

    n = len(demands)
    seat_units = sum(min(r.seats, n) for r in rides)
    if n > max_entries:
        raise ScaleExceeded(f"{n} waiting entries exceed the limit of {max_entries}")
    if seat_units > max_seats:
        raise ScaleExceeded(f"{seat_units} seat-units exceed the limit of {max_seats}")

    bucket = _Bucket(demands, rides)
    result = bucket.assign()
    logger.debug(
        "bucket of %d entries, %d rides solved, total deviation %d",
        n, len(rides), total_cost(result),
    )
    return result


def assign_buckets(demands: Dict[RouteKey, Sequence[Demand]], rides: Dict[RouteKey, Sequence[RideSlot]],
                   max_entries: Optional[int] = None, max_seats: Optional[int] = None
                   ) -> Dict[RouteKey, List[Assignment]]:
    """Assign every bucket in ``demands``; a bucket without rides stays unassigned."""
    out = {}
    for route in sorted(demands):
        out[route] = assign_bucket(demands[route], rides.get(route, ()), max_entries, max_seats)
    return out
