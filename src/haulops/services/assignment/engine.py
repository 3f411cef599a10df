"""Nearest-worker clustering and nearest-neighbour stop ordering.

The engine is a pure function of its inputs. Callers hand it locations and
workers that have already been filtered to eligible ones (see
``eligibility.py``); it never touches the database.

Two known properties worth keeping in mind when reading results:

* Assignment is not capacity-balanced. A worker sitting in the middle of the
  service area can end up with most of the stops.
* Stop order is the greedy nearest-neighbour walk from the worker's position.
  It is a valid visiting order, not a shortest tour. ``sequence_solver.py``
  can improve it when the ``ortools`` strategy is configured.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence

from ...models.domain import ClusterAssignment, FieldWorker, ServiceLocation
from ..geospatial import haversine_miles

# Distances closer than this are treated as equal when picking a worker.
TIE_TOLERANCE_MILES = 1e-9

Sequencer = Callable[[FieldWorker, List[ServiceLocation]], List[ServiceLocation]]


def _distance_to_worker(location: ServiceLocation, worker: FieldWorker) -> float:
    return haversine_miles(location.latitude, location.longitude, worker.latitude, worker.longitude)


def nearest_worker(location: ServiceLocation, workers: Sequence[FieldWorker]) -> Optional[FieldWorker]:
    """Return the closest worker, preferring the smaller employee_id on ties."""

    best: Optional[FieldWorker] = None
    best_distance = math.inf
    for worker in workers:
        distance = _distance_to_worker(location, worker)
        if best is None or distance < best_distance - TIE_TOLERANCE_MILES:
            best, best_distance = worker, distance
        elif abs(distance - best_distance) <= TIE_TOLERANCE_MILES and worker.employee_id < best.employee_id:
            best, best_distance = worker, distance
    return best


def order_route(
    locations: Sequence[ServiceLocation],
    start_latitude: float,
    start_longitude: float,
) -> List[ServiceLocation]:
    """Order stops by repeatedly walking to the closest unvisited one.

    The walk starts at ``(start_latitude, start_longitude)``. When two stops are
    equally close the one that came first in ``locations`` wins.
    """
    if len(locations) <= 1:
        return list(locations)

    unvisited = list(locations)
    route: List[ServiceLocation] = []
    current_lat, current_lon = start_latitude, start_longitude

    while unvisited:
        nearest_index = 0
        nearest_distance = math.inf
        for index, candidate in enumerate(unvisited):
            distance = haversine_miles(current_lat, current_lon, candidate.latitude, candidate.longitude)
            if distance < nearest_distance:
                nearest_distance = distance
                nearest_index = index
        nearest = unvisited.pop(nearest_index)
        route.append(nearest)
        current_lat, current_lon = nearest.latitude, nearest.longitude

    return route


def calculate_route_distance(ordered_locations: Sequence[ServiceLocation]) -> float:
    """Sum of haversine miles between consecutive stops. 0.0 for fewer than two stops."""

    if len(ordered_locations) < 2:
        return 0.0

    total = 0.0
    for current, following in zip(ordered_locations, ordered_locations[1:]):
        total += haversine_miles(current.latitude, current.longitude, following.latitude, following.longitude)
    return total


def _unique_workers(workers: Sequence[FieldWorker]) -> List[FieldWorker]:
    seen: set[str] = set()
    unique: List[FieldWorker] = []
    for worker in workers:
        if worker.employee_id in seen:
            logging.warning(f"Duplicate position for employee {worker.employee_id}, keeping the first one")
            continue
        seen.add(worker.employee_id)
        unique.append(worker)
    return unique


def cluster_locations(
    locations: Sequence[ServiceLocation],
    workers: Sequence[FieldWorker],
) -> Dict[str, List[ServiceLocation]]:
    """Group locations under the employee_id of their nearest worker.

    Locations keep their input order inside each group. Workers without any
    location do not appear in the result.
    """
    clusters: Dict[str, List[ServiceLocation]] = {}
    for location in locations:
        worker = nearest_worker(location, workers)
        if worker is None:
            continue
        clusters.setdefault(worker.employee_id, []).append(location)
    return clusters


def assign_locations_to_workers(
    locations: Sequence[ServiceLocation],
    workers: Sequence[FieldWorker],
    *,
    sequencer: Optional[Sequencer] = None,
) -> List[ClusterAssignment]:
    """Assign every location to its nearest worker and order each worker's stops.

    Returns an empty list when there are no workers or no locations; callers
    decide how to word "nothing to do" versus "nobody available".

    ``sequencer`` receives the worker and its greedily ordered stops and may
    return a better permutation of them.
    """
    if not workers or not locations:
        return []

    unique_workers = _unique_workers(workers)
    worker_lookup = {worker.employee_id: worker for worker in unique_workers}
    clusters = cluster_locations(locations, unique_workers)

    assignments: List[ClusterAssignment] = []
    for cluster_id, employee_id in enumerate(sorted(clusters)):
        worker = worker_lookup[employee_id]
        ordered = order_route(clusters[employee_id], worker.latitude, worker.longitude)
        if sequencer is not None and len(ordered) > 1:
            ordered = sequencer(worker, ordered)
        for route_order, location in enumerate(ordered):
            assignments.append(
                ClusterAssignment(
                    location_id=location.id,
                    employee_id=employee_id,
                    route_order=route_order,
                    cluster_id=cluster_id,
                )
            )

    logging.info(
        f"Assigned {len(assignments)} locations to {len(clusters)} of {len(unique_workers)} available workers"
    )
    return assignments
