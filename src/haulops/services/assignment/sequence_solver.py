"""OR-Tools refinement of a worker's greedy stop order.

The nearest-neighbour walk from ``engine.order_route`` is used as the initial
solution; OR-Tools local search (2-opt, or-opt, relocate, ...) then tries to
shorten it. The route is an open path: it starts at the worker's position and
ends at the last stop, with no return leg.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ortools.constraint_solver import pywrapcp, routing_enums_pb2

from ...config import settings
from ...models.domain import FieldWorker, ServiceLocation
from ..geospatial import haversine_miles
from .engine import calculate_route_distance

# Solver arc costs are integers; distances are scaled from miles.
COST_SCALE = 10_000


def path_distance_from(worker: FieldWorker, ordered_locations: Sequence[ServiceLocation]) -> float:
    """Distance of the open path worker -> first stop -> ... -> last stop, in miles."""

    if not ordered_locations:
        return 0.0
    first = ordered_locations[0]
    lead_in = haversine_miles(worker.latitude, worker.longitude, first.latitude, first.longitude)
    return lead_in + calculate_route_distance(ordered_locations)


def _build_cost_matrix(worker: FieldWorker, stops: Sequence[ServiceLocation]) -> list[list[int]]:
    # node 0 = worker position, 1..n = stops, n + 1 = virtual end
    points = [(worker.latitude, worker.longitude)] + [(stop.latitude, stop.longitude) for stop in stops]
    size = len(points) + 1
    end_node = size - 1
    matrix = [[0] * size for _ in range(size)]
    for i, (lat1, lon1) in enumerate(points):
        for j, (lat2, lon2) in enumerate(points):
            if i != j:
                matrix[i][j] = int(round(haversine_miles(lat1, lon1, lat2, lon2) * COST_SCALE))
    return matrix


def refine_route(
    worker: FieldWorker,
    ordered_locations: Sequence[ServiceLocation],
    *,
    time_limit_seconds: int | None = None,
) -> List[ServiceLocation]:
    """Return a permutation of ``ordered_locations`` that is never longer than the input.

    Falls back to the input order when the solver cannot improve on it.
    """
    stops = list(ordered_locations)
    if len(stops) < 2:
        return stops

    time_limit = settings.solver_time_limit_seconds if time_limit_seconds is None else time_limit_seconds
    matrix = _build_cost_matrix(worker, stops)
    end_node = len(matrix) - 1

    manager = pywrapcp.RoutingIndexManager(len(matrix), 1, [0], [end_node])
    routing = pywrapcp.RoutingModel(manager)

    def distance_callback(from_index: int, to_index: int) -> int:
        from_node = manager.IndexToNode(from_index)
        to_node = manager.IndexToNode(to_index)
        return matrix[from_node][to_node]

    transit_callback_index = routing.RegisterTransitCallback(distance_callback)
    routing.SetArcCostEvaluatorOfAllVehicles(transit_callback_index)

    search_parameters = pywrapcp.DefaultRoutingSearchParameters()
    if time_limit > 0:
        search_parameters.local_search_metaheuristic = (
            routing_enums_pb2.LocalSearchMetaheuristic.GUIDED_LOCAL_SEARCH
        )
        search_parameters.time_limit.FromSeconds(time_limit)
    else:
        search_parameters.local_search_metaheuristic = (
            routing_enums_pb2.LocalSearchMetaheuristic.GREEDY_DESCENT
        )
    routing.CloseModelWithParameters(search_parameters)

    # Seed with the greedy order; stop i sits at node i + 1.
    seed_route = [manager.NodeToIndex(node) for node in range(1, len(stops) + 1)]
    initial = routing.ReadAssignmentFromRoutes([seed_route], True)
    if initial is None:
        logging.warning(f"Could not load greedy route for employee {worker.employee_id}, keeping it as is")
        return stops

    solution = routing.SolveFromAssignmentWithParameters(initial, search_parameters)
    if not solution:
        logging.warning(f"Could not refine route for employee {worker.employee_id}, keeping greedy order")
        return stops

    refined: List[ServiceLocation] = []
    index = routing.Start(0)
    while not routing.IsEnd(index):
        node = manager.IndexToNode(index)
        if node != 0:
            refined.append(stops[node - 1])
        index = solution.Value(routing.NextVar(index))

    if len(refined) != len(stops):
        logging.warning(
            f"Refined route for employee {worker.employee_id} dropped stops ({len(refined)}/{len(stops)}), keeping greedy order"
        )
        return stops

    before = path_distance_from(worker, stops)
    after = path_distance_from(worker, refined)
    if after >= before:
        return stops

    logging.info(
        f"Refined route for employee {worker.employee_id}: {before:.2f} -> {after:.2f} miles over {len(stops)} stops"
    )
    return refined
