import itertools
from collections import Counter

from haulops.models.domain import FieldWorker, ServiceLocation
from haulops.services.assignment.engine import (
    assign_locations_to_workers,
    calculate_route_distance,
    nearest_worker,
    order_route,
)
from haulops.services.geospatial import haversine_miles


def _location(lid: str, lat: float, lon: float) -> ServiceLocation:
    return ServiceLocation(id=lid, latitude=lat, longitude=lon, address=f"{lid} Main St")


def _worker(eid: str, lat: float, lon: float) -> FieldWorker:
    return FieldWorker(employee_id=eid, latitude=lat, longitude=lon, is_online=True, name=f"Employee {eid}")


def _orders_by_employee(assignments) -> dict[str, list[int]]:
    orders: dict[str, list[int]] = {}
    for item in assignments:
        orders.setdefault(item.employee_id, []).append(item.route_order)
    return orders


def test_two_clusters_go_to_their_nearest_worker():
    locations = [
        _location("L1", 0.0, 0.0),
        _location("L2", 0.0, 1.0),
        _location("L3", 10.0, 10.0),
        _location("L4", 10.0, 11.0),
    ]
    workers = [_worker("W1", 0.0, 0.5), _worker("W2", 10.0, 10.5)]

    result = assign_locations_to_workers(locations, workers)

    by_location = {item.location_id: item for item in result}
    assert by_location["L1"].employee_id == "W1"
    assert by_location["L2"].employee_id == "W1"
    assert by_location["L3"].employee_id == "W2"
    assert by_location["L4"].employee_id == "W2"
    assert sorted(_orders_by_employee(result)["W1"]) == [0, 1]
    assert sorted(_orders_by_employee(result)["W2"]) == [0, 1]
    # equidistant first stops: input order wins
    assert by_location["L1"].route_order == 0
    assert by_location["L3"].route_order == 0


def test_tight_cluster_single_worker():
    locations = [
        _location("A", 40.005, -75.0),
        _location("B", 40.0, -75.008),
        _location("C", 39.996, -74.995),
    ]
    worker = _worker("W1", 40.0, -75.0)

    result = assign_locations_to_workers(locations, [worker])

    assert {item.employee_id for item in result} == {"W1"}
    assert sorted(item.route_order for item in result) == [0, 1, 2]

    lookup = {location.id: location for location in locations}
    ordered = [lookup[item.location_id] for item in sorted(result, key=lambda a: a.route_order)]
    distance = calculate_route_distance(ordered)
    max_pair = max(
        haversine_miles(a.latitude, a.longitude, b.latitude, b.longitude)
        for a, b in itertools.combinations(locations, 2)
    )
    assert 0 < distance < max_pair * 3


def test_every_location_assigned_exactly_once():
    locations = [_location(f"L{i}", 42.30 + i * 0.01, -71.10 + (i % 4) * 0.02) for i in range(25)]
    workers = [
        _worker("E1", 42.30, -71.10),
        _worker("E2", 42.45, -71.05),
        _worker("E3", 42.40, -71.12),
    ]

    result = assign_locations_to_workers(locations, workers)

    counts = Counter(item.location_id for item in result)
    assert set(counts) == {location.id for location in locations}
    assert all(count == 1 for count in counts.values())


def test_route_order_is_contiguous_per_worker():
    locations = [_location(f"L{i}", 42.30 + (i % 5) * 0.02, -71.10 + (i // 5) * 0.02) for i in range(20)]
    workers = [_worker("E1", 42.30, -71.10), _worker("E2", 42.38, -71.02)]

    result = assign_locations_to_workers(locations, workers)

    for employee_id, orders in _orders_by_employee(result).items():
        assert sorted(orders) == list(range(len(orders))), employee_id


def test_cluster_ids_follow_employee_id_order():
    locations = [_location("L1", 0.0, 0.0), _location("L2", 5.0, 5.0)]
    workers = [_worker("zeta", 0.0, 0.1), _worker("alpha", 5.0, 5.1)]

    result = assign_locations_to_workers(locations, workers)

    cluster_ids = {item.employee_id: item.cluster_id for item in result}
    assert cluster_ids == {"alpha": 0, "zeta": 1}
    assert [item.employee_id for item in result] == ["alpha", "zeta"]


def test_assignment_is_deterministic():
    locations = [_location(f"L{i}", 42.30 + i * 0.007, -71.10 + (i % 3) * 0.011) for i in range(15)]
    workers = [_worker("E2", 42.35, -71.08), _worker("E1", 42.35, -71.08), _worker("E3", 42.40, -71.10)]

    first = assign_locations_to_workers(locations, workers)
    second = assign_locations_to_workers(locations, workers)

    assert first == second


def test_tie_goes_to_smaller_employee_id():
    location = _location("L1", 0.0, 0.0)
    east = _worker("zed", 0.0, 1.0)
    west = _worker("mia", 0.0, -1.0)

    assert nearest_worker(location, [east, west]).employee_id == "mia"
    assert nearest_worker(location, [west, east]).employee_id == "mia"

    result = assign_locations_to_workers([location], [east, west])
    assert result[0].employee_id == "mia"


def test_central_worker_can_take_everything():
    """Assignment is nearest-worker only; nothing rebalances the load."""
    locations = [_location(f"L{i}", 40.0 + i * 0.001, -75.0) for i in range(6)]
    workers = [_worker("central", 40.002, -75.0), _worker("remote", 45.0, -80.0)]

    result = assign_locations_to_workers(locations, workers)

    assert {item.employee_id for item in result} == {"central"}
    assert len(result) == 6


def test_no_workers_returns_empty():
    locations = [_location("L1", 0.0, 0.0), _location("L2", 1.0, 1.0)]

    assert assign_locations_to_workers(locations, []) == []


def test_no_locations_returns_empty():
    assert assign_locations_to_workers([], [_worker("W1", 0.0, 0.0)]) == []


def test_duplicate_worker_snapshot_uses_first_position():
    locations = [_location("L1", 10.0, 10.0)]
    workers = [_worker("W1", 10.0, 10.1), _worker("W1", 50.0, 50.0), _worker("W2", 10.0, 12.0)]

    result = assign_locations_to_workers(locations, workers)

    assert [(item.employee_id, item.route_order) for item in result] == [("W1", 0)]


def test_order_route_walks_to_nearest_unvisited_stop():
    stops = [
        _location("far", 0.0, 3.0),
        _location("near", 0.0, 1.0),
        _location("middle", 0.0, 2.0),
    ]

    ordered = order_route(stops, 0.0, 0.0)

    assert [stop.id for stop in ordered] == ["near", "middle", "far"]


def test_order_route_is_a_heuristic_permutation():
    """Nearest-neighbour gives a valid order, not necessarily the shortest one."""
    stops = [
        _location("E1", 0.0, 1.0),
        _location("W1", 0.0, -1.5),
        _location("E3", 0.0, 3.0),
    ]

    ordered = order_route(stops, 0.0, 0.0)

    assert sorted(stop.id for stop in ordered) == sorted(stop.id for stop in stops)
    assert [stop.id for stop in ordered] == ["E1", "E3", "W1"]
    best = min(calculate_route_distance(list(p)) for p in itertools.permutations(stops))
    assert calculate_route_distance(ordered) >= best


def test_sequencer_can_reorder_stops():
    stops = [_location("A", 0.0, 1.0), _location("B", 0.0, 2.0), _location("C", 0.0, 3.0)]
    seen = []

    def reverse(worker, ordered):
        seen.append((worker.employee_id, [stop.id for stop in ordered]))
        return list(reversed(ordered))

    result = assign_locations_to_workers(stops, [_worker("W1", 0.0, 0.0)], sequencer=reverse)

    assert seen == [("W1", ["A", "B", "C"])]
    assert [item.location_id for item in result] == ["C", "B", "A"]
    assert [item.route_order for item in result] == [0, 1, 2]


def test_route_distance_edge_cases():
    assert calculate_route_distance([]) == 0.0
    assert calculate_route_distance([_location("L1", 40.0, -75.0)]) == 0.0


def test_route_distance_is_symmetric_and_non_negative():
    stops = [
        _location("A", 42.36, -71.06),
        _location("B", 42.35, -71.10),
        _location("C", 42.37, -71.11),
        _location("D", 42.34, -71.07),
    ]

    forward = calculate_route_distance(stops)
    backward = calculate_route_distance(list(reversed(stops)))

    assert forward > 0
    assert abs(forward - backward) < 1e-9


def test_route_distance_sums_consecutive_legs():
    stops = [_location("A", 0.0, 0.0), _location("B", 0.0, 1.0), _location("C", 0.0, 3.0)]

    one_degree = haversine_miles(0.0, 0.0, 0.0, 1.0)

    assert abs(calculate_route_distance(stops) - 3 * one_degree) < 1e-6
