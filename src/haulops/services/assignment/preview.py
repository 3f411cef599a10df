"""Per-worker route previews built from a finished assignment."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from ...models.domain import ClusterAssignment, RoutePreview, ServiceLocation
from .engine import calculate_route_distance

UNKNOWN_WORKER_NAME = "Unknown"


def build_route_previews(
    assignments: Sequence[ClusterAssignment],
    locations: Sequence[ServiceLocation],
    worker_names: Optional[Mapping[str, str]] = None,
) -> List[RoutePreview]:
    """Group assignments by employee, stops sorted by route_order.

    Previews come out in the order employees first appear in ``assignments``.
    ``total_distance`` covers stop-to-stop legs only, not the trip from the
    worker's current position to the first stop.
    """
    worker_names = worker_names or {}
    location_lookup = {location.id: location for location in locations}

    grouped: Dict[str, List[ClusterAssignment]] = {}
    for assignment in assignments:
        grouped.setdefault(assignment.employee_id, []).append(assignment)

    previews: List[RoutePreview] = []
    for employee_id, items in grouped.items():
        ordered_stops: List[ServiceLocation] = []
        for item in sorted(items, key=lambda a: a.route_order):
            location = location_lookup.get(item.location_id)
            if location is None:
                logging.warning(f"Location {item.location_id} not found for preview, skipping")
                continue
            ordered_stops.append(location)

        previews.append(
            RoutePreview(
                employee_id=employee_id,
                employee_name=worker_names.get(employee_id) or UNKNOWN_WORKER_NAME,
                stop_count=len(ordered_stops),
                total_distance=calculate_route_distance(ordered_stops),
                locations=ordered_stops,
            )
        )
    return previews
