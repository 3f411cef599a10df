"""Pre-filters applied before the assignment engine runs."""

from __future__ import annotations

import logging
from typing import Iterable, List

from ...models.domain import FieldWorker, ServiceLocation
from ..geospatial import is_valid_coordinate


def filter_valid_locations(locations: Iterable[ServiceLocation]) -> List[ServiceLocation]:
    valid: List[ServiceLocation] = []
    for location in locations:
        if not is_valid_coordinate(location.latitude, location.longitude):
            logging.warning(
                f"Skipping location {location.id}: invalid coordinates ({location.latitude}, {location.longitude})"
            )
            continue
        valid.append(location)
    return valid


def filter_available_workers(workers: Iterable[FieldWorker]) -> List[FieldWorker]:
    """Keep online workers whose last reported position is usable."""

    available: List[FieldWorker] = []
    for worker in workers:
        if not worker.is_online:
            continue
        if not is_valid_coordinate(worker.latitude, worker.longitude):
            logging.warning(
                f"Skipping employee {worker.employee_id}: invalid GPS position ({worker.latitude}, {worker.longitude})"
            )
            continue
        available.append(worker)
    return available


def exclude_assigned(locations: Iterable[ServiceLocation], assigned_ids: Iterable[str]) -> List[ServiceLocation]:
    taken = set(assigned_ids)
    return [location for location in locations if location.id not in taken]


def restrict_to_ids(items: Iterable, ids: Iterable[str] | None, *, attribute: str) -> list:
    """Keep items whose ``attribute`` is in ``ids``; no-op when ``ids`` is None.

    An empty ``ids`` selects nothing.
    """

    items = list(items)
    if ids is None:
        return items
    id_set = {value.strip() for value in ids}
    return [item for item in items if getattr(item, attribute) in id_set]
